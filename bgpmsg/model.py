"""Data structures shared by the BGP message parsers."""

from __future__ import annotations

import enum
import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

_ADD_PATH_RECEIVE = 1
_ADD_PATH_SEND = 2
_ADD_PATH_SEND_RECEIVE = 3


class AttrType(enum.IntEnum):
    """BGP path attribute type codes, plus internal derived attributes."""

    ORIGIN = 1
    AS_PATH = 2
    NEXT_HOP = 3
    MED = 4
    LOCAL_PREF = 5
    ATOMIC_AGGREGATE = 6
    AGGREGATOR = 7
    COMMUNITIES = 8
    ORIGINATOR_ID = 9
    CLUSTER_LIST = 10
    DPA = 11
    ADVERTISER = 12
    RCID_PATH = 13
    MP_REACH_NLRI = 14
    MP_UNREACH_NLRI = 15
    EXT_COMMUNITY = 16
    AS4_PATH = 17
    AS4_AGGREGATOR = 18
    AS_PATHLIMIT = 21
    IPV6_EXT_COMMUNITY = 25
    AIGP = 26
    BGP_LS = 29
    LARGE_COMMUNITY = 32
    BGP_LINK_STATE_OLD = 99
    BGP_ATTRIBUTE_SET = 128

    # Derived from other attributes; never seen on the wire.
    INTERNAL_AS_COUNT = 9000
    INTERNAL_AS_ORIGIN = 9001


@dataclass(frozen=True)
class PrefixTuple:
    """A single advertised or withdrawn prefix."""

    prefix: str
    length: int
    path_id: int = 0
    is_ipv4: bool = True

    @property
    def prefix_bin(self) -> bytes:
        """The prefix address in network byte order."""
        return ipaddress.ip_address(self.prefix).packed

    def __str__(self) -> str:
        return f"{self.prefix}/{self.length}"


@dataclass
class ParsedLinkState:
    """BGP-LS nodes, links and prefixes decoded from NLRI."""

    nodes: List[Any] = field(default_factory=list)
    links: List[Any] = field(default_factory=list)
    prefixes: List[Any] = field(default_factory=list)


@dataclass
class ParsedUpdate:
    """Everything decoded from one UPDATE message."""

    attrs: Dict[AttrType, str] = field(default_factory=dict)
    withdrawn: List[PrefixTuple] = field(default_factory=list)
    advertised: List[PrefixTuple] = field(default_factory=list)
    ls_attrs: Dict[int, Any] = field(default_factory=dict)
    ls: ParsedLinkState = field(default_factory=ParsedLinkState)
    ls_withdrawn: ParsedLinkState = field(default_factory=ParsedLinkState)
    vpn: List[Any] = field(default_factory=list)
    vpn_withdrawn: List[Any] = field(default_factory=list)
    evpn: List[Any] = field(default_factory=list)
    evpn_withdrawn: List[Any] = field(default_factory=list)


class AddPathCapability:
    """ADD-PATH modes advertised in the sent and received OPEN messages.

    ADD-PATH is in effect for an AFI/SAFI when the sent OPEN offers to
    receive paths and the received OPEN offers to send them.
    """

    def __init__(self) -> None:
        # (afi, safi) -> [mode in sent OPEN, mode in received OPEN]
        self._modes: Dict[Tuple[int, int], List[int]] = {}

    def add(self, afi: int, safi: int, send_receive: int, sent_open: bool) -> None:
        """Record the mode advertised for ``afi``/``safi`` in one OPEN."""
        modes = self._modes.setdefault((afi, safi), [0, 0])
        modes[0 if sent_open else 1] = send_receive

    def is_enabled(self, afi: int, safi: int) -> bool:
        """Return True when path identifiers are carried for ``afi``/``safi``."""
        modes = self._modes.get((afi, safi))
        if modes is None:
            return False
        sent, received = modes
        return sent in (_ADD_PATH_RECEIVE, _ADD_PATH_SEND_RECEIVE) and received in (
            _ADD_PATH_SEND,
            _ADD_PATH_SEND_RECEIVE,
        )


@dataclass
class PeerInfo:
    """Per-peer state kept across messages."""

    recv_four_octet_asn: bool = False
    sent_four_octet_asn: bool = False
    using_2_octet_asn: bool = False
    end_of_rib: bool = False
    add_path_capability: AddPathCapability = field(default_factory=AddPathCapability)

    @property
    def four_octet_asn(self) -> bool:
        """True when both OPEN messages advertised 4-octet ASN support."""
        return self.recv_four_octet_asn and self.sent_four_octet_asn