"""Decoder for BGP OPEN messages and their capability parameters."""

from __future__ import annotations

import enum
import ipaddress
import logging
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bgpmsg.model import PeerInfo

log = logging.getLogger(__name__)

_HEADER = struct.Struct(">BHH4sB")
_CAP_PARAM_TYPE = 2

_AFI_NAMES = {
    1: "IPv4",
    2: "IPv6",
    25: "L2VPN",
    16388: "BGP-LS",
}

_SAFI_NAMES = {
    1: "Unicast",
    2: "Multicast",
    4: "Labeled Unicast",
    5: "MVPN",
    65: "VPLS",
    70: "EVPN",
    71: "BGP-LS",
    72: "BGP-LS VPN",
    128: "MPLS-labeled VPN",
    129: "Multicast VPN",
}


class CapabilityCode(enum.IntEnum):
    """BGP capability codes."""

    MPBGP = 1
    ROUTE_REFRESH = 2
    OUTBOUND_FILTER = 3
    MULTI_ROUTES_DEST = 4
    EXT_NEXTHOP = 5
    GRACEFUL_RESTART = 64
    FOUR_OCTET_ASN = 65
    DYN_CAP = 67
    MULTI_SESSION = 68
    ADD_PATH = 69
    ROUTE_REFRESH_ENHANCED = 70
    ROUTE_REFRESH_OLD = 128


class AddPathMode(enum.IntEnum):
    """ADD-PATH send/receive field values."""

    RECEIVE = 1
    SEND = 2
    SEND_RECEIVE = 3


_ADD_PATH_NAMES = {
    AddPathMode.SEND: "Send",
    AddPathMode.RECEIVE: "Receive",
    AddPathMode.SEND_RECEIVE: "Send/Receive",
}

_SIMPLE_CAPS = {
    CapabilityCode.ROUTE_REFRESH: "Route Refresh",
    CapabilityCode.ROUTE_REFRESH_ENHANCED: "Route Refresh Enhanced",
    CapabilityCode.ROUTE_REFRESH_OLD: "Route Refresh Old",
    CapabilityCode.GRACEFUL_RESTART: "Graceful Restart",
    CapabilityCode.OUTBOUND_FILTER: "Outbound Filter",
    CapabilityCode.MULTI_SESSION: "Multi-session",
}


class OpenMessageError(ValueError):
    """Raised when an OPEN message cannot be decoded."""


@dataclass
class OpenMessage:
    """Decoded contents of an OPEN message."""

    version: int
    asn: int
    hold_time: int
    bgp_id: str
    capabilities: List[str] = field(default_factory=list)
    length: int = 0


def _afi_name(afi: int) -> str:
    return _AFI_NAMES.get(afi, "unknown AFI")


def _safi_name(safi: int) -> str:
    return _SAFI_NAMES.get(safi, "unknown SAFI")


class _CapabilityReader:
    """Accumulates decoded capabilities; keeps partial results on error."""

    def __init__(self, sent: bool, peer_info: Optional[PeerInfo]) -> None:
        self.sent = sent
        self.peer_info = peer_info
        self.asn: Optional[int] = None
        self.capabilities: List[str] = []

    def read(self, data: bytes) -> None:
        pos = 0
        end = len(data)
        while pos + 2 <= end:
            param_type, param_len = data[pos], data[pos + 1]
            if param_type != _CAP_PARAM_TYPE:
                log.info("Open param type %d is not supported, expected type %d",
                         param_type, _CAP_PARAM_TYPE)
            elif param_len >= 2 and pos + 2 + param_len <= end:
                self._read_param(data[pos + 2:pos + 2 + param_len])
            pos += 2 + param_len

    def _read_param(self, data: bytes) -> None:
        pos = 0
        while pos + 2 <= len(data):
            code, length = data[pos], data[pos + 1]
            value = data[pos + 2:pos + 2 + length]
            if len(value) < length:
                log.info("Capability code=%d len=%d is truncated", code, length)
                return
            self._capability(code, value)
            pos += 2 + length

    def _capability(self, code: int, value: bytes) -> None:
        if code == CapabilityCode.FOUR_OCTET_ASN:
            if len(value) == 4:
                self.asn = int.from_bytes(value, "big")
                self.capabilities.append(f"4 Octet ASN ({int(CapabilityCode.FOUR_OCTET_ASN)})")
            else:
                log.info("4 octet ASN capability length is invalid %d expected 4", len(value))
        elif code in _SIMPLE_CAPS:
            self.capabilities.append(f"{_SIMPLE_CAPS[CapabilityCode(code)]} ({code})")
        elif code == CapabilityCode.ADD_PATH:
            self._add_path(value)
        elif code == CapabilityCode.MPBGP:
            if len(value) != 4:
                raise OpenMessageError(
                    f"MPBGP capability but length {len(value)} is invalid expected 4"
                )
            afi = int.from_bytes(value[0:2], "big")
            safi = value[3]
            self.capabilities.append(
                f"MPBGP ({int(CapabilityCode.MPBGP)}) : afi={afi} safi={safi}"
                f" : {_safi_name(safi)} {_afi_name(afi)}"
            )
        else:
            self.capabilities.append(str(code))
            log.debug("Ignoring capability %d, not implemented", code)

    def _add_path(self, value: bytes) -> None:
        for pos in range(0, len(value) - 3, 4):
            afi = int.from_bytes(value[pos:pos + 2], "big")
            safi = value[pos + 2]
            mode = value[pos + 3]
            mode_name = _ADD_PATH_NAMES.get(mode, "unknown")
            self.capabilities.append(
                f"ADD Path ({int(CapabilityCode.ADD_PATH)}) : afi={afi} safi={safi}"
                f" send/receive={mode} : {_safi_name(safi)} {_afi_name(afi)} {mode_name}"
            )
            if self.peer_info is not None:
                self.peer_info.add_path_capability.add(afi, safi, mode, self.sent)


def parse_capabilities(
    data: bytes, sent: bool = False, peer_info: Optional[PeerInfo] = None
) -> Tuple[List[str], Optional[int]]:
    """Decode the optional parameters of an OPEN message.

    Returns the decoded capability strings and the 4-octet ASN, or None
    when no valid 4-octet ASN capability was present. ADD-PATH modes are
    recorded in ``peer_info`` when given. Raises OpenMessageError when an
    MPBGP capability has an invalid length.
    """
    reader = _CapabilityReader(sent, peer_info)
    reader.read(bytes(data))
    return reader.capabilities, reader.asn


def parse_open(
    data: bytes, sent: bool = False, peer_info: Optional[PeerInfo] = None
) -> OpenMessage:
    """Decode an OPEN message body (starting after the common BGP header)."""
    data = bytes(data)
    if len(data) < _HEADER.size:
        raise OpenMessageError(
            "Could not read open message due to buffer having less bytes than open message size"
        )

    version, asn, hold, bgp_id_raw, param_len = _HEADER.unpack_from(data)
    message = OpenMessage(
        version=version,
        asn=asn,
        hold_time=hold,
        bgp_id=str(ipaddress.IPv4Address(bgp_id_raw)),
        length=_HEADER.size,
    )
    remaining = data[_HEADER.size:]

    if param_len == 0:
        log.warning("Capabilities in open message is ZERO/empty, this is abnormal")
        return message

    reader = _CapabilityReader(sent, peer_info)
    if param_len > len(remaining):
        log.warning(
            "Capabilities in open message are truncated; param_len %d > remaining %d",
            param_len, len(remaining),
        )
        try:
            reader.read(remaining)
        except OpenMessageError as exc:
            log.info("Truncated capabilities: %s", exc)
        message.length += len(remaining)
    else:
        reader.read(remaining[:param_len])
        message.length += param_len

    message.capabilities = reader.capabilities
    if reader.asn is not None:
        message.asn = reader.asn
    return message