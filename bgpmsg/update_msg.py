"""Decoder for BGP UPDATE message bodies."""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Optional

from bgpmsg.model import ParsedUpdate, PeerInfo, PrefixTuple
from bgpmsg.update_attrs import parse_attributes

log = logging.getLogger(__name__)

_AFI_IPV4 = 1
_SAFI_UNICAST = 1
_PATH_ID_SIZE = 4


class UpdateMessageError(ValueError):
    """Raised when an UPDATE message is too short to be decoded."""


def parse_nlri_v4(data: bytes, peer_info: Optional[PeerInfo] = None) -> List[PrefixTuple]:
    """Decode a block of IPv4 unicast prefixes (withdrawn routes or NLRI).

    Path identifiers are read when ADD-PATH is in effect for IPv4 unicast
    on ``peer_info``. Decoding stops at a prefix longer than 32 bits or at
    a prefix whose bytes run past the end of the block.
    """
    data = bytes(data)
    add_path = peer_info is not None and peer_info.add_path_capability.is_enabled(
        _AFI_IPV4, _SAFI_UNICAST
    )

    prefixes: List[PrefixTuple] = []
    pos = 0
    end = len(data)
    while pos < end:
        path_id = 0
        if add_path and end - pos >= _PATH_ID_SIZE:
            path_id = int.from_bytes(data[pos:pos + _PATH_ID_SIZE], "big")
            pos += _PATH_ID_SIZE
            if pos >= end:
                log.info("NLRI v4 entry is truncated after its path id")
                break

        bits = data[pos]
        pos += 1
        addr_bytes = (bits + 7) // 8

        if addr_bytes > 4:
            log.info("NLRI v4 address is larger than 4 bytes bytes=%d len=%d", addr_bytes, bits)
            break
        if pos + addr_bytes > end:
            log.info("NLRI v4 prefix of %d bits is truncated", bits)
            break

        raw = data[pos:pos + addr_bytes].ljust(4, b"\x00")
        pos += addr_bytes
        prefixes.append(
            PrefixTuple(
                prefix=str(ipaddress.IPv4Address(raw)),
                length=bits,
                path_id=path_id,
                is_ipv4=True,
            )
        )
    return prefixes


def parse_update(
    data: bytes, peer_info: Optional[PeerInfo] = None, peer_addr: str = ""
) -> ParsedUpdate:
    """Decode an UPDATE message body (starting after the common BGP header).

    An UPDATE with no withdrawn routes, no attributes and no NLRI is the
    End-of-RIB marker; it sets ``peer_info.end_of_rib``. Raises
    UpdateMessageError when the message is too short for its own lengths.
    """
    data = bytes(data)
    if peer_info is None:
        peer_info = PeerInfo()
    parsed = ParsedUpdate()

    if len(data) < 2:
        raise UpdateMessageError("Update message is too short to parse header")

    withdrawn_len = int.from_bytes(data[0:2], "big")
    pos = 2
    if len(data) - pos < withdrawn_len:
        raise UpdateMessageError("Update message is too short to parse withdrawn data")
    withdrawn = data[pos:pos + withdrawn_len]
    pos += withdrawn_len

    if len(data) - pos < 2:
        raise UpdateMessageError("Update message is too short to parse attribute length")
    attr_len = int.from_bytes(data[pos:pos + 2], "big")
    pos += 2
    if len(data) - pos < attr_len:
        raise UpdateMessageError("Update message is too short to parse attr data")
    attributes = data[pos:pos + attr_len]
    pos += attr_len
    nlri = data[pos:]

    if not withdrawn_len and not attr_len and not nlri:
        peer_info.end_of_rib = True
        log.info("%s: End-Of-RIB marker", peer_addr)
        return parsed

    if withdrawn:
        parsed.withdrawn = parse_nlri_v4(withdrawn, peer_info)
    if attributes:
        parse_attributes(attributes, parsed, peer_info, peer_addr)
    if nlri:
        parsed.advertised = parse_nlri_v4(nlri, peer_info)
    return parsed