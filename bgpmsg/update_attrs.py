"""Decoders for the path attributes carried in a BGP UPDATE message."""

from __future__ import annotations

import ipaddress
import logging
from typing import Dict, Optional

from bgpmsg.ls_attr import parse_link_state_attr
from bgpmsg.model import AttrType, ParsedUpdate, PeerInfo

log = logging.getLogger(__name__)

_FLAG_EXTENDED_LENGTH = 0x10
_AS_SET = 1
_ORIGINS = {0: "igp", 1: "egp", 2: "incomplete"}

_NOT_DECODED = {
    int(AttrType.EXT_COMMUNITY),
    int(AttrType.IPV6_EXT_COMMUNITY),
    int(AttrType.MP_REACH_NLRI),
    int(AttrType.MP_UNREACH_NLRI),
    int(AttrType.AS4_PATH),
    int(AttrType.AS4_AGGREGATOR),
}


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


def _ipv4(data: bytes) -> str:
    return str(ipaddress.IPv4Address(bytes(data[:4])))


def _u32(data: bytes) -> int:
    return int.from_bytes(data[:4], "big")


def _parse_as_path_with(data: bytes, octets: int) -> Optional[Dict[AttrType, str]]:
    """Decode with a fixed ASN width; None when the segments do not fit."""
    parts = []
    count = 0
    last_asn = 0
    pos = 0
    end = len(data)
    while pos < end:
        if pos + 2 > end:
            return None
        seg_type, seg_len = data[pos], data[pos + 1]
        pos += 2
        if seg_type == _AS_SET:
            parts.append(" {")
        if pos + seg_len * octets > end:
            log.info(
                "Could not parse the AS PATH using ASN octet size %d (%d > %d)",
                octets, seg_len * octets, end - pos,
            )
            return None
        for _ in range(seg_len):
            last_asn = int.from_bytes(data[pos:pos + octets], "big")
            pos += octets
            parts.append(f" {last_asn}")
            count += 1
        if seg_type == _AS_SET:
            parts.append(" }")
    return {
        AttrType.AS_PATH: "".join(parts),
        AttrType.INTERNAL_AS_COUNT: str(count),
        AttrType.INTERNAL_AS_ORIGIN: str(last_asn),
    }


def parse_as_path(data: bytes, peer_info: Optional[PeerInfo] = None) -> Dict[AttrType, str]:
    """Decode an AS_PATH attribute value.

    Returns the path, the number of ASNs and the last (origin) ASN keyed by
    attribute type, or an empty dict when nothing could be decoded. Four-octet
    ASNs are tried first; if they do not fit, ``peer_info`` is switched to
    two-octet encoding and the path is decoded again.
    """
    data = bytes(data)
    if peer_info is None:
        peer_info = PeerInfo()
    octets = 2 if peer_info.using_2_octet_asn else 4
    if len(data) < octets:
        return {}

    result = _parse_as_path_with(data, octets)
    if result is not None:
        return result
    if not peer_info.using_2_octet_asn:
        log.info("switching AS path encoding size to 2-octet")
        peer_info.using_2_octet_asn = True
        return parse_as_path(data, peer_info)
    return {}


def parse_aggregator(data: bytes) -> str:
    """Decode an AGGREGATOR value as ``"<asn> <ipv4>"``.

    Accepts the 6-byte (2-octet ASN) and 8-byte (4-octet ASN) forms and
    raises ValueError for any other length.
    """
    data = bytes(data)
    if len(data) == 8:
        asn, rest = int.from_bytes(data[:4], "big"), data[4:]
    elif len(data) == 6:
        asn, rest = int.from_bytes(data[:2], "big"), data[2:]
    else:
        raise ValueError("aggregator attribute is not the correct size of 6 or 8 octets")
    return f"{asn} {_ipv4(rest)}"


def _communities(data: bytes) -> str:
    return " ".join(
        f"{int.from_bytes(data[i:i + 2], 'big')}:{int.from_bytes(data[i + 2:i + 4], 'big')}"
        for i in range(0, len(data) - 3, 4)
    )


def _large_communities(data: bytes) -> str:
    return " ".join(
        ":".join(str(_u32(data[i + j:i + j + 4])) for j in (0, 4, 8))
        for i in range(0, len(data) - 11, 12)
    )


def decode_attribute(
    attr_type: int,
    data: bytes,
    parsed: ParsedUpdate,
    peer_info: Optional[PeerInfo] = None,
    peer_addr: str = "",
) -> None:
    """Decode one path attribute value into ``parsed``.

    Raises ValueError when a fixed-size value is too short.
    """
    data = bytes(data)
    attrs = parsed.attrs

    if attr_type == AttrType.ORIGIN:
        _require(data, 1, "ORIGIN")
        attrs[AttrType.ORIGIN] = _ORIGINS.get(data[0], "")
    elif attr_type == AttrType.AS_PATH:
        attrs.update(parse_as_path(data, peer_info))
    elif attr_type == AttrType.NEXT_HOP:
        _require(data, 4, "NEXT_HOP")
        attrs[AttrType.NEXT_HOP] = _ipv4(data)
    elif attr_type in (AttrType.MED, AttrType.LOCAL_PREF):
        _require(data, 4, AttrType(attr_type).name)
        attrs[AttrType(attr_type)] = str(_u32(data))
    elif attr_type == AttrType.ATOMIC_AGGREGATE:
        attrs[AttrType.ATOMIC_AGGREGATE] = "1"
    elif attr_type == AttrType.AGGREGATOR:
        attrs[AttrType.AGGREGATOR] = parse_aggregator(data)
    elif attr_type == AttrType.ORIGINATOR_ID:
        _require(data, 4, "ORIGINATOR_ID")
        attrs[AttrType.ORIGINATOR_ID] = _ipv4(data)
    elif attr_type == AttrType.CLUSTER_LIST:
        attrs[AttrType.CLUSTER_LIST] = "".join(
            f"{_ipv4(data[i:i + 4])} " for i in range(0, len(data) - 3, 4)
        )
    elif attr_type == AttrType.COMMUNITIES:
        attrs[AttrType.COMMUNITIES] = _communities(data)
    elif attr_type == AttrType.LARGE_COMMUNITY:
        if len(data) >= 12:
            attrs[AttrType.LARGE_COMMUNITY] = _large_communities(data)
    elif attr_type == AttrType.BGP_LS:
        parse_link_state_attr(data, parsed, peer_addr)
    elif attr_type == AttrType.AS_PATHLIMIT:
        pass
    elif attr_type in _NOT_DECODED:
        log.debug("%s: attribute type %d is not decoded, skipping", peer_addr, attr_type)
    else:
        log.debug(
            "%s: attribute type %d is not yet implemented or intentionally ignored",
            peer_addr, attr_type,
        )


def parse_attributes(
    data: bytes,
    parsed: ParsedUpdate,
    peer_info: Optional[PeerInfo] = None,
    peer_addr: str = "",
) -> ParsedUpdate:
    """Decode the path attributes block of an UPDATE into ``parsed``.

    Parsing stops at the first attribute whose data runs past the block.
    Attributes with a zero length are skipped.
    """
    data = bytes(data)
    if not data:
        return parsed
    if len(data) < 3:
        log.warning(
            "%s: Cannot parse the attributes due to the data being too short. len=%d",
            peer_addr, len(data),
        )
        return parsed

    if peer_info is None:
        peer_info = PeerInfo()
    pos = 0
    end = len(data)
    while pos < end:
        if pos + 2 > end:
            log.info("%s: attribute header is truncated", peer_addr)
            break
        flags, attr_type = data[pos], data[pos + 1]
        pos += 2
        size = 2 if flags & _FLAG_EXTENDED_LENGTH else 1
        if pos + size > end:
            log.info("%s: attribute length field is truncated", peer_addr)
            break
        attr_len = int.from_bytes(data[pos:pos + size], "big")
        pos += size

        if attr_len == 0:
            continue
        if pos + attr_len > end:
            log.info(
                "%s: Attribute data len of %d is larger than available data of %d",
                peer_addr, attr_len, end - pos,
            )
            break
        try:
            decode_attribute(attr_type, data[pos:pos + attr_len], parsed, peer_info, peer_addr)
        except ValueError as exc:
            log.error("%s: attribute type %d: %s", peer_addr, attr_type, exc)
        pos += attr_len
    return parsed