"""Decoders for BGP-LS segment-routing attribute values."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from bgpmsg.ls_codec import (
    LS_FLAGS_PEER_ADJ_SID_ISIS,
    LS_FLAGS_PEER_ADJ_SID_OSPF,
    LS_FLAGS_PREFIX_SID_ISIS,
    LS_FLAGS_PREFIX_SID_OSPF,
    LS_FLAGS_SR_CAP_ISIS,
    SUB_TLV_SID_LABEL,
    parse_flags,
    parse_sid_value,
)

log = logging.getLogger(__name__)

_ALGORITHMS = {0: "SPF ", 1: "strict-SPF "}


def _is_isis(protocol: str) -> bool:
    # Protocol families are told apart by ordering against these names.
    return protocol >= "IS-IS"


def _is_ospf(protocol: str) -> bool:
    return protocol >= "OSPF"


def _flag_string(value: int, protocol: str, isis: Sequence[str], ospf: Sequence[str]) -> str:
    names: Optional[Sequence[str]]
    if _is_isis(protocol):
        names = isis
    elif _is_ospf(protocol):
        names = ospf
    else:
        names = None
    return parse_flags(value, names) if names is not None else ""


def _require(data: bytes, minimum: int, what: str) -> None:
    if len(data) < minimum:
        raise ValueError(f"{what} needs at least {minimum} bytes, got {len(data)}")


def decode_sr_capabilities(data: bytes, protocol: str) -> str:
    """Decode an SR Capabilities value as ``"<flags> <range> <sid>, ..."``.

    ``protocol`` is the protocol name of the node the attribute belongs to.
    """
    _require(data, 2, "SR capabilities")
    flags = data[0]
    if _is_isis(protocol):
        head = parse_flags(flags, LS_FLAGS_SR_CAP_ISIS)
    elif _is_ospf(protocol):
        head = str(flags)
    else:
        head = ""

    entries = []
    pos = 2
    end = len(data)
    while pos < end:
        if pos + 7 > end:
            log.info("bgp-ls: SR capabilities range entry is truncated")
            break
        label_range = int.from_bytes(data[pos:pos + 3], "big")
        sub_type = int.from_bytes(data[pos + 3:pos + 5], "big")
        size = int.from_bytes(data[pos + 5:pos + 7], "big")
        pos += 7
        entry = str(label_range)

        if sub_type != SUB_TLV_SID_LABEL:
            log.info("bgp-ls: parsed node sr capabilities, SUB TLV type %d is unexpected", sub_type)
            entries.append(entry)
            break
        if size not in (3, 4) or pos + size > end:
            log.info("bgp-ls: parsed node sr capabilities, sid label size is unexpected")
            entries.append(entry)
            break

        entry += f" {int.from_bytes(data[pos:pos + size], 'big')}"
        entries.append(entry)
        pos += size

    return f"{head} " + ", ".join(entries)


def decode_adjacency_sid(data: bytes, protocol: str) -> str:
    """Decode an Adjacency SID value as ``"<flags> <weight> <sid>"``."""
    _require(data, 4, "adjacency SID")
    flags = _flag_string(data[0], protocol, LS_FLAGS_PEER_ADJ_SID_ISIS, LS_FLAGS_PEER_ADJ_SID_OSPF)
    return f"{flags} {data[1]} {parse_sid_value(data[4:])}"


def decode_prefix_sid(data: bytes, protocol: str) -> str:
    """Decode a Prefix SID value as ``"<flags> [<algorithm> ]<sid>"``."""
    _require(data, 4, "prefix SID")
    flags = _flag_string(data[0], protocol, LS_FLAGS_PREFIX_SID_ISIS, LS_FLAGS_PREFIX_SID_OSPF)
    algorithm = _ALGORITHMS.get(data[1], "")
    return f"{flags} {algorithm}{parse_sid_value(data[4:])}"


def decode_peer_node_sid(data: bytes) -> str:
    """Decode an EPE Peer Node SID value as ``"[V][L] <weight> <sid>"``."""
    _require(data, 4, "peer node SID")
    flags = ("V" if data[0] & 0x80 else "") + ("L" if data[0] & 0x40 else "")
    return f"{flags} {data[1]} {parse_sid_value(data[4:])}"