"""Parser for the BGP-LS path attribute (type 29) TLVs."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Sequence

from bgpmsg.ls_codec import (
    LS_FLAGS_NODE_NLRI,
    LinkAttr,
    NodeAttr,
    PrefixAttr,
    ieee_float_to_kbps,
    parse_flags,
)
from bgpmsg.ls_sr import (
    decode_adjacency_sid,
    decode_peer_node_sid,
    decode_prefix_sid,
    decode_sr_capabilities,
)
from bgpmsg.model import ParsedUpdate

log = logging.getLogger(__name__)

_TLV_HEADER = 4

_NOT_IMPLEMENTED = {
    int(NodeAttr.OPAQUE): "opaque node attribute",
    int(LinkAttr.MPLS_PROTO_MASK): "link MPLS Protocol mask attribute",
    int(LinkAttr.PROTECTION_TYPE): "link protection type attribute",
    int(LinkAttr.SRLG): "link SRLG attribute",
    int(LinkAttr.OPAQUE): "opaque link attribute",
    int(LinkAttr.PEER_EPE_SET_SID): "peer epe set SID link attribute",
    int(LinkAttr.PEER_EPE_ADJ_SID): "peer epe adjacency SID link attribute",
    int(PrefixAttr.EXTEND_TAG): "prefix extended tag attribute",
    int(PrefixAttr.IGP_FLAGS): "prefix IGP flags attribute",
    int(PrefixAttr.OSPF_FWD_ADDR): "prefix OSPF forwarding address attribute",
    int(PrefixAttr.OPAQUE_PREFIX): "opaque prefix attribute",
}


def _first_protocol(items: Sequence[Any]) -> str:
    """Protocol name of the first decoded NLRI object, or an empty string."""
    if not items:
        return ""
    item = items[0]
    if isinstance(item, Mapping):
        return str(item.get("protocol", ""))
    return str(getattr(item, "protocol", ""))


def _c_string(value: bytes) -> str:
    """Text up to the first NUL byte."""
    return value.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _to_int32(value: int) -> int:
    return value - (1 << 32) if value & 0x80000000 else value


class LinkStateAttrParser:
    """Decodes BGP-LS attribute TLVs into ``parsed.ls_attrs``.

    Values are stored keyed by TLV type code: addresses and names as text,
    metrics and bandwidths as integers, SIDs and flag sets as strings.
    """

    def __init__(self, parsed: ParsedUpdate, peer_addr: str = "") -> None:
        self.parsed = parsed
        self.peer_addr = peer_addr
        self._handlers: Dict[int, Callable[[int, bytes], None]] = {
            int(NodeAttr.FLAG): self._node_flags,
            int(NodeAttr.IPV4_ROUTER_ID_LOCAL): self._ipv4_router_id,
            int(NodeAttr.IPV6_ROUTER_ID_LOCAL): self._ipv6_router_id,
            int(NodeAttr.ISIS_AREA_ID): self._isis_area_id,
            int(NodeAttr.MT_ID): self._mt_id,
            int(NodeAttr.NAME): self._name,
            int(NodeAttr.SR_CAPABILITIES): self._sr_capabilities,
            int(LinkAttr.ADMIN_GROUP): self._admin_group,
            int(LinkAttr.IGP_METRIC): self._igp_metric,
            int(LinkAttr.IPV4_ROUTER_ID_REMOTE): self._ipv4_router_id,
            int(LinkAttr.IPV6_ROUTER_ID_REMOTE): self._ipv6_router_id,
            int(LinkAttr.MAX_LINK_BW): self._bandwidth,
            int(LinkAttr.MAX_RESV_BW): self._bandwidth,
            int(LinkAttr.NAME): self._name,
            int(LinkAttr.ADJACENCY_SID): self._adjacency_sid,
            int(LinkAttr.TE_DEF_METRIC): self._te_default_metric,
            int(LinkAttr.UNRESV_BW): self._unreserved_bw,
            int(LinkAttr.PEER_EPE_NODE_SID): self._peer_node_sid,
            int(PrefixAttr.PREFIX_METRIC): self._prefix_metric,
            int(PrefixAttr.ROUTE_TAG): self._route_tag,
            int(PrefixAttr.SID): self._prefix_sid,
        }

    @property
    def attrs(self) -> Dict[int, Any]:
        return self.parsed.ls_attrs

    def parse(self, data: bytes) -> Dict[int, Any]:
        """Parse every TLV in ``data`` and return the updated attribute map."""
        data = bytes(data)
        pos = 0
        while pos < len(data):
            pos += self.parse_tlv(data[pos:])
        return self.attrs

    def parse_tlv(self, data: bytes) -> int:
        """Parse one TLV at the start of ``data``; return the bytes consumed."""
        data = bytes(data)
        if len(data) < _TLV_HEADER:
            log.info("%s: bgp-ls: failed to parse attribute; too short", self.peer_addr)
            return len(data)

        tlv_type = int.from_bytes(data[0:2], "big")
        length = int.from_bytes(data[2:4], "big")
        if length > len(data) - _TLV_HEADER:
            log.info(
                "%s: bgp-ls: attribute type=%d len=%d exceeds the %d bytes available",
                self.peer_addr, tlv_type, length, len(data) - _TLV_HEADER,
            )
            return len(data)

        value = data[_TLV_HEADER:_TLV_HEADER + length]
        handler = self._handlers.get(tlv_type)
        if handler is not None:
            try:
                handler(tlv_type, value)
            except ValueError as exc:
                log.info("%s: bgp-ls: attribute type=%d: %s", self.peer_addr, tlv_type, exc)
        elif tlv_type in _NOT_IMPLEMENTED:
            log.info(
                "%s: bgp-ls: %s (len=%d), not yet implemented",
                self.peer_addr, _NOT_IMPLEMENTED[tlv_type], length,
            )
        else:
            log.info(
                "%s: bgp-ls: Attribute type=%d len=%d not yet implemented, skipping",
                self.peer_addr, tlv_type, length,
            )
        return length + _TLV_HEADER

    def _node_flags(self, code: int, value: bytes) -> None:
        if len(value) != 1:
            log.info("%s: bgp-ls: node flag attribute length is %d, should be 1",
                     self.peer_addr, len(value))
        if not value:
            return
        self.attrs[code] = parse_flags(value[0], LS_FLAGS_NODE_NLRI)

    def _ipv4_router_id(self, code: int, value: bytes) -> None:
        if len(value) != 4:
            log.info("%s: bgp-ls: IPv4 router id attribute %d has bad length %d",
                     self.peer_addr, code, len(value))
            return
        self.attrs[code] = str(ipaddress.IPv4Address(value))

    def _ipv6_router_id(self, code: int, value: bytes) -> None:
        if len(value) != 16:
            log.info("%s: bgp-ls: IPv6 router id attribute %d has bad length %d",
                     self.peer_addr, code, len(value))
            return
        self.attrs[code] = str(ipaddress.IPv6Address(value))

    def _isis_area_id(self, code: int, value: bytes) -> None:
        if len(value) <= 8:
            self.attrs[code] = value
        else:
            log.info("%s: bgp-ls: ISIS area id is too long (len=%d)", self.peer_addr, len(value))

    def _mt_id(self, code: int, value: bytes) -> None:
        ids = [int.from_bytes(value[i:i + 2], "big") for i in range(0, len(value), 2)]
        self.attrs[code] = ", ".join(str(mt_id) for mt_id in ids)

    def _name(self, code: int, value: bytes) -> None:
        self.attrs[code] = _c_string(value)

    def _sr_capabilities(self, code: int, value: bytes) -> None:
        protocol = _first_protocol(self.parsed.ls.nodes)
        self.attrs[code] = decode_sr_capabilities(value, protocol)

    def _admin_group(self, code: int, value: bytes) -> None:
        if len(value) != 4:
            log.info("%s: bgp-ls: link admin group size is not 4", self.peer_addr)
            return
        self.attrs[code] = int.from_bytes(value, "big")

    def _igp_metric(self, code: int, value: bytes) -> None:
        if len(value) <= 4:
            self.attrs[code] = int.from_bytes(value, "big")

    def _bandwidth(self, code: int, value: bytes) -> None:
        if len(value) != 4:
            log.info("%s: bgp-ls: bandwidth attribute %d has bad length %d",
                     self.peer_addr, code, len(value))
            return
        self.attrs[code] = ieee_float_to_kbps(int.from_bytes(value, "big"))

    def _adjacency_sid(self, code: int, value: bytes) -> None:
        protocol = _first_protocol(self.parsed.ls.links)
        self._append(code, decode_adjacency_sid(value, protocol))

    def _prefix_sid(self, code: int, value: bytes) -> None:
        protocol = _first_protocol(self.parsed.ls.prefixes)
        self._append(code, decode_prefix_sid(value, protocol))

    def _append(self, code: int, text: str) -> None:
        current = self.attrs.get(code)
        self.attrs[code] = f"{current}, {text}" if current else text

    def _te_default_metric(self, code: int, value: bytes) -> None:
        # RFC 7752 says 4 bytes, but some implementations send fewer.
        if len(value) > 4:
            log.info("%s: bgp-ls: TE default metric too long %d", self.peer_addr, len(value))
            return
        self.attrs[code] = int.from_bytes(value, "big") if value else 0

    def _unreserved_bw(self, code: int, value: bytes) -> None:
        if len(value) != 32:
            log.info("%s: bgp-ls: link unreserve bw length is %d but should be 32",
                     self.peer_addr, len(value))
            return
        rates = (
            _to_int32(ieee_float_to_kbps(int.from_bytes(value[i:i + 4], "big")))
            for i in range(0, 32, 4)
        )
        self.attrs[code] = ", ".join(str(rate) for rate in rates)

    def _peer_node_sid(self, code: int, value: bytes) -> None:
        self.attrs[code] = decode_peer_node_sid(value)

    def _prefix_metric(self, code: int, value: bytes) -> None:
        self.attrs[code] = int.from_bytes(value, "big") if len(value) <= 4 else 0

    def _route_tag(self, code: int, value: bytes) -> None:
        # Only the first tag is decoded.
        if len(value) == 4:
            self.attrs[code] = int.from_bytes(value, "big")


def parse_link_state_attr(data: bytes, parsed: ParsedUpdate, peer_addr: str = "") -> ParsedUpdate:
    """Decode a BGP-LS attribute value into ``parsed`` and return it."""
    LinkStateAttrParser(parsed, peer_addr).parse(data)
    return parsed