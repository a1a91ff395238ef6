import struct
from types import SimpleNamespace

from bgpmsg.ls_attr import LinkStateAttrParser, parse_link_state_attr
from bgpmsg.ls_codec import LinkAttr, NodeAttr, PrefixAttr, ieee_float_to_kbps
from bgpmsg.ls_sr import decode_adjacency_sid, decode_prefix_sid
from bgpmsg.model import ParsedUpdate


def tlv(tlv_type, value):
    return struct.pack(">HH", tlv_type, len(value)) + value


def parser():
    return LinkStateAttrParser(ParsedUpdate(), "192.0.2.1")


def test_node_name():
    p = parser()
    p.parse(tlv(NodeAttr.NAME, b"router1"))
    assert p.attrs[NodeAttr.NAME] == "router1"


def test_link_name_stops_at_nul():
    p = parser()
    p.parse(tlv(LinkAttr.NAME, b"ge-0\x00junk"))
    assert p.attrs[LinkAttr.NAME] == "ge-0"


def test_node_flags():
    p = parser()
    p.parse(tlv(NodeAttr.FLAG, bytes([0x80 | 0x20])))
    assert p.attrs[NodeAttr.FLAG] == "OE"


def test_ipv4_router_id_local():
    p = parser()
    p.parse(tlv(NodeAttr.IPV4_ROUTER_ID_LOCAL, bytes([10, 0, 0, 1])))
    assert p.attrs[1028] == "10.0.0.1"


def test_ipv4_router_id_wrong_length_not_stored():
    p = parser()
    p.parse(tlv(LinkAttr.IPV4_ROUTER_ID_REMOTE, bytes([10, 0, 0])))
    assert LinkAttr.IPV4_ROUTER_ID_REMOTE not in p.attrs


def test_ipv6_router_id_remote():
    p = parser()
    p.parse(tlv(LinkAttr.IPV6_ROUTER_ID_REMOTE, bytes([0x20, 0x01, 0x0D, 0xB8]) + bytes(11) + b"\x01"))
    assert p.attrs[LinkAttr.IPV6_ROUTER_ID_REMOTE] == "2001:db8::1"


def test_igp_metric_short_encoding():
    p = parser()
    p.parse(tlv(LinkAttr.IGP_METRIC, bytes([0, 0, 10])))
    assert p.attrs[LinkAttr.IGP_METRIC] == 10


def test_max_link_bandwidth_matches_codec():
    raw = struct.pack(">f", 125000.0)
    p = parser()
    p.parse(tlv(LinkAttr.MAX_LINK_BW, raw))
    assert p.attrs[LinkAttr.MAX_LINK_BW] == ieee_float_to_kbps(int.from_bytes(raw, "big"))


def test_unreserved_bandwidth_has_eight_entries():
    raw = struct.pack(">8f", *([125000.0] * 8))
    p = parser()
    p.parse(tlv(LinkAttr.UNRESV_BW, raw))
    parts = p.attrs[LinkAttr.UNRESV_BW].split(", ")
    expected = str(ieee_float_to_kbps(int.from_bytes(raw[:4], "big")))
    assert parts == [expected] * 8


def test_unreserved_bandwidth_wrong_length_ignored():
    p = parser()
    p.parse(tlv(LinkAttr.UNRESV_BW, bytes(16)))
    assert LinkAttr.UNRESV_BW not in p.attrs


def test_te_default_metric_empty_and_too_long():
    p = parser()
    p.parse(tlv(LinkAttr.TE_DEF_METRIC, b""))
    assert p.attrs[LinkAttr.TE_DEF_METRIC] == 0
    q = parser()
    q.parse(tlv(LinkAttr.TE_DEF_METRIC, bytes(5)))
    assert LinkAttr.TE_DEF_METRIC not in q.attrs


def test_mt_id_list():
    p = parser()
    p.parse(tlv(NodeAttr.MT_ID, struct.pack(">HH", 2, 3)))
    assert p.attrs[NodeAttr.MT_ID] == "2, 3"


def test_adjacency_sids_are_appended():
    parsed = ParsedUpdate()
    parsed.ls.links.append(SimpleNamespace(protocol="IS-IS_L2"))
    first = bytes([0x30, 10, 0, 0]) + (24001).to_bytes(3, "big")
    second = bytes([0x30, 20, 0, 0]) + (24002).to_bytes(3, "big")
    parse_link_state_attr(
        tlv(LinkAttr.ADJACENCY_SID, first) + tlv(LinkAttr.ADJACENCY_SID, second), parsed
    )
    assert parsed.ls_attrs[LinkAttr.ADJACENCY_SID] == (
        decode_adjacency_sid(first, "IS-IS_L2") + ", " + decode_adjacency_sid(second, "IS-IS_L2")
    )


def test_prefix_sid_uses_prefix_protocol():
    parsed = ParsedUpdate()
    parsed.ls.prefixes.append({"protocol": "OSPFv2"})
    value = bytes([0x40, 0, 0, 0]) + (100).to_bytes(4, "big")
    parse_link_state_attr(tlv(PrefixAttr.SID, value), parsed)
    assert parsed.ls_attrs[PrefixAttr.SID] == decode_prefix_sid(value, "OSPFv2")


def test_prefix_metric_and_route_tag():
    p = parser()
    p.parse(tlv(PrefixAttr.PREFIX_METRIC, (20).to_bytes(4, "big"))
            + tlv(PrefixAttr.ROUTE_TAG, (7).to_bytes(4, "big")))
    assert p.attrs[PrefixAttr.PREFIX_METRIC] == 20
    assert p.attrs[PrefixAttr.ROUTE_TAG] == 7


def test_unknown_tlv_skipped_and_next_parsed():
    p = parser()
    p.parse(tlv(9999, b"abc") + tlv(NodeAttr.NAME, b"r2"))
    assert p.attrs == {int(NodeAttr.NAME): "r2"}


def test_parse_tlv_returns_consumed_length():
    p = parser()
    assert p.parse_tlv(tlv(NodeAttr.NAME, b"abcde") + b"trailing") == 9
    assert p.parse_tlv(b"\x04") == 1


def test_truncated_tlv_consumes_rest():
    p = parser()
    data = struct.pack(">HH", NodeAttr.NAME, 50) + b"short"
    assert p.parse_tlv(data) == len(data)
    assert NodeAttr.NAME not in p.attrs


def test_parse_link_state_attr_returns_parsed():
    parsed = ParsedUpdate()
    result = parse_link_state_attr(tlv(LinkAttr.ADMIN_GROUP, (1).to_bytes(4, "big")), parsed)
    assert result is parsed
    assert parsed.ls_attrs[LinkAttr.ADMIN_GROUP] == 1