import pytest

from bgpmsg.model import AttrType, ParsedUpdate, PeerInfo
from bgpmsg.update_attrs import (
    decode_attribute,
    parse_aggregator,
    parse_as_path,
    parse_attributes,
)


def _seg(seg_type, asns, octets):
    body = bytes([seg_type, len(asns)])
    for asn in asns:
        body += asn.to_bytes(octets, "big")
    return body


def _attr(flags, attr_type, value):
    if flags & 0x10:
        return bytes([flags, attr_type]) + len(value).to_bytes(2, "big") + value
    return bytes([flags, attr_type, len(value)]) + value


def test_as_path_four_octet_sequence():
    info = PeerInfo()
    result = parse_as_path(_seg(2, [65001, 4200000000], 4), info)
    assert result[AttrType.AS_PATH] == " 65001 4200000000"
    assert result[AttrType.INTERNAL_AS_COUNT] == "2"
    assert result[AttrType.INTERNAL_AS_ORIGIN] == "4200000000"
    assert info.using_2_octet_asn is False


def test_as_path_falls_back_to_two_octet():
    info = PeerInfo()
    result = parse_as_path(_seg(2, [100, 200], 2), info)
    assert info.using_2_octet_asn is True
    assert result[AttrType.AS_PATH] == " 100 200"
    assert result[AttrType.INTERNAL_AS_ORIGIN] == "200"


def test_as_path_as_set_braces():
    info = PeerInfo()
    data = _seg(2, [10], 4) + _seg(1, [20, 30], 4)
    result = parse_as_path(data, info)
    assert result[AttrType.AS_PATH] == " 10 { 20 30 }"
    assert result[AttrType.INTERNAL_AS_COUNT] == "3"


def test_as_path_too_short_returns_empty():
    assert parse_as_path(b"\x02", PeerInfo()) == {}


def test_as_path_unparsable_in_two_octet_mode_is_empty():
    info = PeerInfo(using_2_octet_asn=True)
    assert parse_as_path(bytes([2, 5, 0, 1]), info) == {}


def test_aggregator_four_octet():
    data = (65000).to_bytes(4, "big") + bytes([10, 0, 0, 1])
    assert parse_aggregator(data) == "65000 10.0.0.1"


def test_aggregator_two_octet():
    data = (300).to_bytes(2, "big") + bytes([192, 0, 2, 7])
    assert parse_aggregator(data) == "300 192.0.2.7"


def test_aggregator_bad_length():
    with pytest.raises(ValueError):
        parse_aggregator(b"\x00" * 5)


@pytest.mark.parametrize("code,name", [(0, "igp"), (1, "egp"), (2, "incomplete"), (9, "")])
def test_origin(code, name):
    parsed = ParsedUpdate()
    decode_attribute(AttrType.ORIGIN, bytes([code]), parsed)
    assert parsed.attrs[AttrType.ORIGIN] == name


def test_next_hop_med_local_pref_originator():
    parsed = ParsedUpdate()
    decode_attribute(AttrType.NEXT_HOP, bytes([192, 0, 2, 1]), parsed)
    decode_attribute(AttrType.MED, (50).to_bytes(4, "big"), parsed)
    decode_attribute(AttrType.LOCAL_PREF, (100).to_bytes(4, "big"), parsed)
    decode_attribute(AttrType.ORIGINATOR_ID, bytes([198, 51, 100, 4]), parsed)
    assert parsed.attrs[AttrType.NEXT_HOP] == "192.0.2.1"
    assert parsed.attrs[AttrType.MED] == "50"
    assert parsed.attrs[AttrType.LOCAL_PREF] == "100"
    assert parsed.attrs[AttrType.ORIGINATOR_ID] == "198.51.100.4"


def test_short_med_raises():
    with pytest.raises(ValueError):
        decode_attribute(AttrType.MED, b"\x00\x01", ParsedUpdate())


def test_cluster_list_has_trailing_space():
    parsed = ParsedUpdate()
    decode_attribute(AttrType.CLUSTER_LIST, bytes([1, 1, 1, 1, 2, 2, 2, 2]), parsed)
    assert parsed.attrs[AttrType.CLUSTER_LIST] == "1.1.1.1 2.2.2.2 "


def test_communities():
    data = (65000).to_bytes(2, "big") + (100).to_bytes(2, "big")
    data += (65000).to_bytes(2, "big") + (200).to_bytes(2, "big")
    parsed = ParsedUpdate()
    decode_attribute(AttrType.COMMUNITIES, data, parsed)
    assert parsed.attrs[AttrType.COMMUNITIES] == "65000:100 65000:200"


def test_large_community():
    data = b"".join(v.to_bytes(4, "big") for v in (1, 2, 3, 4, 5, 6))
    parsed = ParsedUpdate()
    decode_attribute(AttrType.LARGE_COMMUNITY, data, parsed)
    assert parsed.attrs[AttrType.LARGE_COMMUNITY] == "1:2:3 4:5:6"


def test_large_community_too_short_is_ignored():
    parsed = ParsedUpdate()
    decode_attribute(AttrType.LARGE_COMMUNITY, b"\x00" * 8, parsed)
    assert AttrType.LARGE_COMMUNITY not in parsed.attrs


def test_bgp_ls_attribute_fills_ls_attrs():
    tlv = (1026).to_bytes(2, "big") + (3).to_bytes(2, "big") + b"rtr"
    parsed = ParsedUpdate()
    decode_attribute(AttrType.BGP_LS, tlv, parsed)
    assert parsed.ls_attrs[1026] == "rtr"


def test_parse_attributes_block():
    as_path = _seg(2, [65001, 65002], 4)
    block = (
        _attr(0x40, AttrType.ORIGIN, b"\x00")
        + _attr(0x50, AttrType.AS_PATH, as_path)
        + _attr(0x40, AttrType.NEXT_HOP, bytes([10, 0, 0, 1]))
    )
    parsed = parse_attributes(block, ParsedUpdate(), PeerInfo())
    assert parsed.attrs[AttrType.ORIGIN] == "igp"
    assert parsed.attrs[AttrType.AS_PATH] == " 65001 65002"
    assert parsed.attrs[AttrType.NEXT_HOP] == "10.0.0.1"


def test_parse_attributes_zero_length_is_skipped():
    block = _attr(0x40, AttrType.ATOMIC_AGGREGATE, b"") + _attr(0x40, AttrType.ORIGIN, b"\x01")
    parsed = parse_attributes(block, ParsedUpdate())
    assert AttrType.ATOMIC_AGGREGATE not in parsed.attrs
    assert parsed.attrs[AttrType.ORIGIN] == "egp"


def test_parse_attributes_stops_at_truncated_attribute():
    block = _attr(0x40, AttrType.ORIGIN, b"\x02") + bytes([0x40, AttrType.MED, 4, 0, 0])
    parsed = parse_attributes(block, ParsedUpdate())
    assert parsed.attrs == {AttrType.ORIGIN: "incomplete"}


def test_parse_attributes_too_short_block():
    parsed = parse_attributes(b"\x40\x01", ParsedUpdate())
    assert parsed.attrs == {}


def test_parse_attributes_bad_aggregator_does_not_stop_parsing():
    block = _attr(0xC0, AttrType.AGGREGATOR, b"\x00" * 5) + _attr(0x40, AttrType.ORIGIN, b"\x00")
    parsed = parse_attributes(block, ParsedUpdate())
    assert AttrType.AGGREGATOR not in parsed.attrs
    assert parsed.attrs[AttrType.ORIGIN] == "igp"