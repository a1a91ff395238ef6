"""BGP-LS attribute type codes and low-level value decoders."""

from __future__ import annotations

import enum
import ipaddress
import logging
from typing import Sequence

log = logging.getLogger(__name__)


class NodeAttr(enum.IntEnum):
    """BGP-LS node attribute TLV types."""

    MT_ID = 263
    FLAG = 1024
    OPAQUE = 1025
    NAME = 1026
    ISIS_AREA_ID = 1027
    IPV4_ROUTER_ID_LOCAL = 1028
    IPV6_ROUTER_ID_LOCAL = 1029
    SR_CAPABILITIES = 1034
    SR_ALGORITHM = 1035
    SR_LOCAL_BLOCK = 1036
    SR_SRMS_PREF = 1037


class LinkAttr(enum.IntEnum):
    """BGP-LS link attribute TLV types."""

    IPV4_ROUTER_ID_LOCAL = 1028
    IPV6_ROUTER_ID_LOCAL = 1029
    IPV4_ROUTER_ID_REMOTE = 1030
    IPV6_ROUTER_ID_REMOTE = 1031
    ADMIN_GROUP = 1088
    MAX_LINK_BW = 1089
    MAX_RESV_BW = 1090
    UNRESV_BW = 1091
    TE_DEF_METRIC = 1092
    PROTECTION_TYPE = 1093
    MPLS_PROTO_MASK = 1094
    IGP_METRIC = 1095
    SRLG = 1096
    OPAQUE = 1097
    NAME = 1098
    ADJACENCY_SID = 1099
    PEER_EPE_NODE_SID = 1101
    PEER_EPE_ADJ_SID = 1102
    PEER_EPE_SET_SID = 1103


class PrefixAttr(enum.IntEnum):
    """BGP-LS prefix attribute TLV types."""

    IGP_FLAGS = 1152
    ROUTE_TAG = 1153
    EXTEND_TAG = 1154
    PREFIX_METRIC = 1155
    OSPF_FWD_ADDR = 1156
    OPAQUE_PREFIX = 1157
    SID = 1158


class MplsProtoMask(enum.IntFlag):
    """MPLS protocol mask bits."""

    LDP = 0x80
    RSVP_TE = 0x40


SUB_TLV_SID_LABEL = 1161

# Flag names, most significant bit first.
LS_FLAGS_NODE_NLRI = ("O", "T", "E", "B", "R", "V")
LS_FLAGS_PEER_ADJ_SID_ISIS = ("F", "B", "V", "L", "S")
LS_FLAGS_PEER_ADJ_SID_OSPF = ("B", "V", "L", "G")
LS_FLAGS_SR_CAP_ISIS = ("I", "V", "H")
LS_FLAGS_PREFIX_SID_ISIS = ("R", "N", "P", "E", "V", "L")
LS_FLAGS_PREFIX_SID_OSPF = ("", "NP", "M", "E", "V", "L")

PLUS_INFINITY_KBPS = 0x7FFFFFFF
MINUS_INFINITY_KBPS = 0x80000000

_SIGN_MASK = 0x80000000
_EXPONENT_MASK = 0x7F800000
_MANTISSA_MASK = 0x007FFFFF
_MANTISSA_WIDTH = 23
_IMPLIED_BIT = 1 << _MANTISSA_WIDTH
_BIAS = 127


def ieee_float_to_kbps(value: int) -> int:
    """Convert a 32-bit IEEE float in bytes/second (raw bits) to kbit/s.

    The result is an unsigned 32-bit value; negative rates wrap around.
    """
    bits = value & 0xFFFFFFFF
    sign = bits & _SIGN_MASK
    exponent = bits & _EXPONENT_MASK
    mantissa = bits & _MANTISSA_MASK

    if bits & ~_SIGN_MASK & 0xFFFFFFFF == 0:
        return 0
    if exponent == _EXPONENT_MASK:
        return MINUS_INFINITY_KBPS if sign else PLUS_INFINITY_KBPS

    exponent = (exponent >> _MANTISSA_WIDTH) - _BIAS
    if exponent < 0:
        return 0

    whole = mantissa | _IMPLIED_BIT
    if exponent <= _MANTISSA_WIDTH:
        whole >>= _MANTISSA_WIDTH - exponent
    else:
        whole <<= exponent - _MANTISSA_WIDTH

    kbps = whole * 8 // 1000
    if sign:
        kbps = -kbps
    return kbps & 0xFFFFFFFF


def parse_flags(value: int, names: Sequence[str]) -> str:
    """Render a flags byte as the concatenated names of its set bits.

    ``names[0]`` is the most significant bit; at most eight names are used.
    """
    return "".join(
        name for i, name in enumerate(names[:8]) if value & (0x80 >> i)
    )


def parse_sid_value(data: bytes) -> str:
    """Decode a SID/label value: 3-byte label, 4-byte index or IPv6 SID.

    Returns an empty string when the length is not one of those forms.
    """
    length = len(data)
    if length == 3 or length == 4:
        return str(int.from_bytes(data, "big"))
    if length >= 16:
        return str(ipaddress.IPv6Address(bytes(data[:16])))
    log.warning("bgp-ls: SID/Label has unexpected length of %d", length)
    return ""