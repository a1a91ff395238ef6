# bgpmsg

Pure-Python decoders for the BGP messages that a BMP (BGP Monitoring
Protocol) collector receives. It decodes OPEN messages with their
capabilities. It also decodes UPDATE messages with their path attributes,
IPv4 NLRI and BGP-LS (link-state) attributes.

## Installation

```
pip install .
```

No third-party libraries are needed at runtime. The tests use pytest:

```
pip install ".[test]"
pytest
```

## Modules

- `bgpmsg.model` – the data model:
  - `AttrType` – path attribute codes. It also holds the derived
    `INTERNAL_AS_COUNT` and `INTERNAL_AS_ORIGIN`.
  - `PrefixTuple` – `prefix`, `length`, `path_id` and `is_ipv4`, plus a
    `prefix_bin` property.
  - `ParsedLinkState` and `ParsedUpdate`.
  - `AddPathCapability` – `add` and `is_enabled`.
  - `PeerInfo` – the state a peer keeps between messages: ADD-PATH
    negotiation, 2- or 4-octet ASN encoding, `end_of_rib`, and the
    `four_octet_asn` property.
- `bgpmsg.open_msg` – `parse_open(data, sent, peer_info)` returns an
  `OpenMessage`. It holds `version`, `asn`, `hold_time`, `bgp_id`, the
  decoded `capabilities` strings, and the number of bytes read in `length`.
  - A 4-octet ASN capability replaces the 2-byte ASN.
  - ADD-PATH modes are recorded in `peer_info`.
  - `parse_capabilities(data, sent, peer_info)` decodes the optional
    parameters by themselves. It returns `(capabilities, asn_or_None)`.
  - A message shorter than the OPEN header raises `OpenMessageError`.
  - An MPBGP capability of the wrong length raises `OpenMessageError`,
    unless the parameters are truncated.
  - The enums `CapabilityCode` and `AddPathMode` are also provided.
- `bgpmsg.update_msg` – `parse_update(data, peer_info, peer_addr)` decodes
  an UPDATE body into a `ParsedUpdate`.
  - An empty UPDATE is the End-of-RIB marker and sets
    `peer_info.end_of_rib`.
  - A message too short for its own length fields raises
    `UpdateMessageError`.
  - `parse_nlri_v4(data, peer_info)` decodes IPv4 unicast prefixes. It
    reads path identifiers when ADD-PATH is in effect for IPv4 unicast.
- `bgpmsg.update_attrs` – path attribute decoding: `parse_attributes`,
  `decode_attribute`, `parse_as_path` and `parse_aggregator`.
  - `parse_as_path` tries 4-octet ASNs first. If they do not fit, it
    switches the peer to 2-octet encoding.
  - Decoded values are stored as strings in `ParsedUpdate.attrs`, keyed by
    `AttrType`. The attributes decoded are ORIGIN, AS_PATH, NEXT_HOP, MED,
    LOCAL_PREF, ATOMIC_AGGREGATE, AGGREGATOR, ORIGINATOR_ID, CLUSTER_LIST,
    COMMUNITIES, LARGE_COMMUNITY and BGP-LS.
- `bgpmsg.ls_attr` – `LinkStateAttrParser` (`parse`, `parse_tlv`) and
  `parse_link_state_attr(data, parsed, peer_addr)`. They decode the BGP-LS
  attribute (type 29) into `ParsedUpdate.ls_attrs`, keyed by TLV type code.
- `bgpmsg.ls_codec` – the helpers the BGP-LS parser builds on:
  - the node, link and prefix attribute type enums `NodeAttr`, `LinkAttr`
    and `PrefixAttr`;
  - `ieee_float_to_kbps`, `parse_flags` and `parse_sid_value`.
- `bgpmsg.ls_sr` – the segment-routing decoders `decode_sr_capabilities`,
  `decode_adjacency_sid`, `decode_prefix_sid` and `decode_peer_node_sid`.

## Example

```python
from bgpmsg.model import PeerInfo
from bgpmsg.open_msg import parse_open
from bgpmsg.update_msg import parse_update

peer = PeerInfo()

opened = parse_open(open_body, sent=False, peer_info=peer)
print(opened.asn, opened.hold_time, opened.bgp_id)
for capability in opened.capabilities:
    print(" ", capability)

update = parse_update(update_body, peer, "192.0.2.1")
for prefix in update.advertised:
    print(prefix.prefix, prefix.length)
print(update.attrs)
```

`open_body` and `update_body` are the message payloads that come after the
19-byte BGP header.

## What it does not do

- It is a library of decoders only. It has no command, it does not listen
  for BMP sessions, and it does not store or forward what it decodes.
- MP_REACH_NLRI, MP_UNREACH_NLRI, extended communities, IPv6 extended
  communities, AS4_PATH and AS4_AGGREGATOR are recognised but not decoded.
  As a result:
  - IPv6, VPN and EVPN prefixes are not extracted.
  - BGP-LS NLRI (nodes, links, prefixes) are not extracted. The lists in
    `ParsedUpdate.ls` stay empty unless the caller fills them.
- The BGP-LS segment-routing flags depend on the protocol of the first
  node, link or prefix in `ParsedUpdate.ls`.