"""
gallery_relay.identity.car

CARv1 archive reader/writer.

Responsibilities:
- Serialize a root list plus blocks into a CAR byte stream.
- Parse a CAR byte stream, verifying every sha2-256 block against its CID.
"""

from __future__ import annotations

from collections.abc import Iterable

from gallery_relay.identity.ipld import (
    CID,
    IpldDecodeError,
    dag_cbor_decode,
    dag_cbor_encode,
    decode_varint,
    encode_varint,
)

Block = tuple[CID, bytes]


def encode_car(roots: list[CID], blocks: Iterable[Block]) -> bytes:
    header = dag_cbor_encode({"roots": list(roots), "version": 1})
    out = bytearray(encode_varint(len(header)) + header)
    seen: set[CID] = set()
    for cid, data in blocks:
        if cid in seen:
            continue
        seen.add(cid)
        section = bytes(cid) + data
        out += encode_varint(len(section)) + section
    return bytes(out)


def decode_car(data: bytes) -> tuple[list[CID], dict[CID, bytes]]:
    """Returns (roots, blocks) with blocks in archive order."""

    header_len, pos = decode_varint(data)
    header = dag_cbor_decode(data[pos : pos + header_len])
    pos += header_len
    if not isinstance(header, dict) or header.get("version") != 1:
        raise IpldDecodeError("unsupported CAR header")
    roots = header.get("roots")
    if not isinstance(roots, list) or not all(isinstance(r, CID) for r in roots):
        raise IpldDecodeError("CAR header has no valid roots")

    blocks: dict[CID, bytes] = {}
    while pos < len(data):
        section_len, pos = decode_varint(data, pos)
        end = pos + section_len
        if end > len(data):
            raise IpldDecodeError("truncated CAR section")
        cid, body_start = CID.read(data, pos)
        body = bytes(data[body_start:end])
        if not cid.verifies(body):
            raise IpldDecodeError(f"block {cid} does not match its hash")
        blocks[cid] = body
        pos = end
    return roots, blocks
