"""
gallery_relay.identity.ipld

Minimal IPLD primitives needed to read and write UCAN delegations.

Responsibilities:
- Unsigned varints (multiformats flavour).
- CIDv0/CIDv1 parsing, hashing and base32 string form.
- DAG-CBOR encode/decode on top of `cbor2` (links as CBOR tag 42).
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from typing import Any

import cbor2

DAG_CBOR = 0x71
DAG_PB = 0x70
RAW = 0x55
SHA2_256 = 0x12

_CID_TAG = 42


class IpldDecodeError(ValueError):
    pass


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Returns (value, new_offset)."""

    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise IpldDecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7
        if shift > 63:
            raise IpldDecodeError("varint too long")


@dataclass(frozen=True, slots=True)
class CID:
    version: int
    codec: int
    multihash: bytes

    @classmethod
    def for_block(cls, data: bytes, codec: int = DAG_CBOR) -> CID:
        digest = hashlib.sha256(data).digest()
        return cls(1, codec, bytes([SHA2_256, len(digest)]) + digest)

    @classmethod
    def read(cls, data: bytes, offset: int = 0) -> tuple[CID, int]:
        """Parse a binary CID starting at `offset`; returns (cid, new_offset)."""

        if data[offset : offset + 2] == bytes([SHA2_256, 0x20]):
            end = offset + 34
            if end > len(data):
                raise IpldDecodeError("truncated CIDv0")
            return cls(0, DAG_PB, bytes(data[offset:end])), end

        version, pos = decode_varint(data, offset)
        if version != 1:
            raise IpldDecodeError(f"unsupported CID version {version}")
        codec, pos = decode_varint(data, pos)
        mh_start = pos
        _, pos = decode_varint(data, pos)
        length, pos = decode_varint(data, pos)
        end = pos + length
        if end > len(data):
            raise IpldDecodeError("truncated multihash")
        return cls(1, codec, bytes(data[mh_start:end])), end

    @classmethod
    def from_bytes(cls, data: bytes) -> CID:
        cid, end = cls.read(data)
        if end != len(data):
            raise IpldDecodeError("trailing bytes after CID")
        return cid

    def __bytes__(self) -> bytes:
        if self.version == 0:
            return self.multihash
        return encode_varint(1) + encode_varint(self.codec) + self.multihash

    def __str__(self) -> str:
        encoded = base64.b32encode(bytes(self)).decode("ascii").lower().rstrip("=")
        return f"b{encoded}"

    def verifies(self, data: bytes) -> bool:
        code, pos = decode_varint(self.multihash)
        length, pos = decode_varint(self.multihash, pos)
        if code != SHA2_256:
            # Only sha2-256 blocks are checked; other hashes are accepted as-is.
            return True
        return hashlib.sha256(data).digest()[:length] == self.multihash[pos:]


def _encode_default(encoder: cbor2.CBOREncoder, value: Any) -> None:
    if isinstance(value, CID):
        encoder.encode(cbor2.CBORTag(_CID_TAG, b"\x00" + bytes(value)))
        return
    raise TypeError(f"cannot DAG-CBOR encode {type(value).__name__}")


def _decode_tag(first: Any, second: Any) -> Any:
    # cbor2 5.x calls tag_hook(decoder, tag); 6.x calls tag_hook(tag, immutable).
    tag = first if isinstance(first, cbor2.CBORTag) else second
    if tag.tag == _CID_TAG:
        raw = tag.value
        if not isinstance(raw, bytes) or not raw.startswith(b"\x00"):
            raise IpldDecodeError("malformed CID link")
        return CID.from_bytes(raw[1:])
    raise IpldDecodeError(f"unsupported CBOR tag {tag.tag}")


def dag_cbor_encode(value: Any) -> bytes:
    # canonical=True gives length-first key ordering and minimal integers, as DAG-CBOR requires.
    return cbor2.dumps(value, canonical=True, default=_encode_default)


def dag_cbor_decode(data: bytes) -> Any:
    try:
        return cbor2.loads(data, tag_hook=_decode_tag)
    except IpldDecodeError:
        raise
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise IpldDecodeError(f"invalid DAG-CBOR: {e}") from e


# --- Module Notes -----------------------------------------------------------
# Only the subset of multiformats used by UCAN archives is implemented here.
