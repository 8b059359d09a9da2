"""
gallery_relay.identity.ucan

UCAN 0.9.x delegations in their IPLD (DAG-CBOR) representation.

Responsibilities:
- Model a delegation (issuer, audience, capabilities, expiry, proofs, signature).
- Encode/decode the IPLD form and the CAR archive used for transport.
- Produce the JWT-style signature payload and sign/verify it with Ed25519.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import base58

from gallery_relay.identity.car import Block, decode_car, encode_car
from gallery_relay.identity.ipld import (
    CID,
    IpldDecodeError,
    dag_cbor_decode,
    dag_cbor_encode,
    decode_varint,
    encode_varint,
)
from gallery_relay.identity.keys import DID_KEY_PREFIX, Ed25519Signer, verify_ed25519

UCAN_VERSION = "0.9.1"
ARCHIVE_VARIANT = f"ucan@{UCAN_VERSION}"

# varsig code for EdDSA signatures; did:* (non-key) principals are tagged 0x0d1d.
EDDSA_SIG_CODE = 0xD0ED
DID_CORE_CODE = 0x0D1D


class UcanFormatError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Capability:
    can: str
    with_: str
    nb: Mapping[str, Any] | None = None

    def to_ipld(self) -> dict[str, Any]:
        out: dict[str, Any] = {"can": self.can, "with": self.with_}
        if self.nb:
            out["nb"] = dict(self.nb)
        return out

    @classmethod
    def from_ipld(cls, data: Any) -> Capability:
        if not isinstance(data, dict) or not isinstance(data.get("can"), str) or not isinstance(data.get("with"), str):
            raise UcanFormatError("capability must have string 'can' and 'with'")
        nb = data.get("nb")
        return cls(can=data["can"], with_=data["with"], nb=nb if isinstance(nb, dict) else None)


def encode_principal(did: str) -> bytes:
    if did.startswith(DID_KEY_PREFIX + "z"):
        return base58.b58decode(did[len(DID_KEY_PREFIX) + 1 :])
    return encode_varint(DID_CORE_CODE) + did.encode("utf-8")


def decode_principal(raw: Any) -> str:
    if not isinstance(raw, bytes) or not raw:
        raise UcanFormatError("principal must be bytes")
    code, pos = decode_varint(raw)
    if code == DID_CORE_CODE:
        return raw[pos:].decode("utf-8")
    return DID_KEY_PREFIX + "z" + base58.b58encode(raw).decode("ascii")


def _varsig(raw: bytes) -> bytes:
    return encode_varint(EDDSA_SIG_CODE) + encode_varint(len(raw)) + raw


def _unvarsig(sig: bytes) -> tuple[int, bytes]:
    code, pos = decode_varint(sig)
    length, pos = decode_varint(sig, pos)
    raw = sig[pos : pos + length]
    if len(raw) != length:
        raise UcanFormatError("truncated signature")
    return code, raw


def _json_segment(value: dict[str, Any]) -> str:
    # DAG-JSON form: keys in UTF-8 byte order, compact separators, unpadded base64url.
    text = json.dumps(_sorted(value), separators=(",", ":"), ensure_ascii=False)
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value, key=lambda k: k.encode())}
    if isinstance(value, list | tuple):
        return [_sorted(v) for v in value]
    return value


@dataclass(frozen=True)
class Delegation:
    issuer: str
    audience: str
    capabilities: tuple[Capability, ...]
    expiration: int | None
    proofs: tuple[CID, ...] = ()
    signature: bytes = b""
    facts: tuple[dict[str, Any], ...] = ()
    not_before: int | None = None
    nonce: str | None = None
    version: str = UCAN_VERSION
    # Blocks of the proof chain this delegation was decoded with (or minted from).
    blocks: dict[CID, bytes] = field(default_factory=dict, compare=False, repr=False)
    # Original encoding when decoded from an archive; its CID must not change.
    source: bytes | None = field(default=None, compare=False, repr=False)

    def signature_payload(self) -> bytes:
        header = {"alg": "EdDSA", "typ": "JWT", "ucv": self.version}
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "aud": self.audience,
            "att": [c.to_ipld() for c in self.capabilities],
            "exp": self.expiration,
            "prf": [str(p) for p in self.proofs],
        }
        if self.facts:
            payload["fct"] = list(self.facts)
        if self.nonce:
            payload["nnc"] = self.nonce
        if self.not_before:
            payload["nbf"] = self.not_before
        return f"{_json_segment(header)}.{_json_segment(payload)}".encode("utf-8")

    def to_ipld(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "v": self.version,
            "iss": encode_principal(self.issuer),
            "aud": encode_principal(self.audience),
            "att": [c.to_ipld() for c in self.capabilities],
            "exp": self.expiration,
            "prf": list(self.proofs),
            "s": self.signature,
        }
        if self.facts:
            data["fct"] = list(self.facts)
        if self.nonce is not None:
            data["nnc"] = self.nonce
        if self.not_before:
            data["nbf"] = self.not_before
        return data

    @classmethod
    def from_ipld(cls, data: Any) -> Delegation:
        if not isinstance(data, dict):
            raise UcanFormatError("delegation block is not a map")
        version = data.get("v")
        if not isinstance(version, str) or not version.startswith("0.9"):
            raise UcanFormatError(f"unsupported UCAN version {version!r}")
        att = data.get("att")
        prf = data.get("prf", [])
        exp = data.get("exp")
        if not isinstance(att, list) or not isinstance(prf, list):
            raise UcanFormatError("delegation 'att' and 'prf' must be lists")
        if exp is not None and not isinstance(exp, int):
            raise UcanFormatError("delegation 'exp' must be an integer or null")
        if not all(isinstance(p, CID) for p in prf):
            raise UcanFormatError("delegation proofs must be links")
        sig = data.get("s")
        if not isinstance(sig, bytes):
            raise UcanFormatError("delegation signature must be bytes")
        return cls(
            issuer=decode_principal(data.get("iss")),
            audience=decode_principal(data.get("aud")),
            capabilities=tuple(Capability.from_ipld(c) for c in att),
            expiration=exp,
            proofs=tuple(prf),
            signature=sig,
            facts=tuple(data.get("fct") or ()),
            not_before=data.get("nbf"),
            nonce=data.get("nnc"),
            version=version,
        )

    @property
    def root(self) -> Block:
        data = self.source if self.source is not None else dag_cbor_encode(self.to_ipld())
        return CID.for_block(data), data

    @property
    def cid(self) -> CID:
        return self.root[0]

    def verify_signature(self) -> bool:
        """Only ed25519 did:key issuers can be checked locally."""

        code, raw = _unvarsig(self.signature)
        if code != EDDSA_SIG_CODE:
            return False
        return verify_ed25519(self.issuer, raw, self.signature_payload())

    def archive(self) -> bytes:
        root_cid, root_bytes = self.root
        variant = dag_cbor_encode({ARCHIVE_VARIANT: root_cid})
        variant_cid = CID.for_block(variant)
        blocks: list[Block] = [*self.blocks.items(), (root_cid, root_bytes), (variant_cid, variant)]
        return encode_car([variant_cid], blocks)


def delegate(
    *,
    issuer: Ed25519Signer,
    audience: str,
    capabilities: list[Capability],
    expiration: int | None,
    proofs: Sequence[Delegation] = (),
) -> Delegation:
    blocks: dict[CID, bytes] = {}
    for proof in proofs:
        blocks.update(proof.blocks)
        cid, data = proof.root
        blocks[cid] = data
    unsigned = Delegation(
        issuer=issuer.did,
        audience=audience,
        capabilities=tuple(capabilities),
        expiration=expiration,
        proofs=tuple(p.cid for p in proofs),
        blocks=blocks,
    )
    return replace(unsigned, signature=_varsig(issuer.sign(unsigned.signature_payload())))


def extract(archive: bytes) -> Delegation:
    """Decode a CAR archive into its root delegation, keeping every block."""

    try:
        roots, blocks = decode_car(archive)
        if roots:
            root_cid = roots[0]
        elif blocks:
            # Root-less DAG exports put the delegation last.
            root_cid = list(blocks)[-1]
        else:
            raise UcanFormatError("archive contains no blocks")
        if root_cid not in blocks:
            raise UcanFormatError("archive root block is missing")

        root = dag_cbor_decode(blocks[root_cid])
        if isinstance(root, dict) and len(root) == 1:
            (key, link), = root.items()
            if isinstance(key, str) and key.startswith("ucan@"):
                if not isinstance(link, CID) or link not in blocks:
                    raise UcanFormatError(f"archive variant {key} points at a missing block")
                root_cid = link
                root = dag_cbor_decode(blocks[link])

        delegation = Delegation.from_ipld(root)
    except IpldDecodeError as e:
        raise UcanFormatError(str(e)) from e
    others = {cid: data for cid, data in blocks.items() if cid != root_cid and cid not in roots}
    return replace(delegation, blocks=others, source=blocks[root_cid])


# --- Module Notes -----------------------------------------------------------
# Browser clients import the archive with their UCAN library; the variant root
# ({"ucan@0.9.1": link}) is what those libraries expect to find.
