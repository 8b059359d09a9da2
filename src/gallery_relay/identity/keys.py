"""
gallery_relay.identity.keys

Ed25519 key material for the master identity.

Responsibilities:
- Normalize the configured agent key through an explicit, ordered decode
  pipeline (canonical multibase -> base64 -> base58btc).
- Validate the 68-byte signer envelope exactly; never truncate or pad.
- Provide the signer and did:key helpers used to mint and verify delegations.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from dataclasses import dataclass, field

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from gallery_relay.errors import KeyFormatError

# multicodec varints: ed25519-priv (0x1300) and ed25519-pub (0xed)
ED25519_PRIV_TAG = b"\x80\x26"
ED25519_PUB_TAG = b"\xed\x01"
KEY_ENVELOPE_LENGTH = len(ED25519_PRIV_TAG) + 32 + len(ED25519_PUB_TAG) + 32

DID_KEY_PREFIX = "did:key:"
_KEY_LABEL = "Ed25519PrivateKey:"


def _b64decode(text: str, *, padded: bool) -> bytes:
    if not padded:
        text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise ValueError(f"not base64 ({e})") from e


def _b58decode(text: str) -> bytes:
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise ValueError(f"not base58btc ({e})") from e


def multibase_decode(text: str) -> bytes:
    prefix, body = text[:1], text[1:]
    if prefix == "M":
        return _b64decode(body, padded=True)
    if prefix == "m":
        return _b64decode(body, padded=False)
    if prefix == "z":
        return _b58decode(body)
    raise ValueError(f"unsupported multibase prefix {prefix!r}")


def canonical_key(envelope: bytes) -> str:
    return "M" + base64.b64encode(envelope).decode("ascii")


def validate_envelope(envelope: bytes) -> bytes:
    if len(envelope) != KEY_ENVELOPE_LENGTH:
        raise ValueError(f"expected {KEY_ENVELOPE_LENGTH} bytes, got {len(envelope)}")
    if envelope[:2] != ED25519_PRIV_TAG:
        raise ValueError("missing ed25519-priv multicodec tag")
    if envelope[34:36] != ED25519_PUB_TAG:
        raise ValueError("missing ed25519-pub multicodec tag")
    derived = ed25519.Ed25519PrivateKey.from_private_bytes(envelope[2:34]).public_key()
    if derived.public_bytes_raw() != envelope[36:]:
        raise ValueError("public key does not match private key")
    return envelope


def _strip_label(raw: str) -> str:
    text = raw.strip()
    if text.startswith(_KEY_LABEL):
        return text.split(":")[-1]
    return text


def decode_canonical(raw: str) -> str:
    """Accept an already self-describing multibase key unchanged."""

    text = _strip_label(raw)
    validate_envelope(multibase_decode(text))
    return text


def decode_primary(raw: str) -> str:
    """Unmarked standard base64 payload, re-wrapped as base64pad multibase."""

    return canonical_key(validate_envelope(_b64decode(_strip_label(raw), padded=True)))


def decode_alternate(raw: str) -> str:
    """Unmarked base58btc payload, re-wrapped as base64pad multibase."""

    return canonical_key(validate_envelope(_b58decode(_strip_label(raw))))


KEY_DECODERS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("canonical multibase", decode_canonical),
    ("base64", decode_primary),
    ("base58btc", decode_alternate),
)


def normalize_agent_key(raw: str) -> str:
    attempts: list[str] = []
    for name, decoder in KEY_DECODERS:
        try:
            return decoder(raw)
        except ValueError as e:
            attempts.append(f"{name}: {e}")
    raise KeyFormatError("agent key is not a recognised encoding (tried " + "; ".join(attempts) + ")")


def did_from_public_key(public: bytes) -> str:
    return DID_KEY_PREFIX + "z" + base58.b58encode(ED25519_PUB_TAG + public).decode("ascii")


def public_key_from_did(did: str) -> bytes:
    if not did.startswith(DID_KEY_PREFIX + "z"):
        raise ValueError("not a base58btc did:key")
    raw = _b58decode(did[len(DID_KEY_PREFIX) + 1 :])
    if len(raw) != 34 or raw[:2] != ED25519_PUB_TAG:
        raise ValueError("did:key is not an ed25519 public key")
    return raw[2:]


def verify_ed25519(did: str, signature: bytes, data: bytes) -> bool:
    try:
        key = ed25519.Ed25519PublicKey.from_public_bytes(public_key_from_did(did))
        key.verify(signature, data)
    except (ValueError, InvalidSignature):
        return False
    return True


@dataclass(frozen=True, slots=True)
class Ed25519Signer:
    private_key: ed25519.Ed25519PrivateKey = field(repr=False)
    did: str

    @classmethod
    def from_envelope(cls, envelope: bytes) -> Ed25519Signer:
        validate_envelope(envelope)
        private = ed25519.Ed25519PrivateKey.from_private_bytes(envelope[2:34])
        return cls(private_key=private, did=did_from_public_key(envelope[36:]))

    @classmethod
    def parse(cls, raw: str) -> Ed25519Signer:
        return cls.from_envelope(multibase_decode(normalize_agent_key(raw)))

    @classmethod
    def generate(cls) -> Ed25519Signer:
        private = ed25519.Ed25519PrivateKey.generate()
        return cls(private_key=private, did=did_from_public_key(private.public_key().public_bytes_raw()))

    def sign(self, data: bytes) -> bytes:
        return self.private_key.sign(data)

    def export(self) -> str:
        secret = self.private_key.private_bytes_raw()
        public = self.private_key.public_key().public_bytes_raw()
        return canonical_key(ED25519_PRIV_TAG + secret + ED25519_PUB_TAG + public)


# --- Module Notes -----------------------------------------------------------
# `export` exists for provisioning and tests; the running service never writes
# key material anywhere.
