from __future__ import annotations

import base64

import base58
import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from gallery_relay.errors import ErrorCode, KeyFormatError
from gallery_relay.identity.keys import (
    KEY_ENVELOPE_LENGTH,
    Ed25519Signer,
    did_from_public_key,
    multibase_decode,
    normalize_agent_key,
    public_key_from_did,
    verify_ed25519,
)


def _envelope(signer: Ed25519Signer) -> bytes:
    return multibase_decode(signer.export())


def test_canonical_key_is_accepted_unchanged() -> None:
    signer = Ed25519Signer.generate()
    exported = signer.export()
    assert exported.startswith("M")
    assert normalize_agent_key(exported) == exported
    assert Ed25519Signer.parse(exported).did == signer.did


def test_unmarked_base64_and_base58_normalize_to_canonical() -> None:
    signer = Ed25519Signer.generate()
    envelope = _envelope(signer)
    canonical = signer.export()

    assert normalize_agent_key(base64.b64encode(envelope).decode()) == canonical
    assert normalize_agent_key(base58.b58encode(envelope).decode()) == canonical


def test_labelled_key_is_accepted() -> None:
    signer = Ed25519Signer.generate()
    assert Ed25519Signer.parse(f"Ed25519PrivateKey:{signer.export()}").did == signer.did


def test_mismatched_public_half_is_rejected() -> None:
    first, second = Ed25519Signer.generate(), Ed25519Signer.generate()
    envelope = _envelope(first)[:36] + _envelope(second)[36:]
    with pytest.raises(KeyFormatError):
        normalize_agent_key(base64.b64encode(envelope).decode())


def test_failure_lists_every_attempted_decoding() -> None:
    with pytest.raises(KeyFormatError) as info:
        normalize_agent_key("not-a-key!")
    detail = info.value.detail
    assert "canonical multibase" in detail
    assert "base64" in detail
    assert "base58btc" in detail
    assert info.value.code is ErrorCode.credentials_unparsable
    assert info.value.status_code == 500


@hyp_settings(max_examples=50, deadline=None)
@given(st.binary(min_size=1, max_size=200).filter(lambda b: len(b) != KEY_ENVELOPE_LENGTH))
def test_any_other_decoded_length_is_rejected(envelope: bytes) -> None:
    # Never truncated or padded into shape.
    with pytest.raises(KeyFormatError):
        normalize_agent_key(base64.b64encode(envelope).decode())


@pytest.mark.parametrize("delta", [-1, 1])
def test_off_by_one_envelope_is_rejected(delta: int) -> None:
    envelope = _envelope(Ed25519Signer.generate())
    resized = envelope[:delta] if delta < 0 else envelope + b"\x00"
    with pytest.raises(KeyFormatError):
        normalize_agent_key(base64.b64encode(resized).decode())


def test_did_key_round_trip_and_signature_check() -> None:
    signer = Ed25519Signer.generate()
    public = public_key_from_did(signer.did)
    assert did_from_public_key(public) == signer.did
    assert signer.did.startswith("did:key:z6Mk")

    sig = signer.sign(b"payload")
    assert verify_ed25519(signer.did, sig, b"payload")
    assert not verify_ed25519(signer.did, sig, b"tampered")
    assert not verify_ed25519("did:key:zNotAKey", sig, b"payload")
