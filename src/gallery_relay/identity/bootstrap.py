"""
gallery_relay.identity.bootstrap

Process-wide master identity.

Responsibilities:
- Load the agent key and the space authorization proof from settings once.
- Parse the proof archive into a delegation chain and check it is addressed
  to the agent key.
- Cache the outcome (identity or error) so every request sees the same result.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from gallery_relay.errors import ConfigurationError, GalleryRelayError, ProofFormatError
from gallery_relay.identity.keys import DID_KEY_PREFIX, Ed25519Signer
from gallery_relay.identity.ucan import Delegation, extract
from gallery_relay.observability.logging import get_logger
from gallery_relay.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class MasterIdentity:
    signer: Ed25519Signer
    space_did: str
    proof: Delegation

    @property
    def did(self) -> str:
        return self.signer.did

    def __repr__(self) -> str:
        return f"MasterIdentity(did={self.did!r}, space_did={self.space_did!r})"


def parse_proof(encoded: str) -> Delegation:
    try:
        archive = base64.b64decode(encoded.strip(), validate=True)
    except binascii.Error as e:
        raise ProofFormatError(f"delegation proof is not base64: {e}") from e
    try:
        return extract(archive)
    except ValueError as e:
        raise ProofFormatError(f"failed to parse delegation proof archive: {e}") from e


def space_from_proof(proof: Delegation) -> str:
    for cap in proof.capabilities:
        if cap.with_.startswith(DID_KEY_PREFIX):
            return cap.with_
    raise ProofFormatError("delegation proof grants no capability on a did:key space")


def load_master_identity(settings: Settings) -> MasterIdentity:
    if not settings.agent_key:
        raise ConfigurationError("GALLERY_AGENT_KEY not configured")
    if not settings.delegation_proof:
        raise ConfigurationError("GALLERY_DELEGATION_PROOF not configured")

    signer = Ed25519Signer.parse(settings.agent_key)
    proof = parse_proof(settings.delegation_proof)
    if proof.audience != signer.did:
        raise ProofFormatError(
            f"delegation proof is addressed to {proof.audience}, agent key is {signer.did}"
        )
    return MasterIdentity(signer=signer, space_did=space_from_proof(proof), proof=proof)


class IdentityProvider:
    """
    Holds the single load attempt for the process.
    Failures are remembered and re-raised on each `get()` instead of retried.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._identity: MasterIdentity | None = None
        self._error: GalleryRelayError | None = None
        self._loaded = False

    def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            self._identity = load_master_identity(self._settings)
        except GalleryRelayError as e:
            self._error = e
            log.warning("identity.unavailable", code=e.code.value, detail=e.detail)
            return
        log.info("identity.loaded", did=self._identity.did, space=self._identity.space_did)

    def get(self) -> MasterIdentity:
        self.load()
        if self._error is not None:
            raise self._error
        assert self._identity is not None
        return self._identity


# --- Module Notes -----------------------------------------------------------
# The provider is created in `api.app.create_app` and loaded during startup; the
# rest of the service only serves galleries, so a missing key is not fatal to it.
