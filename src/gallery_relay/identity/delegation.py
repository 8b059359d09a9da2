"""
gallery_relay.identity.delegation

Least-privilege upload delegations for browser clients.

Responsibilities:
- Validate the client did:key.
- Issue a 24h delegation for exactly `store/add` and `upload/add` on the
  master identity's space, chained to the master proof.
- Encode the delegation archive for JSON transport.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from gallery_relay.errors import ValidationError
from gallery_relay.identity.bootstrap import MasterIdentity
from gallery_relay.identity.keys import DID_KEY_PREFIX, public_key_from_did
from gallery_relay.identity.ucan import Capability, Delegation, delegate

STORE_ADD = "store/add"
UPLOAD_ADD = "upload/add"
UPLOAD_ABILITIES: tuple[str, ...] = (STORE_ADD, UPLOAD_ADD)

DELEGATION_TTL = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class MintedDelegation:
    delegation: Delegation
    encoded: str
    resource: str
    expires_at: int


def validate_client_did(value: object) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("clientIdentifier required (string)", field="clientIdentifier")
    if not value.startswith(DID_KEY_PREFIX):
        raise ValidationError(
            f"clientIdentifier must start with {DID_KEY_PREFIX}", field="clientIdentifier"
        )
    try:
        public_key_from_did(value)
    except ValueError as e:
        raise ValidationError(f"clientIdentifier is not a valid did:key ({e})", field="clientIdentifier") from e
    return value


def upload_capabilities(space_did: str) -> list[Capability]:
    return [Capability(can=ability, with_=space_did) for ability in UPLOAD_ABILITIES]


def mint_upload_delegation(
    *,
    identity: MasterIdentity,
    client_did: str,
    now: datetime | None = None,
    ttl: timedelta = DELEGATION_TTL,
) -> MintedDelegation:
    audience = validate_client_did(client_did)
    issued = now or datetime.now(tz=UTC)
    expires_at = int((issued + ttl).timestamp())

    delegation = delegate(
        issuer=identity.signer,
        audience=audience,
        capabilities=upload_capabilities(identity.space_did),
        expiration=expires_at,
        proofs=[identity.proof],
    )
    return MintedDelegation(
        delegation=delegation,
        encoded=base64.b64encode(delegation.archive()).decode("ascii"),
        resource=identity.space_did,
        expires_at=expires_at,
    )


# --- Module Notes -----------------------------------------------------------
# Administrative abilities (space/*, store/remove, upload/remove) are never
# delegated; the capability list is fixed by UPLOAD_ABILITIES.
