"""
gallery_relay.api.routers.delegation

Browser-facing delegation endpoint.

Responsibilities:
- Validate the client's did:key.
- Mint a short-lived upload-only delegation from the master identity.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from gallery_relay.api.deps import identity_provider
from gallery_relay.identity.bootstrap import IdentityProvider
from gallery_relay.identity.delegation import mint_upload_delegation, validate_client_did
from gallery_relay.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class DelegationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Typed loosely so a non-string value gets the same 400 as a missing one.
    client_identifier: Any = Field(default=None, alias="clientIdentifier")


class DelegationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    delegation: str
    authorized_resource_id: str = Field(serialization_alias="authorizedResourceId")
    expires_at: int = Field(serialization_alias="expiresAt")


@router.post("/delegation", response_model=DelegationResponse, response_model_by_alias=True)
async def create_delegation(
    body: DelegationRequest,
    provider: IdentityProvider = Depends(identity_provider),
) -> DelegationResponse:
    client_did = validate_client_did(body.client_identifier)
    minted = mint_upload_delegation(identity=provider.get(), client_did=client_did)

    log.info("delegation.minted", audience=client_did, resource=minted.resource, expires_at=minted.expires_at)
    return DelegationResponse(
        delegation=minted.encoded,
        authorized_resource_id=minted.resource,
        expires_at=minted.expires_at,
    )


# --- Module Notes -----------------------------------------------------------
# The master key never leaves the process; clients receive only the signed
# delegation archive (base64 CAR).
