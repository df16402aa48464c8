"""API key management router.

All routes act on the keys of the signed-in dashboard user:
- GET    /v1/api-keys              - List keys
- POST   /v1/api-keys              - Create key (secret returned once)
- GET    /v1/api-keys/{id}         - Key details
- PATCH  /v1/api-keys/{id}         - Replace scoped permissions
- POST   /v1/api-keys/{id}/revoke  - Revoke key
- DELETE /v1/api-keys/{id}         - Delete key
"""

import logging

from fastapi import APIRouter, Depends, Path, Request, status

from keygate.api.dependencies import (
    get_config,
    get_credential_store,
    get_metrics,
    require_session,
)
from keygate.api.models import (
    KeyActionResponse,
    KeyCreateRequest,
    KeyCreateResponse,
    KeyDetail,
    KeyListResponse,
    KeyUpdateRequest,
)
from keygate.auth.models import CredentialType, SessionPayload
from keygate.errors import create_error

logger = logging.getLogger(__name__)

api_keys_router = APIRouter(prefix="/v1/api-keys", tags=["API Keys"])


@api_keys_router.get("", response_model=KeyListResponse)
async def list_keys(
    request: Request,
    session: SessionPayload = Depends(require_session),
) -> KeyListResponse:
    """List all API keys for the signed-in user, newest first."""
    store = get_credential_store(request)
    credentials = await store.list_by_owner(session.principal_id)
    return KeyListResponse(data=[KeyDetail.from_credential(c) for c in credentials])


@api_keys_router.post("", response_model=KeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_key(
    request: Request,
    create_request: KeyCreateRequest,
    session: SessionPayload = Depends(require_session),
) -> KeyCreateResponse:
    """Create an API key. The full key is only ever returned here."""
    auth_config = get_config(request).auth
    rate_limit = create_request.rate_limit or auth_config.default_rate_limit
    if rate_limit > auth_config.max_rate_limit:
        raise create_error(
            "VALIDATION_ERROR",
            message=f"rate_limit must be between 1 and {auth_config.max_rate_limit}",
        )

    credential_type = CredentialType(create_request.type.value)
    permissions = (
        create_request.permissions.to_permissions()
        if create_request.permissions is not None
        else None
    )

    issued = await get_credential_store(request).create(
        owner_id=session.principal_id,
        name=create_request.name,
        credential_type=credential_type,
        permissions=permissions,
        rate_limit=rate_limit,
    )
    credential = issued.credential
    get_metrics(request).record_issued(credential.type.value)
    logger.info(f"[AUTH] Issued {credential.display_key} for user {session.principal_id}")

    return KeyCreateResponse(
        id=credential.id,
        name=credential.name,
        type=create_request.type,
        key=issued.secret,
        key_hint=credential.hint,
        rate_limit=credential.rate_limit,
        created_at=credential.created_at,
    )


@api_keys_router.get("/{key_id}", response_model=KeyDetail)
async def get_key(
    request: Request,
    key_id: str = Path(description="Key ID"),
    session: SessionPayload = Depends(require_session),
) -> KeyDetail:
    """Get details of an API key."""
    credential = await get_credential_store(request).find_by_owner_and_id(
        key_id, session.principal_id
    )
    if credential is None:
        raise create_error("NOT_FOUND")
    return KeyDetail.from_credential(credential)


@api_keys_router.patch("/{key_id}", response_model=KeyDetail)
async def update_key(
    request: Request,
    update_request: KeyUpdateRequest,
    key_id: str = Path(description="Key ID"),
    session: SessionPayload = Depends(require_session),
) -> KeyDetail:
    """Replace the permissions of a scoped API key."""
    store = get_credential_store(request)

    if update_request.permissions is not None:
        # Raises INVALID_OPERATION for general keys
        updated = await store.update_permissions(
            key_id, session.principal_id, update_request.permissions.to_permissions()
        )
        if not updated:
            raise create_error("NOT_FOUND")

    credential = await store.find_by_owner_and_id(key_id, session.principal_id)
    if credential is None:
        raise create_error("NOT_FOUND")
    return KeyDetail.from_credential(credential)


@api_keys_router.post("/{key_id}/revoke", response_model=KeyActionResponse)
async def revoke_key(
    request: Request,
    key_id: str = Path(description="Key ID"),
    session: SessionPayload = Depends(require_session),
) -> KeyActionResponse:
    """Revoke an API key. Revoked keys stay listed but can never be used again."""
    revoked = await get_credential_store(request).revoke(key_id, session.principal_id)
    if not revoked:
        raise create_error("NOT_FOUND", detail=f"Key {key_id} missing or already revoked")
    logger.info(f"[AUTH] Revoked key {key_id} for user {session.principal_id}")
    return KeyActionResponse(message="API key revoked")


@api_keys_router.delete("/{key_id}", response_model=KeyActionResponse)
async def delete_key(
    request: Request,
    key_id: str = Path(description="Key ID"),
    session: SessionPayload = Depends(require_session),
) -> KeyActionResponse:
    """Delete an API key permanently."""
    deleted = await get_credential_store(request).delete(key_id, session.principal_id)
    if not deleted:
        raise create_error("NOT_FOUND")
    logger.info(f"[AUTH] Deleted key {key_id} for user {session.principal_id}")
    return KeyActionResponse(message="API key deleted")
