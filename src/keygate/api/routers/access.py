"""Credential-gated data-plane router.

Requests reach these handlers only after CredentialAuthMiddleware admitted
them, so request.state.auth_result is always set.

- GET  /v1/credential    - Describe the calling credential
- POST /v1/access/check  - Check tool/model/agent access for the caller
"""

from fastapi import APIRouter, Depends

from keygate.api.dependencies import get_auth_result
from keygate.api.models import AccessCheckRequest, AccessCheckResponse, CredentialInfo
from keygate.auth.models import AuthResult
from keygate.auth.permissions import check_agent, check_model, check_tool

access_router = APIRouter(prefix="/v1", tags=["Access"])


@access_router.get("/credential", response_model=CredentialInfo)
async def describe_credential(
    auth_result: AuthResult = Depends(get_auth_result),
) -> CredentialInfo:
    """Describe the calling credential and its current quota."""
    return CredentialInfo.from_auth_result(auth_result)


@access_router.post("/access/check", response_model=AccessCheckResponse)
async def check_access(
    check_request: AccessCheckRequest,
    auth_result: AuthResult = Depends(get_auth_result),
) -> AccessCheckResponse:
    """Check that the caller may use the given tool, model and agent.

    Responds 403 with insufficient_permissions on the first denied capability.
    """
    credential = auth_result.credential
    if check_request.tool is not None:
        check_tool(credential, check_request.tool)
    if check_request.model is not None:
        check_model(credential, check_request.model)
    if check_request.agent is not None:
        check_agent(credential, check_request.agent)

    return AccessCheckResponse(
        credential_id=credential.id,
        tool=check_request.tool,
        model=check_request.model,
        agent=check_request.agent,
    )
