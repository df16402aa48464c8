"""Dashboard authentication router.

- POST /auth/register - Create an account and start a session
- POST /auth/login    - Start a session
- POST /auth/logout   - Clear the session cookie
- GET  /auth/me       - Current user
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from keygate.api.dependencies import (
    get_config,
    get_session_manager,
    get_user_store,
    require_session,
)
from keygate.api.models import (
    LoginRequest,
    LogoutResponse,
    RegisterRequest,
    SessionResponse,
    UserInfo,
)
from keygate.auth.models import SessionPayload
from keygate.auth.users import User
from keygate.errors import create_error

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


def _start_session(request: Request, response: Response, user: User) -> SessionResponse:
    """Issue a session token and set it as an HttpOnly cookie."""
    sessions = get_session_manager(request)
    token = sessions.issue(user.id)
    response.set_cookie(
        key=get_config(request).auth.session_cookie,
        value=token,
        max_age=sessions.max_age,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(token=token, user=UserInfo(id=user.id, email=user.email))


@auth_router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    response: Response,
    register_request: RegisterRequest,
) -> SessionResponse:
    """Create a dashboard account."""
    # Raises EMAIL_TAKEN
    user = await get_user_store(request).create(register_request.email, register_request.password)
    return _start_session(request, response, user)


@auth_router.post("/login", response_model=SessionResponse)
async def login(
    request: Request,
    response: Response,
    login_request: LoginRequest,
) -> SessionResponse:
    """Sign in with email and password."""
    user = await get_user_store(request).verify_credentials(
        login_request.email, login_request.password
    )
    if user is None:
        logger.info("[AUTH] Failed dashboard login")
        raise create_error("INVALID_LOGIN")
    return _start_session(request, response, user)


@auth_router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request, response: Response) -> LogoutResponse:
    """Clear the session cookie. Tokens are stateless, so this is client-side only."""
    response.delete_cookie(
        key=get_config(request).auth.session_cookie,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return LogoutResponse()


@auth_router.get("/me", response_model=UserInfo)
async def me(
    request: Request,
    session: SessionPayload = Depends(require_session),
) -> UserInfo:
    """Get the signed-in user."""
    user = await get_user_store(request).find_by_id(session.principal_id)
    if user is None:
        raise create_error("INVALID_SESSION", detail="Session user no longer exists")
    return UserInfo(id=user.id, email=user.email)
