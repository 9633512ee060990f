"""
Authentication routes.
Local register/login, token refresh/logout, profile, and Google sign-in.
"""
# Annotations are evaluated eagerly here: FastAPI resolves the rate-limited
# login signature through the limiter wrapper, not this module.
import logging

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import RedirectResponse

from taskshare.core.config import settings
from taskshare.core.dependencies import CurrentUser, DBSession
from taskshare.core.exceptions import TaskShareException
from taskshare.core.rate_limit import limiter
from taskshare.core.security import create_oauth_state_token, verify_oauth_state_token
from taskshare.schemas.common import ApiResponse
from taskshare.schemas.user import (
    AuthData,
    LoginRequest,
    RefreshTokenRequest,
    Token,
    UserCreate,
    UserData,
    UserRead,
    UserUpdate,
)
from taskshare.services.auth_service import auth_service
from taskshare.services.oauth_service import google_oauth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_response(user: object, token: Token, message: str) -> ApiResponse[AuthData]:
    return ApiResponse(
        message=message,
        data=AuthData(
            user=UserRead.model_validate(user),
            token=token.access_token,
            refresh_token=token.refresh_token,
        ),
    )


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new local account",
)
async def register(
    user_in: UserCreate,
    db: DBSession,
) -> ApiResponse[AuthData]:
    user, token = await auth_service.register_user(db, user_in=user_in)
    return _auth_response(user, token, "User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    summary="Authenticate and receive a JWT token pair",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: DBSession,
) -> ApiResponse[AuthData]:
    user, token = await auth_service.authenticate_user(
        db, email=credentials.email, password=credentials.password
    )
    return _auth_response(user, token, "Login successful")


@router.post(
    "/refresh",
    response_model=ApiResponse[Token],
    summary="Rotate the refresh token and issue a new access token",
)
async def refresh(
    body: RefreshTokenRequest,
    db: DBSession,
) -> ApiResponse[Token]:
    token = await auth_service.refresh_access_token(db, refresh_token=body.refresh_token)
    return ApiResponse(data=token)


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Invalidate the current refresh token",
)
async def logout(
    current_user: CurrentUser,
    db: DBSession,
) -> ApiResponse[None]:
    await auth_service.logout(db, user=current_user)
    return ApiResponse(message="Logout successful")


@router.get(
    "/verify",
    response_model=ApiResponse[UserData],
    summary="Check that the bearer token is valid",
)
async def verify(current_user: CurrentUser) -> ApiResponse[UserData]:
    return ApiResponse(
        message="Token is valid",
        data=UserData(user=UserRead.model_validate(current_user)),
    )


@router.get(
    "/profile",
    response_model=ApiResponse[UserData],
    summary="Get the current user's profile",
)
async def get_profile(current_user: CurrentUser) -> ApiResponse[UserData]:
    return ApiResponse(data=UserData(user=UserRead.model_validate(current_user)))


@router.put(
    "/profile",
    response_model=ApiResponse[UserData],
    summary="Update name and avatar",
)
async def update_profile(
    user_in: UserUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ApiResponse[UserData]:
    user = await auth_service.update_profile(db, user=current_user, user_in=user_in)
    return ApiResponse(
        message="Profile updated successfully",
        data=UserData(user=UserRead.model_validate(user)),
    )


# ── Google OAuth ──────────────────────────────────────────────────────────────

def _oauth_failure_redirect() -> RedirectResponse:
    return RedirectResponse(f"{settings.FRONTEND_URL}/login?error=oauth_failed")


@router.get("/google", summary="Start Google sign-in", include_in_schema=False)
async def google_login() -> RedirectResponse:
    if not settings.google_oauth_enabled:
        return _oauth_failure_redirect()
    return RedirectResponse(google_oauth.authorization_url(create_oauth_state_token()))


@router.get("/google/callback", summary="Google sign-in callback", include_in_schema=False)
async def google_callback(
    db: DBSession,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
) -> RedirectResponse:
    if not code or not state or not verify_oauth_state_token(state):
        return _oauth_failure_redirect()

    try:
        identity = await google_oauth.fetch_identity(code)
        _, token = await auth_service.login_external(db, identity=identity)
    except TaskShareException as exc:
        logger.info("Google sign-in rejected: %s", exc.detail)
        return _oauth_failure_redirect()

    return RedirectResponse(
        f"{settings.FRONTEND_URL}/auth/success?token={token.access_token}"
    )
