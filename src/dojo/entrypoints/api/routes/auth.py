"""Auth API routes for registration, login, token refresh and recovery."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from dojo.core.auth.service import AuthService, LoginResult
from dojo.core.auth.session import SessionAuthenticator
from dojo.core.auth.types import Identity, TokenPair
from dojo.core.config import SessionConfig, TokenConfig
from dojo.core.workspaces.service import WorkspaceService
from dojo.entrypoints.api.deps import (
    auth_request_from,
    get_auth_service,
    get_authenticator,
    get_session_config,
    get_token_config,
    get_workspace_service,
)
from dojo.entrypoints.api.middleware.jwt_auth import RequireAuth

router = APIRouter(prefix="/auth", tags=["auth"])

SessionConfigDep = Annotated[SessionConfig, Depends(get_session_config)]
TokenConfigDep = Annotated[TokenConfig, Depends(get_token_config)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# Request/Response models
class EmailRequest(BaseModel):
    """Body carrying a single email address.

    The address is kept as a plain string so the corporate email policy,
    not request validation, decides how malformed input is reported.
    """

    email: str


class RegisterRequest(BaseModel):
    """Registration request body."""

    email: str
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """Login request body."""

    email: str
    password: str


class VerifyEmailRequest(BaseModel):
    """Email verification body."""

    token: str = Field(..., min_length=1)


class PasswordResetConfirm(BaseModel):
    """Password reset confirmation body."""

    token: str = Field(..., min_length=1)
    password: str


class PasswordUpdateRequest(BaseModel):
    """Password change body for a logged-in identity."""

    current_password: str
    new_password: str


class TokenResponse(BaseModel):
    """Token response."""

    status: str = "success"
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: dict[str, Any]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    status: str = "success"
    message: str


def _set_token_cookies(
    response: Response, tokens: TokenPair, session: SessionConfig, token_config: TokenConfig
) -> None:
    for name, value, ttl in (
        (session.access_cookie, tokens.access_token, token_config.access_ttl),
        (session.refresh_cookie, tokens.refresh_token, token_config.refresh_ttl),
    ):
        response.set_cookie(
            name,
            value,
            max_age=int(ttl.total_seconds()),
            httponly=True,
            secure=session.secure_cookies,
            samesite="strict",
        )


def _token_response(
    response: Response,
    identity: Identity,
    tokens: TokenPair,
    session: SessionConfig,
    token_config: TokenConfig,
) -> TokenResponse:
    _set_token_cookies(response, tokens, session, token_config)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=identity.public_view(),
    )


def _login_response(
    response: Response, result: LoginResult, session: SessionConfig, token_config: TokenConfig
) -> TokenResponse:
    return _token_response(response, result.identity, result.tokens, session, token_config)


@router.post("/validate-email")
async def validate_email(body: EmailRequest, service: AuthServiceDep) -> dict[str, Any]:
    """Check that an email may be used to register.

    Returns:
        The email's domain.
    """
    domain = await service.validate_email(body.email)
    return {"status": "success", "message": "Email is valid", "domain": domain}


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, service: AuthServiceDep) -> dict[str, Any]:
    """Register a new identity and its personal workspace.

    No tokens are issued; the identity must verify its email and log in.
    """
    result = await service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return {
        "status": "success",
        "message": "Registration successful. Please check your email to verify your account.",
        "user": result.identity.public_view(),
        "workspace": {"id": str(result.workspace.id), "name": result.workspace.name},
    }


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    response: Response,
    service: AuthServiceDep,
    session: SessionConfigDep,
    token_config: TokenConfigDep,
) -> TokenResponse:
    """Authenticate with email and password and return tokens.

    Tokens are returned in the body and set as HTTP-only cookies.
    """
    result = await service.login(email=body.email, password=body.password)
    return _login_response(response, result, session, token_config)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, session: SessionConfigDep) -> MessageResponse:
    """Clear the auth cookies."""
    for name in (session.access_cookie, session.refresh_cookie):
        response.delete_cookie(
            name, httponly=True, secure=session.secure_cookies, samesite="strict"
        )
    return MessageResponse(message="Logged out")


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
    session: SessionConfigDep,
    token_config: TokenConfigDep,
) -> TokenResponse:
    """Exchange the refresh token (cookie or header) for a new pair.

    The presented refresh token is single-use.
    """
    identity, tokens = await authenticator.refresh(auth_request_from(request))
    return _token_response(response, identity, tokens, session, token_config)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(body: VerifyEmailRequest, service: AuthServiceDep) -> MessageResponse:
    """Mark the email behind a verification token as verified."""
    await service.verify_email(body.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(auth: RequireAuth, service: AuthServiceDep) -> MessageResponse:
    """Send a fresh verification link to the logged-in identity."""
    await service.resend_verification(auth.identity)
    return MessageResponse(message="Verification email sent")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(body: EmailRequest, service: AuthServiceDep) -> MessageResponse:
    """Request a password reset link.

    Answers the same way whether or not the account exists.
    """
    await service.request_password_reset(body.email)
    return MessageResponse(
        message="If an account with that email exists, a password reset link has been sent"
    )


@router.post("/reset-password", response_model=TokenResponse)
async def reset_password(
    body: PasswordResetConfirm,
    response: Response,
    service: AuthServiceDep,
    session: SessionConfigDep,
    token_config: TokenConfigDep,
) -> TokenResponse:
    """Set a new password with a reset token and log in."""
    result = await service.reset_password(body.token, body.password)
    return _login_response(response, result, session, token_config)


@router.patch("/update-password", response_model=TokenResponse)
async def update_password(
    body: PasswordUpdateRequest,
    response: Response,
    auth: RequireAuth,
    service: AuthServiceDep,
    session: SessionConfigDep,
    token_config: TokenConfigDep,
) -> TokenResponse:
    """Change the password of the logged-in identity."""
    result = await service.update_password(auth.identity, body.current_password, body.new_password)
    return _login_response(response, result, session, token_config)


@router.get("/me")
async def get_current_user(
    auth: RequireAuth,
    workspaces: Annotated[WorkspaceService, Depends(get_workspace_service)],
) -> dict[str, Any]:
    """Get current authenticated identity and its workspaces."""
    memberships = await workspaces.list_workspaces(auth.identity_id)
    return {
        "status": "success",
        "user": auth.identity.public_view(),
        "workspaces": [
            {"id": str(workspace.id), "name": workspace.name, "role": membership.role.value}
            for workspace, membership in memberships
        ],
    }
