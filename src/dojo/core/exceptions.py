"""Domain-specific exceptions.

All exceptions in the dojo system inherit from DojoError, making it easy
to catch all system errors while still being able to handle specific
error types. Every error carries the HTTP status the API layer should
answer with, so the route layer never has to map exceptions by hand.
"""

from __future__ import annotations

from typing import Any


class DojoError(Exception):
    """Base exception for all dojo errors.

    Attributes:
        status_code: HTTP status the API layer responds with.
        code: Stable machine-readable error identifier.
    """

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description. Falls back to the class default.
        """
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def details(self) -> dict[str, Any]:
        """Extra fields for the error response body."""
        return {}


# Token errors


class TokenError(DojoError):
    """Raised when token validation fails."""

    status_code = 401
    code = "invalid_token"
    default_message = "Invalid token"


class TokenInvalid(TokenError):
    """Signature, structure, or token kind is wrong."""

    code = "invalid_token"
    default_message = "Invalid token. Please log in again"


class TokenExpired(TokenError):
    """Token is past its expiry."""

    code = "expired_token"
    default_message = "Your token has expired. Please log in again"


# Authentication / authorization errors


class AuthError(DojoError):
    """Raised when a request is not allowed through the auth boundary."""

    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication failed"


class Unauthenticated(AuthError):
    """Missing, invalid or expired credentials.

    The ``reason`` distinguishes the failing stage for logs without
    changing what the caller sees.
    """

    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    UNKNOWN_IDENTITY = "unknown_identity"
    INVALID_CREDENTIALS = "invalid_credentials"

    default_message = "You are not logged in. Please log in to get access"

    def __init__(self, reason: str = MISSING_TOKEN, message: str | None = None) -> None:
        """Initialize with the failing stage.

        Args:
            reason: One of the reason constants on this class.
            message: Optional override for the user-facing message.
        """
        super().__init__(message)
        self.reason = reason


class InvalidCredentials(Unauthenticated):
    """Email or password did not match."""

    default_message = "Invalid email or password"

    def __init__(self, message: str | None = None) -> None:
        """Initialize with the invalid-credentials reason."""
        super().__init__(Unauthenticated.INVALID_CREDENTIALS, message)


class Locked(AuthError):
    """Account is temporarily locked after repeated failed logins."""

    status_code = 423
    code = "account_locked"
    default_message = "Account is temporarily locked due to too many failed login attempts"


class Deactivated(AuthError):
    """Account has been disabled."""

    status_code = 401
    code = "account_deactivated"
    default_message = "Your account has been deactivated. Please contact support"


class UnverifiedEmail(AuthError):
    """Email address must be verified first."""

    status_code = 403
    code = "email_not_verified"
    default_message = "Please verify your email address to access this feature"


class Forbidden(AuthError):
    """Role or permission does not allow the action."""

    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class InvalidRefreshToken(AuthError):
    """Refresh failed. The failing stage is deliberately not exposed."""

    code = "invalid_refresh_token"
    default_message = "Invalid refresh token"


class InternalAuthError(AuthError):
    """Unexpected fault inside the auth boundary."""

    status_code = 500
    code = "internal_error"
    default_message = "Something went wrong during authentication"


# Registration and account errors


class InvalidEmail(DojoError):
    """Email address is malformed."""

    status_code = 400
    code = "invalid_email"
    default_message = "Invalid email format"


class PersonalEmailNotAllowed(DojoError):
    """Email belongs to a personal mail provider."""

    status_code = 400
    code = "personal_email"
    default_message = "Please use a corporate email address. Personal emails are not allowed"


class EmailAlreadyRegistered(DojoError):
    """An identity with this email already exists."""

    status_code = 409
    code = "email_exists"
    default_message = "User with this email already exists"


class WeakPassword(DojoError):
    """Password does not meet the complexity rule."""

    status_code = 400
    code = "weak_password"
    default_message = (
        "Password must be at least 8 characters long and contain at least one uppercase "
        "letter, one lowercase letter, one number, and one special character"
    )


class InvalidActionToken(DojoError):
    """Verification or reset token is unknown or expired."""

    status_code = 400
    code = "invalid_action_token"
    default_message = "Token is invalid or has expired"


class AlreadyVerified(DojoError):
    """Email is already verified."""

    status_code = 400
    code = "already_verified"
    default_message = "Email is already verified"


# Workspace errors


class NotFound(DojoError):
    """Referenced record does not exist."""

    status_code = 404
    code = "not_found"
    default_message = "Not found"


class MembershipExists(DojoError):
    """Identity already has a membership in the workspace."""

    status_code = 409
    code = "membership_exists"
    default_message = "User is already a member"


class JoinRejected(DojoError):
    """Identity is not eligible to join the workspace."""

    status_code = 403
    code = "join_rejected"

    def __init__(self, reason: str) -> None:
        """Initialize with the eligibility reason.

        Args:
            reason: The first failing eligibility check.
        """
        super().__init__(f"Cannot join workspace: {reason}")
        self.reason = reason

    def details(self) -> dict[str, Any]:
        """Expose the failing check as ``reason``."""
        return {"reason": self.reason}


class InvalidRoleChange(DojoError):
    """Requested role change is not allowed."""

    status_code = 400
    code = "invalid_role_change"
    default_message = "The creator role cannot be granted or revoked"
