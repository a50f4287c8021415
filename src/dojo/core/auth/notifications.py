"""Account notification protocol.

Delivery is pluggable: the service only builds links and hands them to an
adapter. Adapters decide how (or whether) the message reaches the user.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AccountNotifier(Protocol):
    """Protocol for sending account links to users."""

    async def send_verification(self, email: str, verify_url: str) -> bool:
        """Send an email verification link.

        Args:
            email: Recipient address.
            verify_url: Full URL including the verification token.

        Returns:
            True if the message was handed off successfully.
        """
        ...

    async def send_password_reset(self, email: str, reset_url: str) -> bool:
        """Send a password reset link.

        Args:
            email: Recipient address.
            reset_url: Full URL including the reset token.

        Returns:
            True if the message was handed off successfully.
        """
        ...
