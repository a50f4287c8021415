"""Console-based account notifier for demo/dev mode.

Prints verification and reset links to stdout so developers can click
them directly without an SMTP setup.
"""

import structlog

from dojo.core.auth.notifications import AccountNotifier

logger = structlog.get_logger()


class ConsoleAccountNotifier:
    """Prints account links instead of emailing them."""

    def _print_link(self, title: str, email: str, url: str) -> None:
        print("\n" + "=" * 70, flush=True)
        print(f"[{title}] Link generated for demo/dev mode", flush=True)
        print(f"  Email: {email}", flush=True)
        print(f"  Link:  {url}", flush=True)
        print("=" * 70 + "\n", flush=True)

    async def send_verification(self, email: str, verify_url: str) -> bool:
        """Print the email verification link.

        Returns:
            True (console printing always succeeds).
        """
        self._print_link("EMAIL VERIFICATION", email, verify_url)
        logger.info("console_verification_link_printed", email=email)
        return True

    async def send_password_reset(self, email: str, reset_url: str) -> bool:
        """Print the password reset link.

        Returns:
            True (console printing always succeeds).
        """
        self._print_link("PASSWORD RESET", email, reset_url)
        logger.info("console_password_reset_link_printed", email=email)
        return True


# Verify we implement the protocol
_notifier: AccountNotifier = ConsoleAccountNotifier()
