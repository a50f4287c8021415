"""Tests for the console account notifier."""

import pytest

from dojo.adapters.notifications.console import ConsoleAccountNotifier


class TestConsoleAccountNotifier:
    """Test ConsoleAccountNotifier."""

    @pytest.mark.asyncio
    async def test_send_verification_prints_link(self, capsys: pytest.CaptureFixture[str]) -> None:
        """The verification link is printed with the recipient."""
        notifier = ConsoleAccountNotifier()

        sent = await notifier.send_verification(
            "ada@acme.com", "https://app.example.test/verify-email?token=abc"
        )

        out = capsys.readouterr().out
        assert sent is True
        assert "EMAIL VERIFICATION" in out
        assert "ada@acme.com" in out
        assert "https://app.example.test/verify-email?token=abc" in out

    @pytest.mark.asyncio
    async def test_send_password_reset_prints_link(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """The reset link is printed with the recipient."""
        notifier = ConsoleAccountNotifier()

        sent = await notifier.send_password_reset(
            "ada@acme.com", "https://app.example.test/reset-password?token=xyz"
        )

        out = capsys.readouterr().out
        assert sent is True
        assert "PASSWORD RESET" in out
        assert "reset-password?token=xyz" in out
