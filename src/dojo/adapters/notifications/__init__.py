"""Account notification adapters."""

from dojo.adapters.notifications.console import ConsoleAccountNotifier

__all__ = ["ConsoleAccountNotifier"]
