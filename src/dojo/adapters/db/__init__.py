"""Database adapters."""

from dojo.adapters.db.app_db import AppDatabase

__all__ = ["AppDatabase"]
