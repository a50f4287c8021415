"""Credential store adapters."""

from dojo.adapters.auth.memory import InMemoryIdentityRepository
from dojo.adapters.auth.postgres import PostgresIdentityRepository

__all__ = ["InMemoryIdentityRepository", "PostgresIdentityRepository"]
