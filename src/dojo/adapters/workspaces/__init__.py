"""Workspace store adapters."""

from dojo.adapters.workspaces.memory import InMemoryWorkspaceRepository
from dojo.adapters.workspaces.postgres import PostgresWorkspaceRepository

__all__ = ["InMemoryWorkspaceRepository", "PostgresWorkspaceRepository"]
