"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials

from dojo.adapters.auth.memory import InMemoryIdentityRepository
from dojo.adapters.auth.postgres import PostgresIdentityRepository
from dojo.adapters.db.app_db import AppDatabase
from dojo.adapters.notifications.console import ConsoleAccountNotifier
from dojo.adapters.workspaces.memory import InMemoryWorkspaceRepository
from dojo.adapters.workspaces.postgres import PostgresWorkspaceRepository
from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.lockout import LoginGuard
from dojo.core.auth.notifications import AccountNotifier
from dojo.core.auth.password import PasswordHasher
from dojo.core.auth.repository import IdentityRepository
from dojo.core.auth.service import AuthService
from dojo.core.auth.session import AuthRequest, SessionAuthenticator
from dojo.core.config import AuthConfig, SessionConfig, TokenConfig
from dojo.core.workspaces.repository import WorkspaceRepository
from dojo.core.workspaces.service import WorkspaceService
from dojo.logging import configure_logging

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()


class Settings:
    """Application settings loaded from environment."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
        """
        env = os.environ if environ is None else environ
        self.environment = env.get("ENVIRONMENT", "development").lower()
        self.frontend_url = env.get("FRONTEND_URL", "http://localhost:3000")
        self.database_url = env.get("DATABASE_URL", "postgresql://localhost:5432/dojo")
        self.log_level = env.get("LOG_LEVEL", "INFO")
        self.log_json = env.get("LOG_JSON", "false").lower() in {"1", "true", "yes", "on"}
        self.auth_store = env.get("AUTH_STORE", "memory").lower()
        if self.auth_store not in ("memory", "postgres"):
            raise ValueError(f"AUTH_STORE must be 'memory' or 'postgres', got {self.auth_store!r}")
        self.auth = AuthConfig.from_env(env)


def configure_services(
    app: FastAPI,
    config: AuthConfig,
    identities: IdentityRepository,
    workspaces: WorkspaceRepository,
    notifier: AccountNotifier,
    frontend_url: str,
) -> None:
    """Build the auth components and attach them to ``app.state``."""
    issuer = TokenIssuer(config.tokens)
    login_guard = LoginGuard(identities, config.lockout)
    workspace_service = WorkspaceService(workspaces, identities)

    app.state.session_config = config.session
    app.state.token_config = config.tokens
    app.state.authenticator = SessionAuthenticator(
        issuer, login_guard, identities, config.session
    )
    app.state.workspace_service = workspace_service
    app.state.auth_service = AuthService(
        repo=identities,
        workspaces=workspace_service,
        hasher=PasswordHasher(config.hasher),
        issuer=issuer,
        login_guard=login_guard,
        notifier=notifier,
        frontend_url=frontend_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Store selection (in-memory or PostgreSQL)
    - Database connection pool setup and schema creation
    - Auth component wiring
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, settings.log_json)

    app_db: AppDatabase | None = None
    identities: IdentityRepository
    workspaces: WorkspaceRepository
    if settings.auth_store == "postgres":
        app_db = AppDatabase(settings.database_url)
        await app_db.connect()
        await app_db.ensure_schema()
        identities = PostgresIdentityRepository(app_db)
        workspaces = PostgresWorkspaceRepository(app_db)
    else:
        identities = InMemoryIdentityRepository()
        workspaces = InMemoryWorkspaceRepository()

    app.state.app_db = app_db
    configure_services(
        app,
        settings.auth,
        identities,
        workspaces,
        ConsoleAccountNotifier(),
        settings.frontend_url,
    )
    logger.info(
        "application_started",
        environment=settings.environment,
        auth_store=settings.auth_store,
    )

    yield

    if app_db is not None:
        await app_db.close()
    logger.info("application_stopped")


def get_auth_service(request: Request) -> AuthService:
    """Get auth service from request context."""
    service: AuthService = request.app.state.auth_service
    return service


def get_workspace_service(request: Request) -> WorkspaceService:
    """Get workspace service from request context."""
    service: WorkspaceService = request.app.state.workspace_service
    return service


def get_authenticator(request: Request) -> SessionAuthenticator:
    """Get session authenticator from request context."""
    authenticator: SessionAuthenticator = request.app.state.authenticator
    return authenticator


def get_session_config(request: Request) -> SessionConfig:
    """Get cookie and header settings from request context."""
    config: SessionConfig = request.app.state.session_config
    return config


def get_token_config(request: Request) -> TokenConfig:
    """Get token lifetimes from request context."""
    config: TokenConfig = request.app.state.token_config
    return config


def auth_request_from(
    request: Request, credentials: HTTPAuthorizationCredentials | None = None
) -> AuthRequest:
    """Build the framework-neutral auth view of a FastAPI request."""
    if credentials is not None:
        authorization: str | None = f"{credentials.scheme} {credentials.credentials}"
    else:
        authorization = request.headers.get("authorization")
    return AuthRequest(
        path=request.url.path,
        authorization=authorization,
        cookies=dict(request.cookies),
        headers={key.lower(): value for key, value in request.headers.items()},
        client_host=request.client.host if request.client else None,
    )
