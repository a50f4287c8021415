"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from dojo.adapters.auth.memory import InMemoryIdentityRepository
from dojo.adapters.workspaces.memory import InMemoryWorkspaceRepository
from dojo.core.auth.jwt import TokenIssuer
from dojo.core.auth.lockout import LoginGuard
from dojo.core.auth.password import PasswordHasher
from dojo.core.auth.service import AuthService
from dojo.core.auth.session import SessionAuthenticator
from dojo.core.auth.types import Identity
from dojo.core.config import AuthConfig, HasherConfig, TokenConfig
from dojo.core.workspaces.service import WorkspaceService
from dojo.entrypoints.api.app import create_app
from dojo.entrypoints.api.deps import Settings, configure_services

IdentityFactory = Callable[..., Awaitable[Identity]]
SignUp = Callable[..., dict[str, str]]

API_ENV = {
    "BCRYPT_ROUNDS": "4",
    "JWT_SECRET": "api-access-secret-0123456789abcdef",  # pragma: allowlist secret
    "JWT_REFRESH_SECRET": "api-refresh-secret-0123456789abcdef",  # pragma: allowlist secret
    "FRONTEND_URL": "https://app.example.test",
}


@pytest.fixture
def auth_config() -> AuthConfig:
    """Auth configuration with a cheap bcrypt cost."""
    return AuthConfig(
        hasher=HasherConfig(rounds=4),
        tokens=TokenConfig(
            access_secret="test-access-secret-0123456789abcdef",  # pragma: allowlist secret
            refresh_secret="test-refresh-secret-0123456789abcdef",  # pragma: allowlist secret
        ),
    )


@pytest.fixture
def clock() -> MagicMock:
    """Controllable clock. Set ``return_value`` to move time."""
    return MagicMock(return_value=datetime.now(UTC))


@pytest.fixture
def hasher(auth_config: AuthConfig) -> PasswordHasher:
    """Password hasher."""
    return PasswordHasher(auth_config.hasher)


@pytest.fixture
def issuer(auth_config: AuthConfig) -> TokenIssuer:
    """Token issuer on the real clock, since PyJWT checks expiry against it."""
    return TokenIssuer(auth_config.tokens)


@pytest.fixture
def identity_repo() -> InMemoryIdentityRepository:
    """Empty credential store."""
    return InMemoryIdentityRepository()


@pytest.fixture
def workspace_repo() -> InMemoryWorkspaceRepository:
    """Empty workspace store."""
    return InMemoryWorkspaceRepository()


@pytest.fixture
def login_guard(
    identity_repo: InMemoryIdentityRepository, auth_config: AuthConfig, clock: MagicMock
) -> LoginGuard:
    """Login guard on the controllable clock."""
    return LoginGuard(identity_repo, auth_config.lockout, clock=clock)


@pytest.fixture
def workspace_service(
    workspace_repo: InMemoryWorkspaceRepository, identity_repo: InMemoryIdentityRepository
) -> WorkspaceService:
    """Workspace service over in-memory stores."""
    return WorkspaceService(workspace_repo, identity_repo)


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier that records calls and always succeeds."""
    mock = MagicMock()
    mock.send_verification = AsyncMock(return_value=True)
    mock.send_password_reset = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def auth_service(
    identity_repo: InMemoryIdentityRepository,
    workspace_service: WorkspaceService,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
    login_guard: LoginGuard,
    notifier: MagicMock,
    clock: MagicMock,
) -> AuthService:
    """Auth service over in-memory stores."""
    return AuthService(
        repo=identity_repo,
        workspaces=workspace_service,
        hasher=hasher,
        issuer=issuer,
        login_guard=login_guard,
        notifier=notifier,
        frontend_url="https://app.example.test/",
        clock=clock,
    )


@pytest.fixture
def authenticator(
    issuer: TokenIssuer,
    login_guard: LoginGuard,
    identity_repo: InMemoryIdentityRepository,
    auth_config: AuthConfig,
) -> SessionAuthenticator:
    """Session authenticator over the in-memory credential store."""
    return SessionAuthenticator(issuer, login_guard, identity_repo, auth_config.session)


@pytest.fixture
def create_identity(
    identity_repo: InMemoryIdentityRepository, hasher: PasswordHasher
) -> IdentityFactory:
    """Factory storing a verified, password-backed identity."""

    async def _create(
        email: str = "ada@acme.com",
        password: str = "Str0ng!Pass",  # pragma: allowlist secret
        **overrides: Any,
    ) -> Identity:
        fields: dict[str, Any] = {
            "email": email,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email_domain": email.rpartition("@")[2],
            "password_hash": hasher.hash(password),
            "email_verified": True,
        }
        fields.update(overrides)
        return await identity_repo.create_identity(Identity(**fields))

    return _create


@pytest.fixture
def sent_token() -> Callable[[AsyncMock], str]:
    """Extract the action token from the last link a notifier mock sent."""

    def _extract(send: AsyncMock) -> str:
        url: str = send.await_args.args[1]
        return url.rpartition("token=")[2]

    return _extract


@pytest.fixture
def api_client(notifier: MagicMock) -> Iterator[TestClient]:
    """Running API over fresh in-memory stores and the recording notifier."""
    app = create_app(Settings(API_ENV))
    with TestClient(app) as client:
        settings: Settings = app.state.settings
        configure_services(
            app,
            settings.auth,
            InMemoryIdentityRepository(),
            InMemoryWorkspaceRepository(),
            notifier,
            settings.frontend_url,
        )
        yield client


@pytest.fixture
def sign_up(
    api_client: TestClient, notifier: MagicMock, sent_token: Callable[[AsyncMock], str]
) -> SignUp:
    """Register, verify and log in through the API. Returns auth headers."""

    def _sign_up(
        email: str = "ada@acme.com",
        password: str = "Str0ng!Pass",  # pragma: allowlist secret
        first_name: str = "Ada",
    ) -> dict[str, str]:
        registered = api_client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": "Tester",
            },
        )
        assert registered.status_code == 201, registered.text
        verified = api_client.post(
            "/api/v1/auth/verify-email",
            json={"token": sent_token(notifier.send_verification)},
        )
        assert verified.status_code == 200, verified.text
        login = api_client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _sign_up
