"""Password hashing using bcrypt."""

import asyncio

import bcrypt

from dojo.core.config import HasherConfig


class PasswordHasher:
    """Salted, adaptive one-way password hashing.

    bcrypt's work is CPU bound and takes the same time whether or not the
    candidate matches. The async variants run it in a worker thread so a
    slow hash does not stall other requests.
    """

    def __init__(self, config: HasherConfig | None = None) -> None:
        """Initialize the hasher.

        Args:
            config: Hashing configuration. Uses defaults if not provided.
        """
        self.config = config or HasherConfig()

    def hash(self, password: str) -> str:
        """Hash a password.

        Args:
            password: Plain text password. Emptiness is rejected by callers.

        Returns:
            Bcrypt hash string.
        """
        salt = bcrypt.gensalt(rounds=self.config.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed_password: str | None) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password to check.
            hashed_password: Bcrypt hash to check against. None for federated identities.

        Returns:
            True if password matches hash.
        """
        if not password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    async def hash_async(self, password: str) -> str:
        """Hash a password without blocking the event loop."""
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, hashed_password: str | None) -> bool:
        """Verify a password without blocking the event loop."""
        return await asyncio.to_thread(self.verify, password, hashed_password)
