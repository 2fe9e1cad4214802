"""Registry of live refresh tokens for the admin tier.

A refresh token is only honored while it is present here. Refresh removes
the presented token and registers its successor; logout removes it. The
registry is process-local, so restarting the server logs every admin out.

The RefreshTokenRegistry interface is the seam for a shared backend
(Redis, database) in multi-instance deployments.
"""

import abc
import threading
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RefreshTokenEntry:
    """Metadata stored alongside a live refresh token.

    Attributes:
        admin_id: Session identifier the token was issued for.
        created_at: When the token was issued.
        user_agent: User-Agent of the issuing request, if any.
    """

    admin_id: str
    created_at: datetime
    user_agent: str | None = None


class RefreshTokenRegistry(abc.ABC):
    """Interface for refresh token storage.

    Implementations must make consume() atomic: among concurrent callers
    presenting the same token, exactly one gets the entry back.
    """

    @abc.abstractmethod
    def add(self, token: str, entry: RefreshTokenEntry) -> None:
        """Register a newly issued refresh token."""

    @abc.abstractmethod
    def consume(self, token: str) -> RefreshTokenEntry | None:
        """Remove a token and return its entry; None if it was not live."""

    @abc.abstractmethod
    def discard(self, token: str) -> bool:
        """Remove a token if present.

        Returns:
            True if the token was live.
        """

    @abc.abstractmethod
    def purge_created_before(self, cutoff: datetime) -> int:
        """Remove tokens issued before cutoff.

        Returns:
            Number of tokens removed.
        """

    @abc.abstractmethod
    def clear(self) -> None:
        """Remove every token."""

    @abc.abstractmethod
    def __len__(self) -> int: ...


class InMemoryRefreshTokenRegistry(RefreshTokenRegistry):
    """Dict-backed registry guarded by a lock.

    The lock makes consume() a single check-and-delete even if the app runs
    handlers in a thread pool.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RefreshTokenEntry] = {}
        self._lock = threading.Lock()

    def add(self, token: str, entry: RefreshTokenEntry) -> None:
        with self._lock:
            self._entries[token] = entry

    def consume(self, token: str) -> RefreshTokenEntry | None:
        with self._lock:
            return self._entries.pop(token, None)

    def discard(self, token: str) -> bool:
        with self._lock:
            return self._entries.pop(token, None) is not None

    def purge_created_before(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [
                token
                for token, entry in self._entries.items()
                if entry.created_at < cutoff
            ]
            for token in stale:
                del self._entries[token]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Global registry instance (singleton for the app)
_registry: RefreshTokenRegistry | None = None


def get_refresh_token_registry() -> RefreshTokenRegistry:
    """Get the global refresh token registry.

    Returns:
        The singleton RefreshTokenRegistry instance.
    """
    global _registry
    if _registry is None:
        _registry = InMemoryRefreshTokenRegistry()
    return _registry


def reset_refresh_token_registry() -> None:
    """Reset the global registry. For testing only."""
    global _registry
    _registry = None
