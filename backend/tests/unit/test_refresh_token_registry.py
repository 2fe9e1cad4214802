"""Tests for the in-memory refresh token registry."""

import threading
from datetime import UTC, datetime, timedelta

from guestlist.services.refresh_token_registry import (
    InMemoryRefreshTokenRegistry,
    RefreshTokenEntry,
    RefreshTokenRegistry,
    get_refresh_token_registry,
    reset_refresh_token_registry,
)

_T0 = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _entry(admin_id: str = "admin-0001", created_at: datetime = _T0) -> RefreshTokenEntry:
    return RefreshTokenEntry(admin_id=admin_id, created_at=created_at)


class TestInMemoryRefreshTokenRegistry:
    """Tests for add/consume/discard/purge."""

    def test_add_registers_the_entry(self) -> None:
        registry = InMemoryRefreshTokenRegistry()
        registry.add("tok-1", _entry())

        assert len(registry) == 1
        assert registry.consume("tok-1") == _entry()

    def test_consume_unknown_returns_none(self) -> None:
        assert InMemoryRefreshTokenRegistry().consume("missing") is None

    def test_consume_removes_the_token(self) -> None:
        registry = InMemoryRefreshTokenRegistry()
        registry.add("tok-1", _entry())

        assert registry.consume("tok-1") == _entry()
        assert registry.consume("tok-1") is None
        assert len(registry) == 0

    def test_discard_reports_whether_token_was_live(self) -> None:
        registry = InMemoryRefreshTokenRegistry()
        registry.add("tok-1", _entry())

        assert registry.discard("tok-1") is True
        assert registry.discard("tok-1") is False

    def test_purge_removes_only_older_entries(self) -> None:
        registry = InMemoryRefreshTokenRegistry()
        registry.add("old", _entry(created_at=_T0 - timedelta(days=8)))
        registry.add("edge", _entry(created_at=_T0 - timedelta(days=7)))
        registry.add("new", _entry(created_at=_T0))

        removed = registry.purge_created_before(_T0 - timedelta(days=7))

        assert removed == 1
        assert registry.discard("old") is False
        assert registry.discard("edge") is True
        assert registry.discard("new") is True

    def test_clear(self) -> None:
        registry = InMemoryRefreshTokenRegistry()
        registry.add("a", _entry())
        registry.add("b", _entry())
        registry.clear()
        assert len(registry) == 0

    def test_concurrent_consume_has_exactly_one_winner(self) -> None:
        """Of many threads consuming one token, only one gets the entry."""
        registry = InMemoryRefreshTokenRegistry()
        registry.add("tok-1", _entry())
        barrier = threading.Barrier(16)
        results: list[RefreshTokenEntry | None] = []
        results_lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            outcome = registry.consume("tok-1")
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for r in results if r is not None) == 1
        assert len(results) == 16


class TestRegistrySingleton:
    """Tests for the process-wide registry accessor."""

    def test_same_instance_until_reset(self) -> None:
        reset_refresh_token_registry()
        first = get_refresh_token_registry()
        assert get_refresh_token_registry() is first

        reset_refresh_token_registry()
        assert get_refresh_token_registry() is not first
        reset_refresh_token_registry()


class TestRefreshTokenRegistryInterface:
    """The contract a shared backend has to implement."""

    def test_abstract_operations(self) -> None:
        assert RefreshTokenRegistry.__abstractmethods__ == {
            "add",
            "consume",
            "discard",
            "purge_created_before",
            "clear",
            "__len__",
        }
