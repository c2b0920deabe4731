"""Tests for the running-sync registry."""

from sheet_sync.processor import RunRegistry


class TestRunRegistry:

    def test_acquire_once_per_store(self):
        registry = RunRegistry()

        assert registry.try_acquire("store-1") is True
        assert registry.try_acquire("store-1") is False
        assert registry.try_acquire("store-2") is True
        assert registry.is_running("store-1")
        assert sorted(registry.running_stores()) == ["store-1", "store-2"]

    def test_release_frees_slot(self):
        registry = RunRegistry()
        registry.try_acquire("store-1")

        assert registry.release("store-1") is True
        assert not registry.is_running("store-1")
        assert registry.release("store-1") is False
        assert registry.try_acquire("store-1") is True

    def test_owner_checked_release(self):
        registry = RunRegistry()
        registry.try_acquire("store-1", owner="run-b")

        # A finishing older run must not free the newer run's slot
        assert registry.release("store-1", owner="run-a") is False
        assert registry.is_running("store-1", owner="run-b")
        assert not registry.is_running("store-1", owner="run-a")

        assert registry.release("store-1", owner="run-b") is True

    def test_release_without_owner_frees_any_run(self):
        registry = RunRegistry()
        registry.try_acquire("store-1", owner="run-a")

        assert registry.release("store-1") is True
        assert not registry.is_running("store-1", owner="run-a")
