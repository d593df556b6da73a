"""
Pytest configuration and fixtures for full-sync tests.
Provides in-memory stores, recording transports and ready-made modules.
"""

from pathlib import Path

import pytest

from fullsync.exceptions import TransportFailure
from fullsync.limits import LimitsSource
from fullsync.modules import TableModule
from fullsync.store import MemoryIdStore
from fullsync.transport import TransportSender


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class RecordingSender(TransportSender):
    """Transport that keeps every action it was asked to send."""

    def __init__(self, fail_on_call: int | None = None):
        self.sent: list[tuple[str, dict]] = []
        self.calls = 0
        self.fail_on_call = fail_on_call
        self.closed = False

    def send(self, action_name, payload):
        self.calls += 1
        if self.fail_on_call is not None and self.calls >= self.fail_on_call:
            raise TransportFailure(f"refused call {self.calls}")
        self.sent.append((action_name, payload))

    def close(self):
        self.closed = True

    @property
    def chunks(self) -> list[list[int]]:
        return [payload["ids"] for _, payload in self.sent]


class FailingSender(RecordingSender):
    """Transport that refuses every call."""

    def __init__(self):
        super().__init__(fail_on_call=1)


class FakeClock:
    """Manually advanced clock; optionally ticks on every read."""

    def __init__(self, now: float = 1_000.0, tick: float = 0.0):
        self.now = now
        self.tick = tick

    def __call__(self) -> float:
        current = self.now
        self.now += self.tick
        return current


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def posts_module() -> TableModule:
    return TableModule("posts", "posts")


@pytest.fixture
def posts_store() -> MemoryIdStore:
    """Posts 1..100; even ids are drafts."""
    store = MemoryIdStore()
    store.insert(
        "posts",
        [
            {"id": i, "status": "draft" if i % 2 == 0 else "publish"}
            for i in range(1, 101)
        ],
    )
    return store


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def failing_sender() -> FailingSender:
    return FailingSender()


@pytest.fixture
def limits() -> LimitsSource:
    return LimitsSource({"posts": {"chunk_size": 10, "max_chunks": 3}})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sender_factory():
    """Build a RecordingSender that fails from the given call onwards."""
    return RecordingSender


@pytest.fixture
def clock_factory():
    return FakeClock
