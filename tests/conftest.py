"""
Pytest configuration for pingperf tests

Unit and contract tests run against in-memory doubles of the driver
boundary: a fake clock, a fake connection factory and the sessions it
hands out. Integration tests need a real PostgreSQL server and are
skipped unless PINGPERF_TEST_HOST is set.
"""

from typing import Any, Callable, Dict, List, Optional, Set

import pytest
import structlog

from pingperf.config import ConnectionParameters, SamplingConfiguration
from pingperf.exceptions import DatabaseConnectionError, QueryError

WARMUP_VALUE = 101010


class FakeClock:
    """Manually advanced clock, in seconds like time.perf_counter."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float):
        self.now += ms / 1000.0


class FakeSession:
    """Answers ``SELECT <n>`` with n unless the factory overrides it."""

    def __init__(self, factory: "FakeFactory", number: int):
        self.factory = factory
        self.number = number
        self.closed = False
        self.alive = True
        self.queries: List[str] = []

    def fetch_scalar(self, query: str) -> Any:
        self.queries.append(query)
        self.factory.events.append(("query", self.number, query))

        if self.closed:
            raise QueryError("session is closed")
        if not self.alive:
            raise QueryError("server closed the connection unexpectedly")
        if query == "SELECT version()":
            return "PostgreSQL 16.2 (fake)"
        if query in self.factory.failing_queries:
            raise QueryError(f"canceling statement: {query}")

        value = int(query.split()[1])
        if value == WARMUP_VALUE:
            return value

        self.factory.clock.advance_ms(self.factory.query_latency(value))
        return self.factory.overrides.get(value, value)

    def close(self):
        self.factory.events.append(("close", self.number))
        self.closed = True
        if self.factory.close_raises:
            raise QueryError("connection already closed")


class FakeFactory:
    """
    ConnectionFactory double that counts opens.

    Args:
        clock: FakeClock advanced by open_latency_ms on every successful open
        open_latency_ms: Simulated connection setup time
        query_latency: Trial index -> simulated query time in ms
        fail_opens: 1-based open attempts that raise DatabaseConnectionError
    """

    def __init__(
        self,
        clock: FakeClock,
        open_latency_ms: float = 0.0,
        query_latency: Optional[Callable[[int], float]] = None,
        fail_opens: Optional[Set[int]] = None,
    ):
        self.clock = clock
        self.open_latency_ms = open_latency_ms
        self.query_latency = query_latency or (lambda index: 0.0)
        self.fail_opens = fail_opens or set()
        self.overrides: Dict[int, Any] = {}
        self.failing_queries: Set[str] = set()
        self.close_raises = False

        self.attempts = 0
        self.sessions: List[FakeSession] = []
        self.events: List[tuple] = []
        self.connect_args: List[tuple] = []

    @property
    def open_count(self) -> int:
        return len(self.sessions)

    @property
    def current(self) -> FakeSession:
        return self.sessions[-1]

    def connect(self, conninfo, username, password, connect_timeout):
        self.attempts += 1
        self.connect_args.append((conninfo, username, password, connect_timeout))

        if self.attempts in self.fail_opens:
            self.events.append(("open_failed", self.attempts))
            raise DatabaseConnectionError("could not connect to server: Connection refused")

        self.clock.advance_ms(self.open_latency_ms)
        session = FakeSession(self, len(self.sessions) + 1)
        self.sessions.append(session)
        self.events.append(("open", session.number))
        return session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def factory(clock) -> FakeFactory:
    return FakeFactory(clock)


@pytest.fixture
def make_factory(clock) -> Callable[..., FakeFactory]:
    def _make(**kwargs) -> FakeFactory:
        return FakeFactory(clock, **kwargs)
    return _make


@pytest.fixture
def params() -> ConnectionParameters:
    return ConnectionParameters(
        host="db.example.com",
        port="5432",
        username="readonly",
        password="secret",
    )


@pytest.fixture
def sampling() -> SamplingConfiguration:
    return SamplingConfiguration()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog.configure() a test (or the CLI) performed."""
    yield
    structlog.reset_defaults()


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "contract: Behavioural contract of the sampling engine"
    )
    config.addinivalue_line(
        "markers", "integration: Tests requiring a reachable PostgreSQL server"
    )
