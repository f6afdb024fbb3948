"""
Connection handle for timing session setup.

The handle owns at most one live session. renew() is a small state machine:

    CONNECTED --probe fails--> RECONNECTING --reopen ok--> CONNECTED
                                            --reopen fails--> FAILED

There is exactly one reopen attempt per renew(); a second consecutive
failure propagates to the caller.
"""

import time
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from pingperf.config import ConnectionParameters
from pingperf.drivers import ConnectionFactory, DatabaseSession, PsycopgConnectionFactory
from pingperf.exceptions import DatabaseConnectionError

logger = structlog.get_logger()


class ConnectionState(Enum):
    """Lifecycle of a ConnectionHandle"""
    CLOSED = "closed"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class ConnectionHandle:
    """
    A single database session plus the time it took to open.

    Use ConnectionHandle.open(...) to create one; the constructor itself does
    not touch the network.
    """

    def __init__(
        self,
        params: ConnectionParameters,
        factory: Optional[ConnectionFactory] = None,
        clock: Callable[[], float] = time.perf_counter,
        probe_query: str = "SELECT 1",
        probe_value: Any = 1,
        log=None,
    ):
        self.params = params
        self.factory = factory or PsycopgConnectionFactory()
        self.clock = clock
        self.probe_query = probe_query
        self.probe_value = probe_value
        self.log = log or logger.bind(host=params.host, port=params.port)

        self.state = ConnectionState.CLOSED
        self._session: Optional[DatabaseSession] = None
        self._last_open_duration: Optional[float] = None

    @classmethod
    def open(cls, params: ConnectionParameters, factory: Optional[ConnectionFactory] = None,
             **kwargs) -> "ConnectionHandle":
        """
        Create a handle and open its first session.

        Raises:
            DatabaseConnectionError: If the connection cannot be established
        """
        handle = cls(params, factory=factory, **kwargs)
        handle.connect()
        return handle

    @property
    def last_open_duration(self) -> Optional[float]:
        """Milliseconds taken by the most recent successful open"""
        return self._last_open_duration

    @property
    def session(self) -> DatabaseSession:
        if self._session is None:
            raise DatabaseConnectionError("No open database session")
        return self._session

    @property
    def is_open(self) -> bool:
        return self._session is not None

    def connect(self):
        """
        Open a new session and record how long it took.

        Any session still held is closed first. On failure the handle keeps
        its previous duration and no session is installed.
        """
        self._discard_session()
        conninfo = self.params.conninfo()

        try:
            start = self.clock()
            session = self.factory.connect(
                conninfo,
                self.params.username,
                self.params.password,
                self.params.connect_timeout,
            )
            elapsed = self.clock() - start
        except Exception as e:
            self.log.warning(f"Failed to connect to the DB: {e}",
                             target=self.params.target.value,
                             ssl=self.params.ssl)
            raise

        self._session = session
        self._last_open_duration = elapsed * 1000.0
        self.state = ConnectionState.CONNECTED
        self.log.debug("Database session opened", open_ms=self._last_open_duration)

    def probe(self) -> bool:
        """Return True when the current session answers the liveness query."""
        if self._session is None:
            return False
        try:
            value = self._session.fetch_scalar(self.probe_query)
        except Exception as e:
            self.log.debug("Liveness probe failed", error=str(e))
            return False
        if value != self.probe_value:
            self.log.debug("Liveness probe returned unexpected value", value=value)
            return False
        return True

    def renew(self):
        """
        Check the session is still valid and if not recreate it.

        Raises:
            DatabaseConnectionError: If the single reopen attempt fails
        """
        if self.probe():
            return

        self.state = ConnectionState.RECONNECTING
        self._discard_session()

        try:
            self.connect()
        except Exception:
            self.state = ConnectionState.FAILED
            raise

    def server_version(self) -> str:
        """
        Return a string of the form:
        "PostgreSQL 16.2 on x86_64-pc-linux-gnu, compiled by gcc ..., 64-bit"
        """
        return str(self.session.fetch_scalar("SELECT version()"))

    def close(self):
        """Close the current session, ignoring errors. Safe to call twice."""
        self._discard_session()
        if self.state != ConnectionState.FAILED:
            self.state = ConnectionState.CLOSED

    def _discard_session(self):
        session, self._session = self._session, None
        if session is None:
            return
        try:
            session.close()
        except Exception as e:
            self.log.debug("Ignoring error while closing session", error=str(e))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
