"""
Database driver boundary.

The sampling core only sees the two protocols below; PsycopgConnectionFactory
is the production implementation on top of psycopg 3.
"""

import math
from typing import Any, Optional, Protocol

import psycopg

from pingperf.exceptions import DatabaseConnectionError, QueryError


class DatabaseSession(Protocol):
    """A single open database session."""

    def fetch_scalar(self, query: str) -> Any:
        """Run query and return the first column of the first row."""
        ...

    def close(self) -> None:
        ...


class ConnectionFactory(Protocol):
    """Opens fresh sessions."""

    def connect(
        self,
        conninfo: str,
        username: str,
        password: str,
        connect_timeout: float,
    ) -> DatabaseSession:
        ...


class PsycopgSession:
    """DatabaseSession over a psycopg connection."""

    def __init__(self, connection: psycopg.Connection):
        self.connection: Optional[psycopg.Connection] = connection

    def fetch_scalar(self, query: str) -> Any:
        """
        Execute SQL query and fetch a single value.

        Args:
            query: SQL query string

        Returns:
            First column of the first row, or None when no row came back

        Raises:
            QueryError: If the session is closed or the query fails
        """
        if self.connection is None:
            raise QueryError("session is closed")

        try:
            with self.connection.cursor() as cursor:
                cursor.execute(query)
                row = cursor.fetchone()
        except psycopg.Error as e:
            raise QueryError(str(e)) from e

        if row is None:
            return None
        return row[0]

    def close(self):
        """Close database connection."""
        if self.connection is not None:
            connection, self.connection = self.connection, None
            connection.close()


class PsycopgConnectionFactory:
    """Open sessions with psycopg.connect."""

    def connect(
        self,
        conninfo: str,
        username: str,
        password: str,
        connect_timeout: float,
    ) -> PsycopgSession:
        try:
            connection = psycopg.connect(
                conninfo,
                user=username,
                password=password,
                connect_timeout=math.ceil(connect_timeout),
                autocommit=True,
            )
        except psycopg.Error as e:
            raise DatabaseConnectionError(str(e)) from e

        return PsycopgSession(connection)
