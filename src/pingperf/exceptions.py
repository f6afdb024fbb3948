"""
Exception hierarchy for pingperf.

A value mismatch between a trial's query result and its expected index is
deliberately not an exception: it is logged and the run continues.
"""


class PingPerfError(Exception):
    """Base class for all pingperf errors."""


class ConfigurationError(PingPerfError, ValueError):
    """Invalid connection or sampling parameters."""


class DatabaseConnectionError(PingPerfError):
    """Opening (or re-opening) a database session failed."""


class QueryError(PingPerfError):
    """A query failed on an already-open session."""
