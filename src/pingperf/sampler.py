"""
Sampling engine: timed warm and cold trials.

Warm mode reuses one session for every trial, so only the query round-trip
is measured. Cold mode tears the session down after every trial and
reopens it through ConnectionHandle.renew(), timing the open and the query
as two disjoint phases.

Each trial runs ``SELECT <index>`` and checks the returned value against the
index. A mismatch is logged at error level and the sample is kept.
"""

import time
from typing import Any, Callable, List, Optional

import structlog

from pingperf.config import SamplingConfiguration, check_sample_count
from pingperf.connection import ConnectionHandle
from pingperf.drivers import DatabaseSession
from pingperf.metrics import CombinedSummary, SummaryStats, summarize


def trial_query(index: int) -> str:
    return f"SELECT {index}"


class SamplingEngine:
    """
    Runs timing trials against a ConnectionHandle.

    The logger, clock and configuration are injected; nothing here reads
    process-wide state.
    """

    def __init__(
        self,
        log=None,
        clock: Callable[[], float] = time.perf_counter,
        config: Optional[SamplingConfiguration] = None,
    ):
        self.log = log if log is not None else structlog.get_logger()
        self.clock = clock
        self.config = config or SamplingConfiguration()

    def _timed_trial(self, session: DatabaseSession, index: int) -> float:
        """
        Execute one trial query with high-resolution timing.

        Returns:
            Elapsed milliseconds from submission to full result retrieval
        """
        query = trial_query(index)

        start = self.clock()
        value = session.fetch_scalar(query)
        elapsed_ms = (self.clock() - start) * 1000.0

        self._check_result(value, index)
        return elapsed_ms

    def _check_result(self, value: Any, expected: int):
        if value != expected:
            self.log.error(f"Invalid result {value} returned expected {expected}",
                           expected=expected, actual=value)

    def run_warm(self, handle: ConnectionHandle, sample_count: int) -> SummaryStats:
        """
        Time sample_count queries over the handle's current session.

        Args:
            handle: Open handle; its session is reused for every trial
            sample_count: Number of trials (>= 1)

        Returns:
            SummaryStats over the per-trial query timings

        Raises:
            ConfigurationError: If sample_count < 1
            QueryError: If a query fails on the session
        """
        check_sample_count(sample_count)
        session = handle.session

        # warm things up; excluded from every measurement
        session.fetch_scalar(self.config.warmup_query)

        timings: List[float] = []
        for index in range(sample_count):
            elapsed_ms = self._timed_trial(session, index)
            timings.append(elapsed_ms)
            self.log.info(f"Call time: {elapsed_ms:.02f}",
                          trial=index, call_ms=elapsed_ms)

        return summarize(timings)

    def run_cold(self, handle: ConnectionHandle, sample_count: int) -> CombinedSummary:
        """
        Time sample_count fresh opens, each followed by one query.

        Args:
            handle: Handle to reuse; its current session is closed first
            sample_count: Number of trials (>= 1)

        Returns:
            CombinedSummary with open and query timings reduced separately

        Raises:
            ConfigurationError: If sample_count < 1
            DatabaseConnectionError: If a reopen fails
            QueryError: If a query fails on a freshly opened session
        """
        check_sample_count(sample_count)

        # close whatever was already there
        handle.close()

        open_timings: List[float] = []
        query_timings: List[float] = []

        for index in range(sample_count):
            handle.renew()
            open_ms = handle.last_open_duration

            try:
                call_ms = self._timed_trial(handle.session, index)
            finally:
                handle.close()

            open_timings.append(open_ms)
            query_timings.append(call_ms)
            self.log.info(f"Open time: {open_ms:.02f} Call time: {call_ms:.02f}",
                          trial=index, open_ms=open_ms, call_ms=call_ms)

        return CombinedSummary(
            opens=summarize(open_timings),
            queries=summarize(query_timings),
        )
