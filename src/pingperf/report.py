"""
Report rendering for a pingperf run.

Reports are written to stdout only; nothing is persisted between runs.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from tabulate import tabulate

from pingperf.config import ConnectionParameters
from pingperf.metrics import CombinedSummary, SummaryStats


@dataclass
class PingReport:
    """Complete result of one cold + warm run"""
    params: ConnectionParameters
    sample_count: int
    start_time: datetime
    total_duration_seconds: float
    cold: CombinedSummary
    warm: SummaryStats
    server_version: Optional[str] = None

    def summary_lines(self) -> List[str]:
        """The three closing log lines, in the order they are emitted"""
        return [
            f"Open perf: {self.cold.opens.describe()}",
            f"Cold run queries: {self.cold.queries.describe()}",
            f"Warm run queries: {self.warm.describe()}",
        ]

    def to_json(self) -> Dict:
        """
        Export report as JSON.

        Returns:
            Dict suitable for json.dumps()
        """
        return {
            "timestamp": self.start_time.isoformat(),
            "target": {
                "host": self.params.host,
                "port": self.params.port,
                "database": self.params.target.value,
                "ssl": self.params.ssl,
            },
            "server_version": self.server_version,
            "sample_count": self.sample_count,
            "duration_seconds": self.total_duration_seconds,
            "results": {
                "cold": self.cold.to_json(),
                "warm": self.warm.to_json(),
            },
        }

    def to_table_rows(self) -> List[List]:
        """
        Export report as table rows for console display.

        Returns:
            List of rows [phase, max, mean, stddev, samples]
        """
        rows = []
        for phase, stats in (
            ("Cold open", self.cold.opens),
            ("Cold query", self.cold.queries),
            ("Warm query", self.warm),
        ):
            rows.append([
                phase,
                f"{stats.max:.2f}",
                f"{stats.mean:.2f}",
                f"{stats.stddev:.2f}",
                stats.samples,
            ])
        return rows


def render_json(report: PingReport) -> str:
    return json.dumps(report.to_json(), indent=2)


def render_table(report: PingReport) -> str:
    """
    Format the report as a console table.

    Example output:
        Phase         Max (ms)    Mean (ms)    Stddev (ms)    Samples
        ----------  ----------  -----------  -------------  ---------
        Cold open        12.40        10.93           0.81         10
        ...
    """
    headers = ["Phase", "Max (ms)", "Mean (ms)", "Stddev (ms)", "Samples"]
    table_str = tabulate(report.to_table_rows(), headers=headers,
                         tablefmt="simple", floatfmt=".2f")

    output = []
    output.append("=" * 70)
    output.append("Database Connection Latency")
    output.append("=" * 70)
    output.append(f"Target:    {report.params.host}:{report.params.port} "
                  f"({report.params.target.value})")
    if report.server_version:
        output.append(f"Server:    {report.server_version}")
    output.append(f"Timestamp: {report.start_time.isoformat()}")
    output.append(f"Samples:   {report.sample_count}")
    output.append("")
    output.append(table_str)
    output.append("")
    output.append(f"Completed in {report.total_duration_seconds:.2f} seconds.")
    output.append("=" * 70)

    return "\n".join(output)


RENDERERS = {
    "table": render_table,
    "json": render_json,
}
