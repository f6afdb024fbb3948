#!/usr/bin/env python3
"""
pingperf command line entry point.

Opens one connection, runs the cold-connection test (fresh session per
sample) and then the warm-connection test (one session for every sample),
and prints max/mean/stddev for each phase.
"""

import argparse
import sys
from datetime import datetime
from typing import List, Optional

import structlog

from pingperf import __version__
from pingperf.config import (
    DEFAULT_SAMPLE_COUNT,
    ENV_HOST,
    ENV_PASSWORD,
    ENV_PORT,
    ENV_USER,
    ConnectionParameters,
    SamplingConfiguration,
    TargetDatabase,
)
from pingperf.connection import ConnectionHandle
from pingperf.drivers import ConnectionFactory
from pingperf.exceptions import QueryError
from pingperf.logging_config import LOG_LEVELS, configure_logging
from pingperf.report import RENDERERS, PingReport
from pingperf.sampler import SamplingEngine

logger = structlog.get_logger()


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    # -h is the host, so help is wired up by hand
    parser = argparse.ArgumentParser(
        prog="pingperf",
        description="Measure database connection open and query latency",
        add_help=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Connection options fall back to {ENV_HOST}, {ENV_PORT}, {ENV_USER} and
{ENV_PASSWORD} when not given on the command line.

Examples:
  # 10 samples against a workgroup database
  pingperf -u readonly -P secret -h db.example.com -p 5432

  # 100 samples over SSL, JSON report on stdout
  pingperf -n 100 --ssl --output json -h db.example.com -p 5432 -u readonly -P secret
        """
    )

    parser.add_argument('--help', action='help', help='Show this help message and exit')
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument(
        '-n', '--numsamples',
        type=positive_int,
        default=DEFAULT_SAMPLE_COUNT,
        help=f'Number of samples to take (default: {DEFAULT_SAMPLE_COUNT})'
    )
    parser.add_argument('-u', '--user', help='Database user')
    parser.add_argument('-P', '--password', help='Database password')
    parser.add_argument('-h', '--host', help='Database address')
    parser.add_argument('-p', '--port', help='Database port')
    parser.add_argument(
        '--target',
        choices=[t.value for t in TargetDatabase],
        default=TargetDatabase.WORKGROUP.value,
        help='Database to connect to (default: workgroup)'
    )
    parser.add_argument('--ssl', action='store_true', help='Require a verified SSL connection')
    parser.add_argument(
        '--sslrootcert',
        default='ca-root.pem',
        help='Root certificate used with --ssl (default: ca-root.pem)'
    )
    parser.add_argument(
        '--connect-timeout',
        type=float,
        default=10.0,
        help='Seconds to wait for each connection (default: 10)'
    )
    parser.add_argument(
        '--output',
        choices=sorted(RENDERERS),
        default='table',
        help='Report format written to stdout (default: table)'
    )
    parser.add_argument(
        '--log-format',
        choices=['console', 'json'],
        default='console',
        help='Log line format on stderr (default: console)'
    )
    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        default='info',
        help='Minimum log level (default: info)'
    )

    return parser


def parameters_from_args(args: argparse.Namespace, environ=None) -> ConnectionParameters:
    return ConnectionParameters.from_environ(
        environ,
        host=args.host,
        port=args.port,
        username=args.user,
        password=args.password,
        target=TargetDatabase(args.target),
        ssl=args.ssl,
        sslrootcert=args.sslrootcert,
        connect_timeout=args.connect_timeout,
    )


def run_ping(
    params: ConnectionParameters,
    sampling: SamplingConfiguration,
    factory: Optional[ConnectionFactory] = None,
    log=None,
) -> PingReport:
    """
    Run the cold test and then the warm test against one target.

    Raises:
        DatabaseConnectionError: If the initial open or a reopen fails
        QueryError: If a trial query fails
    """
    log = log or logger
    samples = sampling.sample_count
    engine = SamplingEngine(log=log, config=sampling)

    start_time = datetime.now()

    with ConnectionHandle.open(params, factory=factory,
                               probe_query=sampling.probe_query,
                               probe_value=sampling.probe_value) as handle:
        server_version = None
        try:
            server_version = handle.server_version()
            log.info("Connected", server_version=server_version)
        except QueryError as e:
            log.warning(f"Could not read server version: {e}")

        log.info(f"Starting timing: {samples} samples (All timing in ms)")
        log.info("New connection test")
        cold = engine.run_cold(handle, samples)

        log.info("Warm connection test")
        handle.renew()
        warm = engine.run_warm(handle, samples)

    end_time = datetime.now()

    report = PingReport(
        params=params,
        sample_count=samples,
        start_time=start_time,
        total_duration_seconds=(end_time - start_time).total_seconds(),
        cold=cold,
        warm=warm,
        server_version=server_version,
    )

    for line in report.summary_lines():
        log.info(line)

    return report


def main(
    argv: Optional[List[str]] = None,
    factory: Optional[ConnectionFactory] = None,
    environ=None,
    stdout=None,
) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.log_format)

    params = parameters_from_args(args, environ)
    sampling = SamplingConfiguration(sample_count=args.numsamples)

    errors = params.validate() + sampling.validate()
    if errors:
        parser.error("; ".join(errors))

    logger.info("Target", **params.describe())

    try:
        report = run_ping(params, sampling, factory=factory)
    except Exception as e:
        logger.exception(f"Ping run failed: {e}")
        return 1

    out = stdout or sys.stdout
    out.write(RENDERERS[args.output](report) + "\n")
    return 0


def run():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
