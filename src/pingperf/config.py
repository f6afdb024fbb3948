"""
Configuration and data models for pingperf.

Connection parameters select a conninfo template by target database;
credentials are always handed to the driver separately so they never
appear in the rendered conninfo string.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional

from psycopg.conninfo import make_conninfo

from pingperf.exceptions import ConfigurationError

WORKGROUP_CONNINFO_TEMPLATE = "dbname=workgroup application_name=stats-collector"
RELATIONSHIP_CONNINFO_TEMPLATE = "dbname=Relationship application_name=stats-collector"
SSL_CONFIG = "sslmode=verify-ca"

# libpq raises anything lower to 2 seconds
MIN_CONNECT_TIMEOUT = 2.0

DEFAULT_SAMPLE_COUNT = 10

# Environment fallbacks for the CLI flags of the same name
ENV_HOST = "PINGPERF_HOST"
ENV_PORT = "PINGPERF_PORT"
ENV_USER = "PINGPERF_USER"
ENV_PASSWORD = "PINGPERF_PASSWORD"


class TargetDatabase(Enum):
    """Databases the probe knows how to reach"""
    WORKGROUP = "workgroup"
    RELATIONSHIP = "relationship"

    @property
    def template(self) -> str:
        return _TEMPLATES[self]


_TEMPLATES = {
    TargetDatabase.WORKGROUP: WORKGROUP_CONNINFO_TEMPLATE,
    TargetDatabase.RELATIONSHIP: RELATIONSHIP_CONNINFO_TEMPLATE,
}


@dataclass(frozen=True)
class ConnectionParameters:
    """Where and as whom to connect"""
    host: str
    port: str
    username: str
    password: str
    target: TargetDatabase = TargetDatabase.WORKGROUP
    ssl: bool = False
    sslrootcert: str = "ca-root.pem"
    connect_timeout: float = 10.0

    def conninfo(self) -> str:
        """
        Render the conninfo string for this target.

        Host and port are passed as separate keywords, as psycopg.connect takes
        them, so IPv6 literals and unusual host names are quoted by libpq rules.

        Returns:
            libpq key/value conninfo, without user or password
        """
        template = self.target.template
        extra = {}
        if self.ssl:
            template = f"{template} {SSL_CONFIG}"
            extra["sslrootcert"] = self.sslrootcert
        return make_conninfo(template, host=self.host, port=self.port, **extra)

    def validate(self) -> List[str]:
        """
        Validate connection parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.host:
            errors.append("A database host was not specified")

        if not self.port:
            errors.append("A database port was not specified")
        else:
            try:
                port = int(self.port)
            except ValueError:
                errors.append(f"Port must be an integer, got {self.port!r}")
            else:
                if not (1 <= port <= 65535):
                    errors.append(f"Port must be 1-65535, got {port}")

        if not self.username or self.password is None:
            errors.append("A database username and password was not specified")

        if self.connect_timeout < MIN_CONNECT_TIMEOUT:
            errors.append(f"connect_timeout must be >= {MIN_CONNECT_TIMEOUT:g} seconds, "
                          f"got {self.connect_timeout}")

        return errors

    def describe(self) -> dict:
        """Loggable view of the parameters (no password)"""
        return {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "target": self.target.value,
            "ssl": self.ssl,
        }

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "ConnectionParameters":
        """
        Build parameters from PINGPERF_* variables, with explicit overrides.

        Overrides whose value is None fall back to the environment.
        """
        env = os.environ if environ is None else environ
        fallbacks = {
            "host": env.get(ENV_HOST, ""),
            "port": env.get(ENV_PORT, ""),
            "username": env.get(ENV_USER, ""),
            "password": env.get(ENV_PASSWORD),
        }
        values = dict(fallbacks)
        for key, value in overrides.items():
            if value is not None:
                values[key] = value
        return cls(**values)


@dataclass
class SamplingConfiguration:
    """Knobs for a sampling run"""
    sample_count: int = DEFAULT_SAMPLE_COUNT
    warmup_query: str = "SELECT 101010"
    probe_query: str = "SELECT 1"
    probe_value: int = 1

    def validate(self) -> List[str]:
        errors = []
        if self.sample_count < 1:
            errors.append(f"sample_count must be >= 1, got {self.sample_count}")
        return errors


def check_sample_count(sample_count: int) -> int:
    """Reject sample counts the statistics cannot be computed for."""
    if sample_count < 1:
        raise ConfigurationError(f"sample_count must be >= 1, got {sample_count}")
    return sample_count
