"""
pingperf: PostgreSQL connection and query latency probe

Measures cold costs (new TCP/TLS handshake, authentication and session
setup) separately from warm costs (query round-trip on an open session)
and reduces both to max/mean/stddev summaries.
"""

__version__ = "0.1.0"
__author__ = "pingperf maintainers"

__all__ = ["__version__", "__author__"]
