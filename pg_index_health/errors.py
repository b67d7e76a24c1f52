"""Exception types raised by pg-index-health."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pg_index_health.connection.host import Host
    from pg_index_health.diagnostics import Diagnostic


class PgIndexHealthError(Exception):
    """Base class for every error raised by this package."""


class MalformedConnectionString(PgIndexHealthError, ValueError):
    """The connection string has no valid header or no usable hosts."""


class InvalidHostConfiguration(PgIndexHealthError, ValueError):
    """A host or cluster was configured with values that can never work."""


class ProbeFailed(PgIndexHealthError):
    """A primary-detection probe against one host failed."""

    def __init__(self, host: Host, cause: Exception):
        super().__init__(f"Primary detection failed for host {host}: {cause}")
        self.host = host


class MissingMergeStrategy(PgIndexHealthError):
    """A cluster-wide diagnostic has no function to merge per-host results."""


class RuleExecutionFailed(PgIndexHealthError):
    """A diagnostic query failed on one or more hosts.

    Attributes:
        diagnostic: The diagnostic that was being executed.
        failures: Mapping of host to the exception raised on it.
    """

    def __init__(self, diagnostic: Diagnostic, failures: dict[Host, Exception]):
        hosts = ", ".join(f"{h.name}:{h.port}" for h in failures)
        first = next(iter(failures.values()))
        super().__init__(
            f"Diagnostic {diagnostic.name} failed on {len(failures)} host(s) [{hosts}]: "
            f"{type(first).__name__}: {first}"
        )
        self.diagnostic = diagnostic
        self.failures = failures
