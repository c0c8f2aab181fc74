"""Exception hierarchy for pgscope.

All exceptions carry an exit_code for CLI return value mapping.
The core session never lets these escape: they are raised by the driver
adapter and folded into structured results. The CLI raises them again
from failed results so run() can map them to exit codes.
"""

from pgscope.core.exit_codes import ExitCode


class PgScopeError(Exception):
    """Base exception for all pgscope errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(PgScopeError):
    """Connection failures, unreachable host, lost link."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Connection or probe timeout."""

    exit_code: int = ExitCode.TIMEOUT


class QueryError(PgScopeError):
    """Statement rejected by the server; the session stays usable."""

    exit_code: int = ExitCode.QUERY_ERROR


class InputError(PgScopeError):
    """File not found, invalid identifiers or parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(PgScopeError):
    """Malformed config, missing profile, unreadable history file."""

    exit_code: int = ExitCode.CONFIG_ERROR
