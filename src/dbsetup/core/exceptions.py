"""Exception hierarchy for dbsetup.

All exceptions carry an exit_code for CLI return value mapping.
"""

from dbsetup.core.exit_codes import ExitCode


class DbSetupError(Exception):
    """Base exception for all dbsetup errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class QueryError(DbSetupError):
    """SQL rejected by the server."""


class NetworkError(DbSetupError):
    """Connection failures, unreachable host, pool exhaustion."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Statement timeout, connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class InputError(DbSetupError):
    """Missing SQL script, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class OutputError(DbSetupError):
    """Export files or manifest could not be written."""

    exit_code: int = ExitCode.OUTPUT_ERROR


class ConfigError(DbSetupError):
    """Missing credentials, malformed environment values."""

    exit_code: int = ExitCode.CONFIG_ERROR
