"""
Unified error handling for confseal.

Exit Codes:
- 0: Success
- 10: Configuration error (document read, parse, persist; unrecoverable resolution)
- 11: Provider error (built-in or extension resolution failure)
- 12: Secret store error
- 127: Unknown/internal error
- 130: Interrupted
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    SECRET_STORE_ERROR = 12
    UNKNOWN_ERROR = 127


class ConfsealError(Exception):
    """Base exception for confseal errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Provider resolution


class ProviderError(ConfsealError):
    """Raised when a provider reference cannot be turned into a configured provider."""

    exit_code = ExitCode.PROVIDER_ERROR


class ProviderNotFoundError(ProviderError):
    """No built-in provider both matched the name and configured successfully."""

    def __init__(self, name: str):
        super().__init__(
            f"The provider '{name}' could not be found or configured",
            {"provider": name},
        )
        self.name = name


class ModuleOpenError(ProviderError):
    """The extension module location could not be opened."""

    def __init__(self, location: str):
        super().__init__(
            f"The provider plugin path '{location}' could not be opened",
            {"plugin": location},
        )
        self.location = location


class SymbolNotFoundError(ProviderError):
    """The extension module does not export the requested provider symbol."""

    def __init__(self, symbol: str, location: str):
        super().__init__(
            f"The provider '{symbol}' could not be found in '{location}' location",
            {"provider": symbol, "plugin": location},
        )
        self.symbol = symbol
        self.location = location


class ContractViolationError(ProviderError):
    """The exported symbol does not implement the provider contract."""

    def __init__(self, name: str):
        super().__init__(
            f"The provider '{name}' does not implement Provider interface",
            {"provider": name},
        )
        self.name = name


class ConfigurationError(ProviderError):
    """An extension provider was found but refused its configuration."""

    def __init__(self, name: str):
        super().__init__(
            f"The provider '{name}' could not be configured",
            {"provider": name},
        )
        self.name = name


class UnrecoverableError(ConfsealError):
    """Raised for startup-time failures the process cannot run without."""

    exit_code = ExitCode.CONFIG_ERROR
    show_traceback = True


# Document lifecycle


class LifecycleError(ConfsealError):
    """Raised when the configuration document cannot be loaded or created."""

    exit_code = ExitCode.CONFIG_ERROR

    def __init__(self, message: str, path: str):
        super().__init__(message, {"path": path})
        self.path = path


class ReadError(LifecycleError):
    """The configuration file exists but could not be read."""


class ParseError(LifecycleError):
    """The configuration file could not be decoded into the document."""


class PersistenceError(LifecycleError):
    """The default configuration could not be written to disk."""


class CertificateError(ConfsealError):
    """Raised when a certificate/key pair cannot be materialized or loaded."""

    exit_code = ExitCode.CONFIG_ERROR


class SecretStoreError(ConfsealError):
    """Raised by a secret store that cannot configure itself."""

    exit_code = ExitCode.SECRET_STORE_ERROR


CommandFunc = TypeVar("CommandFunc", bound=Callable[..., int])

INTERRUPTED = 130


def format_error_message(error: ConfsealError) -> str:
    """One-line message for stderr, with details appended as key=value pairs."""
    if not error.details:
        return error.message
    pairs = ", ".join(f"{key}={value}" for key, value in error.details.items())
    return f"{error.message} ({pairs})"


def _exit_code_for(error: BaseException) -> int:
    if isinstance(error, ConfsealError):
        return int(error.exit_code)
    if isinstance(error, KeyboardInterrupt):
        return INTERRUPTED
    return int(ExitCode.UNKNOWN_ERROR)


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[CommandFunc], CommandFunc]:
    """
    Wrap a CLI command so failures become exit codes instead of tracebacks.

    ConfsealError subclasses exit with their own code and print a one-line message to
    stderr; UnrecoverableError also prints its traceback. An interrupt exits with 130 and
    anything else with 127.
    """

    def decorator(command: CommandFunc) -> CommandFunc:
        @functools.wraps(command)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return command(*args, **kwargs)
            except KeyboardInterrupt as e:
                if log_errors:
                    logger.info("command_interrupted", command=command.__name__)
                return _exit_code_for(e)
            except ConfsealError as e:
                if log_errors:
                    logger.error(
                        "command_failed",
                        command=command.__name__,
                        error_type=type(e).__name__,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                print(f"Error: {format_error_message(e)}", file=sys.stderr)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return _exit_code_for(e)
            except Exception as e:
                if log_errors:
                    logger.error(
                        "command_crashed",
                        command=command.__name__,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                print(f"Error: {e}", file=sys.stderr)
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return _exit_code_for(e)

        return wrapper  # type: ignore[return-value]

    return decorator
