"""Exception hierarchy for sdking.

All exceptions inherit from :class:`SdkingError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`sdking.exit_codes`.
The CLI catches ``SdkingError`` and exits with the appropriate code, while
unexpected exceptions produce a crash log and exit with
:data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SdkingError (exit 1)
    +-- InvalidUsageError            (exit 2)
    +-- SpecParseError               (exit 7)
    |   +-- UnresolvedReferenceError (exit 7)
    +-- ConflictError                (exit 8)
    |   +-- RouteConflictError       (exit 8)
    |   +-- AliasConflictError       (exit 8)
    +-- OutputError                  (exit 9)
    +-- ConfigError                  (exit 1)
"""

from sdking.exit_codes import (
    EXIT_CONFLICT,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_OUTPUT_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SdkingError(Exception):
    """Base exception for all sdking errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`sdking.exit_codes`. The entry point catches
    this exception type and exits with ``exc.exit_code``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SdkingError):
    """Raised for invalid CLI arguments or missing required options."""

    exit_code = EXIT_INVALID_USAGE


class SpecParseError(SdkingError):
    """Raised when the OpenAPI spec cannot be parsed or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class UnresolvedReferenceError(SpecParseError):
    """Raised when a schema ``$ref`` names a type missing from ``components.schemas``."""


class ConflictError(SdkingError):
    """Raised when two spec entities map onto the same generated name."""

    exit_code = EXIT_CONFLICT


class RouteConflictError(ConflictError):
    """Raised when two route exports (children or operations) normalize to one symbol."""


class AliasConflictError(ConflictError):
    """Raised when an ``operationId`` is declared by more than one operation."""


class OutputError(SdkingError):
    """Raised when generated artifacts cannot be written to disk."""

    exit_code = EXIT_OUTPUT_ERROR


class ConfigError(SdkingError):
    """Raised for configuration problems (invalid ``sdking.json``, bad option values)."""

    exit_code = EXIT_GENERIC_FAILURE
