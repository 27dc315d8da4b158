"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~sdking.exceptions.SdkingError` subclass.
External tooling (CI scripts, Makefiles) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ sdking -i broken.yaml -o ./sdk
    $ echo $?
    7   # EXIT_SPEC_PARSE_ERROR -- the document could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required options."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI specification could not be parsed or validated."""

EXIT_CONFLICT = 8
"""The specification declares names that cannot coexist in the generated SDK."""

EXIT_OUTPUT_ERROR = 9
"""Generated artifacts could not be written to the output directory."""
