"""Typer application and CLI entry point for sdking.

The CLI is a single command that runs the whole pipeline::

    load_spec -> validate_document -> extract_spec -> emit_sdk -> write_artifacts

Generation completes in memory before the writer runs, so a spec that fails
anywhere in the core leaves the output directory untouched.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`sdking.config`: Option precedence resolution.
    :mod:`sdking.output`: Output formatting initialised in :func:`generate`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from sdking import __version__
from sdking.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="sdking",
    help="Generate typed Python client SDKs from OpenAPI 3.0/3.1 specs.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"sdking {__version__}")
        raise typer.Exit()


@app.command()
def generate(
    spec_input: Optional[str] = typer.Option(
        None, "--input", "-i", help="OpenAPI spec: file path, URL, or '-' for stdin."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory to write the SDK package to."
    ),
    import_style: Optional[str] = typer.Option(
        None,
        "--import-style",
        "-s",
        help="How generated modules import each other: relative (default) or absolute.",
    ),
    package_name: Optional[str] = typer.Option(
        None,
        "--package-name",
        help="Root package for absolute imports (default: output directory name).",
    ),
    jobs: Optional[int] = typer.Option(
        None, "--jobs", "-j", help="Parallel writer threads (default: 4)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="List the files that would be written, write nothing."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format for --dry-run."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output for --dry-run."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Generate a client SDK package from an OpenAPI spec.

    Every named schema becomes a pydantic model module, every URL path a
    package of ``httpx`` request functions, and every ``operationId`` an
    alias in ``routes/alias.py``.

    Example::

        sdking -i petstore.json -o ./petstore
        sdking -i https://example.com/openapi.yaml -o src/client -s absolute
    """
    from sdking.config import resolve_options
    from sdking.exceptions import SdkingError
    from sdking.generator import emit_sdk
    from sdking.output import (
        OutputFormat,
        OutputManager,
        debug,
        error,
        print_table,
        progress,
        set_output,
        success,
    )
    from sdking.parser import extract_spec, load_spec, validate_document
    from sdking.writer import write_artifacts

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    try:
        options = resolve_options(
            cli_input=spec_input,
            cli_output=output_dir,
            cli_import_style=import_style,
            cli_package_name=package_name,
            cli_jobs=jobs,
        )
        debug(f"Options: {options.model_dump(mode='json')}")

        progress(f"Loading {options.input}")
        raw = load_spec(options.input)
        version_string = validate_document(raw)
        spec = extract_spec(raw, version_string)
        debug(
            f"Parsed OpenAPI {spec.openapi_version}: {len(spec.operations)} operations, "
            f"{len(spec.schemas)} schemas"
        )

        progress("Generating SDK")
        artifacts = emit_sdk(spec, options)

        if dry_run:
            print_table(
                ["path", "lines", "imports"],
                [
                    [artifact.path, str(artifact.content.count("\n")), str(len(artifact.references))]
                    for artifact in artifacts
                ],
                title=f"{spec.info.title} {spec.info.version}",
            )
            return

        progress(f"Writing {len(artifacts)} files to {options.output}")
        written = write_artifacts(artifacts, options.output, jobs=options.jobs)
    except SdkingError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(
        f"Generated {len(written)} files for {spec.info.title} {spec.info.version} "
        f"in {options.output}"
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from sdking.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(exc)), encoding="utf-8")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``sdking`` console script.

    Expected failures are :class:`~sdking.exceptions.SdkingError`
    instances, reported by :func:`generate` with the error's ``exit_code``.
    All other exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from sdking.output import error

        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
