"""Option resolution with XDG paths and a project-local config file.

This module turns the scattered sources of generation settings into one
validated :class:`~sdking.models.GeneratorOptions`:

* **Precedence resolution** -- :func:`resolve_options` merges CLI flags,
  environment variables and ``./sdking.json`` over built-in defaults.
* **Project-local config** -- :func:`load_project_config` reads
  ``./sdking.json`` so a repository can pin its spec and output directory.
* **Directory layout** -- :func:`get_data_dir` follows the XDG Base
  Directory spec on Linux/BSD and ``~/.sdking/`` elsewhere; crash logs
  live there.
"""

from __future__ import annotations

import json
import os
import platform
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from sdking.exceptions import ConfigError, InvalidUsageError
from sdking.models import GeneratorOptions, ImportStyle

_APP_NAME = "sdking"
_PROJECT_CONFIG_FILENAME = "sdking.json"
_PROJECT_CONFIG_KEYS = frozenset({"input", "output", "import_style", "package_name", "jobs"})

_PACKAGE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

ENV_IMPORT_STYLE = "SDKING_IMPORT_STYLE"
ENV_PACKAGE_NAME = "SDKING_PACKAGE_NAME"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/sdking/`` (default ``~/.local/share/sdking/``).
    On macOS/Windows: ``~/.sdking/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./sdking.json``.

    Recognised keys are ``input``, ``output``, ``import_style``,
    ``package_name`` and ``jobs``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON, is not an object, or
            contains unknown keys.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    unknown = sorted(set(data) - _PROJECT_CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"Invalid project config at {path}: unknown keys {', '.join(unknown)}")
    return data


# --- Precedence resolution ---


def resolve_options(
    cli_input: Optional[str] = None,
    cli_output: Optional[str] = None,
    cli_import_style: Optional[str] = None,
    cli_package_name: Optional[str] = None,
    cli_jobs: Optional[int] = None,
) -> GeneratorOptions:
    """Resolve generation options with the full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``SDKING_IMPORT_STYLE``, ``SDKING_PACKAGE_NAME``)
        3. Project config (``./sdking.json``)
        4. Defaults

    With absolute imports the package name defaults to the output
    directory's name.

    Returns:
        The validated :class:`~sdking.models.GeneratorOptions`.

    Raises:
        InvalidUsageError: If the input or output is missing, the import
            style is unknown, the package name is not a dotted Python
            identifier, or the job count is below one.
        ConfigError: If ``./sdking.json`` is invalid.
    """
    project = load_project_config() or {}

    def pick(cli_value: Any, env_var: Optional[str], key: str) -> Any:
        if cli_value is not None:
            return cli_value
        if env_var is not None and os.environ.get(env_var):
            return os.environ[env_var]
        return project.get(key)

    spec_input = pick(cli_input, None, "input")
    output = pick(cli_output, None, "output")
    style_value = pick(cli_import_style, ENV_IMPORT_STYLE, "import_style")
    package_name = pick(cli_package_name, ENV_PACKAGE_NAME, "package_name")
    jobs = pick(cli_jobs, None, "jobs")

    if not spec_input:
        raise InvalidUsageError("No input spec given. Pass --input (file, URL or '-') or set it in sdking.json")
    if not output:
        raise InvalidUsageError("No output directory given. Pass --output or set it in sdking.json")

    try:
        import_style = ImportStyle(style_value) if style_value else ImportStyle.RELATIVE
    except ValueError:
        choices = ", ".join(style.value for style in ImportStyle)
        raise InvalidUsageError(f"Unknown import style '{style_value}'. Choose one of: {choices}") from None

    if import_style is ImportStyle.ABSOLUTE:
        package_name = package_name or Path(str(output)).resolve().name
        if not _PACKAGE_NAME.match(package_name):
            raise InvalidUsageError(
                f"'{package_name}' is not a valid Python package name; pass --package-name"
            )

    try:
        return GeneratorOptions(
            input=str(spec_input),
            output=str(output),
            import_style=import_style,
            package_name=package_name,
            jobs=jobs if jobs is not None else 4,
        )
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid options: {exc.errors()[0]['msg']}") from None
