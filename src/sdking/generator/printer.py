"""Render structured modules to Python source text.

The printer is the only part of the generator that knows Python syntax.
It takes a :class:`~sdking.generator.artifacts.Module` and produces a
:class:`~sdking.models.GeneratedArtifact`:

1. A Jinja2 environment is configured with templates from
   ``generator/templates/``.
2. Short, regular pieces (imports, ``__all__``, field lines, class bodies)
   are formatted here so their wrapping stays predictable.
3. Request functions and class statements are rendered through the
   ``operation.py.j2`` and ``class.py.j2`` templates.
4. ``module.py.j2`` lays the sections and definitions out with the blank
   lines PEP 8 asks for.

Output is plain ``black``-compatible text: double quotes, trailing commas in
wrapped brackets, 88 columns where a statement can wrap.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sdking.generator.artifacts import (
    IMPORT_GROUP_LOCAL,
    ClassDef,
    FieldDef,
    ImportStmt,
    Module,
    py_literal,
)
from sdking.models import GeneratedArtifact

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``generator/templates/``)."""

HEADER = "# Generated by sdking. Do not edit by hand."

LINE_LENGTH = 88
INDENT = "    "


def render_module(module: Module) -> GeneratedArtifact:
    """Render *module* to source text.

    Args:
        module: The structured module built by the emitter.

    Returns:
        A :class:`~sdking.models.GeneratedArtifact` with the module's path,
        its source (ending in a single newline) and its references.
    """
    env = _create_jinja_env()

    header = HEADER
    if module.doc and module.doc.strip():
        header = f"{header}\n{docstring(module.doc)}"
    sections = [header]
    if module.future:
        sections.append("from __future__ import annotations")
    sections.extend(_import_sections(module.imports))
    if module.deferred_imports:
        deferred = "\n".join(_import_line(stmt, INDENT) for stmt in module.deferred_imports)
        sections.append(f"if TYPE_CHECKING:\n{deferred}")
    if module.exports is not None:
        sections.append(_bracketed("__all__ = ", [py_literal(name) for name in module.exports], "[", "]"))

    definitions = [_render_class(env, cls) for cls in module.classes]
    if module.adapters:
        definitions.append(
            "\n".join(f"{adapter.name} = TypeAdapter({adapter.annotation})" for adapter in module.adapters)
        )
    definitions.extend(
        env.get_template("operation.py.j2").render(op=op).rstrip("\n") for op in module.operations
    )
    if module.assigns:
        definitions.append("\n".join(f"{assign.target} = {assign.value}" for assign in module.assigns))
    if module.rebuild:
        definitions.append(_rebuild_loop(module.rebuild))

    content = env.get_template("module.py.j2").render(sections=sections, definitions=definitions)
    return GeneratedArtifact(path=module.path, content=content, references=module.references)


def docstring(text: str) -> str:
    """Quote *text* as a triple-quoted docstring.

    Backslashes and embedded triple quotes are escaped. Multi-line text puts
    the closing quotes on their own line; callers indent continuation lines.
    """
    escaped = text.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    lines = [line.rstrip() for line in escaped.splitlines()]
    if len(lines) == 1:
        return f'"""{_escape_trailing_quote(lines[0])}"""'
    return '"""' + "\n".join(lines) + '\n"""'


def _escape_trailing_quote(line: str) -> str:
    """Escape a final ``"`` that would otherwise merge into the closing quotes."""
    if not line.endswith('"'):
        return line
    body = line[:-1]
    backslashes = len(body) - len(body.rstrip("\\"))
    if backslashes % 2:
        return line
    return body + '\\"'


@lru_cache(maxsize=1)
def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for the source templates.

    Autoescape is disabled for ``.py.j2`` templates, which produce Python
    rather than HTML. Block trimming and lstrip keep the control tags out of
    the rendered indentation.
    """
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("py.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["docstring"] = docstring
    env.filters["pyrepr"] = py_literal
    return env


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def _import_sections(imports: tuple[ImportStmt, ...]) -> list[str]:
    """One block per import group: stdlib, third-party, then local."""
    groups: dict[int, list[ImportStmt]] = {}
    for stmt in imports:
        groups.setdefault(stmt.group, []).append(stmt)

    sections = []
    for group in sorted(groups):
        statements = groups[group]
        if group != IMPORT_GROUP_LOCAL:
            statements = sorted(statements, key=lambda stmt: (bool(stmt.names), stmt.module))
        sections.append("\n".join(_import_line(stmt) for stmt in statements))
    return sections


def _import_line(stmt: ImportStmt, indent: str = "") -> str:
    if not stmt.names:
        return f"{indent}import {stmt.module}"
    names = [name if asname is None else f"{name} as {asname}" for name, asname in stmt.names]
    prefix = f"from {stmt.module} import "
    one_line = f"{indent}{prefix}{', '.join(names)}"
    if len(one_line) <= LINE_LENGTH:
        return one_line
    return _bracketed(prefix, names, "(", ")", indent)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


def _render_class(env: Environment, cls: ClassDef) -> str:
    return env.get_template("class.py.j2").render(cls=cls, body=_class_body(cls)).rstrip("\n")


def _class_body(cls: ClassDef) -> list[str]:
    """Blocks of a class body, separated by blank lines when rendered."""
    blocks = []
    if cls.doc and cls.doc.strip():
        blocks.append(docstring(cls.doc))
    if cls.config:
        blocks.append(f"model_config = ConfigDict({', '.join(cls.config)})")
    lines = [_field_line(field) for field in cls.fields]
    if cls.extra_annotation:
        lines.append(f"__pydantic_extra__: {cls.extra_annotation}")
    if lines:
        blocks.append("\n".join(lines))
    return blocks or ["pass"]


def _field_line(field: FieldDef) -> str:
    line = f"{field.name}: {field.annotation}"
    if field.alias is None:
        return line if field.default is None else f"{line} = {field.default}"
    alias = py_literal(field.alias)
    if field.default is None:
        return f"{line} = Field(alias={alias})"
    return f"{line} = Field(default={field.default}, alias={alias})"


def _rebuild_loop(names: tuple[str, ...]) -> str:
    # A one-element tuple needs its trailing comma.
    if len(names) == 1:
        header = f"for _model in ({names[0]},):"
    else:
        header = _bracketed("for _model in ", list(names), "(", "):")
    return f"{header}\n{INDENT}_model.model_rebuild()\ndel _model"


def _bracketed(prefix: str, items: list[str], opening: str, closing: str, indent: str = "") -> str:
    """``prefix(a, b)`` on one line, or one item per line with trailing commas."""
    one_line = f"{indent}{prefix}{opening}{', '.join(items)}{closing}"
    if len(one_line) <= LINE_LENGTH:
        return one_line
    body = "".join(f"{indent}{INDENT}{item},\n" for item in items)
    return f"{indent}{prefix}{opening}\n{body}{indent}{closing}"
