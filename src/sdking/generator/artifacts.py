"""Structured model of a generated Python module.

The emitter never concatenates source text. It builds one :class:`Module`
per artifact -- an import table plus ordered definitions -- and hands it to
:mod:`sdking.generator.printer`, the only place that knows Python syntax.
This keeps dependency resolution and export aggregation testable on plain
data.

Definitions render in a fixed order: classes, module-level type adapters,
request functions, assignments, then the ``model_rebuild`` loop of the
schemas aggregator.
"""

from __future__ import annotations

from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict

from sdking.models import ParameterLocation

IMPORT_GROUP_STDLIB = 0
IMPORT_GROUP_THIRD_PARTY = 1
IMPORT_GROUP_LOCAL = 2

SYMBOL_SOURCES: dict[str, str] = {
    "Annotated": "typing",
    "Any": "typing",
    "Literal": "typing",
    "Optional": "typing",
    "TYPE_CHECKING": "typing",
    "Union": "typing",
    "date": "datetime",
    "datetime": "datetime",
    "UUID": "uuid",
    "AnyUrl": "pydantic",
    "BaseModel": "pydantic",
    "BeforeValidator": "pydantic",
    "ConfigDict": "pydantic",
    "EmailStr": "pydantic",
    "Field": "pydantic",
    "RootModel": "pydantic",
    "TypeAdapter": "pydantic",
    "to_jsonable_python": "pydantic_core",
}
"""Where each library name used by generated code is imported from."""

_SOURCE_ORDER = ("datetime", "typing", "uuid", "httpx", "pydantic", "pydantic_core")
_STDLIB_SOURCES = frozenset({"datetime", "typing", "uuid"})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ImportStmt(_Frozen):
    """``from module import names`` or, with no names, ``import module``."""

    module: str
    names: tuple[tuple[str, Optional[str]], ...] = ()
    group: int = IMPORT_GROUP_LOCAL


class FieldDef(_Frozen):
    """One annotated class attribute.

    ``default`` is the Python expression of the default value, or ``None``
    for a required field. ``alias`` is the wire name when it differs from
    ``name``.
    """

    name: str
    annotation: str
    default: Optional[str] = None
    alias: Optional[str] = None


class ClassDef(_Frozen):
    """A pydantic model class."""

    name: str
    bases: tuple[str, ...] = ("BaseModel",)
    doc: Optional[str] = None
    config: tuple[str, ...] = ()
    fields: tuple[FieldDef, ...] = ()
    extra_annotation: Optional[str] = None


class AdapterDef(_Frozen):
    """A module-level ``TypeAdapter`` validating one inline response shape."""

    name: str
    annotation: str


class ParamDef(_Frozen):
    """One argument of a generated request function."""

    name: str
    wire_name: str
    location: ParameterLocation
    annotation: str
    required: bool = False


class BodyDef(_Frozen):
    """The ``body`` argument of a request function and how it is sent."""

    annotation: str
    required: bool = False
    encoding: Literal["json", "form", "content"] = "json"
    content_type: Optional[str] = None


class ResponseDef(_Frozen):
    """Static choice of how a request function turns the response into its result.

    * ``model`` -- ``<model>.model_validate(data)``
    * ``list`` -- validate every element with ``<model>`` into a list
    * ``adapter`` -- ``<adapter>.validate_python(data)``
    * ``none`` -- no return value
    """

    kind: Literal["model", "list", "adapter", "none"] = "none"
    annotation: str = "None"
    model: Optional[str] = None
    adapter: Optional[str] = None


class OperationDef(_Frozen):
    """A generated request function for one HTTP operation."""

    name: str
    http_method: str
    url: str
    path_params: tuple[ParamDef, ...] = ()
    query_params: tuple[ParamDef, ...] = ()
    header_params: tuple[ParamDef, ...] = ()
    cookie_params: tuple[ParamDef, ...] = ()
    body: Optional[BodyDef] = None
    response: ResponseDef = ResponseDef()
    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = None
    deprecated: bool = False

    @property
    def keyword_params(self) -> tuple[ParamDef, ...]:
        return self.query_params + self.header_params + self.cookie_params

    @property
    def doc(self) -> Optional[str]:
        """Docstring text: summary, description, deprecation note and operation id."""
        paragraphs: list[str] = []
        for text in (self.summary, self.description):
            if text and text.strip() and text.strip() not in paragraphs:
                paragraphs.append(text.strip())
        if self.deprecated:
            paragraphs.append("Deprecated.")
        if self.operation_id:
            paragraphs.append(f"Operation ID: ``{self.operation_id}``")
        return "\n\n".join(paragraphs) or None


class Assign(_Frozen):
    """``target = value`` at module level."""

    target: str
    value: str


class Module(_Frozen):
    """Everything the printer needs to render one artifact.

    ``deferred_imports`` go under ``if TYPE_CHECKING:``; they are only
    needed to resolve annotations and are bound at run time by the schemas
    aggregator's ``model_rebuild`` loop. ``references`` lists the artifact
    paths this module imports from.
    """

    path: str
    doc: Optional[str] = None
    future: bool = False
    imports: tuple[ImportStmt, ...] = ()
    deferred_imports: tuple[ImportStmt, ...] = ()
    exports: Optional[tuple[str, ...]] = None
    classes: tuple[ClassDef, ...] = ()
    adapters: tuple[AdapterDef, ...] = ()
    operations: tuple[OperationDef, ...] = ()
    assigns: tuple[Assign, ...] = ()
    rebuild: tuple[str, ...] = ()
    references: tuple[str, ...] = ()


def symbol_imports(symbols: Iterable[str]) -> tuple[ImportStmt, ...]:
    """Group library *symbols* into one import statement per source module.

    Statements follow a fixed source order and names are sorted, so the
    result only depends on the set of symbols requested.

    Raises:
        KeyError: If a symbol has no entry in :data:`SYMBOL_SOURCES`.
    """
    by_source: dict[str, set[str]] = {}
    for symbol in symbols:
        by_source.setdefault(SYMBOL_SOURCES[symbol], set()).add(symbol)

    statements = []
    for source in _SOURCE_ORDER:
        names = by_source.get(source)
        if not names:
            continue
        group = IMPORT_GROUP_STDLIB if source in _STDLIB_SOURCES else IMPORT_GROUP_THIRD_PARTY
        statements.append(
            ImportStmt(
                module=source,
                names=tuple((name, None) for name in sorted(names, key=_import_sort_key)),
                group=group,
            )
        )
    return tuple(statements)


def _import_sort_key(name: str) -> tuple[bool, str]:
    # isort order: CONSTANTS first, then Classes before functions
    return (not name.isupper(), name)


def py_literal(value: object) -> str:
    """Return the Python source for a literal *value*, preferring double quotes."""
    text = repr(value)
    if isinstance(value, str) and text.startswith("'") and '"' not in value:
        return f'"{text[1:-1]}"'
    return text
