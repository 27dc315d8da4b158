"""Canonical Pydantic models shared across all sdking modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Parser output models** -- produced by the OpenAPI parser and consumed by the
generator:
    :class:`HTTPMethod`, :class:`ParameterLocation`, the :data:`SchemaNode`
    variants, :class:`SchemaRegistry`, :class:`APIParameter`,
    :class:`RequestBodyInfo`, :class:`ResponseInfo`, :class:`APIOperation`,
    :class:`APIInfo`, :class:`ServerInfo`, and :class:`ParsedSpec`.

**Generator models** -- built fresh on every run and discarded after emission:
    :class:`RouteNode`, :class:`AliasEntry`, :class:`AliasTable`, and
    :class:`GeneratedArtifact`.

**Option models** -- the resolved generation settings:
    :class:`ImportStyle` and :class:`GeneratorOptions`.

Schema nodes, route nodes and artifacts are frozen: once the parser or a
builder returns them they are never mutated, which keeps every run a pure
transform of its input document.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- HTTP vocabulary ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects.

    Used as the ``method`` field on :class:`APIOperation`. The value doubles
    as the name of the generated request function.
    """

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


# --- Schema nodes ---


class _SchemaBase(BaseModel):
    """Fields shared by every schema variant.

    ``nullable`` is an orthogonal modifier rather than a variant of its own:
    any shape can additionally accept ``null``.
    """

    model_config = ConfigDict(frozen=True)

    nullable: bool = False
    description: Optional[str] = None


class RefSchema(_SchemaBase):
    """A reference to a named entry in the :class:`SchemaRegistry`.

    References are lookup keys only; the target schema is never copied
    into the referencing tree, which lets cyclic definitions resolve through
    indirection.
    """

    kind: Literal["ref"] = "ref"
    name: str


class ObjectSchema(_SchemaBase):
    """An object with ordered properties.

    ``additional`` is ``None`` for a closed shape, an :class:`UntypedSchema`
    for an open shape (``additionalProperties: true``), or any other node for
    a typed residual-properties rule.
    """

    kind: Literal["object"] = "object"
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: tuple[str, ...] = ()
    additional: Optional[SchemaNode] = None


class ArraySchema(_SchemaBase):
    """A homogeneous sequence of ``item`` values."""

    kind: Literal["array"] = "array"
    item: SchemaNode


class EnumSchema(_SchemaBase):
    """A closed set of literal values in declaration order."""

    kind: Literal["enum"] = "enum"
    values: tuple[Any, ...] = ()


class AllOfSchema(_SchemaBase):
    """Intersection of every member schema."""

    kind: Literal["allOf"] = "allOf"
    members: tuple[SchemaNode, ...] = ()


class OneOfSchema(_SchemaBase):
    """Exactly one of the member schemas."""

    kind: Literal["oneOf"] = "oneOf"
    members: tuple[SchemaNode, ...] = ()


class AnyOfSchema(_SchemaBase):
    """At least one of the member schemas."""

    kind: Literal["anyOf"] = "anyOf"
    members: tuple[SchemaNode, ...] = ()


class PrimitiveSchema(_SchemaBase):
    """A scalar JSON value with an optional ``format`` hint."""

    kind: Literal["primitive"] = "primitive"
    type: Literal["string", "number", "integer", "boolean"]
    format: Optional[str] = None


class UntypedSchema(_SchemaBase):
    """Placeholder for a schema with no recognised shape (no type, ref or combinator)."""

    kind: Literal["untyped"] = "untyped"


SchemaNode = Annotated[
    Union[
        RefSchema,
        ObjectSchema,
        ArraySchema,
        EnumSchema,
        AllOfSchema,
        OneOfSchema,
        AnyOfSchema,
        PrimitiveSchema,
        UntypedSchema,
    ],
    Field(discriminator="kind"),
]
"""Closed tagged union over every schema variant, discriminated by ``kind``."""

for _model in (ObjectSchema, ArraySchema, AllOfSchema, OneOfSchema, AnyOfSchema):
    _model.model_rebuild()
del _model


class SchemaRegistry(BaseModel):
    """Index of named schemas from ``components.schemas``.

    Besides the schema nodes themselves the registry stores, per schema name,
    the Python class symbol and the module name the generator uses for it.
    Both are computed once by :func:`~sdking.parser.schema.build_registry` so
    that every consumer agrees on them.
    """

    model_config = ConfigDict(frozen=True)

    schemas: dict[str, SchemaNode] = Field(default_factory=dict)
    symbols: dict[str, str] = Field(default_factory=dict)
    modules: dict[str, str] = Field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.schemas

    def __len__(self) -> int:
        return len(self.schemas)

    @property
    def names(self) -> tuple[str, ...]:
        """Schema names in declaration order."""
        return tuple(self.schemas)

    def get(self, name: str) -> Optional[SchemaNode]:
        return self.schemas.get(name)

    def symbol(self, name: str) -> str:
        """Return the generated class symbol for schema *name*."""
        return self.symbols[name]

    def module(self, name: str) -> str:
        """Return the generated module name (without ``.py``) for schema *name*."""
        return self.modules[name]


# --- Operations ---


class APIParameter(BaseModel):
    """A single parameter extracted from an OpenAPI operation.

    Path parameters become positional arguments of the generated request
    function; query, header and cookie parameters become keyword-only
    arguments.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    schema_: SchemaNode = Field(default_factory=UntypedSchema, alias="schema")


class RequestBodyInfo(BaseModel):
    """Parsed request body metadata for an :class:`APIOperation`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    required: bool = False
    description: Optional[str] = None
    content_types: tuple[str, ...] = ()
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")


class ResponseInfo(BaseModel):
    """Parsed response metadata for a single HTTP status code.

    ``schema_`` holds the schema of the JSON media type when the response
    declares one, else the first media type that carries a schema.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: str
    description: Optional[str] = None
    content_types: tuple[str, ...] = ()
    schema_: Optional[SchemaNode] = Field(default=None, alias="schema")

    @property
    def is_success(self) -> bool:
        """``True`` for ``2xx`` status codes (including the ``2XX`` range key)."""
        return self.status_code.startswith("2")

    @property
    def is_json(self) -> bool:
        return any("json" in content_type for content_type in self.content_types)


class APIOperation(BaseModel):
    """A single parsed API operation (one URL path + HTTP method pair).

    Each operation corresponds to exactly one generated request function.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    parameters: tuple[APIParameter, ...] = ()
    request_body: Optional[RequestBodyInfo] = None
    responses: tuple[ResponseInfo, ...] = ()
    deprecated: bool = False

    @property
    def location(self) -> str:
        """Human-readable ``METHOD /path`` label used in error messages."""
        return f"{self.method.value.upper()} {self.path}"


class APIInfo(BaseModel):
    """API metadata extracted from the OpenAPI spec's *Info Object*."""

    title: str
    version: str
    description: Optional[str] = None


class ServerInfo(BaseModel):
    """A server entry from the OpenAPI spec's ``servers`` array.

    The first server's ``url`` becomes the default ``base_url`` of the
    generated request configuration.
    """

    url: str
    description: Optional[str] = None


class ParsedSpec(BaseModel):
    """Complete parsed representation of an OpenAPI specification.

    Produced by the parser subsystem and consumed by the generator. Holds
    every piece of information needed to emit an SDK: API metadata, server
    URLs, operations in declaration order, and the named schema registry.

    See Also:
        :class:`APIOperation`: Individual operation within the spec.
        :class:`SchemaRegistry`: Named schemas referenced by operations.
    """

    info: APIInfo
    servers: list[ServerInfo] = Field(default_factory=list)
    operations: list[APIOperation] = Field(default_factory=list)
    schemas: SchemaRegistry = Field(default_factory=SchemaRegistry)
    openapi_version: str = Field(
        description="Original OpenAPI version string (e.g., '3.0.3', '3.1.0')"
    )


# --- Generator models ---


class RouteNode(BaseModel):
    """One segment of the URL path tree.

    ``parts`` are the raw path segments (``("pet", "{petId}")``) and
    ``module`` the matching Python package names (``("pet", "by_petId")``).
    The root node has empty ``parts`` and stands for ``/``. Nodes without
    operations are passthrough nodes synthesized for missing ancestors.
    """

    model_config = ConfigDict(frozen=True)

    parts: tuple[str, ...] = ()
    module: tuple[str, ...] = ()
    symbol: str = ""
    is_param: bool = False
    operations: tuple[APIOperation, ...] = ()
    children: tuple[RouteNode, ...] = ()
    exports: tuple[str, ...] = ()

    @property
    def path(self) -> str:
        return "/" + "/".join(self.parts)

    @property
    def segment(self) -> str:
        return self.parts[-1] if self.parts else ""

    @property
    def depth(self) -> int:
        return len(self.parts)

    @property
    def is_root(self) -> bool:
        return not self.parts

    @property
    def is_passthrough(self) -> bool:
        return not self.operations


RouteNode.model_rebuild()


class AliasEntry(BaseModel):
    """Maps one ``operationId`` to the request function generated for it."""

    model_config = ConfigDict(frozen=True)

    operation_id: str
    symbol: str
    module: tuple[str, ...]
    method_symbol: str
    location: str


class AliasTable(BaseModel):
    """Alias entries plus the deduplicated route modules they import."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[AliasEntry, ...] = ()
    modules: tuple[tuple[str, ...], ...] = ()


class GeneratedArtifact(BaseModel):
    """One generated file: a path relative to the output directory and its text.

    ``references`` lists the artifact paths this file imports from, in the
    order the imports appear.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    references: tuple[str, ...] = ()


# --- Options ---


class ImportStyle(str, enum.Enum):
    """How generated modules import one another."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"


class GeneratorOptions(BaseModel):
    """Fully resolved settings for one generation run.

    See Also:
        :func:`sdking.config.resolve_options`: Builds this from CLI flags,
        environment variables and ``sdking.json``.
    """

    input: str = Field(description="Spec location: file path, URL, or '-' for stdin")
    output: str = Field(description="Directory the SDK package is written to")
    import_style: ImportStyle = ImportStyle.RELATIVE
    package_name: Optional[str] = Field(
        default=None,
        description="Importable package name used by absolute imports",
    )
    jobs: int = Field(default=4, ge=1, description="Parallel writer threads")
