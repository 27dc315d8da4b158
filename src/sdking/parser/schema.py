"""Convert raw JSON Schema dicts into :data:`~sdking.models.SchemaNode` trees.

The extractor hands every schema it meets (component schemas, parameter
schemas, request and response bodies) to :func:`parse_schema`, which maps
the loosely structured dict onto the closed set of schema variants the
generator understands. :func:`build_registry` does the same for
``components.schemas`` and assigns each named schema its class symbol and
module name.

Mapping rules, checked in order:

1. ``$ref`` to ``#/components/schemas/<Name>`` -> :class:`RefSchema`.
2. ``enum`` or ``const`` -> :class:`EnumSchema`.
3. ``allOf`` / ``oneOf`` / ``anyOf`` -> the matching composite. Sibling
   ``properties`` become one more inline object member of an ``allOf``.
4. ``type`` (or the presence of ``properties`` / ``items``) selects
   :class:`ObjectSchema`, :class:`ArraySchema` or :class:`PrimitiveSchema`.
   OpenAPI 3.1 type arrays with several non-null entries become an
   :class:`AnyOfSchema` of each type.
5. Anything else -> :class:`UntypedSchema`.

``nullable: true`` (3.0) and a ``"null"`` entry in a type array (3.1) both
set the ``nullable`` flag.
"""

from __future__ import annotations

from typing import Any, Optional

from sdking.exceptions import SpecParseError
from sdking.generator.naming import class_symbol, module_name, unique_name
from sdking.models import (
    AllOfSchema,
    AnyOfSchema,
    ArraySchema,
    EnumSchema,
    ObjectSchema,
    OneOfSchema,
    PrimitiveSchema,
    RefSchema,
    SchemaNode,
    SchemaRegistry,
    UntypedSchema,
)

SCHEMA_REF_PREFIX = "#/components/schemas/"

_PRIMITIVE_TYPES = ("string", "number", "integer", "boolean")

_PACKAGE_MODULE = "__init__"
"""Module name taken by the ``schemas`` package itself."""


def parse_schema(raw: Any) -> SchemaNode:
    """Map one raw schema dict onto a :data:`~sdking.models.SchemaNode`.

    Args:
        raw: The schema as found in the document. Non-dict values and empty
            dicts produce an :class:`~sdking.models.UntypedSchema`.

    Returns:
        The corresponding schema node.

    Raises:
        SpecParseError: If the schema contains a ``$ref`` that does not point
            into ``#/components/schemas``.
    """
    if not isinstance(raw, dict) or not raw:
        return UntypedSchema()

    description = raw.get("description")
    nullable = bool(raw.get("nullable", False))
    types = _declared_types(raw)
    if "null" in types:
        nullable = True
        types = [t for t in types if t != "null"]
    common: dict[str, Any] = {"nullable": nullable, "description": description}

    if "$ref" in raw:
        return RefSchema(name=ref_name(raw["$ref"]), **common)

    if "enum" in raw:
        return EnumSchema(values=tuple(raw["enum"] or ()), **common)
    if "const" in raw:
        return EnumSchema(values=(raw["const"],), **common)

    if "allOf" in raw:
        members = [parse_schema(member) for member in raw["allOf"] or ()]
        if "properties" in raw:
            members.append(_parse_object(raw))
        return AllOfSchema(members=tuple(members), **common)
    if "oneOf" in raw:
        return OneOfSchema(members=_parse_members(raw["oneOf"]), **common)
    if "anyOf" in raw:
        return AnyOfSchema(members=_parse_members(raw["anyOf"]), **common)

    if len(types) > 1:
        members = tuple(parse_schema({**raw, "type": t, "nullable": False}) for t in types)
        return AnyOfSchema(members=members, **common)

    schema_type = types[0] if types else None
    if schema_type == "object" or (
        schema_type is None and ("properties" in raw or "additionalProperties" in raw)
    ):
        return _parse_object(raw).model_copy(update=common)
    if schema_type == "array" or (schema_type is None and "items" in raw):
        return ArraySchema(item=parse_schema(raw.get("items")), **common)
    if schema_type in _PRIMITIVE_TYPES:
        return PrimitiveSchema(type=schema_type, format=raw.get("format"), **common)

    return UntypedSchema(**common)


def ref_name(ref: Any) -> str:
    """Return the schema name a ``#/components/schemas/...`` pointer targets.

    Raises:
        SpecParseError: If *ref* is not a string pointing into
            ``#/components/schemas``.
    """
    if not isinstance(ref, str) or not ref.startswith(SCHEMA_REF_PREFIX):
        raise SpecParseError(
            f"Unsupported schema $ref {ref!r}: only '{SCHEMA_REF_PREFIX}<Name>' "
            "references are allowed inside schemas"
        )
    name = ref[len(SCHEMA_REF_PREFIX):]
    # RFC 6901 escaping
    return name.replace("~1", "/").replace("~0", "~")


def build_registry(raw_schemas: Optional[dict[str, Any]]) -> SchemaRegistry:
    """Parse ``components.schemas`` into a :class:`~sdking.models.SchemaRegistry`.

    Class symbols and module names are assigned in declaration order; when two
    schema names normalize to the same symbol or module, the later one gets a
    numeric suffix (``Pet``, ``Pet_2``).

    Args:
        raw_schemas: The raw ``components.schemas`` mapping, or ``None``.

    Returns:
        An immutable registry holding every named schema.

    Raises:
        SpecParseError: If ``components.schemas`` is not a mapping.
    """
    if raw_schemas is None:
        return SchemaRegistry()
    if not isinstance(raw_schemas, dict):
        raise SpecParseError("'components.schemas' must be a mapping of name to schema")

    schemas: dict[str, SchemaNode] = {}
    symbols: dict[str, str] = {}
    modules: dict[str, str] = {}
    for name, raw in raw_schemas.items():
        name = str(name)
        schemas[name] = parse_schema(raw)
        symbol = unique_name(class_symbol(name), symbols.values())
        symbols[name] = symbol
        modules[name] = unique_name(module_name(symbol), [_PACKAGE_MODULE, *modules.values()])

    return SchemaRegistry(schemas=schemas, symbols=symbols, modules=modules)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _declared_types(raw: dict[str, Any]) -> list[str]:
    """Return the ``type`` keyword as a list (3.1 allows an array of types)."""
    value = raw.get("type")
    if value is None:
        return []
    if isinstance(value, list):
        return [str(t) for t in value]
    return [str(value)]


def _parse_members(members: Any) -> tuple[SchemaNode, ...]:
    return tuple(parse_schema(member) for member in members or ())


def _parse_object(raw: dict[str, Any]) -> ObjectSchema:
    properties = raw.get("properties") or {}
    required = raw.get("required") or ()

    additional: Optional[SchemaNode] = None
    extra = raw.get("additionalProperties")
    if extra is True or extra == {}:
        additional = UntypedSchema()
    elif isinstance(extra, dict):
        additional = parse_schema(extra)

    return ObjectSchema(
        properties={str(key): parse_schema(value) for key, value in properties.items()},
        required=tuple(str(name) for name in required),
        additional=additional,
    )
