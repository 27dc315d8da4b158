"""Turn OpenAPI names into Python identifiers.

Every generated symbol -- schema classes, module names, route packages,
field names, function parameters, aliases -- passes through one of the
helpers below. All of them are deterministic and idempotent: feeding an
already-normalized name back in returns it unchanged.

Examples::

    to_identifier("find-by-tags")   -> "find_by_tags"
    to_identifier("2fa")            -> "_2fa"
    to_identifier("class")          -> "class_"
    segment_symbol("{petId}")       -> "by_petId"
    pascal_case("tag_list")         -> "TagList"
    module_name("PetOwner")         -> "petowner"
"""

from __future__ import annotations

import keyword
import re
from typing import Iterable

from pydantic import BaseModel

_INVALID_CHARS = re.compile(r"[^0-9A-Za-z_]")
_WORDS = re.compile(r"[0-9A-Za-z]+")

PARAM_MARKER = "by_"
"""Prefix distinguishing path-parameter segments from literal ones."""

RESERVED_SYMBOLS = frozenset(
    {
        # typing / stdlib names imported by generated modules
        "annotations",
        "Annotated",
        "Any",
        "Literal",
        "Optional",
        "TYPE_CHECKING",
        "Union",
        "date",
        "datetime",
        "UUID",
        # pydantic names imported by generated modules
        "AnyUrl",
        "BaseModel",
        "BeforeValidator",
        "ConfigDict",
        "EmailStr",
        "Field",
        "RootModel",
        "TypeAdapter",
        "to_jsonable_python",
        # names defined by the generated package itself
        "SDKConfig",
        "client",
        "config",
        "httpx",
        "routes",
        "schemas",
        "sdk_config",
    }
)
"""Names a schema class symbol must never take, because generated modules import them."""

_BASEMODEL_ATTRIBUTES = frozenset(dir(BaseModel))


def to_identifier(value: str) -> str:
    """Normalize *value* to a valid Python identifier.

    Invalid characters become ``_``, a leading digit is prefixed with ``_``
    and keywords get a trailing ``_``. Case is preserved.
    """
    result = _INVALID_CHARS.sub("_", value)
    if not result:
        return "_"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def is_param_segment(segment: str) -> bool:
    """Return ``True`` for templated path segments such as ``{petId}``."""
    return len(segment) > 2 and segment.startswith("{") and segment.endswith("}")


def segment_symbol(segment: str) -> str:
    """Return the export / package name for one URL path segment.

    Literal segments are normalized with :func:`to_identifier`; parameter
    segments additionally get the :data:`PARAM_MARKER` prefix so that
    ``/pet/{id}`` and ``/pet/id`` stay distinguishable.
    """
    if is_param_segment(segment):
        return PARAM_MARKER + to_identifier(segment[1:-1]).lstrip("_")
    return to_identifier(segment)


def pascal_case(value: str) -> str:
    """Convert *value* to PascalCase, keeping inner capitals (``petId`` -> ``PetId``)."""
    words = _WORDS.findall(value)
    result = "".join(word[0].upper() + word[1:] for word in words)
    if not result:
        return "Model"
    if result[0].isdigit():
        result = f"_{result}"
    return result


def class_symbol(name: str) -> str:
    """Return the class symbol for a schema named *name*.

    Names that would shadow an import of the generated modules get a
    ``Model`` suffix.
    """
    symbol = to_identifier(name)
    while symbol in RESERVED_SYMBOLS:
        symbol = f"{symbol}Model"
    return symbol


def module_name(symbol: str) -> str:
    """Return the lowercase module name for a schema class symbol."""
    return to_identifier(symbol.lower())


def field_name(value: str) -> str:
    """Return a pydantic-safe field name for the JSON property *value*.

    pydantic treats leading underscores as private attributes and refuses
    fields that shadow ``BaseModel`` attributes, so those are rewritten.
    Callers compare the result with *value* to decide whether an alias is
    needed.
    """
    name = to_identifier(value)
    stripped = name.lstrip("_")
    if stripped != name:
        name = f"field_{stripped}"
    if name in _BASEMODEL_ATTRIBUTES or name in RESERVED_SYMBOLS:
        name = f"{name}_"
    return name


def unique_name(candidate: str, taken: Iterable[str], separator: str = "_") -> str:
    """Return *candidate*, or *candidate* with the first free numeric suffix.

    Suffixes start at ``2``: ``pet``, ``pet_2``, ``pet_3`` ...
    """
    used = set(taken)
    if candidate not in used:
        return candidate
    index = 2
    while f"{candidate}{separator}{index}" in used:
        index += 1
    return f"{candidate}{separator}{index}"
