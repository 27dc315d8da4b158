"""Inline non-schema ``$ref`` pointers in OpenAPI specifications.

OpenAPI documents share parameters, request bodies, responses and whole
path items through ``$ref`` pointers such as
``{"$ref": "#/components/parameters/limit"}``. The generator wants those
inlined, so that every operation carries its full parameter list, but it
wants *schema* references left alone: named schemas become classes of their
own and are referenced by name, never copied, which is also what makes
self-referential schemas terminate.

:func:`resolve_refs` therefore deep-copies the spec and replaces every
``$ref`` except those whose target starts with one of the ``preserve``
prefixes (``#/components/schemas/`` by default).

Only internal references (``#/...``) are supported. External file or URL
references raise :class:`~sdking.exceptions.SpecParseError`. A reference
that loops back onto itself is left unresolved at the cycle point.
"""

from __future__ import annotations

import copy
from typing import Any

from sdking.exceptions import SpecParseError

DEFAULT_PRESERVED_PREFIXES = ("#/components/schemas/",)


def resolve_refs(
    spec: dict[str, Any],
    preserve: tuple[str, ...] = DEFAULT_PRESERVED_PREFIXES,
) -> dict[str, Any]:
    """Return a deep copy of *spec* with every non-preserved ``$ref`` inlined.

    Args:
        spec: The raw OpenAPI spec dictionary, as returned by
            :func:`~sdking.parser.loader.load_spec`.
        preserve: ``$ref`` prefixes that must stay references.

    Returns:
        A **new** dictionary; the input is never modified.

    Raises:
        SpecParseError: If a ``$ref`` points to a non-existent location, or
            if an external (non-``#/``) reference is encountered.

    Example::

        raw = load_spec("petstore.yaml")
        resolved = resolve_refs(raw)
        # Shared parameters are inlined, schema refs are untouched:
        # resolved["paths"]["/pets"]["get"]["parameters"][0]["name"] == "limit"
    """
    root = copy.deepcopy(spec)
    return _deep_resolve(root, root, preserve, frozenset())


def lookup_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Resolve a single ``#/...`` JSON Pointer against *root*.

    Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``).

    Raises:
        SpecParseError: If the reference is external or any segment of the
            pointer does not exist in the document.
    """
    if not ref.startswith("#/"):
        raise SpecParseError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict):
            if segment not in current:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise SpecParseError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise SpecParseError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}"
            )
    return current


def _deep_resolve(
    obj: Any,
    root: dict[str, Any],
    preserve: tuple[str, ...],
    seen: frozenset[str],
) -> Any:
    """Walk *obj* depth-first, inlining references not covered by *preserve*.

    ``seen`` holds the references on the current resolution stack; sibling
    branches each get their own copy.
    """
    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str) and not ref.startswith(preserve):
            if ref in seen:
                return obj
            target = lookup_pointer(ref, root)
            return _deep_resolve(target, root, preserve, seen | {ref})
        return {key: _deep_resolve(value, root, preserve, seen) for key, value in obj.items()}

    if isinstance(obj, list):
        return [_deep_resolve(item, root, preserve, seen) for item in obj]

    return obj
