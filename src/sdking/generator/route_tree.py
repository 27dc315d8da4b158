"""Build the URL route tree that shapes the generated ``routes`` package.

This is the core algorithm behind the SDK layout. It takes the flat list of
parsed operations and produces an immutable tree of
:class:`~sdking.models.RouteNode` objects -- one per distinct path prefix --
that the emitter turns into nested packages (``routes/pet/by_petId``).

**Algorithm summary**

1. Split every path into segments and group operations by segment tuple,
   keeping declaration order.
2. Compute every strict prefix of every grouped path.
3. Synthesize an empty passthrough node for each prefix the spec does not
   define itself, ordered just before the first path that needs it.
4. Link each node to its direct children: nodes one segment longer whose
   leading segments are lexically identical. ``/pet/{petId}`` and
   ``/pet/findByTags`` are siblings; ``{petId}`` only ever matches
   ``{petId}``.
5. Build nodes bottom-up and compute each export surface: the method name of
   every operation at the node, then one symbol per child.

Two exports of one node that normalize to the same symbol raise
:class:`~sdking.exceptions.RouteConflictError`.
"""

from __future__ import annotations

from typing import Iterator

from sdking.exceptions import RouteConflictError
from sdking.generator.naming import is_param_segment, segment_symbol, to_identifier
from sdking.models import APIOperation, HTTPMethod, RouteNode

ALIAS_MODULE = "alias"
"""Name of the alias module inside the ``routes`` package."""

ROOT_OPERATIONS_MODULE = "_root"
"""Module holding operations declared on ``/`` itself."""

_RESERVED_TOP_LEVEL = frozenset({ALIAS_MODULE, ROOT_OPERATIONS_MODULE})


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def split_path(path: str) -> tuple[str, ...]:
    """Split a URL path template into its non-empty segments.

    Example::

        split_path("/pet/{petId}/uploadImage") -> ("pet", "{petId}", "uploadImage")
    """
    return tuple(segment for segment in path.split("/") if segment)


def module_parts(path: str) -> tuple[str, ...]:
    """Return the package names (relative to ``routes``) for a URL path.

    This is the single derivation rule shared by the route tree and the
    alias table.
    """
    return tuple(segment_symbol(segment) for segment in split_path(path))


def method_symbol(method: HTTPMethod) -> str:
    """Return the function name generated for *method*.

    HTTP verbs are already valid identifiers; the normalization only matters
    if one ever collides with a Python keyword.
    """
    return to_identifier(method.value)


def prefixes(parts: tuple[str, ...]) -> list[tuple[str, ...]]:
    """Return every strict, non-empty prefix of *parts*, shortest first."""
    return [parts[:length] for length in range(1, len(parts))]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def build_route_tree(operations: list[APIOperation]) -> RouteNode:
    """Build the route tree for *operations*.

    Args:
        operations: Parsed operations in declaration order.

    Returns:
        The root :class:`~sdking.models.RouteNode` (path ``/``). Its
        descendants cover every path and every ancestor prefix.

    Raises:
        RouteConflictError: If two operations map onto the same function,
            two children of one node normalize to the same symbol, a child
            symbol clashes with an operation name, or a top-level segment
            clashes with a module the ``routes`` package reserves.

    Example::

        root = build_route_tree(spec.operations)
        for node in walk_post_order(root):
            print(node.path, node.exports)
    """
    groups: dict[tuple[str, ...], list[APIOperation]] = {}
    for operation in operations:
        groups.setdefault(split_path(operation.path), []).append(operation)

    order = _node_order(groups)
    children = {parts: direct_children(parts, order) for parts in order}

    return _build_node((), groups, children)


def walk_post_order(node: RouteNode) -> Iterator[RouteNode]:
    """Yield every node of the tree rooted at *node*, children before parents."""
    for child in node.children:
        yield from walk_post_order(child)
    yield node


def direct_children(parts: tuple[str, ...], candidates: list[tuple[str, ...]]) -> list[tuple[str, ...]]:
    """Return the *candidates* exactly one segment longer than *parts* with the same lead.

    Segment comparison is purely lexical; a parameter placeholder matches
    only the identical placeholder.
    """
    return [
        candidate
        for candidate in candidates
        if len(candidate) == len(parts) + 1 and candidate[: len(parts)] == parts
    ]


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _node_order(groups: dict[tuple[str, ...], list[APIOperation]]) -> list[tuple[str, ...]]:
    """Return every node key (root, groups, synthesized prefixes) in first-seen order."""
    order: dict[tuple[str, ...], None] = {(): None}
    for parts in groups:
        for prefix in prefixes(parts):
            order.setdefault(prefix, None)
        order.setdefault(parts, None)
    return list(order)


def _build_node(
    parts: tuple[str, ...],
    groups: dict[tuple[str, ...], list[APIOperation]],
    children: dict[tuple[str, ...], list[tuple[str, ...]]],
) -> RouteNode:
    child_nodes = tuple(_build_node(child, groups, children) for child in children.get(parts, ()))
    operations = tuple(groups.get(parts, ()))
    path = "/" + "/".join(parts)

    exports: dict[str, str] = {}
    for operation in operations:
        _claim(exports, method_symbol(operation.method), operation.location, path)
    for child in child_nodes:
        _claim(exports, child.symbol, f"child segment '{child.segment}'", path)
    if not parts:
        for reserved in sorted(_RESERVED_TOP_LEVEL & exports.keys()):
            raise RouteConflictError(
                f"Top-level path segment '{reserved}' clashes with the generated "
                f"routes.{reserved} module"
            )

    segment = parts[-1] if parts else ""
    return RouteNode(
        parts=parts,
        module=tuple(segment_symbol(part) for part in parts),
        symbol=segment_symbol(segment) if parts else "",
        is_param=is_param_segment(segment),
        operations=operations,
        children=child_nodes,
        exports=tuple(exports),
    )


def _claim(exports: dict[str, str], symbol: str, owner: str, path: str) -> None:
    """Register *symbol* for *owner*, raising if another export already holds it."""
    if symbol in exports:
        raise RouteConflictError(
            f"Route '{path}' exports '{symbol}' twice: {exports[symbol]} and {owner}"
        )
    exports[symbol] = owner
