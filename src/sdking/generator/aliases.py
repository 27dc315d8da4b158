"""Map every ``operationId`` to the request function generated for it.

The alias table is a second pass over the flat operation list. Each entry
records the operation identifier, the route module the function lives in
(derived with :func:`~sdking.generator.route_tree.module_parts`, the same
rule the route tree uses) and the function name. Module paths are
deduplicated so the alias module imports each route module once, however
many operations it contributes.

An ``operationId`` declared twice is a conflict, reported with both
locations, rather than letting the later operation silently win.
"""

from __future__ import annotations

from sdking.exceptions import AliasConflictError
from sdking.generator.naming import to_identifier
from sdking.generator.route_tree import method_symbol, module_parts
from sdking.models import AliasEntry, AliasTable, APIOperation
from sdking.output import debug


def build_alias_table(operations: list[APIOperation]) -> AliasTable:
    """Build the alias table for *operations*.

    Operations without an ``operationId`` have no alias and are skipped.

    Args:
        operations: Parsed operations in declaration order.

    Returns:
        An :class:`~sdking.models.AliasTable` with entries in declaration
        order and each route module listed once, in first-use order.

    Raises:
        AliasConflictError: If two operations declare the same
            ``operationId``, or two identifiers normalize to the same
            Python name.
    """
    entries: list[AliasEntry] = []
    by_id: dict[str, AliasEntry] = {}
    by_symbol: dict[str, AliasEntry] = {}
    modules: dict[tuple[str, ...], None] = {}

    for operation in operations:
        if not operation.operation_id:
            debug(f"No operationId on {operation.location}; no alias generated")
            continue

        entry = AliasEntry(
            operation_id=operation.operation_id,
            symbol=to_identifier(operation.operation_id),
            module=module_parts(operation.path),
            method_symbol=method_symbol(operation.method),
            location=operation.location,
        )

        previous = by_id.get(entry.operation_id)
        if previous is not None:
            raise AliasConflictError(
                f"Duplicate operationId '{entry.operation_id}': "
                f"declared by {previous.location} and {entry.location}"
            )
        previous = by_symbol.get(entry.symbol)
        if previous is not None:
            raise AliasConflictError(
                f"operationIds '{previous.operation_id}' ({previous.location}) and "
                f"'{entry.operation_id}' ({entry.location}) both map to alias '{entry.symbol}'"
            )

        by_id[entry.operation_id] = entry
        by_symbol[entry.symbol] = entry
        modules.setdefault(entry.module, None)
        entries.append(entry)

    return AliasTable(entries=tuple(entries), modules=tuple(modules))
