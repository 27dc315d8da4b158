"""Lower :data:`~sdking.models.SchemaNode` trees into pydantic type expressions.

This is the recursive half of the generator core. :func:`compile_schema`
folds one schema node into a :class:`CompiledSchema`:

* ``code`` -- a type expression such as ``list[Pet]`` or
  ``Optional[Literal["available", "sold"]]``;
* ``refs`` -- the registry names the expression depends on, in first-seen
  order;
* ``models`` -- pydantic classes hoisted out of inline object schemas,
  dependencies before dependents;
* ``symbols`` -- library names (``Optional``, ``BaseModel`` ...) the
  enclosing module has to import.
* ``runtime_refs`` -- the subset of ``refs`` evaluated when a value is
  validated rather than when the class is built; these imports cannot wait
  for ``model_rebuild``.

Every call returns its dependencies instead of writing them into shared
state, so compiling the same node twice always produces the same result.

**Variant rules**

=============  ==============================================================
Ref            the referenced class symbol; never inlined
Object         a hoisted ``BaseModel`` named after its position (``PetCategory``)
Array          ``list[<item>]``
Enum           ``Literal[...]`` in declaration order
AllOf          subclass of every member when all members are models, else
               the first member chained through the others as validators
OneOf/AnyOf    ``Union[...]``
Primitive      ``str`` (or a stricter type for known formats), ``float``,
               ``bool``
Untyped        ``Any``
=============  ==============================================================

``nullable`` wraps any of these in ``Optional[...]``.
"""

from __future__ import annotations

from itertools import chain
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from sdking.exceptions import UnresolvedReferenceError
from sdking.generator.artifacts import ClassDef, FieldDef, py_literal
from sdking.generator.naming import RESERVED_SYMBOLS, field_name, pascal_case, unique_name
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

_STRING_FORMATS: dict[str, str] = {
    "date-time": "datetime",
    "date": "date",
    "email": "EmailStr",
    "uri": "AnyUrl",
    "url": "AnyUrl",
    "uuid": "UUID",
    "binary": "bytes",
}

_PRIMITIVE_TYPES: dict[str, str] = {
    "number": "float",
    "integer": "float",
    "boolean": "bool",
    "string": "str",
}

_BUILTIN_TYPES = frozenset({"str", "float", "bool", "bytes"})


class CompiledSchema(BaseModel):
    """Result of compiling one schema node."""

    model_config = ConfigDict(frozen=True)

    code: str
    refs: tuple[str, ...] = ()
    models: tuple[ClassDef, ...] = ()
    symbols: tuple[str, ...] = ()
    runtime_refs: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def compile_schema(node: SchemaNode, registry: SchemaRegistry, hint: str = "Model") -> CompiledSchema:
    """Compile *node* into a type expression plus its dependencies.

    Args:
        node: The schema to compile.
        registry: Named schemas that :class:`~sdking.models.RefSchema` nodes
            resolve against.
        hint: Base name for classes hoisted out of inline objects. Nested
            objects extend it (``Pet`` -> ``PetCategory``).

    Returns:
        The compiled fragment.

    Raises:
        UnresolvedReferenceError: If a reference names a schema missing from
            *registry*.
    """
    return _compile(node, registry, hint, top_level=False)


def compile_named_schema(name: str, registry: SchemaRegistry) -> CompiledSchema:
    """Compile registry entry *name* into the classes of its schema module.

    Object and model-only ``allOf`` schemas become a class named after the
    schema itself. Every other shape becomes a ``RootModel`` whose ``root``
    field carries the compiled expression.

    A schema that compiles to nothing but a reference to itself (for example
    ``Node: {allOf: [{$ref: Node}]}``) gets a ``RootModel`` over ``Any``
    instead of a binding that would refer to itself forever.

    Returns:
        A :class:`CompiledSchema` whose ``models`` end with the class named
        ``registry.symbol(name)``.
    """
    symbol = registry.symbol(name)
    node = registry.schemas[name]
    compiled = _compile(node, registry, symbol, top_level=True)

    # A top-level ``nullable`` is carried by the references, not the class.
    if any(model.name == symbol for model in compiled.models):
        return compiled.model_copy(update={"code": symbol})

    if compiled.code == symbol:
        placeholder = ClassDef(
            name=symbol,
            bases=("RootModel",),
            doc=node.description,
            fields=(FieldDef(name="root", annotation="Any"),),
        )
        return CompiledSchema(
            code=symbol,
            refs=tuple(ref for ref in compiled.refs if ref != name),
            runtime_refs=tuple(ref for ref in compiled.runtime_refs if ref != name),
            models=compiled.models + (placeholder,),
            symbols=_ordered(compiled.symbols, ("RootModel", "Any")),
        )

    root = ClassDef(
        name=symbol,
        bases=("RootModel",),
        doc=node.description,
        fields=(FieldDef(name="root", annotation=compiled.code),),
    )
    return CompiledSchema(
        code=symbol,
        refs=compiled.refs,
        runtime_refs=compiled.runtime_refs,
        models=compiled.models + (root,),
        symbols=_ordered(compiled.symbols, ("RootModel",)),
    )


def collect_refs(node: SchemaNode) -> tuple[str, ...]:
    """Return every registry name referenced anywhere under *node*, first-seen order.

    Unlike :func:`compile_schema` this neither renders code nor checks the
    registry, which makes it usable for dependency analysis before
    compilation.
    """
    if isinstance(node, RefSchema):
        return (node.name,)
    if isinstance(node, ObjectSchema):
        children: list[SchemaNode] = list(node.properties.values())
        if node.additional is not None:
            children.append(node.additional)
        return _ordered(*(collect_refs(child) for child in children))
    if isinstance(node, ArraySchema):
        return collect_refs(node.item)
    if isinstance(node, (AllOfSchema, OneOfSchema, AnyOfSchema)):
        return _ordered(*(collect_refs(member) for member in node.members))
    return ()


# ---------------------------------------------------------------------------
# Variant compilers
# ---------------------------------------------------------------------------


def _compile(node: SchemaNode, registry: SchemaRegistry, hint: str, top_level: bool) -> CompiledSchema:
    if isinstance(node, RefSchema):
        result = _compile_ref(node, registry)
    elif isinstance(node, ObjectSchema):
        result = _compile_object(node, registry, hint, top_level)
    elif isinstance(node, ArraySchema):
        item = _compile(node.item, registry, f"{hint}Item", top_level=False)
        result = item.model_copy(update={"code": f"list[{item.code}]"})
    elif isinstance(node, EnumSchema):
        result = _compile_enum(node)
    elif isinstance(node, AllOfSchema):
        result = _compile_all_of(node, registry, hint, top_level)
    elif isinstance(node, (OneOfSchema, AnyOfSchema)):
        result = _compile_union(node, registry, hint, top_level)
    elif isinstance(node, PrimitiveSchema):
        result = _compile_primitive(node)
    elif isinstance(node, UntypedSchema):
        result = CompiledSchema(code="Any", symbols=("Any",))
    else:
        raise TypeError(f"Unhandled schema node: {type(node).__name__}")

    if node.nullable:
        code, wrapped = optional_annotation(result.code)
        if wrapped:
            result = result.model_copy(
                update={"code": code, "symbols": _ordered(result.symbols, ("Optional",))}
            )
    return result


def _compile_ref(node: RefSchema, registry: SchemaRegistry) -> CompiledSchema:
    if node.name not in registry:
        raise UnresolvedReferenceError(
            f"Unresolved schema reference '#/components/schemas/{node.name}'"
        )
    return CompiledSchema(code=registry.symbol(node.name), refs=(node.name,))


def _compile_object(
    node: ObjectSchema,
    registry: SchemaRegistry,
    hint: str,
    top_level: bool,
) -> CompiledSchema:
    name = hint if top_level else _free_class_name(hint, registry)
    taken_fields = set(registry.symbols.values())
    parts: list[CompiledSchema] = []
    fields: list[FieldDef] = []
    symbols: list[str] = ["BaseModel"]
    child_hints: list[str] = []

    for prop, child in node.properties.items():
        child_hint = unique_name(f"{name}{pascal_case(prop)}", child_hints, separator="")
        child_hints.append(child_hint)
        compiled = _compile(child, registry, child_hint, top_level=False)
        parts.append(compiled)

        python_name = field_name(prop)
        if python_name in taken_fields:
            python_name = f"{python_name}_"
        python_name = unique_name(python_name, [field.name for field in fields])
        alias = prop if python_name != prop else None

        annotation = compiled.code
        default: Optional[str] = None
        if prop not in node.required:
            annotation, wrapped = optional_annotation(annotation)
            if wrapped:
                symbols.append("Optional")
            default = "None"
        if alias is not None:
            symbols.append("Field")
        fields.append(FieldDef(name=python_name, annotation=annotation, default=default, alias=alias))

    config: list[str] = []
    if any(field.alias is not None for field in fields):
        config.append("populate_by_name=True")
    extra_annotation: Optional[str] = None
    if node.additional is not None:
        config.append('extra="allow"')
        if not isinstance(node.additional, UntypedSchema):
            value = _compile(node.additional, registry, f"{name}Value", top_level=False)
            parts.append(value)
            extra_annotation = f"dict[str, {value.code}]"
    if config:
        symbols.append("ConfigDict")

    model = ClassDef(
        name=name,
        doc=node.description,
        config=tuple(config),
        fields=tuple(fields),
        extra_annotation=extra_annotation,
    )
    return _combine(name, parts, symbols, (model,))


def _compile_enum(node: EnumSchema) -> CompiledSchema:
    if not node.values:
        return CompiledSchema(code="Any", symbols=("Any",))
    literals = ", ".join(py_literal(value) for value in node.values)
    return CompiledSchema(code=f"Literal[{literals}]", symbols=("Literal",))


def _compile_all_of(
    node: AllOfSchema,
    registry: SchemaRegistry,
    hint: str,
    top_level: bool,
) -> CompiledSchema:
    # Untyped members constrain nothing in an intersection.
    members = [member for member in node.members if not isinstance(member, UntypedSchema)]
    if not members:
        return CompiledSchema(code="Any", symbols=("Any",))
    if len(members) == 1:
        return _compile(members[0], registry, hint, top_level)

    parts = [
        _compile(member, registry, f"{hint}Part{index}", top_level=False)
        for index, member in enumerate(members, start=1)
    ]

    if all(_is_model_like(member, registry, frozenset()) for member in members):
        name = hint if top_level else _free_class_name(hint, registry)
        bases = tuple(dict.fromkeys(part.code for part in parts))
        model = ClassDef(name=name, bases=bases, doc=node.description)
        return _combine(name, parts, (), (model,))

    first, rest = parts[0], parts[1:]
    # Each extra member checks the raw input, which is passed on unchanged.
    validators = ", ".join(
        f"BeforeValidator(lambda value: (TypeAdapter({part.code}).validate_python(value), value)[1])"
        for part in rest
    )
    code = f"Annotated[{first.code}, {validators}]"
    return _combine(
        code,
        parts,
        ("Annotated", "BeforeValidator", "TypeAdapter"),
        runtime_refs=_ordered(*(part.refs for part in rest)),
    )


def _compile_union(
    node: OneOfSchema | AnyOfSchema,
    registry: SchemaRegistry,
    hint: str,
    top_level: bool,
) -> CompiledSchema:
    if not node.members:
        return CompiledSchema(code="Any", symbols=("Any",))
    if len(node.members) == 1:
        return _compile(node.members[0], registry, hint, top_level)

    parts = [
        _compile(member, registry, f"{hint}Option{index}", top_level=False)
        for index, member in enumerate(node.members, start=1)
    ]
    codes = tuple(dict.fromkeys(part.code for part in parts))
    if len(codes) == 1:
        return _combine(codes[0], parts, ())
    return _combine(f"Union[{', '.join(codes)}]", parts, ("Union",))


def _compile_primitive(node: PrimitiveSchema) -> CompiledSchema:
    code = _PRIMITIVE_TYPES[node.type]
    if node.type == "string" and node.format in _STRING_FORMATS:
        code = _STRING_FORMATS[node.format]
    symbols = () if code in _BUILTIN_TYPES else (code,)
    return CompiledSchema(code=code, symbols=symbols)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ordered(*groups: Iterable[str]) -> tuple[str, ...]:
    """Union of *groups* preserving first-seen order."""
    return tuple(dict.fromkeys(chain.from_iterable(groups)))


def _combine(
    code: str,
    parts: Iterable[CompiledSchema],
    symbols: Iterable[str],
    models: tuple[ClassDef, ...] = (),
    runtime_refs: Iterable[str] = (),
) -> CompiledSchema:
    parts = tuple(parts)
    return CompiledSchema(
        code=code,
        refs=_ordered(*(part.refs for part in parts)),
        runtime_refs=_ordered(*(part.runtime_refs for part in parts), runtime_refs),
        models=tuple(chain.from_iterable(part.models for part in parts)) + models,
        symbols=_ordered(*(part.symbols for part in parts), symbols),
    )


def optional_annotation(code: str) -> tuple[str, bool]:
    """Wrap *code* in ``Optional[...]``; returns the code and whether it changed."""
    if code == "Any" or code.startswith("Optional["):
        return code, False
    return f"Optional[{code}]", True


def _free_class_name(hint: str, registry: SchemaRegistry) -> str:
    """Return a hoisted class name that shadows neither a schema class nor an import."""
    taken = set(registry.symbols.values()) | RESERVED_SYMBOLS
    name = hint
    while name in taken:
        name = f"{name}Model"
    return name


def _is_model_like(node: SchemaNode, registry: SchemaRegistry, seen: frozenset[str]) -> bool:
    """Whether *node* compiles to a ``BaseModel`` subclass usable as a base class."""
    if node.nullable:
        return False
    if isinstance(node, ObjectSchema):
        return True
    if isinstance(node, RefSchema):
        target = registry.get(node.name)
        if target is None or node.name in seen:
            return False
        return _compiles_to_own_class(target, registry, seen | {node.name})
    if isinstance(node, AllOfSchema):
        members = [member for member in node.members if not isinstance(member, UntypedSchema)]
        return bool(members) and all(_is_model_like(member, registry, seen) for member in members)
    if isinstance(node, (OneOfSchema, AnyOfSchema)) and len(node.members) == 1:
        return _is_model_like(node.members[0], registry, seen)
    return False


def _compiles_to_own_class(node: SchemaNode, registry: SchemaRegistry, seen: frozenset[str]) -> bool:
    """Whether a named schema compiles to a plain model class rather than a ``RootModel``.

    Mirrors the top-level path of :func:`_compile`: a bare reference never
    does, even when its target is a model.
    """
    if node.nullable:
        return False
    if isinstance(node, ObjectSchema):
        return True
    if isinstance(node, AllOfSchema):
        members = [member for member in node.members if not isinstance(member, UntypedSchema)]
        if len(members) == 1:
            return _compiles_to_own_class(members[0], registry, seen)
        return len(members) > 1 and all(_is_model_like(member, registry, seen) for member in members)
    if isinstance(node, (OneOfSchema, AnyOfSchema)) and len(node.members) == 1:
        return _compiles_to_own_class(node.members[0], registry, seen)
    return False
