"""Assemble the modules of a generated SDK from a parsed spec.

The emitter is the last stage of the generator core. It runs the schema
compiler over the registry, builds the route tree and the alias table, and
turns all three into one :class:`~sdking.generator.artifacts.Module` per
artifact. :func:`emit_sdk` then hands every module to the printer.

Generated package layout::

    config.py                    SDKConfig + the shared sdk_config instance
    schemas/<name>.py            one module per named schema
    schemas/__init__.py          re-exports every model, rebuilds forward refs
    routes/<seg>/.../__init__.py one package per URL path prefix
    routes/_root.py              operations declared on "/" (if any)
    routes/alias.py              every request function under its operationId
    routes/__init__.py           top-level route packages + aliases
    __init__.py                  config, models, and ``routes`` as ``client``

Artifacts come out in that order, route packages children first. Nothing
here iterates a set, so the same spec always yields the same artifacts.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from sdking.exceptions import ConflictError, InvalidUsageError, RouteConflictError
from sdking.generator.aliases import build_alias_table
from sdking.generator.artifacts import (
    IMPORT_GROUP_LOCAL,
    IMPORT_GROUP_THIRD_PARTY,
    SYMBOL_SOURCES,
    AdapterDef,
    Assign,
    BodyDef,
    ClassDef,
    FieldDef,
    ImportStmt,
    Module,
    OperationDef,
    ParamDef,
    ResponseDef,
    py_literal,
    symbol_imports,
)
from sdking.generator.naming import pascal_case, to_identifier, unique_name
from sdking.generator.printer import render_module
from sdking.generator.route_tree import (
    ALIAS_MODULE,
    ROOT_OPERATIONS_MODULE,
    build_route_tree,
    method_symbol,
    walk_post_order,
)
from sdking.generator.schema_compiler import (
    CompiledSchema,
    collect_refs,
    compile_named_schema,
    compile_schema,
    optional_annotation,
)
from sdking.models import (
    AliasTable,
    APIOperation,
    APIParameter,
    ArraySchema,
    GeneratedArtifact,
    GeneratorOptions,
    ImportStyle,
    ParameterLocation,
    ParsedSpec,
    RefSchema,
    RequestBodyInfo,
    RouteNode,
    SchemaRegistry,
)
from sdking.output import debug

CONFIG_MODULE = "config.py"
SCHEMAS_PACKAGE = "schemas/__init__.py"
ROUTES_PACKAGE = "routes/__init__.py"
ROOT_OPERATIONS_PATH = f"routes/{ROOT_OPERATIONS_MODULE}.py"
ALIAS_PATH = f"routes/{ALIAS_MODULE}.py"
PACKAGE_INDEX = "__init__.py"

DEFAULT_BASE_URL = "http://localhost"
"""Base URL of the generated config when the spec declares no server."""

_PATH_PARAM = re.compile(r"\{([^{}]+)\}")

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Names a request function binds or reads besides its own parameters.
_FUNCTION_NAMES = frozenset(
    {
        "body",
        "headers",
        "httpx",
        "item",
        "key",
        "params",
        "request_cookies",
        "request_headers",
        "response",
        "sdk_config",
        "to_jsonable_python",
        "url",
        "value",
    }
)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def emit_sdk(spec: ParsedSpec, options: GeneratorOptions) -> list[GeneratedArtifact]:
    """Generate every artifact of the SDK for *spec*.

    Args:
        spec: The parsed document.
        options: Resolved generation settings. Only ``import_style`` and
            ``package_name`` affect the output.

    Returns:
        Artifacts in emission order, paths relative to the output directory.

    Raises:
        UnresolvedReferenceError: If a schema reference names no registry entry.
        ConflictError: If two generated names collide (route exports, aliases
            or model classes, artifact paths).
        InvalidUsageError: If absolute imports are requested without a
            package name.
    """
    return [render_module(module) for module in build_modules(spec, options)]


def build_modules(spec: ParsedSpec, options: GeneratorOptions) -> list[Module]:
    """Build the structured module model of every artifact, in emission order.

    This is :func:`emit_sdk` without the printing step.
    """
    if options.import_style is ImportStyle.ABSOLUTE and not options.package_name:
        raise InvalidUsageError("Absolute imports need a package name (--package-name)")

    registry = spec.schemas
    root = build_route_tree(spec.operations)
    table = build_alias_table(spec.operations)
    debug(f"Route tree built from {len(spec.operations)} operations")

    reach = _reachability(registry)
    schema_modules = [_schema_module(name, registry, reach, options) for name in registry.names]
    schemas_index = _schemas_index(schema_modules, options)
    debug(f"Compiled {len(registry)} schemas into {len(schemas_index.exports or ())} models")

    modules = [_config_module(spec), *schema_modules, schemas_index]
    for node in walk_post_order(root):
        if not node.is_root:
            modules.append(_route_module(node, route_path(node.module), registry, options))
    if root.operations:
        modules.append(_route_module(root, ROOT_OPERATIONS_PATH, registry, options))
    modules.append(_alias_module(table, options))
    modules.append(_routes_index(root, table, options))
    modules.append(_package_index(spec, schemas_index, options))

    paths: dict[str, None] = {}
    for module in modules:
        if module.path in paths:
            raise ConflictError(f"Two generated modules share the path {module.path}")
        paths[module.path] = None
    return modules


def schema_path(module: str) -> str:
    """Artifact path of the schema module named *module*."""
    return f"schemas/{module}.py"


def route_path(module: tuple[str, ...]) -> str:
    """Artifact path of the route package for module parts *module*."""
    return "routes/" + "".join(f"{part}/" for part in module) + "__init__.py"


# ---------------------------------------------------------------------------
# Import bookkeeping
# ---------------------------------------------------------------------------


class _Imports:
    """Collects the imports of the module at *path*.

    Local imports are given as target artifact paths and rendered relative
    or absolute according to *options*. Names from the same target are merged
    into one statement, in first-use order.
    """

    def __init__(self, path: str, options: GeneratorOptions) -> None:
        self._package = tuple(path.split("/")[:-1])
        self._options = options
        self._symbols: dict[str, None] = {}
        self._modules: dict[str, None] = {}
        self._local: dict[tuple[str, bool], dict[tuple[str, Optional[str]], None]] = {}
        self._references: dict[str, None] = {}

    def use(self, *symbols: str) -> None:
        """Import library *symbols* (``Optional``, ``BaseModel`` ...)."""
        for symbol in symbols:
            self._symbols.setdefault(symbol, None)

    def module(self, name: str) -> None:
        """Plain ``import name`` of a third-party module."""
        self._modules.setdefault(name, None)

    def names(self, target: str, names: Iterable[str], deferred: bool = False) -> None:
        """Import *names* from the artifact at *target*.

        Deferred imports are only evaluated by type checkers.
        """
        names = list(names)
        if not names:
            return
        entry = self._local.setdefault((self._from(_module_parts(target)), deferred), {})
        for name in names:
            entry.setdefault((name, None), None)
        self._references.setdefault(target, None)

    def submodule(self, target: str, asname: Optional[str] = None) -> None:
        """Import the module at *target* itself, optionally under *asname*."""
        parts = _module_parts(target)
        local = None if asname == parts[-1] else asname
        entry = self._local.setdefault((self._from(parts[:-1]), False), {})
        entry.setdefault((parts[-1], local), None)
        self._references.setdefault(target, None)

    def build(self) -> dict:
        """Return the ``Module`` fields describing the collected imports."""
        deferred = tuple(
            ImportStmt(module=module, names=tuple(names))
            for (module, is_deferred), names in self._local.items()
            if is_deferred
        )
        symbols = list(self._symbols)
        if deferred:
            symbols.append("TYPE_CHECKING")
        imports = [
            ImportStmt(module=module, group=IMPORT_GROUP_THIRD_PARTY) for module in self._modules
        ]
        imports.extend(symbol_imports(symbols))
        imports.extend(
            ImportStmt(module=module, names=tuple(names), group=IMPORT_GROUP_LOCAL)
            for (module, is_deferred), names in self._local.items()
            if not is_deferred
        )
        return {
            "imports": tuple(imports),
            "deferred_imports": deferred,
            "references": tuple(self._references),
        }

    def _from(self, target: tuple[str, ...]) -> str:
        """Module reference for the package or module *target* (parts from the root)."""
        if self._options.import_style is ImportStyle.ABSOLUTE:
            return ".".join((self._options.package_name, *target))
        common = 0
        for own, other in zip(self._package, target):
            if own != other:
                break
            common += 1
        dots = "." * (len(self._package) - common + 1)
        return dots + ".".join(target[common:])


def _module_parts(path: str) -> tuple[str, ...]:
    """Dotted-name parts of the module at artifact *path* (``routes/pet/__init__.py`` -> routes, pet)."""
    parts = path[: -len(".py")].split("/")
    if parts[-1] == "__init__":
        parts.pop()
    return tuple(parts)


def _claim_names(path: str, owners: Iterable[tuple[str, str]], error: type[ConflictError]) -> None:
    """Raise *error* if two module-level definitions of *path* share a name."""
    seen: dict[str, str] = {}
    for name, owner in owners:
        if name in seen:
            raise error(f"{path} defines '{name}' twice: {seen[name]} and {owner}")
        seen[name] = owner


# ---------------------------------------------------------------------------
# Schema modules
# ---------------------------------------------------------------------------


def _reachability(registry: SchemaRegistry) -> dict[str, frozenset[str]]:
    """Map each schema name to every name reachable through its references."""
    direct = {name: collect_refs(node) for name, node in registry.schemas.items()}
    reach: dict[str, frozenset[str]] = {}
    for name in registry.names:
        seen: dict[str, None] = {}
        pending = list(direct[name])
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen[current] = None
            pending.extend(direct.get(current, ()))
        reach[name] = frozenset(seen)
    return reach


def _schema_module(
    name: str,
    registry: SchemaRegistry,
    reach: dict[str, frozenset[str]],
    options: GeneratorOptions,
) -> Module:
    path = schema_path(registry.module(name))
    compiled = compile_named_schema(name, registry)
    imports = _Imports(path, options)
    imports.use(*compiled.symbols)

    # Base classes must exist when the class statement runs and validator
    # members when a value is validated; anything else that leads back to this
    # schema is imported for type checkers only and bound by the model_rebuild
    # loop in schemas/__init__.py.
    bases = {base for model in compiled.models for base in model.bases}
    imported: list[tuple[str, str]] = []
    for ref in compiled.refs:
        if ref == name:
            continue
        symbol = registry.symbol(ref)
        deferred = (
            name in reach.get(ref, frozenset())
            and symbol not in bases
            and ref not in compiled.runtime_refs
        )
        imports.names(schema_path(registry.module(ref)), [symbol], deferred=deferred)
        imported.append((symbol, f"the import of schema '{ref}'"))

    _claim_names(
        path,
        [*imported, *((model.name, "a model class") for model in compiled.models)],
        ConflictError,
    )
    return Module(
        path=path,
        doc=f"Model for the ``{name}`` schema.",
        future=True,
        classes=compiled.models,
        **imports.build(),
    )


def _schemas_index(schema_modules: list[Module], options: GeneratorOptions) -> Module:
    imports = _Imports(SCHEMAS_PACKAGE, options)
    owners: dict[str, str] = {}
    for module in schema_modules:
        for model in module.classes:
            if model.name in owners:
                raise ConflictError(
                    f"Model class '{model.name}' is generated by both "
                    f"{owners[model.name]} and {module.path}"
                )
            owners[model.name] = module.path
        imports.names(module.path, [model.name for model in module.classes])

    exported = tuple(owners)
    return Module(
        path=SCHEMAS_PACKAGE,
        doc="Models for every named schema of the API.",
        exports=exported,
        rebuild=exported,
        **imports.build(),
    )


# ---------------------------------------------------------------------------
# Route modules
# ---------------------------------------------------------------------------


def _route_module(
    node: RouteNode,
    path: str,
    registry: SchemaRegistry,
    options: GeneratorOptions,
) -> Module:
    """Module for the operations of *node* plus imports of its child packages.

    *path* is the node's package ``__init__`` or, for the root node,
    ``routes/_root.py``; the root's children are imported by the routes
    index instead.
    """
    imports = _Imports(path, options)
    owners: list[tuple[str, str]] = []

    if not node.is_root:
        for child in node.children:
            imports.submodule(route_path(child.module))
            owners.append((child.symbol, f"route package '{child.segment}'"))

    operations: list[OperationDef] = []
    classes: list[ClassDef] = []
    adapters: list[AdapterDef] = []
    refs: dict[str, None] = {}
    library: dict[str, None] = {}
    for operation in node.operations:
        definition, needs = _build_operation(operation, registry)
        operations.append(definition)
        classes.extend(needs.classes)
        if needs.adapter is not None:
            adapters.append(needs.adapter)
        imports.use(*needs.symbols)
        library.update(dict.fromkeys(needs.symbols))
        for ref in needs.refs:
            refs.setdefault(ref, None)
        owners.append((definition.name, operation.location))

    if operations:
        imports.module("httpx")
        imports.names(CONFIG_MODULE, ["sdk_config"])
        library.update(dict.fromkeys(("annotations", "httpx", "sdk_config")))
    imports.names(SCHEMAS_PACKAGE, [registry.symbol(ref) for ref in refs])

    owners.extend((registry.symbol(ref), f"the import of schema '{ref}'") for ref in refs)
    owners.extend((model.name, "a generated model class") for model in classes)
    owners.extend((adapter.name, "a response adapter") for adapter in adapters)
    owners.extend((name, f"the import of '{name}'") for name in library)
    _claim_names(path, owners, RouteConflictError)

    exports = tuple(op.name for op in operations) if node.is_root else node.exports
    return Module(
        path=path,
        doc=f"Requests for ``{node.path}``.",
        future=bool(operations),
        exports=exports,
        classes=tuple(classes),
        adapters=tuple(adapters),
        operations=tuple(operations),
        **imports.build(),
    )


class _Requirements:
    """What the module of a request function must define or import for it."""

    def __init__(self) -> None:
        self.classes: list[ClassDef] = []
        self.adapter: Optional[AdapterDef] = None
        self.refs: list[str] = []
        self.symbols: list[str] = ["Optional"]

    def absorb(self, compiled: CompiledSchema) -> None:
        self.classes.extend(compiled.models)
        self.refs.extend(compiled.refs)
        self.symbols.extend(compiled.symbols)


def _build_operation(
    operation: APIOperation,
    registry: SchemaRegistry,
) -> tuple[OperationDef, _Requirements]:
    needs = _Requirements()
    prefix = pascal_case(operation.method.value)
    reserved = _FUNCTION_NAMES | frozenset(registry.symbols.values()) | frozenset(SYMBOL_SOURCES)
    used: set[str] = set()
    groups: dict[ParameterLocation, list[ParamDef]] = {location: [] for location in ParameterLocation}

    for parameter in _ordered_parameters(operation):
        location = parameter.location
        compiled = compile_schema(
            parameter.schema_, registry, f"{prefix}{pascal_case(parameter.name)}Param"
        )
        needs.absorb(compiled)
        required = parameter.required or location is ParameterLocation.PATH
        annotation = compiled.code if required else optional_annotation(compiled.code)[0]
        groups[location].append(
            ParamDef(
                name=_parameter_name(parameter.name, location, reserved, used),
                wire_name=parameter.name,
                location=location,
                annotation=annotation,
                required=required,
            )
        )

    # Placeholders the parameter list never declares still need an argument.
    declared = {param.wire_name for param in groups[ParameterLocation.PATH]}
    for placeholder in dict.fromkeys(_PATH_PARAM.findall(operation.path)):
        if placeholder not in declared:
            groups[ParameterLocation.PATH].append(
                ParamDef(
                    name=_parameter_name(placeholder, ParameterLocation.PATH, reserved, used),
                    wire_name=placeholder,
                    location=ParameterLocation.PATH,
                    annotation="str",
                    required=True,
                )
            )

    body: Optional[BodyDef] = None
    if operation.request_body is not None:
        body = _body_def(operation.request_body, registry, prefix, needs)

    response = _response_def(operation, registry, prefix, needs)

    if groups[ParameterLocation.QUERY] or (body is not None and body.encoding != "content"):
        needs.symbols.append("to_jsonable_python")

    definition = OperationDef(
        name=method_symbol(operation.method),
        http_method=operation.method.value.upper(),
        url=_url_code(operation.path, groups[ParameterLocation.PATH]),
        path_params=_in_path_order(operation.path, groups[ParameterLocation.PATH]),
        query_params=tuple(groups[ParameterLocation.QUERY]),
        header_params=tuple(groups[ParameterLocation.HEADER]),
        cookie_params=tuple(groups[ParameterLocation.COOKIE]),
        body=body,
        response=response,
        summary=operation.summary,
        description=operation.description,
        operation_id=operation.operation_id,
        deprecated=operation.deprecated,
    )
    return definition, needs


def _ordered_parameters(operation: APIOperation) -> list[APIParameter]:
    """Path parameters first, then everything else in declaration order."""
    path = [p for p in operation.parameters if p.location is ParameterLocation.PATH]
    rest = [p for p in operation.parameters if p.location is not ParameterLocation.PATH]
    return path + rest


def _in_path_order(path: str, params: list[ParamDef]) -> tuple[ParamDef, ...]:
    """Order path arguments as their placeholders appear in *path*."""
    positions = {name: index for index, name in enumerate(_PATH_PARAM.findall(path))}
    return tuple(sorted(params, key=lambda param: positions.get(param.wire_name, len(positions))))


def _parameter_name(
    wire_name: str,
    location: ParameterLocation,
    reserved: Iterable[str],
    used: set[str],
) -> str:
    name = to_identifier(wire_name)
    if name in reserved:
        name = f"{name}_"
    if name in used:
        name = unique_name(f"{name}_{location.value}", used)
    used.add(name)
    return name


def _url_code(path: str, path_params: list[ParamDef]) -> str:
    """Python expression for *path* with placeholders bound to argument names."""
    names = {param.wire_name: param.name for param in path_params}
    if not _PATH_PARAM.search(path):
        return py_literal(path)
    pieces: list[str] = []
    last = 0
    for match in _PATH_PARAM.finditer(path):
        pieces.append(_escape_braces(path[last : match.start()]))
        pieces.append("{" + names[match.group(1)] + "}")
        last = match.end()
    pieces.append(_escape_braces(path[last:]))
    return "f" + py_literal("".join(pieces))


def _escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


def _body_def(
    request_body: RequestBodyInfo,
    registry: SchemaRegistry,
    prefix: str,
    needs: _Requirements,
) -> BodyDef:
    content_types = request_body.content_types
    is_json = not content_types or any("json" in value for value in content_types)
    is_form = any(value in _FORM_CONTENT_TYPES for value in content_types)

    if is_json or is_form:
        encoding = "json" if is_json else "form"
        content_type = None
        if request_body.schema_ is None:
            annotation = "Any"
            needs.symbols.append("Any")
        else:
            compiled = compile_schema(request_body.schema_, registry, f"{prefix}Body")
            needs.absorb(compiled)
            annotation = compiled.code
    else:
        encoding = "content"
        content_type = content_types[0]
        annotation = "bytes"

    if not request_body.required:
        annotation = optional_annotation(annotation)[0]
    return BodyDef(
        annotation=annotation,
        required=request_body.required,
        encoding=encoding,
        content_type=content_type,
    )


def _response_def(
    operation: APIOperation,
    registry: SchemaRegistry,
    prefix: str,
    needs: _Requirements,
) -> ResponseDef:
    """Pick the render path for the first 2xx JSON response with a schema."""
    for response in operation.responses:
        if response.is_success and response.is_json and response.schema_ is not None:
            node = response.schema_
            break
    else:
        return ResponseDef()

    compiled = compile_schema(node, registry, f"{prefix}Response")
    needs.absorb(compiled)

    if isinstance(node, RefSchema) and not node.nullable:
        return ResponseDef(kind="model", annotation=compiled.code, model=compiled.code)
    if (
        isinstance(node, ArraySchema)
        and not node.nullable
        and isinstance(node.item, RefSchema)
        and not node.item.nullable
    ):
        return ResponseDef(
            kind="list", annotation=compiled.code, model=registry.symbol(node.item.name)
        )

    adapter = AdapterDef(name=f"_{method_symbol(operation.method)}_response", annotation=compiled.code)
    needs.adapter = adapter
    needs.symbols.append("TypeAdapter")
    return ResponseDef(kind="adapter", annotation=compiled.code, adapter=adapter.name)


# ---------------------------------------------------------------------------
# Aggregating modules
# ---------------------------------------------------------------------------


def _alias_module(table: AliasTable, options: GeneratorOptions) -> Module:
    imports = _Imports(ALIAS_PATH, options)
    taken = [entry.symbol for entry in table.entries]
    local_names: dict[tuple[str, ...], str] = {}
    for module in table.modules:
        if module:
            target = route_path(module)
            local = unique_name("_" + "__".join(module), taken)
        else:
            target = ROOT_OPERATIONS_PATH
            local = unique_name(ROOT_OPERATIONS_MODULE, taken)
        taken.append(local)
        local_names[module] = local
        imports.submodule(target, asname=local)

    return Module(
        path=ALIAS_PATH,
        doc="Every request function under its ``operationId``.",
        exports=tuple(entry.symbol for entry in table.entries),
        assigns=tuple(
            Assign(target=entry.symbol, value=f"{local_names[entry.module]}.{entry.method_symbol}")
            for entry in table.entries
        ),
        **imports.build(),
    )


def _routes_index(root: RouteNode, table: AliasTable, options: GeneratorOptions) -> Module:
    imports = _Imports(ROUTES_PACKAGE, options)
    for child in root.children:
        imports.submodule(route_path(child.module))
    imports.names(ROOT_OPERATIONS_PATH, [method_symbol(op.method) for op in root.operations])
    imports.submodule(ALIAS_PATH)

    exports = [*root.exports, ALIAS_MODULE]
    aliases: list[str] = []
    for entry in table.entries:
        if entry.symbol in exports:
            debug(
                f"Alias '{entry.symbol}' ({entry.location}) collides with routes.{entry.symbol}; "
                f"it stays reachable as routes.{ALIAS_MODULE}.{entry.symbol}"
            )
            continue
        aliases.append(entry.symbol)
        exports.append(entry.symbol)
    imports.names(ALIAS_PATH, aliases)

    return Module(
        path=ROUTES_PACKAGE,
        doc="Request functions grouped by URL path.",
        exports=tuple(exports),
        **imports.build(),
    )


def _config_module(spec: ParsedSpec) -> Module:
    base_url = spec.servers[0].url.rstrip("/") if spec.servers else DEFAULT_BASE_URL
    config = ClassDef(
        name="SDKConfig",
        doc="Settings read by every request function on each call.",
        fields=(
            FieldDef(name="base_url", annotation="str", default=py_literal(base_url)),
            FieldDef(
                name="headers",
                annotation="dict[str, str]",
                default='Field(default_factory=lambda: {"Accept": "application/json"})',
            ),
            FieldDef(name="timeout", annotation="float", default="30.0"),
        ),
    )
    return Module(
        path=CONFIG_MODULE,
        doc=f"Request configuration for {spec.info.title}.",
        imports=symbol_imports(["BaseModel", "Field"]),
        classes=(config,),
        assigns=(Assign(target="sdk_config", value="SDKConfig()"),),
    )


def _package_index(spec: ParsedSpec, schemas_index: Module, options: GeneratorOptions) -> Module:
    imports = _Imports(PACKAGE_INDEX, options)
    imports.names(CONFIG_MODULE, ["SDKConfig", "sdk_config"])
    models = schemas_index.exports or ()
    imports.names(SCHEMAS_PACKAGE, models)
    imports.submodule(ROUTES_PACKAGE, asname="client")

    doc = f"{spec.info.title} {spec.info.version} client."
    if spec.info.description and spec.info.description.strip():
        doc = f"{doc}\n\n{spec.info.description.strip()}"
    return Module(
        path=PACKAGE_INDEX,
        doc=doc,
        exports=("SDKConfig", "sdk_config", *models, "client"),
        **imports.build(),
    )
