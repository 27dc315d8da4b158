"""Extract operations and named schemas from OpenAPI documents.

This module walks an OpenAPI spec dictionary and builds a
:class:`~sdking.models.ParsedSpec` containing the API metadata, the server
list, every operation (in declaration order) and the registry of named
schemas.

The single public entry point is :func:`extract_spec`. Internally it
delegates to private helpers that each handle one section of the document:

* ``_extract_info`` -- the ``info`` object (title, version, description).
* ``_extract_servers`` -- the ``servers`` array.
* ``_extract_operations`` -- the ``paths`` object, visiting HTTP methods in
  the order each path item declares them.
* :func:`~sdking.parser.schema.build_registry` -- ``components.schemas``.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.
"""

from __future__ import annotations

from typing import Any, Optional

from sdking.models import (
    APIInfo,
    APIOperation,
    APIParameter,
    HTTPMethod,
    ParameterLocation,
    ParsedSpec,
    RequestBodyInfo,
    ResponseInfo,
    SchemaNode,
    ServerInfo,
)
from sdking.parser.resolver import resolve_refs
from sdking.parser.schema import build_registry, parse_schema

_HTTP_METHODS = tuple(m.value for m in HTTPMethod)


def extract_spec(raw_spec: dict[str, Any], openapi_version: str) -> ParsedSpec:
    """Extract a :class:`~sdking.models.ParsedSpec` from a raw OpenAPI dict.

    Shared parameters, request bodies, responses and path items are inlined
    via :func:`~sdking.parser.resolver.resolve_refs` first; schema
    references stay references and are resolved by name against the
    registry.

    Args:
        raw_spec: The raw OpenAPI spec dictionary as returned by
            :func:`~sdking.parser.loader.load_spec`.
        openapi_version: The validated OpenAPI version string, as returned
            by :func:`~sdking.parser.loader.validate_document`.

    Returns:
        A fully populated :class:`~sdking.models.ParsedSpec`.

    Example::

        raw = load_spec("petstore.yaml")
        version = validate_document(raw)
        parsed = extract_spec(raw, version)
        for op in parsed.operations:
            print(op.location)
    """
    spec = resolve_refs(raw_spec)
    components = spec.get("components") or {}
    return ParsedSpec(
        info=_extract_info(spec),
        servers=_extract_servers(spec),
        operations=_extract_operations(spec),
        schemas=build_registry(components.get("schemas")),
        openapi_version=openapi_version,
    )


def _extract_info(spec: dict[str, Any]) -> APIInfo:
    info = spec.get("info") or {}
    return APIInfo(
        title=str(info.get("title", "Untitled API")),
        version=str(info.get("version", "0.0.0")),
        description=info.get("description"),
    )


def _extract_servers(spec: dict[str, Any]) -> list[ServerInfo]:
    """Extract server entries from the spec's ``servers`` array.

    Returns:
        A list of :class:`~sdking.models.ServerInfo` instances, empty when
        no servers are declared.
    """
    return [
        ServerInfo(url=server.get("url", "/"), description=server.get("description"))
        for server in spec.get("servers") or []
        if isinstance(server, dict)
    ]


def _extract_operations(spec: dict[str, Any]) -> list[APIOperation]:
    """Extract all operations from the spec's ``paths`` object.

    Paths are visited in document order and, within a path item, HTTP
    methods in the order the path item declares them, so that repeated runs
    over the same document always yield the same operation list.

    Args:
        spec: The resolved spec dictionary.

    Returns:
        A list of :class:`~sdking.models.APIOperation` instances, one per
        path + HTTP method combination.
    """
    operations: list[APIOperation] = []

    for path, path_item in (spec.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters") or []

        for method_str, operation in path_item.items():
            if method_str not in _HTTP_METHODS or not isinstance(operation, dict):
                continue

            merged_params = _merge_parameters(path_params, operation.get("parameters") or [])
            operations.append(
                APIOperation(
                    path=str(path),
                    method=HTTPMethod(method_str),
                    operation_id=operation.get("operationId"),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    tags=tuple(operation.get("tags") or ()),
                    parameters=_extract_parameters(merged_params),
                    request_body=_extract_request_body(operation.get("requestBody")),
                    responses=_extract_responses(operation.get("responses") or {}),
                    deprecated=bool(operation.get("deprecated", False)),
                )
            )

    return operations


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    overridden = {
        (param.get("name", ""), param.get("in", ""))
        for param in op_params
        if isinstance(param, dict)
    }
    merged = [
        param
        for param in path_params
        if isinstance(param, dict)
        and (param.get("name", ""), param.get("in", "")) not in overridden
    ]
    merged.extend(param for param in op_params if isinstance(param, dict))
    return merged


def _extract_parameters(params_list: list[dict[str, Any]]) -> tuple[APIParameter, ...]:
    """Convert raw parameter dicts into :class:`~sdking.models.APIParameter` models.

    Path parameters are always required regardless of the ``required``
    field in the source. Parameters with unrecognised ``in`` locations are
    skipped.
    """
    parameters: list[APIParameter] = []

    for param in params_list:
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            continue

        raw_schema = param.get("schema")
        if raw_schema is None:
            raw_schema = _media_schema(param.get("content") or {})

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            APIParameter(
                name=str(param.get("name", "")),
                location=location,
                required=required,
                description=param.get("description"),
                deprecated=bool(param.get("deprecated", False)),
                schema=parse_schema(raw_schema),
            )
        )

    return tuple(parameters)


def _extract_request_body(body: Optional[dict[str, Any]]) -> Optional[RequestBodyInfo]:
    """Extract request body metadata from an operation's ``requestBody``.

    Returns:
        A :class:`~sdking.models.RequestBodyInfo`, or ``None`` when the
        operation does not accept a request body.
    """
    if not isinstance(body, dict):
        return None

    content = body.get("content") or {}
    return RequestBodyInfo(
        required=bool(body.get("required", False)),
        description=body.get("description"),
        content_types=tuple(content),
        schema=_parse_media_schema(content),
    )


def _extract_responses(responses: dict[str, Any]) -> tuple[ResponseInfo, ...]:
    """Extract response metadata for all declared status codes, in order."""
    result: list[ResponseInfo] = []

    for status_code, response in responses.items():
        if not isinstance(response, dict):
            continue

        content = response.get("content") or {}
        result.append(
            ResponseInfo(
                status_code=str(status_code),
                description=response.get("description"),
                content_types=tuple(content),
                schema=_parse_media_schema(content),
            )
        )

    return tuple(result)


def _media_schema(content: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Pick the raw schema of a ``content`` map, preferring JSON media types."""
    with_schema = [
        (content_type, media)
        for content_type, media in content.items()
        if isinstance(media, dict) and "schema" in media
    ]
    for content_type, media in with_schema:
        if "json" in content_type:
            return media["schema"]
    if with_schema:
        return with_schema[0][1]["schema"]
    return None


def _parse_media_schema(content: dict[str, Any]) -> Optional[SchemaNode]:
    raw = _media_schema(content)
    if raw is None:
        return None
    return parse_schema(raw)
