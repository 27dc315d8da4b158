"""Tests for sdking.parser.extractor."""

from __future__ import annotations

from typing import Any

from sdking.models import (
    ArraySchema,
    EnumSchema,
    HTTPMethod,
    ParameterLocation,
    ParsedSpec,
    PrimitiveSchema,
    RefSchema,
)
from sdking.parser.extractor import extract_spec


def _operation(spec: ParsedSpec, operation_id: str):
    return next(op for op in spec.operations if op.operation_id == operation_id)


class TestExtractPetstore:
    """Extraction of the petstore fixture."""

    def test_info(self, petstore_spec: ParsedSpec) -> None:
        assert petstore_spec.info.title == "Petstore API"
        assert petstore_spec.info.version == "1.0.0"
        assert petstore_spec.info.description == "A sample pet store."
        assert petstore_spec.openapi_version == "3.0.3"

    def test_servers(self, petstore_spec: ParsedSpec) -> None:
        assert [s.url for s in petstore_spec.servers] == ["https://petstore.example.com/api/v1/"]
        assert petstore_spec.servers[0].description == "Production"

    def test_operations_in_declaration_order(self, petstore_spec: ParsedSpec) -> None:
        assert [op.operation_id for op in petstore_spec.operations] == [
            "addPet",
            "updatePet",
            "findPetsByStatus",
            "getPetById",
            "deletePet",
            "uploadFile",
            "getInventory",
            "getOrderById",
            "loginUser",
        ]

    def test_method_and_location(self, petstore_spec: ParsedSpec) -> None:
        op = _operation(petstore_spec, "deletePet")
        assert op.method is HTTPMethod.DELETE
        assert op.location == "DELETE /pet/{petId}"
        assert op.deprecated is True

    def test_path_level_parameters_are_merged(self, petstore_spec: ParsedSpec) -> None:
        op = _operation(petstore_spec, "deletePet")
        assert [(p.name, p.location) for p in op.parameters] == [
            ("petId", ParameterLocation.PATH),
            ("api_key", ParameterLocation.HEADER),
        ]
        pet_id = op.parameters[0]
        assert pet_id.required is True
        assert pet_id.schema_ == PrimitiveSchema(type="integer", format="int64")

    def test_query_parameter_schema(self, petstore_spec: ParsedSpec) -> None:
        op = _operation(petstore_spec, "findPetsByStatus")
        (status,) = op.parameters
        assert status.required is False
        assert isinstance(status.schema_, EnumSchema)
        assert status.schema_.values == ("available", "pending", "sold")

    def test_request_body(self, petstore_spec: ParsedSpec) -> None:
        body = _operation(petstore_spec, "addPet").request_body
        assert body is not None
        assert body.required is True
        assert body.content_types == ("application/json",)
        assert body.schema_ == RefSchema(name="Pet")

    def test_binary_request_body(self, petstore_spec: ParsedSpec) -> None:
        body = _operation(petstore_spec, "uploadFile").request_body
        assert body.content_types == ("application/octet-stream",)
        assert body.schema_ == PrimitiveSchema(type="string", format="binary")

    def test_responses(self, petstore_spec: ParsedSpec) -> None:
        responses = _operation(petstore_spec, "getPetById").responses
        assert [r.status_code for r in responses] == ["200", "404"]
        assert responses[0].is_success and responses[0].is_json
        assert responses[1].schema_ is None
        assert not responses[1].is_success

    def test_array_response(self, petstore_spec: ParsedSpec) -> None:
        (response,) = _operation(petstore_spec, "findPetsByStatus").responses
        assert response.schema_ == ArraySchema(item=RefSchema(name="Pet"))

    def test_schema_registry(self, petstore_spec: ParsedSpec) -> None:
        registry = petstore_spec.schemas
        assert registry.names == ("Category", "Tag", "Pet", "Order", "ApiResponse")
        assert registry.symbol("ApiResponse") == "ApiResponse"
        assert registry.module("ApiResponse") == "apiresponse"

    def test_extraction_is_deterministic(self, petstore_raw: dict[str, Any]) -> None:
        assert extract_spec(petstore_raw, "3.0.3") == extract_spec(petstore_raw, "3.0.3")


class TestExtractEdgeCases:
    def _spec(self, paths: dict[str, Any], **extra: Any) -> ParsedSpec:
        raw = {"openapi": "3.1.0", "info": {"title": "T", "version": "1"}, "paths": paths, **extra}
        return extract_spec(raw, "3.1.0")

    def test_operation_parameter_overrides_path_parameter(self) -> None:
        spec = self._spec(
            {
                "/items": {
                    "parameters": [{"name": "limit", "in": "query", "description": "path level"}],
                    "get": {
                        "parameters": [
                            {"name": "limit", "in": "query", "description": "op level", "required": True}
                        ]
                    },
                }
            }
        )
        (param,) = spec.operations[0].parameters
        assert param.description == "op level"
        assert param.required is True

    def test_path_parameters_always_required(self) -> None:
        spec = self._spec({"/items/{id}": {"get": {"parameters": [{"name": "id", "in": "path"}]}}})
        assert spec.operations[0].parameters[0].required is True

    def test_unknown_parameter_location_skipped(self) -> None:
        spec = self._spec({"/x": {"get": {"parameters": [{"name": "q", "in": "body"}]}}})
        assert spec.operations[0].parameters == ()

    def test_non_method_keys_ignored(self) -> None:
        spec = self._spec({"/x": {"summary": "s", "servers": [], "get": {}}})
        assert [op.method for op in spec.operations] == [HTTPMethod.GET]

    def test_methods_in_path_item_order(self) -> None:
        spec = self._spec({"/x": {"post": {}, "get": {}, "delete": {}}})
        assert [op.method.value for op in spec.operations] == ["post", "get", "delete"]

    def test_parameter_content_schema(self) -> None:
        spec = self._spec(
            {
                "/x": {
                    "get": {
                        "parameters": [
                            {
                                "name": "filter",
                                "in": "query",
                                "content": {"application/json": {"schema": {"type": "object"}}},
                            }
                        ]
                    }
                }
            }
        )
        assert spec.operations[0].parameters[0].schema_.kind == "object"

    def test_prefers_json_media_type(self) -> None:
        spec = self._spec(
            {
                "/x": {
                    "get": {
                        "responses": {
                            "200": {
                                "content": {
                                    "text/plain": {"schema": {"type": "string"}},
                                    "application/json": {"schema": {"type": "boolean"}},
                                }
                            }
                        }
                    }
                }
            }
        )
        assert spec.operations[0].responses[0].schema_ == PrimitiveSchema(type="boolean")

    def test_no_servers_no_components(self) -> None:
        spec = self._spec({})
        assert spec.servers == []
        assert len(spec.schemas) == 0
        assert spec.operations == []
