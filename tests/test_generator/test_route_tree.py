"""Tests for sdking.generator.route_tree."""

from __future__ import annotations

import pytest

from sdking.exceptions import RouteConflictError
from sdking.generator.route_tree import (
    build_route_tree,
    direct_children,
    method_symbol,
    module_parts,
    prefixes,
    split_path,
    walk_post_order,
)
from sdking.models import APIOperation, HTTPMethod, ParsedSpec, RouteNode


def _op(path: str, method: str = "get", operation_id: str | None = None) -> APIOperation:
    return APIOperation(path=path, method=HTTPMethod(method), operation_id=operation_id)


def _child(node: RouteNode, symbol: str) -> RouteNode:
    return next(child for child in node.children if child.symbol == symbol)


class TestPathHelpers:
    def test_split_path(self) -> None:
        assert split_path("/pet/{petId}/uploadImage") == ("pet", "{petId}", "uploadImage")

    def test_split_root(self) -> None:
        assert split_path("/") == ()

    def test_split_ignores_empty_segments(self) -> None:
        assert split_path("//pet//") == ("pet",)

    def test_module_parts(self) -> None:
        assert module_parts("/pet/{petId}") == ("pet", "by_petId")

    def test_prefixes(self) -> None:
        assert prefixes(("a", "b", "c")) == [("a",), ("a", "b")]
        assert prefixes(("a",)) == []

    def test_direct_children_lexical(self) -> None:
        candidates = [("pet",), ("pet", "{petId}"), ("pet", "{id}"), ("pet", "{petId}", "x"), ("store", "a")]
        assert direct_children(("pet",), candidates) == [("pet", "{petId}"), ("pet", "{id}")]

    def test_method_symbol(self) -> None:
        assert method_symbol(HTTPMethod.DELETE) == "delete"


class TestBuildPetstoreTree:
    """Route tree of the petstore fixture."""

    def test_root(self, petstore_spec: ParsedSpec) -> None:
        root = build_route_tree(petstore_spec.operations)
        assert root.is_root
        assert root.path == "/"
        assert root.operations == ()
        assert [child.symbol for child in root.children] == ["pet", "store", "user"]
        assert root.exports == ("pet", "store", "user")

    def test_exports_methods_then_children(self, petstore_spec: ParsedSpec) -> None:
        pet = _child(build_route_tree(petstore_spec.operations), "pet")
        assert pet.exports == ("post", "put", "findByStatus", "by_petId")

    def test_param_node(self, petstore_spec: ParsedSpec) -> None:
        pet = _child(build_route_tree(petstore_spec.operations), "pet")
        by_id = _child(pet, "by_petId")
        assert by_id.is_param
        assert by_id.parts == ("pet", "{petId}")
        assert by_id.module == ("pet", "by_petId")
        assert [op.method.value for op in by_id.operations] == ["get", "delete"]
        assert [child.symbol for child in by_id.children] == ["uploadImage"]

    def test_passthrough_nodes_synthesized(self, petstore_spec: ParsedSpec) -> None:
        store = _child(build_route_tree(petstore_spec.operations), "store")
        assert store.is_passthrough
        assert store.exports == ("inventory", "order")
        order = _child(store, "order")
        assert order.is_passthrough
        assert [child.path for child in order.children] == ["/store/order/{orderId}"]

    def test_post_order(self, petstore_spec: ParsedSpec) -> None:
        paths = [node.path for node in walk_post_order(build_route_tree(petstore_spec.operations))]
        assert paths[:4] == ["/pet/findByStatus", "/pet/{petId}/uploadImage", "/pet/{petId}", "/pet"]
        assert paths[-1] == "/"
        assert len(paths) == len(set(paths))

    def test_deterministic(self, petstore_spec: ParsedSpec) -> None:
        assert build_route_tree(petstore_spec.operations) == build_route_tree(petstore_spec.operations)


class TestBuildEdgeCases:
    def test_empty(self) -> None:
        root = build_route_tree([])
        assert root.children == ()
        assert root.exports == ()

    def test_root_operations(self) -> None:
        root = build_route_tree([_op("/"), _op("/health")])
        assert [op.path for op in root.operations] == ["/"]
        assert root.exports == ("get", "health")

    def test_distinct_param_names_are_distinct_children(self) -> None:
        root = build_route_tree([_op("/pet/{petId}"), _op("/pet/{id}")])
        pet = _child(root, "pet")
        assert [child.symbol for child in pet.children] == ["by_petId", "by_id"]

    def test_deep_path_synthesizes_every_prefix(self) -> None:
        root = build_route_tree([_op("/a/b/c")])
        a = _child(root, "a")
        b = _child(a, "b")
        assert a.is_passthrough and b.is_passthrough
        assert _child(b, "c").operations[0].path == "/a/b/c"

    def test_children_normalizing_to_one_symbol(self) -> None:
        with pytest.raises(RouteConflictError, match="exports 'a_b' twice"):
            build_route_tree([_op("/a-b"), _op("/a_b")])

    def test_child_clashing_with_method(self) -> None:
        with pytest.raises(RouteConflictError, match="exports 'get' twice"):
            build_route_tree([_op("/pet"), _op("/pet/get")])

    def test_reserved_top_level_segment(self) -> None:
        with pytest.raises(RouteConflictError, match="routes.alias"):
            build_route_tree([_op("/alias/{id}")])

    def test_same_method_twice_on_one_path(self) -> None:
        with pytest.raises(RouteConflictError, match="GET /pet"):
            build_route_tree([_op("/pet"), _op("/pet/")])

    def test_literal_segment_spelled_like_param_package(self) -> None:
        with pytest.raises(RouteConflictError, match="exports 'by_id' twice"):
            build_route_tree([_op("/pet/by_id"), _op("/pet/{id}")])
