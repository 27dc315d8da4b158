"""Tests for sdking.generator.naming."""

from __future__ import annotations

import pytest

from sdking.generator.naming import (
    class_symbol,
    field_name,
    is_param_segment,
    module_name,
    pascal_case,
    segment_symbol,
    to_identifier,
    unique_name,
)


class TestToIdentifier:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("find-by-tags", "find_by_tags"),
            ("2fa", "_2fa"),
            ("class", "class_"),
            ("petId", "petId"),
            ("a.b c", "a_b_c"),
            ("", "_"),
        ],
    )
    def test_normalizes(self, value: str, expected: str) -> None:
        assert to_identifier(value) == expected

    @pytest.mark.parametrize("value", ["find-by-tags", "2fa", "class", "x y"])
    def test_idempotent(self, value: str) -> None:
        once = to_identifier(value)
        assert to_identifier(once) == once


class TestSegments:
    def test_param_segment_detection(self) -> None:
        assert is_param_segment("{petId}")
        assert not is_param_segment("pet")
        assert not is_param_segment("{}")

    def test_literal_segment(self) -> None:
        assert segment_symbol("findByStatus") == "findByStatus"
        assert segment_symbol("v1.0") == "v1_0"

    def test_param_segment(self) -> None:
        assert segment_symbol("{petId}") == "by_petId"

    def test_param_segment_leading_underscore(self) -> None:
        assert segment_symbol("{_id}") == "by_id"

    def test_param_and_literal_stay_distinct(self) -> None:
        assert segment_symbol("{id}") != segment_symbol("id")


class TestClassNames:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("tag_list", "TagList"), ("petId", "PetId"), ("", "Model"), ("2fa", "_2fa")],
    )
    def test_pascal_case(self, value: str, expected: str) -> None:
        assert pascal_case(value) == expected

    def test_class_symbol_plain(self) -> None:
        assert class_symbol("Pet") == "Pet"

    def test_class_symbol_reserved(self) -> None:
        assert class_symbol("BaseModel") == "BaseModelModel"
        assert class_symbol("client") == "clientModel"

    def test_module_name(self) -> None:
        assert module_name("PetOwner") == "petowner"
        assert module_name("Class") == "class_"


class TestFieldName:
    def test_plain(self) -> None:
        assert field_name("name") == "name"

    def test_leading_underscore(self) -> None:
        assert field_name("_links") == "field_links"

    def test_keyword(self) -> None:
        assert field_name("for") == "for_"

    def test_basemodel_attribute(self) -> None:
        assert field_name("model_config") == "model_config_"
        assert field_name("copy") == "copy_"

    def test_dash(self) -> None:
        assert field_name("first-name") == "first_name"


class TestUniqueName:
    def test_free(self) -> None:
        assert unique_name("pet", []) == "pet"

    def test_suffix_starts_at_two(self) -> None:
        assert unique_name("pet", ["pet"]) == "pet_2"

    def test_skips_taken_suffixes(self) -> None:
        assert unique_name("pet", ["pet", "pet_2"]) == "pet_3"

    def test_custom_separator(self) -> None:
        assert unique_name("PetTag", ["PetTag"], separator="") == "PetTag2"
