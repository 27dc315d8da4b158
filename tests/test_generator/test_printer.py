"""Tests for sdking.generator.printer -- modules to source text."""

from __future__ import annotations

import ast

from sdking.generator.artifacts import (
    IMPORT_GROUP_LOCAL,
    AdapterDef,
    BodyDef,
    ClassDef,
    FieldDef,
    ImportStmt,
    Module,
    OperationDef,
    ParamDef,
    ResponseDef,
    symbol_imports,
)
from sdking.generator.emitter import emit_sdk
from sdking.generator.printer import HEADER, docstring, render_module
from sdking.models import GeneratorOptions, ParameterLocation, ParsedSpec


def _render(**fields) -> str:
    return render_module(Module(path="x.py", **fields)).content


class TestModuleLayout:
    def test_small_model_module(self) -> None:
        content = _render(
            doc="Model for the ``A`` schema.",
            future=True,
            imports=symbol_imports(["Optional", "BaseModel"]),
            exports=("A",),
            classes=(
                ClassDef(name="A", fields=(FieldDef(name="x", annotation="Optional[str]", default="None"),)),
            ),
        )
        assert content == (
            f"{HEADER}\n"
            '"""Model for the ``A`` schema."""\n'
            "\n"
            "from __future__ import annotations\n"
            "\n"
            "from typing import Optional\n"
            "\n"
            "from pydantic import BaseModel\n"
            "\n"
            '__all__ = ["A"]\n'
            "\n"
            "\n"
            "class A(BaseModel):\n"
            "    x: Optional[str] = None\n"
        )

    def test_header_only(self) -> None:
        assert _render() == f"{HEADER}\n"

    def test_import_groups_and_order(self) -> None:
        content = _render(
            imports=(
                ImportStmt(module="..schemas", names=(("Pet", None),)),
                ImportStmt(module="httpx", group=1),
                ImportStmt(module="pydantic", names=(("BaseModel", None),), group=1),
                ImportStmt(module="typing", names=(("Any", None),), group=0),
                ImportStmt(module=".", names=(("child", "_child"),)),
            )
        )
        assert (
            "from typing import Any\n\n"
            "import httpx\nfrom pydantic import BaseModel\n\n"
            "from ..schemas import Pet\nfrom . import child as _child\n"
        ) in content

    def test_long_import_wraps(self) -> None:
        names = tuple((f"VeryLongModelName{index}", None) for index in range(8))
        content = _render(imports=(ImportStmt(module=".schemas", names=names, group=IMPORT_GROUP_LOCAL),))
        assert "from .schemas import (\n    VeryLongModelName0,\n" in content
        assert "    VeryLongModelName7,\n)\n" in content
        ast.parse(content)

    def test_deferred_imports(self) -> None:
        content = _render(
            imports=symbol_imports(["TYPE_CHECKING"]),
            deferred_imports=(ImportStmt(module=".owner", names=(("Owner", None),)),),
        )
        assert "if TYPE_CHECKING:\n    from .owner import Owner\n" in content

    def test_rebuild_loop_single(self) -> None:
        content = _render(rebuild=("Pet",))
        assert "for _model in (Pet,):\n    _model.model_rebuild()\ndel _model\n" in content

    def test_rebuild_loop_wraps(self) -> None:
        names = tuple(f"Model{index:02d}" for index in range(12))
        content = _render(rebuild=names)
        assert content.count("_model.model_rebuild()") == 1
        assert "for _model in (\n    Model00,\n" in content
        ast.parse(content)

    def test_adapters(self) -> None:
        content = _render(adapters=(AdapterDef(name="_get_response", annotation="list[str]"),))
        assert "_get_response = TypeAdapter(list[str])\n" in content


class TestClassRendering:
    def test_docstring_config_and_alias(self) -> None:
        content = _render(
            classes=(
                ClassDef(
                    name="Pet",
                    doc="A pet.",
                    config=("populate_by_name=True",),
                    fields=(
                        FieldDef(name="first_name", annotation="str", alias="first-name"),
                        FieldDef(name="tag", annotation="Optional[str]", default="None", alias="Tag"),
                    ),
                ),
            )
        )
        assert (
            "class Pet(BaseModel):\n"
            '    """A pet."""\n'
            "\n"
            "    model_config = ConfigDict(populate_by_name=True)\n"
            "\n"
            '    first_name: str = Field(alias="first-name")\n'
            '    tag: Optional[str] = Field(default=None, alias="Tag")\n'
        ) in content

    def test_empty_class(self) -> None:
        content = _render(classes=(ClassDef(name="Empty"),))
        assert "class Empty(BaseModel):\n    pass\n" in content

    def test_multiple_bases_and_extra(self) -> None:
        content = _render(
            classes=(
                ClassDef(
                    name="Dog",
                    bases=("Entity", "DogPart2"),
                    config=('extra="allow"',),
                    extra_annotation="dict[str, float]",
                ),
            )
        )
        assert "class Dog(Entity, DogPart2):\n" in content
        assert "    __pydantic_extra__: dict[str, float]\n" in content

    def test_two_classes_separated_by_two_blank_lines(self) -> None:
        content = _render(classes=(ClassDef(name="A"), ClassDef(name="B")))
        assert "    pass\n\n\nclass B(BaseModel):" in content


class TestDocstring:
    def test_single_line(self) -> None:
        assert docstring("Find pet by ID") == '"""Find pet by ID"""'

    def test_multi_line(self) -> None:
        assert docstring("Summary.\n\nDetails.") == '"""Summary.\n\nDetails.\n"""'

    def test_escapes_quotes_and_backslashes(self) -> None:
        text = docstring('Use \\d and """quotes"""')
        ast.parse(text)
        assert ast.literal_eval(text) == 'Use \\d and """quotes"""'

    def test_trailing_quote(self) -> None:
        text = docstring('Say "hi"')
        assert ast.literal_eval(text) == 'Say "hi"'


class TestOperationRendering:
    def _operation(self, **overrides) -> OperationDef:
        fields = dict(
            name="get",
            http_method="GET",
            url='f"/pet/{petId}"',
            path_params=(
                ParamDef(name="petId", wire_name="petId", location=ParameterLocation.PATH, annotation="float", required=True),
            ),
            response=ResponseDef(kind="model", annotation="Pet", model="Pet"),
            summary="Find pet by ID",
            operation_id="getPetById",
        )
        fields.update(overrides)
        return OperationDef(**fields)

    def test_signature_and_request(self) -> None:
        content = _render(operations=(self._operation(),))
        assert (
            "def get(\n"
            "    petId: float,\n"
            "    *,\n"
            "    headers: Optional[dict[str, str]] = None,\n"
            ") -> Pet:\n"
        ) in content
        assert "    url = sdk_config.base_url + f\"/pet/{petId}\"\n" in content
        assert "    response = httpx.request(\n        \"GET\",\n        url,\n" in content
        assert "    response.raise_for_status()\n    return Pet.model_validate(response.json())\n" in content
        assert "Operation ID: ``getPetById``" in content
        ast.parse(content)

    def test_keyword_params_body_and_cookies(self) -> None:
        op = self._operation(
            name="post",
            http_method="POST",
            url='"/pet"',
            path_params=(),
            query_params=(
                ParamDef(name="dry_run", wire_name="dry-run", location=ParameterLocation.QUERY, annotation="Optional[bool]"),
            ),
            header_params=(
                ParamDef(name="x_trace", wire_name="X-Trace", location=ParameterLocation.HEADER, annotation="str", required=True),
            ),
            cookie_params=(
                ParamDef(name="session", wire_name="session", location=ParameterLocation.COOKIE, annotation="Optional[str]"),
            ),
            body=BodyDef(annotation="Pet", required=True),
            response=ResponseDef(kind="list", annotation="list[Pet]", model="Pet"),
        )
        content = _render(operations=(op,))
        assert "    *,\n    dry_run: Optional[bool] = None,\n    x_trace: str,\n" in content
        assert "    body: Pet,\n" in content
        assert '            "dry-run": dry_run,\n' in content
        assert '        request_headers["X-Trace"] = str(x_trace)\n' in content
        assert '        request_cookies["session"] = str(session)\n' in content
        assert "        cookies=request_cookies,\n" in content
        assert "        json=to_jsonable_python(body, by_alias=True, exclude_none=True),\n" in content
        assert "    return [Pet.model_validate(item) for item in response.json()]\n" in content
        ast.parse(content)

    def test_raw_body_sets_content_type(self) -> None:
        op = self._operation(
            body=BodyDef(annotation="Optional[bytes]", encoding="content", content_type="image/png"),
            response=ResponseDef(),
        )
        content = _render(operations=(op,))
        assert "    body: Optional[bytes] = None,\n" in content
        assert '        request_headers.setdefault("Content-Type", "image/png")\n' in content
        assert "        content=body,\n" in content
        assert ") -> None:\n" in content
        assert "return" not in content.split("raise_for_status()")[1]
        ast.parse(content)

    def test_adapter_response(self) -> None:
        op = self._operation(response=ResponseDef(kind="adapter", annotation="str", adapter="_get_response"))
        content = _render(operations=(op,))
        assert "    return _get_response.validate_python(response.json())\n" in content


class TestRenderedSdk:
    def test_every_artifact_is_valid_python(
        self, petstore_spec: ParsedSpec, relative_options: GeneratorOptions
    ) -> None:
        for artifact in emit_sdk(petstore_spec, relative_options):
            ast.parse(artifact.content, filename=artifact.path)
            assert artifact.content.startswith(HEADER)

    def test_tree_artifacts_are_valid_python(
        self, tree_spec: ParsedSpec, relative_options: GeneratorOptions
    ) -> None:
        for artifact in emit_sdk(tree_spec, relative_options):
            ast.parse(artifact.content, filename=artifact.path)

    def test_alias_module_text(self, petstore_spec: ParsedSpec, relative_options: GeneratorOptions) -> None:
        artifacts = {a.path: a for a in emit_sdk(petstore_spec, relative_options)}
        alias = artifacts["routes/alias.py"].content
        assert "from . import pet as _pet\n" in alias
        assert "getPetById = _pet__by_petId.get\n" in alias

    def test_package_index_text(self, petstore_spec: ParsedSpec, relative_options: GeneratorOptions) -> None:
        artifacts = {a.path: a for a in emit_sdk(petstore_spec, relative_options)}
        index = artifacts["__init__.py"].content
        assert "from .config import SDKConfig, sdk_config\n" in index
        assert "from . import routes as client\n" in index
