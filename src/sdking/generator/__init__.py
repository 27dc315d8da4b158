"""SDK generator -- turn a parsed OpenAPI spec into Python client source.

This sub-package is responsible for the second half of the sdking pipeline:
taking a :class:`~sdking.models.ParsedSpec` (produced by the parser) and
producing the ordered list of :class:`~sdking.models.GeneratedArtifact`
objects that make up the client package.

Typical usage::

    from sdking.generator import emit_sdk
    from sdking.models import GeneratorOptions

    options = GeneratorOptions(input="petstore.json", output="./petstore")
    for artifact in emit_sdk(parsed_spec, options):
        print(artifact.path)

Sub-modules:

* :mod:`~sdking.generator.naming` -- OpenAPI names to Python identifiers.
* :mod:`~sdking.generator.schema_compiler` -- schema trees to pydantic type
  expressions plus hoisted model classes.
* :mod:`~sdking.generator.route_tree` -- the URL path tree behind the
  ``routes`` package.
* :mod:`~sdking.generator.aliases` -- ``operationId`` to request function.
* :mod:`~sdking.generator.emitter` -- assembles one structured module per
  artifact.
* :mod:`~sdking.generator.printer` -- renders modules to source through
  Jinja2 templates.
"""

from sdking.generator.aliases import build_alias_table
from sdking.generator.emitter import build_modules, emit_sdk
from sdking.generator.route_tree import build_route_tree
from sdking.generator.schema_compiler import compile_schema

__all__ = ["emit_sdk", "build_modules", "build_route_tree", "build_alias_table", "compile_schema"]
