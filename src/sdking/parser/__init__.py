"""OpenAPI spec parser -- load, validate, inline shared ``$ref`` pointers, and extract.

This sub-package is responsible for the first half of the sdking pipeline:
turning a raw OpenAPI 3.x document (JSON or YAML, local file or remote URL)
into a :class:`~sdking.models.ParsedSpec` that the generator can consume.

Typical usage::

    from sdking.parser import extract_spec, load_spec, validate_document

    raw = load_spec("https://petstore3.swagger.io/api/v3/openapi.json")
    version = validate_document(raw)
    parsed = extract_spec(raw, version)

Sub-modules:

* :mod:`~sdking.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection and document validation.
* :mod:`~sdking.parser.resolver` -- ``$ref`` inlining for everything except
  named schemas.
* :mod:`~sdking.parser.schema` -- raw JSON Schema dicts to
  :data:`~sdking.models.SchemaNode` trees and the schema registry.
* :mod:`~sdking.parser.extractor` -- walks the document and produces
  :class:`~sdking.models.ParsedSpec`.
"""

from sdking.parser.extractor import extract_spec
from sdking.parser.loader import load_spec, validate_document, validate_openapi_version

__all__ = ["load_spec", "validate_document", "validate_openapi_version", "extract_spec"]
