"""sdking -- Generate typed Python client SDKs from OpenAPI 3.0/3.1 specs.

This package converts an OpenAPI specification into a Python package made of
pydantic models (one module per named schema) and ``httpx`` request functions
(one module per URL route node), plus an alias module that exposes every
endpoint under its declared ``operationId``.

Typical workflow::

    sdking --input openapi.json --output ./petstore
    python -c "import petstore; print(petstore.client.pet.by_petId.get)"

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: Option resolution (CLI, environment, ``sdking.json``).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stderr diagnostics with Rich support.
    writer: Atomic, parallel persistence of generated artifacts.
"""

__version__ = "0.3.0"
