"""JSON Schema validation for credential and proof-bundle files.

Provides:
- A registry of the packaged schemas so `$ref`s between them resolve
- Cached validators
- Error messages as `json_path: message` strings
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012


SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

CREDENTIAL_SCHEMA = "credential.schema.json"
PROOF_BUNDLE_SCHEMA = "proof-bundle.schema.json"


def _load_schema(name: str) -> dict:
    with open(SCHEMAS_DIR / name, encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _schema_registry() -> Registry:
    """Registry of every packaged schema, keyed by its `$id`."""
    resources = []
    for schema_path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        schema = _load_schema(schema_path.name)
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        resources.append((schema["$id"], resource))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(name: str) -> Draft202012Validator:
    """Create a validator for a packaged schema file.

    Args:
        name: File name under the package's schemas directory

    Returns:
        A configured Draft202012Validator
    """
    schema = _load_schema(name)
    return Draft202012Validator(
        schema,
        registry=_schema_registry(),
        format_checker=Draft202012Validator.FORMAT_CHECKER,
    )


def validate_against_schema(obj: Any, name: str) -> List[str]:
    """Validate an object against a packaged schema.

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = schema_validator(name)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    ]
