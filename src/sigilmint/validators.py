"""
SigilMint Payload Validation Module

JSON Schema (Draft 2020-12) checks for sealed payloads. Runs before a payload
is canonicalized so that a malformed record never gets a seal.

Schemas ship inside the package:
- schemas/position.schema.json   (SM-POS-1)
- schemas/resolution.schema.json (SM-RES-1)

All validation failures raise SchemaInvalidError with:
- Error code: SM_SCHEMA_INVALID
- Details dict: schema name and up to MAX_REPORTED_ERRORS "path: message" lines
"""

import json
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from .exceptions import SchemaInvalidError
from .payload import KIND_POSITION, KIND_RESOLUTION

__all__ = [
    'SCHEMAS_DIR',
    'SCHEMA_FILES',
    'MAX_REPORTED_ERRORS',
    'load_schema',
    'schema_errors',
    'validate_payload',
]

SCHEMAS_DIR = Path(__file__).parent / "schemas"

SCHEMA_FILES = {
    KIND_POSITION: "position.schema.json",
    KIND_RESOLUTION: "resolution.schema.json",
}

MAX_REPORTED_ERRORS = 10


@lru_cache(maxsize=None)
def _validator(kind: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(kind))


def load_schema(kind: str) -> Dict[str, Any]:
    """Load the JSON schema for a payload kind ("position" or "resolution")."""
    if kind not in SCHEMA_FILES:
        raise SchemaInvalidError(
            f"No schema for payload kind '{kind}'",
            details={"kind": str(kind)[:32], "known_kinds": sorted(SCHEMA_FILES)},
        )
    with open(SCHEMAS_DIR / SCHEMA_FILES[kind], encoding="utf-8") as f:
        return json.load(f)


def schema_errors(payload: Any, kind: str) -> List[str]:
    """
    Collect schema violations as "path: message" strings (empty when valid).

    The path is "<root>" for violations on the payload object itself.
    """
    errors = sorted(_validator(kind).iter_errors(payload), key=lambda e: [str(p) for p in e.absolute_path])
    messages = []
    for error in errors:
        path = " -> ".join(str(p) for p in error.absolute_path) or "<root>"
        messages.append(f"{path}: {error.message}")
    return messages


def validate_payload(payload: Any) -> str:
    """
    Validate a payload against the schema named by its `kind`.

    Returns:
        The payload kind

    Raises:
        SchemaInvalidError: If the kind is unknown or the payload violates
            its schema
    """
    kind = payload.get("kind") if isinstance(payload, Mapping) else None
    if kind not in SCHEMA_FILES:
        raise SchemaInvalidError(
            "Payload kind must be 'position' or 'resolution'",
            details={"kind": str(kind)[:32]},
        )

    errors = schema_errors(payload, kind)
    if errors:
        raise SchemaInvalidError(
            f"Payload does not match {SCHEMA_FILES[kind]} ({len(errors)} error(s))",
            details={
                "schema": SCHEMA_FILES[kind],
                "errors": errors[:MAX_REPORTED_ERRORS],
            },
        )
    return kind
