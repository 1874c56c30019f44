"""JSON Schemas shipped with dapplib, and the validator for them."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import FormatChecker

SCHEMA_DIR = Path(__file__).resolve().parent
CONFIG_SCHEMA = "dapp-config.schema.json"


class SchemaValidationError(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> Any:
    schema = load_json(SCHEMA_DIR / schema_name)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema, format_checker=FormatChecker())


def validate(instance: Any, schema_name: str = CONFIG_SCHEMA) -> None:
    """
    Validate ``instance`` against a bundled schema.

    Raises:
        SchemaValidationError: Listing every violation as ``path: message``.
    """
    problems = sorted(_validator(schema_name).iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if problems:
        raise SchemaValidationError(
            f"{schema_name} validation failed.",
            errors=[f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in problems],
        )
