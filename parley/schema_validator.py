"""Schema validation for execution parameter files."""

import json
import yaml
import jsonschema
from pathlib import Path
from typing import Any


SCHEMA_PATH = Path(__file__).parent / "schemas" / "execution.schema.json"


def load_schema() -> dict:
    """Load the execution-params JSON Schema."""
    with open(SCHEMA_PATH) as f:
        return json.load(f)


def load_params(params_path: str | Path) -> Any:
    """Load an execution params file (YAML, which also covers JSON)."""
    with open(params_path) as f:
        return yaml.safe_load(f)


def validate_params(params: Any, schema: dict | None = None) -> list[str]:
    """
    Validate an execution params mapping against the JSON Schema.
    Returns a list of error messages (empty if valid).
    """
    if schema is None:
        schema = load_schema()

    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(params), key=lambda e: [str(p) for p in e.path]):
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        errors.append(f"[{path}] {error.message}")
    return errors


def validate_params_file(params_path: str | Path) -> tuple[dict | None, list[str]]:
    """
    Load and validate a params file.
    Returns (params_dict, errors).
    """
    try:
        params = load_params(params_path)
    except (OSError, yaml.YAMLError) as e:
        return None, [f"Failed to load params file: {e}"]

    errors = validate_params(params)
    return (params if isinstance(params, dict) else None), errors
