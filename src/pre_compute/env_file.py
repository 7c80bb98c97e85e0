from __future__ import annotations

import json
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from pre_compute.env import MappingEnvironment
from pre_compute.exceptions import ConfigValidationError, EnvFileParseError

ENV_FILE_SCHEMA = "env_file"


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    schema_path = resources.files("pre_compute").joinpath("schemas", f"{schema_name}.schema.json")
    return json.loads(schema_path.read_text(encoding="utf-8"))


def validate_config(config: Any, schema_name: str, *, config_path: Path | None = None) -> None:
    schema = load_schema(schema_name)
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(config), key=lambda exc: list(exc.path))
    if not errors:
        return
    location = str(config_path) if config_path else "<config>"
    lines = [f"Schema validation failed for {location} ({schema_name})."]
    error_details: list[dict[str, str]] = []
    for error in errors[:10]:
        path = ".".join(str(p) for p in error.path) if error.path else "<root>"
        lines.append(f"- {path}: {error.message}")
        error_details.append({"path": path, "message": error.message})
    if len(errors) > 10:
        lines.append(f"... and {len(errors) - 10} more errors.")
    raise ConfigValidationError(
        "\n".join(lines),
        context={
            "path": location,
            "schema": schema_name,
            "errors": error_details,
            "truncated": len(errors) > 10,
        },
    )


def read_env_file(path: Path) -> dict[str, str]:
    """Read a YAML env file into a name -> string mapping.

    Raises:
        EnvFileParseError: the file is not valid YAML.
        ConfigValidationError: the document is not a flat mapping of
            variable names to scalar values.
    """
    text = path.read_text(encoding="utf-8")
    try:
        # BaseLoader keeps every scalar a string: 0x checksums stay hex text.
        data = yaml.load(text, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise EnvFileParseError(
            f"YAML parse error in {path}: {exc}",
            context={"path": str(path), "error": str(exc)},
        ) from exc
    if data is None:
        data = {}
    validate_config(data, ENV_FILE_SCHEMA, config_path=path)
    return dict(data)


def load_env_file(path: Path) -> MappingEnvironment:
    return MappingEnvironment(read_env_file(path))
