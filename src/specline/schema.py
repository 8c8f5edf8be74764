"""JSON Schema for the YAML options file."""

from __future__ import annotations

import json
from pathlib import Path

from specline.config import RunOptions


def generate_json_schema() -> dict:
    schema = RunOptions.model_json_schema(by_alias=False)
    schema["title"] = "specline options"
    schema["description"] = (
        "Options for `specline run`. camelCase aliases of every key are also accepted."
    )
    return schema


def write_json_schema(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(generate_json_schema(), indent=2) + "\n")
