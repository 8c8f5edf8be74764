from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from expandvars import expandvars
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from specline.errors import ConfigError

DEFAULT_TIMEOUT = 5.0


class RunOptions(BaseModel):
    """Options recognized by the execution engine and reporters.

    Both snake_case and camelCase keys are accepted
    (``stop_on_first_failure`` / ``stopOnFirstFailure``).
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    stop_on_first_failure: bool = False
    verbose: bool = False
    colors: bool = True
    timeout: float | None = Field(default=DEFAULT_TIMEOUT, ge=0)
    grep: str | None = None

    @field_validator("timeout")
    @classmethod
    def zero_disables_timeout(cls, v: float | None) -> float | None:
        if v == 0:
            return None
        return v

    @field_validator("grep")
    @classmethod
    def blank_grep_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return expandvars(value, nounset=False)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def load_options(path: Path, **overrides: Any) -> RunOptions:
    """Load run options from a YAML file.

    String values may reference environment variables as ``${VAR}`` or
    ``${VAR:-default}``. Keyword overrides that are not None win over the
    file.
    """
    if not path.exists():
        raise ConfigError(f"Options file not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(raw).__name__}")

    data = _expand(raw)
    for name, value in overrides.items():
        if value is None:
            continue
        # aliases take precedence in validation, so drop the file's camelCase key
        data.pop(to_camel(name), None)
        data[name] = value
    return build_options(data, source=str(path))


def build_options(data: dict[str, Any] | None = None, *, source: str = "options") -> RunOptions:
    try:
        return RunOptions.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid {source}:\n{e}") from e
