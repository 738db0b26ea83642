from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field, field_validator

from phono.application.conversion_service import DEFAULT_BUFFER_SIZE
from phono.domain.policies import InputSizePolicy

ENV_PREFIX = "PHONO_"
MAX_SIZE_PREFIX = f"{ENV_PREFIX}MAX_SIZE_"


class ServiceSettings(BaseModel):
    buffer_size: int = Field(DEFAULT_BUFFER_SIZE, ge=1)
    temp_dir: Path | None = None
    max_input_sizes: dict[str, int] = Field(default_factory=dict)

    @field_validator("max_input_sizes")
    @classmethod
    def _validate_max_input_sizes(cls, value: dict[str, int]) -> dict[str, int]:
        normalized: dict[str, int] = {}
        for name, limit in value.items():
            if limit < 0:
                raise ValueError(f"max input size for {name!r} must be >= 0 (0 means unlimited).")
            normalized[name.lower()] = limit
        return normalized

    def input_size_policy(self) -> InputSizePolicy:
        return InputSizePolicy(max_sizes=self.max_input_sizes)


def load_settings(path: Path) -> ServiceSettings:
    data = _load_config_data(path)
    return ServiceSettings.model_validate(data)


def settings_from_env(environ: Mapping[str, str] | None = None) -> ServiceSettings:
    env = os.environ if environ is None else environ
    if env.get(f"{ENV_PREFIX}CONFIG"):
        return load_settings(Path(env[f"{ENV_PREFIX}CONFIG"]))

    data: dict[str, object] = {}
    if env.get(f"{ENV_PREFIX}BUFFER_SIZE"):
        data["buffer_size"] = env[f"{ENV_PREFIX}BUFFER_SIZE"]
    if env.get(f"{ENV_PREFIX}TEMP_DIR"):
        data["temp_dir"] = env[f"{ENV_PREFIX}TEMP_DIR"]
    max_sizes = {
        key[len(MAX_SIZE_PREFIX) :].lower(): value
        for key, value in env.items()
        if key.startswith(MAX_SIZE_PREFIX) and value
    }
    if max_sizes:
        data["max_input_sizes"] = max_sizes
    return ServiceSettings.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise ImportError("PyYAML is required to load YAML configs.") from exc

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
