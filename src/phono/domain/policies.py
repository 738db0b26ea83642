"""Domain value objects representing stable request policies."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from phono.formats import Format


@dataclass(frozen=True)
class InputSizePolicy:
    """Maximum accepted input size per input format name; 0 means unlimited."""

    max_sizes: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized: dict[str, int] = {}
        for name, limit in self.max_sizes.items():
            if limit < 0:
                raise ValueError(f"Max input size for {name!r} must be >= 0, got {limit}.")
            normalized[name.lower()] = int(limit)
        object.__setattr__(self, "max_sizes", MappingProxyType(normalized))

    def limit_for(self, input_format: Format) -> int | None:
        limit = self.max_sizes.get(input_format.name.lower(), 0)
        return limit or None


DEFAULT_INPUT_SIZE_POLICY = InputSizePolicy()
