"""Public package exports for phono with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "ConvertAudio",
    "ConversionJob",
    "ConversionError",
    "ParameterValidationError",
    "Format",
    "FormatRegistry",
    "build_default_registry",
    "validate_parameters",
    "PipelineRunner",
    "StreamFactory",
    "TempFileOutputProvider",
]

_EXPORT_MODULES: dict[str, str] = {
    "ConvertAudio": "phono.application.conversion_service",
    "ConversionJob": "phono.application.conversion_service",
    "ConversionError": "phono.errors",
    "ParameterValidationError": "phono.errors",
    "Format": "phono.formats",
    "FormatRegistry": "phono.formats",
    "build_default_registry": "phono.formats",
    "validate_parameters": "phono.parameter_validation",
    "PipelineRunner": "phono.pipeline",
    "StreamFactory": "phono.streams",
    "TempFileOutputProvider": "phono.infrastructure.temp_files",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'phono' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
