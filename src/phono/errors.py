"""Error taxonomy for conversion requests.

Every error carries a stable ``code`` so transports can map it to a response
without string matching. Validation-class errors are safe to show to callers
verbatim; pipeline-class errors may carry internal detail and are reported
generically by the interfaces.
"""

from __future__ import annotations

from typing import Any


class ConversionError(Exception):
    """Base class for terminal conversion-job errors."""

    code = "conversion_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ParameterValidationError(ConversionError, ValueError):
    """Raised when a request is rejected before any resource is touched."""

    code = "invalid_parameter"


class UnsupportedFormatError(ParameterValidationError):
    code = "unsupported_format"

    def __init__(self, name: str, supported: tuple[str, ...] = ()) -> None:
        message = f"Unsupported format: {name!r}."
        if supported:
            message += f" Supported: {', '.join(supported)}."
        super().__init__(message)
        self.name = name
        self.supported = supported


class MissingParameterError(ParameterValidationError):
    code = "missing_parameter"

    def __init__(self, name: str) -> None:
        super().__init__(f"Parameter {name!r} is required.")
        self.name = name

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "parameter": self.name}


class MalformedParameterError(ParameterValidationError):
    code = "malformed_parameter"

    def __init__(self, name: str, raw_value: str) -> None:
        super().__init__(f"Failed parsing {name!r}: {raw_value!r}.")
        self.name = name
        self.raw_value = raw_value

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "parameter": self.name, "value": self.raw_value}


class UnsupportedValueError(ParameterValidationError):
    code = "unsupported_value"

    def __init__(self, name: str, value: Any, allowed: str | None = None) -> None:
        message = f"Value {value!r} is not supported for {name!r}."
        if allowed:
            message += f" Allowed: {allowed}."
        super().__init__(message)
        self.name = name
        self.value = value
        self.allowed = allowed

    def as_dict(self) -> dict[str, Any]:
        payload = {**super().as_dict(), "parameter": self.name, "value": self.value}
        if self.allowed:
            payload["allowed"] = self.allowed
        return payload


class SizeExceededError(ParameterValidationError):
    code = "size_exceeded"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Input exceeds max size limit of {limit} bytes.")
        self.limit = limit

    def as_dict(self) -> dict[str, Any]:
        return {**super().as_dict(), "limit": self.limit}


class ResourceError(ConversionError):
    """Temporary output storage could not be allocated or released."""

    code = "resource_failure"


class PipelineError(ConversionError):
    code = "conversion_failed"


class DecodeError(PipelineError):
    code = "decode_failed"


class EncodeError(PipelineError):
    code = "encode_failed"
