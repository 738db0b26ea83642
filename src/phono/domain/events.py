"""Domain event contracts for conversion workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class ConversionRequested(DomainEvent):
    """Input and output formats were resolved for a request."""


@dataclass(frozen=True, slots=True)
class ConversionValidated(DomainEvent):
    """Encoder parameters passed validation."""


@dataclass(frozen=True, slots=True)
class OutputAcquired(DomainEvent):
    """A scoped output resource was allocated for the job."""


@dataclass(frozen=True, slots=True)
class ConversionCompleted(DomainEvent):
    """The pipeline finished and the encoded output is ready for delivery."""


@dataclass(frozen=True, slots=True)
class ConversionFailed(DomainEvent):
    """The job aborted at the stage named in its payload."""


@dataclass(frozen=True, slots=True)
class OutputReleased(DomainEvent):
    """The job's output resource was closed and removed."""
