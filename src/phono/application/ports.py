"""Ports the conversion service depends on.

Infrastructure adapters implement these; tests substitute recording or
failing doubles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Callable, Protocol

from phono.domain.events import DomainEvent


@dataclass(frozen=True, slots=True)
class ScopedOutput:
    """A writable, seekable destination and the function that releases it."""

    handle: BinaryIO
    release: Callable[[], None]
    name: str | None = None


class OutputProvider(Protocol):
    def acquire(self, hint: str) -> ScopedOutput:
        """Allocate an output; ``hint`` is the file extension of the encoded result.

        Raises ResourceError when storage cannot be allocated. The returned
        ``release`` raises ResourceError when cleanup fails.
        """


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None:
        """Publish one job lifecycle event. Must not raise."""


class NullEventPublisher:
    """Drops every event; the default when nobody listens."""

    def publish(self, event: DomainEvent) -> None:  # noqa: ARG002
        return
