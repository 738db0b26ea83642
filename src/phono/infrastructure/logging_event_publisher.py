"""Event publisher that writes job lifecycle events to the log."""

from __future__ import annotations

import logging

from phono.domain.events import ConversionFailed, DomainEvent

LOGGER = logging.getLogger("phono.events")


class LoggingEventPublisher:
    """Log each event with its payload in ``extra``; failures log at WARNING."""

    def __init__(self, logger: logging.Logger = LOGGER) -> None:
        self._logger = logger

    def publish(self, event: DomainEvent) -> None:
        level = logging.WARNING if isinstance(event, ConversionFailed) else logging.INFO
        self._logger.log(
            level,
            "%s correlation_id=%s",
            type(event).__name__,
            event.correlation_id,
            extra={
                "event_name": type(event).__name__,
                "correlation_id": event.correlation_id,
                "payload_summary": event.payload_summary,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
