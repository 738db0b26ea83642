from __future__ import annotations

import logging

from phono.domain.events import ConversionCompleted, ConversionFailed
from phono.infrastructure.logging_event_publisher import LoggingEventPublisher


def test_logging_publisher_emits_structured_record(caplog) -> None:
    event = ConversionCompleted(correlation_id="cid-9", payload_summary={"byte_count": 12})

    with caplog.at_level(logging.INFO, logger="phono.events"):
        LoggingEventPublisher().publish(event)

    record = caplog.records[-1]
    assert record.name == "phono.events"
    assert record.levelno == logging.INFO
    assert record.getMessage() == "ConversionCompleted correlation_id=cid-9"
    assert record.event_name == "ConversionCompleted"
    assert record.payload_summary == {"byte_count": 12}
    assert record.occurred_at == event.occurred_at.isoformat()


def test_failure_events_log_at_warning(caplog) -> None:
    event = ConversionFailed(correlation_id="cid", payload_summary={"stage": "pipeline"})

    with caplog.at_level(logging.INFO, logger="phono.events"):
        LoggingEventPublisher().publish(event)

    assert caplog.records[-1].levelno == logging.WARNING


def test_publisher_accepts_custom_logger(caplog) -> None:
    logger = logging.getLogger("phono.tests.audit")

    with caplog.at_level(logging.INFO, logger="phono.tests.audit"):
        LoggingEventPublisher(logger).publish(
            ConversionCompleted(correlation_id="x", payload_summary={})
        )

    assert caplog.records[-1].name == "phono.tests.audit"


def test_events_are_timestamped_in_utc() -> None:
    event = ConversionFailed(correlation_id="cid", payload_summary={"stage": "pipeline"})

    assert event.occurred_at.utcoffset().total_seconds() == 0
