"""DDD application layer."""

from .conversion_service import DEFAULT_BUFFER_SIZE, ConversionJob, ConvertAudio
from .ports import EventPublisher, NullEventPublisher, OutputProvider, ScopedOutput

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "ConversionJob",
    "ConvertAudio",
    "EventPublisher",
    "NullEventPublisher",
    "OutputProvider",
    "ScopedOutput",
]
