"""Track-attributed transcription events and their consumers.

Sessions report bare text and errors; the call layer stamps them with
the track id and a UTC timestamp and hands them to an EventSink.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class TranscriptFragment:
    """One unit of recognized text attributable to a track."""

    track_id: str
    text: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class TrackError:
    """A non-fatal failure attributable to a track."""

    track_id: str
    error: Exception
    timestamp: datetime = field(default_factory=_utcnow)


class EventSink(Protocol):
    """Ultimate consumer of transcription events for one call."""

    def on_transcript(self, fragment: TranscriptFragment) -> None: ...

    def on_error(self, error: TrackError) -> None: ...


class LoggingEventSink:
    """Writes transcription events as structured log lines."""

    def __init__(self, call_sid: str | None = None) -> None:
        self.call_sid = call_sid

    def on_transcript(self, fragment: TranscriptFragment) -> None:
        logger.info(
            "Transcription (%s): %s",
            fragment.track_id,
            fragment.text,
            extra={"call_sid": self.call_sid, "track": fragment.track_id},
        )

    def on_error(self, error: TrackError) -> None:
        logger.warning(
            "Transcription error (%s): %s",
            error.track_id,
            error.error,
            extra={
                "call_sid": self.call_sid,
                "track": error.track_id,
                "error": error.error,
            },
        )
