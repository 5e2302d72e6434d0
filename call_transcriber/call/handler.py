"""Per-call media stream handler.

Drives the AWAITING_START -> ACTIVE -> ENDED state machine for one call,
routes decoded audio to the right track's recognition session, and tears
every session down when the call ends. Frames are processed one at a
time in arrival order; nothing raised while handling a frame escapes
handle_message().
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from call_transcriber.call.events import EventSink, LoggingEventSink, TrackError
from call_transcriber.call.frames import (
    CallMetadata,
    IgnoredSignal,
    MediaFrame,
    Signal,
    StartSignal,
    StopSignal,
    decode_message,
)
from call_transcriber.call.registry import SessionFactory, TrackRegistry
from call_transcriber.observability.metrics import CallMetrics, log_call_metrics
from call_transcriber.utils.errors import FrameDecodeError

logger = logging.getLogger(__name__)


class CallState(Enum):
    """Lifecycle state of a call."""

    AWAITING_START = "awaiting_start"
    ACTIVE = "active"
    ENDED = "ended"


class CallHandler:
    """Handles the media stream of a single call.

    Args:
        session_factory: Callable(track_id, observer) -> RecognitionSession.
        sink: Receives track-attributed transcripts and errors. Defaults to
            a LoggingEventSink.
        clock: Monotonic time source used for the call duration metric.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        sink: EventSink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logging_sink = LoggingEventSink() if sink is None else None
        self._sink: EventSink = sink if sink is not None else self._logging_sink
        self._registry = TrackRegistry(session_factory, self._sink)
        self._clock = clock
        self._started_at: float | None = None
        self.state = CallState.AWAITING_START
        self.metadata: CallMetadata | None = None

    @property
    def registry(self) -> TrackRegistry:
        return self._registry

    @property
    def call_sid(self) -> str | None:
        return self.metadata.call_sid if self.metadata else None

    def handle_message(self, message: str | bytes | dict[str, Any]) -> None:
        """Decode and handle one envelope. Never raises."""
        try:
            signal = decode_message(message)
        except FrameDecodeError as exc:
            self._report_decode_error(exc)
            return
        except Exception:
            logger.error(
                "Unexpected error decoding message",
                extra={"call_sid": self.call_sid},
                exc_info=True,
            )
            return

        try:
            self.handle_signal(signal)
        except Exception:
            logger.error(
                "Unexpected error handling %s signal",
                type(signal).__name__,
                extra={"call_sid": self.call_sid},
                exc_info=True,
            )

    def handle_binary(self, data: bytes) -> None:
        logger.info(
            "Media WS: binary message received (not supported, %d bytes)",
            len(data),
            extra={"call_sid": self.call_sid},
        )

    def handle_signal(self, signal: Signal) -> None:
        """Apply a decoded signal to the call state machine."""
        if isinstance(signal, StartSignal):
            self._on_start(signal.metadata)
        elif isinstance(signal, MediaFrame):
            self._on_media(signal)
        elif isinstance(signal, StopSignal):
            self._on_stop(signal)
        elif isinstance(signal, IgnoredSignal):
            logger.debug(
                "Ignoring '%s' event",
                signal.event,
                extra={"call_sid": self.call_sid, "event": signal.event},
            )

    def close(self) -> None:
        """End the call when the transport closes. Idempotent."""
        if self.state is CallState.ENDED:
            return
        logger.info("Media WS: closed", extra={"call_sid": self.call_sid})
        self._end(status="disconnected")

    # -- transitions --

    def _on_start(self, metadata: CallMetadata) -> None:
        if self.state is not CallState.AWAITING_START:
            logger.warning(
                "Ignoring start for call %s in state %s",
                metadata.call_sid,
                self.state.value,
                extra={"call_sid": self.call_sid, "event": "start"},
            )
            return

        self.metadata = metadata
        self.state = CallState.ACTIVE
        self._started_at = self._clock()
        self._registry.call_sid = metadata.call_sid
        if self._logging_sink is not None:
            self._logging_sink.call_sid = metadata.call_sid
        logger.info(
            "Call started: tracks=%s format=%s",
            ",".join(metadata.tracks),
            metadata.media_format,
            extra={
                "call_sid": metadata.call_sid,
                "stream_sid": metadata.stream_sid,
                "event": "start",
            },
        )

    def _on_media(self, frame: MediaFrame) -> None:
        if self.state is not CallState.ACTIVE:
            logger.debug(
                "Dropping media for track %s in state %s",
                frame.track,
                self.state.value,
                extra={"call_sid": self.call_sid, "track": frame.track},
            )
            return

        session = self._registry.get_or_create(frame.track)
        session.send(frame.audio)

    def _on_stop(self, signal: StopSignal) -> None:
        if self.state is CallState.ENDED:
            logger.debug("Ignoring repeated stop", extra={"call_sid": self.call_sid})
            return
        if self.call_sid and signal.call_sid and signal.call_sid != self.call_sid:
            logger.warning(
                "Stop for call %s received on stream of call %s",
                signal.call_sid,
                self.call_sid,
                extra={"call_sid": self.call_sid, "event": "stop"},
            )
        logger.info(
            "Call ended", extra={"call_sid": self.call_sid, "event": "stop"}
        )
        self._end(status="completed")

    def _end(self, status: str) -> None:
        self.state = CallState.ENDED
        self._registry.close_all()

        duration = 0.0
        if self._started_at is not None:
            duration = self._clock() - self._started_at
        log_call_metrics(
            CallMetrics(
                call_sid=self.call_sid or "",
                stream_sid=self.metadata.stream_sid if self.metadata else "",
                status=status,
                duration_seconds=duration,
                tracks=self._registry.stats(),
            )
        )

    def _report_decode_error(self, exc: FrameDecodeError) -> None:
        logger.warning(
            "Dropping undecodable message",
            extra={"call_sid": self.call_sid, "event": exc.event, "error": exc},
        )
        if exc.track_id and self.state is CallState.ACTIVE:
            try:
                self._sink.on_error(TrackError(track_id=exc.track_id, error=exc))
            except Exception:
                logger.error(
                    "Event sink failed", extra={"call_sid": self.call_sid}, exc_info=True
                )
