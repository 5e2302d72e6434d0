"""Long-lived streaming recognition session with transparent renewal.

A RecognitionSession keeps one backend stream warm across many small
audio writes. The stream is replaced on the next send when it is missing,
was destroyed by a backend error/end/close callback, or is older than the
configured maximum stream lifetime. Audio is never queued or retried: if
no usable stream is available the chunk is dropped and counted.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from call_transcriber.observability.metrics import SessionStats
from call_transcriber.recognition.interface import (
    BackendStream,
    RecognitionBackend,
    RecognitionConfig,
    RecognitionResult,
)
from call_transcriber.utils.errors import RecognitionError

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """State of the session's current backend stream."""

    ABSENT = "absent"
    OPEN = "open"
    DESTROYED = "destroyed"


class SessionObserver(Protocol):
    """Receives transcription text and errors from a session."""

    def on_transcription(self, text: str) -> None: ...

    def on_error(self, error: Exception) -> None: ...


def first_transcript(results: list[RecognitionResult]) -> str | None:
    """Return the stripped top transcript of a result batch, if any.

    Only the first alternative of the first result is inspected; lower
    ranked alternatives are never promoted.
    """
    if not results:
        return None
    alternatives = results[0].alternatives
    if not alternatives:
        return None
    text = (alternatives[0] or "").strip()
    return text or None


class RecognitionSession:
    """Wraps one backend stream at a time, renewing it as needed.

    State changes (opening, renewing, and destruction reported by backend
    callbacks) happen under a per-session lock so a renewal triggered by
    send() and an error delivered by the backend agree on which stream
    is current. Callbacks from retired streams never alter state.

    Args:
        backend: Stream factory shared across the process.
        config: Fixed encoding, sample rate, and language for every stream.
        observer: Receives transcripts and errors (the owning track).
        stream_timeout_seconds: Maximum age of a stream before renewal.
        retry_cooldown_seconds: Minimum wait after a failure before reopening.
        clock: Monotonic time source in seconds.
        label: Name used in log lines (usually the track id).
    """

    def __init__(
        self,
        backend: RecognitionBackend,
        config: RecognitionConfig,
        observer: SessionObserver | None = None,
        stream_timeout_seconds: float = 60.0,
        retry_cooldown_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        label: str = "",
    ) -> None:
        if stream_timeout_seconds <= 0:
            raise ValueError("stream_timeout_seconds must be positive")
        if retry_cooldown_seconds <= 0:
            raise ValueError("retry_cooldown_seconds must be positive")
        self._backend = backend
        self._config = config
        self._observer = observer
        self._stream_timeout = stream_timeout_seconds
        self._retry_cooldown = retry_cooldown_seconds
        self._clock = clock
        self._label = label
        # Reentrant: a backend may report on_close synchronously from destroy().
        self._lock = threading.RLock()
        self._stream: BackendStream | None = None
        self._state = StreamState.ABSENT
        self._created_at: float | None = None
        self._failed_at: float | None = None
        self._closed = False
        self.stats = SessionStats()

    @property
    def config(self) -> RecognitionConfig:
        return self._config

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stream_age(self) -> float | None:
        """Seconds since the current stream was opened, or None."""
        if self._created_at is None or self._stream is None:
            return None
        return self._clock() - self._created_at

    def set_observer(self, observer: SessionObserver) -> None:
        self._observer = observer

    def send(self, audio_chunk: bytes) -> None:
        """Forward a chunk of raw audio, opening or renewing the stream first.

        Never raises. Chunks that cannot be delivered are dropped.

        Args:
            audio_chunk: Raw audio in the configured encoding.
        """
        self.stats.chunks_received += 1

        if self._closed:
            self.stats.chunks_dropped += 1
            logger.debug(
                "Session closed, ignoring audio chunk", extra={"track": self._label}
            )
            return

        try:
            stream = self._ensure_stream()
        except RecognitionError as exc:
            self.stats.chunks_dropped += 1
            logger.warning(
                "Failed to open recognition stream, dropping audio chunk",
                extra={"track": self._label, "error": exc},
            )
            self._notify_error(exc)
            return

        if stream is None:
            self.stats.chunks_dropped += 1
            logger.debug(
                "Stream not ready, skipping audio chunk",
                extra={"track": self._label},
            )
            return

        try:
            stream.write(audio_chunk)
        except Exception as exc:
            self.stats.chunks_dropped += 1
            logger.warning(
                "Error sending audio to recognition stream",
                extra={"track": self._label, "error": exc},
            )
            self._mark_failed(stream)
            self._notify_error(exc)
            return

        self.stats.chunks_forwarded += 1

    def close(self) -> None:
        """Close the session and tear down its stream. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            stream = self._stream
            live = stream is not None and self._state is StreamState.OPEN
            self._stream = None
            self._state = StreamState.ABSENT
            if live:
                self._destroy_quietly(stream)

        logger.debug("Recognition session closed", extra={"track": self._label})

    # -- StreamListener callbacks --

    def on_data(
        self, stream: BackendStream, results: list[RecognitionResult]
    ) -> None:
        if self._closed:
            return
        text = first_transcript(results)
        if text is None:
            return
        self.stats.transcripts += 1
        if self._observer is not None:
            try:
                self._observer.on_transcription(text)
            except Exception:
                logger.error(
                    "Transcription observer failed",
                    extra={"track": self._label},
                    exc_info=True,
                )

    def on_error(self, stream: BackendStream, error: Exception) -> None:
        if not self._mark_failed(stream):
            logger.debug(
                "Ignoring error from retired stream",
                extra={"track": self._label, "error": error},
            )
            return
        logger.error(
            "Speech recognition error",
            extra={"track": self._label, "error": error},
        )
        if not self._closed:
            self._notify_error(error)

    def on_end(self, stream: BackendStream) -> None:
        if self._mark_destroyed(stream):
            logger.info(
                "Speech recognition stream ended", extra={"track": self._label}
            )

    def on_close(self, stream: BackendStream) -> None:
        if self._mark_destroyed(stream):
            logger.info(
                "Speech recognition stream closed", extra={"track": self._label}
            )

    # -- internals --

    def _ensure_stream(self) -> BackendStream | None:
        """Return a usable stream, renewing the current one if required.

        Returns None when the session is closed or cooling down after a
        failure.

        Raises:
            RecognitionError: If the backend fails to open a new stream.
        """
        with self._lock:
            if self._closed:
                return None

            now = self._clock()
            if not self._renewal_required(now):
                return self._stream

            if (
                self._failed_at is not None
                and now - self._failed_at < self._retry_cooldown
            ):
                return None

            previous = self._stream
            if previous is not None and self._state is StreamState.OPEN:
                self._destroy_quietly(previous)
            self._stream = None
            self._state = StreamState.ABSENT

            try:
                stream = self._backend.open(self._config, self)
            except RecognitionError:
                self._failed_at = now
                self.stats.errors += 1
                raise
            except Exception as exc:
                self._failed_at = now
                self.stats.errors += 1
                raise RecognitionError(
                    f"Failed to open recognition stream: {exc}",
                    provider=self._backend.provider_name,
                ) from exc

            if self.stats.streams_opened > 0:
                self.stats.renewals += 1
                logger.info(
                    "Renewed speech recognition stream",
                    extra={"track": self._label},
                )
            self.stats.streams_opened += 1
            self._stream = stream
            self._state = StreamState.OPEN
            self._created_at = now
            self._failed_at = None
            return stream

    def _renewal_required(self, now: float) -> bool:
        if self._stream is None or self._state is not StreamState.OPEN:
            return True
        if self._stream.destroyed:
            self._state = StreamState.DESTROYED
            return True
        return now - (self._created_at or 0.0) > self._stream_timeout

    def _mark_destroyed(self, stream: BackendStream) -> bool:
        """Flag the stream destroyed if it is current. Returns True if it was."""
        with self._lock:
            if stream is not self._stream:
                return False
            self._state = StreamState.DESTROYED
            return True

    def _mark_failed(self, stream: BackendStream) -> bool:
        with self._lock:
            if stream is not self._stream:
                return False
            self._state = StreamState.DESTROYED
            self._failed_at = self._clock()
            self.stats.errors += 1
            return True

    def _destroy_quietly(self, stream: BackendStream) -> None:
        try:
            stream.destroy()
        except Exception:
            logger.warning(
                "Failed to destroy recognition stream",
                extra={"track": self._label},
                exc_info=True,
            )

    def _notify_error(self, error: Exception) -> None:
        if self._observer is None:
            return
        try:
            self._observer.on_error(error)
        except Exception:
            logger.error(
                "Error observer failed", extra={"track": self._label}, exc_info=True
            )
