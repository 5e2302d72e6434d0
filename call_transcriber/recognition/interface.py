"""Abstract streaming recognition backend interface.

Defines the RecognitionBackend and BackendStream ABCs plus the neutral
result data models. Concrete implementations (e.g., Google Cloud Speech)
subclass RecognitionBackend and translate provider responses into
RecognitionResult batches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class RecognitionConfig:
    """Fixed audio and language configuration for a streaming session."""

    encoding: str
    sample_rate_hz: int
    language_code: str
    interim_results: bool = True


@dataclass(frozen=True)
class RecognitionResult:
    """One result of a streaming response, alternatives ordered by rank."""

    alternatives: list[str] = field(default_factory=list)
    is_final: bool = False


class StreamListener(Protocol):
    """Receives events from a backend stream.

    Every callback is passed the originating stream so the listener can
    ignore events from streams it has already retired.
    """

    def on_data(
        self, stream: BackendStream, results: list[RecognitionResult]
    ) -> None: ...

    def on_error(self, stream: BackendStream, error: Exception) -> None: ...

    def on_end(self, stream: BackendStream) -> None: ...

    def on_close(self, stream: BackendStream) -> None: ...


class BackendStream(ABC):
    """One live streaming connection to a recognition backend."""

    @property
    @abstractmethod
    def destroyed(self) -> bool:
        """True once the stream can no longer accept audio."""

    @abstractmethod
    def write(self, chunk: bytes) -> None:
        """Queue raw audio for the backend without waiting for delivery."""

    @abstractmethod
    def destroy(self) -> None:
        """Tear the stream down. Must be idempotent and non-blocking."""


class RecognitionBackend(ABC):
    """Abstract base class for streaming recognition backends.

    A backend is shared by every session in the process and holds only
    configuration and a client handle.
    """

    provider_name: str = ""

    @abstractmethod
    def open(
        self, config: RecognitionConfig, listener: StreamListener
    ) -> BackendStream:
        """Open a new streaming connection.

        Args:
            config: Audio encoding, sample rate, and language for the stream.
            listener: Receives data, error, end, and close events.

        Returns:
            The new stream, ready to accept writes.

        Raises:
            RecognitionError: If the stream cannot be opened.
        """
