"""Shared fakes for recognition session, registry, and call handler tests."""

from __future__ import annotations

import pytest

from call_transcriber.call.events import TrackError, TranscriptFragment
from call_transcriber.recognition.interface import (
    BackendStream,
    RecognitionBackend,
    RecognitionConfig,
    RecognitionResult,
    StreamListener,
)
from call_transcriber.recognition.session import RecognitionSession
from call_transcriber.utils.errors import RecognitionError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStream(BackendStream):
    """Backend stream that records writes and lets tests fire callbacks."""

    def __init__(self, listener: StreamListener) -> None:
        self.listener = listener
        self.writes: list[bytes] = []
        self.destroy_calls = 0
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def write(self, chunk: bytes) -> None:
        self.writes.append(chunk)

    def destroy(self) -> None:
        self.destroy_calls += 1
        self._destroyed = True

    def emit_transcript(self, *alternatives: str) -> None:
        self.listener.on_data(self, [RecognitionResult(alternatives=list(alternatives))])

    def emit_error(self, error: Exception) -> None:
        self._destroyed = True
        self.listener.on_error(self, error)

    def emit_end(self) -> None:
        self._destroyed = True
        self.listener.on_end(self)

    def emit_close(self) -> None:
        self._destroyed = True
        self.listener.on_close(self)


class FakeBackend(RecognitionBackend):
    """Backend that hands out FakeStreams and can be told to fail opens."""

    provider_name = "fake"

    def __init__(self) -> None:
        self.streams: list[FakeStream] = []
        self.configs: list[RecognitionConfig] = []
        self.fail_opens = 0

    def open(self, config: RecognitionConfig, listener: StreamListener) -> FakeStream:
        if self.fail_opens > 0:
            self.fail_opens -= 1
            raise RecognitionError("backend unreachable", provider="fake")
        stream = FakeStream(listener)
        self.streams.append(stream)
        self.configs.append(config)
        return stream


class RecordingObserver:
    def __init__(self) -> None:
        self.transcripts: list[str] = []
        self.errors: list[Exception] = []

    def on_transcription(self, text: str) -> None:
        self.transcripts.append(text)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)


class RecordingSink:
    def __init__(self) -> None:
        self.fragments: list[TranscriptFragment] = []
        self.errors: list[TrackError] = []

    def on_transcript(self, fragment: TranscriptFragment) -> None:
        self.fragments.append(fragment)

    def on_error(self, error: TrackError) -> None:
        self.errors.append(error)


RECOGNITION_CONFIG = RecognitionConfig(
    encoding="MULAW", sample_rate_hz=8000, language_code="en-US"
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_session(backend: FakeBackend, clock: FakeClock):
    """Build RecognitionSessions wired to the fake backend and clock."""

    def _make(observer=None, stream_timeout_seconds=60.0, retry_cooldown_seconds=1.0):
        return RecognitionSession(
            backend,
            RECOGNITION_CONFIG,
            observer=observer,
            stream_timeout_seconds=stream_timeout_seconds,
            retry_cooldown_seconds=retry_cooldown_seconds,
            clock=clock,
            label="inbound",
        )

    return _make


@pytest.fixture
def session_factory(backend: FakeBackend, clock: FakeClock):
    """SessionFactory(track_id, observer) backed by the fake backend."""

    def _factory(track_id, observer):
        return RecognitionSession(
            backend,
            RECOGNITION_CONFIG,
            observer=observer,
            clock=clock,
            label=track_id,
        )

    return _factory
