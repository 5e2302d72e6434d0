"""Null recognition backend: accepts audio and never produces results.

Used for local runs without cloud credentials. Streams report only
their own destruction.
"""

from call_transcriber.recognition.interface import (
    BackendStream,
    RecognitionBackend,
    RecognitionConfig,
    StreamListener,
)


class NullStream(BackendStream):
    """Discards written audio and counts bytes."""

    def __init__(self, listener: StreamListener) -> None:
        self._listener = listener
        self._destroyed = False
        self.bytes_written = 0

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def write(self, chunk: bytes) -> None:
        self.bytes_written += len(chunk)

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._listener.on_close(self)


class NullRecognitionBackend(RecognitionBackend):
    """Backend whose streams discard audio."""

    provider_name = "null"

    def open(self, config: RecognitionConfig, listener: StreamListener) -> NullStream:
        return NullStream(listener)
