"""Streaming speech recognition sessions and pluggable backends.

Public API:
    RecognitionBackend      - Abstract base class for streaming backends.
    BackendStream           - One live streaming connection.
    RecognitionConfig       - Fixed audio/language configuration.
    RecognitionResult       - One result with ranked alternatives.
    RecognitionSession      - Per-track session with transparent renewal.
    StreamState             - ABSENT / OPEN / DESTROYED stream state.
    get_recognition_backend - Factory to create backends by provider name.
"""

from call_transcriber.recognition.interface import (
    BackendStream,
    RecognitionBackend,
    RecognitionConfig,
    RecognitionResult,
)
from call_transcriber.recognition.registry import get_recognition_backend
from call_transcriber.recognition.session import RecognitionSession, StreamState

__all__ = [
    "BackendStream",
    "RecognitionBackend",
    "RecognitionConfig",
    "RecognitionResult",
    "RecognitionSession",
    "StreamState",
    "get_recognition_backend",
]
