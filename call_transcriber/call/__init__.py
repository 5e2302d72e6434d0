"""Call-level media stream handling.

Public API:
    CallHandler        - State machine for one call's media stream.
    CallState          - AWAITING_START / ACTIVE / ENDED.
    TrackRegistry      - Lazily created recognition sessions per track.
    TranscriptFragment - Recognized text attributed to a track.
    TrackError         - Non-fatal failure attributed to a track.
    LoggingEventSink   - Default sink writing events as log lines.
    decode_message     - Decode one media stream envelope.
"""

from call_transcriber.call.events import (
    LoggingEventSink,
    TrackError,
    TranscriptFragment,
)
from call_transcriber.call.frames import decode_message
from call_transcriber.call.handler import CallHandler, CallState
from call_transcriber.call.registry import TrackRegistry

__all__ = [
    "CallHandler",
    "CallState",
    "LoggingEventSink",
    "TrackError",
    "TrackRegistry",
    "TranscriptFragment",
    "decode_message",
]
