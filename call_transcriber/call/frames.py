"""Media stream envelope decoding.

Decodes the JSON envelopes of a Twilio-style media stream into typed
signals: StartSignal, MediaFrame, StopSignal, or IgnoredSignal for
events the handler does not act on (connected, mark, unknown).
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any

from call_transcriber.utils.errors import FrameDecodeError


@dataclass(frozen=True)
class MediaFormat:
    """Audio format descriptor announced in the start message."""

    encoding: str
    sample_rate: int
    channels: int

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> MediaFormat:
        try:
            return cls(
                encoding=str(body.get("encoding", "")),
                sample_rate=int(body.get("sampleRate", 0)),
                channels=int(body.get("channels", 1)),
            )
        except (TypeError, ValueError) as exc:
            raise FrameDecodeError(
                f"Invalid 'mediaFormat': {exc}", event="start"
            ) from exc


@dataclass(frozen=True)
class CallMetadata:
    """Call and stream identifiers recorded when a call starts."""

    stream_sid: str
    account_sid: str
    call_sid: str
    tracks: tuple[str, ...] = ()
    custom_parameters: dict[str, Any] = field(default_factory=dict)
    media_format: MediaFormat | None = None


@dataclass(frozen=True)
class StartSignal:
    metadata: CallMetadata


@dataclass(frozen=True)
class MediaFrame:
    """Decoded audio for one track."""

    track: str
    audio: bytes
    chunk: int | None = None
    timestamp: int | None = None


@dataclass(frozen=True)
class StopSignal:
    account_sid: str
    call_sid: str


@dataclass(frozen=True)
class IgnoredSignal:
    event: str


Signal = StartSignal | MediaFrame | StopSignal | IgnoredSignal


def decode_message(message: str | bytes | dict[str, Any]) -> Signal:
    """Decode one media stream envelope.

    Args:
        message: Raw JSON text/bytes or an already-parsed envelope.

    Returns:
        The decoded signal.

    Raises:
        FrameDecodeError: If the envelope is not valid JSON, lacks an
            event discriminant, or a known event has a malformed body.
    """
    if isinstance(message, dict):
        envelope = message
    else:
        try:
            envelope = json.loads(message)
        except (TypeError, ValueError, RecursionError) as exc:
            raise FrameDecodeError(f"Envelope is not valid JSON: {exc}") from exc

    if not isinstance(envelope, dict):
        raise FrameDecodeError("Envelope must be a JSON object")

    event = envelope.get("event")
    if not event or not isinstance(event, str):
        raise FrameDecodeError("Missing or invalid 'event' in envelope")

    if event == "start":
        return _decode_start(envelope)
    if event == "media":
        return _decode_media(envelope)
    if event == "stop":
        return _decode_stop(envelope)
    return IgnoredSignal(event=event)


def _decode_start(envelope: dict[str, Any]) -> StartSignal:
    body = envelope.get("start")
    if not isinstance(body, dict):
        raise FrameDecodeError("Missing 'start' body", event="start")

    call_sid = body.get("callSid")
    if not call_sid or not isinstance(call_sid, str):
        raise FrameDecodeError("Missing or invalid 'callSid'", event="start")

    media_format = None
    if isinstance(body.get("mediaFormat"), dict):
        media_format = MediaFormat.from_body(body["mediaFormat"])

    tracks = body.get("tracks") or []
    if not isinstance(tracks, list):
        raise FrameDecodeError("Invalid 'tracks': expected a list", event="start")
    custom_parameters = body.get("customParameters") or {}

    metadata = CallMetadata(
        stream_sid=str(body.get("streamSid") or envelope.get("streamSid") or ""),
        account_sid=str(body.get("accountSid", "")),
        call_sid=call_sid,
        tracks=tuple(str(track) for track in tracks),
        custom_parameters=dict(custom_parameters)
        if isinstance(custom_parameters, dict)
        else {},
        media_format=media_format,
    )
    return StartSignal(metadata=metadata)


def _decode_media(envelope: dict[str, Any]) -> MediaFrame:
    body = envelope.get("media")
    if not isinstance(body, dict):
        raise FrameDecodeError("Missing 'media' body", event="media")

    track = body.get("track")
    if not track or not isinstance(track, str):
        raise FrameDecodeError("Missing or invalid 'track'", event="media")

    payload = body.get("payload")
    if not isinstance(payload, str):
        raise FrameDecodeError(
            "Missing or invalid 'payload'", event="media", track_id=track
        )
    try:
        audio = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FrameDecodeError(
            f"Payload is not valid base64: {exc}", event="media", track_id=track
        ) from exc

    return MediaFrame(
        track=track,
        audio=audio,
        chunk=_optional_int(body.get("chunk")),
        timestamp=_optional_int(body.get("timestamp")),
    )


def _decode_stop(envelope: dict[str, Any]) -> StopSignal:
    body = envelope.get("stop")
    if not isinstance(body, dict):
        body = {}
    return StopSignal(
        account_sid=str(body.get("accountSid", "")),
        call_sid=str(body.get("callSid", "")),
    )


def _optional_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
