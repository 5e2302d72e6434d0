"""Tests for media stream envelope decoding."""

import base64
import json

import pytest

from call_transcriber.call.frames import (
    IgnoredSignal,
    MediaFormat,
    MediaFrame,
    StartSignal,
    StopSignal,
    decode_message,
)
from call_transcriber.utils.errors import FrameDecodeError

START_ENVELOPE = {
    "event": "start",
    "sequenceNumber": "1",
    "start": {
        "accountSid": "AC-1",
        "streamSid": "MZ-1",
        "callSid": "CA-1",
        "tracks": ["inbound", "outbound"],
        "customParameters": {"agent": "42"},
        "mediaFormat": {"encoding": "audio/x-mulaw", "sampleRate": 8000, "channels": 1},
    },
    "streamSid": "MZ-1",
}


class TestStart:
    def test_decodes_metadata(self) -> None:
        signal = decode_message(json.dumps(START_ENVELOPE))

        assert isinstance(signal, StartSignal)
        metadata = signal.metadata
        assert metadata.call_sid == "CA-1"
        assert metadata.account_sid == "AC-1"
        assert metadata.stream_sid == "MZ-1"
        assert metadata.tracks == ("inbound", "outbound")
        assert metadata.custom_parameters == {"agent": "42"}
        assert metadata.media_format == MediaFormat(
            encoding="audio/x-mulaw", sample_rate=8000, channels=1
        )

    def test_missing_media_format_is_allowed(self) -> None:
        envelope = {"event": "start", "start": {"callSid": "CA-1"}}
        signal = decode_message(envelope)

        assert signal.metadata.media_format is None
        assert signal.metadata.tracks == ()

    def test_missing_call_sid_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="callSid") as exc_info:
            decode_message({"event": "start", "start": {"streamSid": "MZ-1"}})
        assert exc_info.value.event == "start"

    @pytest.mark.parametrize("tracks", [5, True, "inbound", {"inbound": 1}])
    def test_non_list_tracks_raise(self, tracks) -> None:
        envelope = {"event": "start", "start": {"callSid": "CA-1", "tracks": tracks}}

        with pytest.raises(FrameDecodeError, match="tracks") as exc_info:
            decode_message(envelope)

        assert exc_info.value.event == "start"

    def test_invalid_sample_rate_raises(self) -> None:
        envelope = {
            "event": "start",
            "start": {"callSid": "CA-1", "mediaFormat": {"sampleRate": "fast"}},
        }
        with pytest.raises(FrameDecodeError, match="mediaFormat"):
            decode_message(envelope)


class TestMedia:
    def test_decodes_base64_payload(self) -> None:
        audio = bytes(range(160))
        envelope = {
            "event": "media",
            "media": {
                "track": "inbound",
                "chunk": "7",
                "timestamp": "140",
                "payload": base64.b64encode(audio).decode("ascii"),
            },
        }

        signal = decode_message(json.dumps(envelope).encode("utf-8"))

        assert signal == MediaFrame(track="inbound", audio=audio, chunk=7, timestamp=140)

    def test_invalid_base64_names_track(self) -> None:
        envelope = {"event": "media", "media": {"track": "outbound", "payload": "@@@"}}

        with pytest.raises(FrameDecodeError) as exc_info:
            decode_message(envelope)

        assert exc_info.value.track_id == "outbound"
        assert exc_info.value.event == "media"

    def test_missing_track_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="track"):
            decode_message({"event": "media", "media": {"payload": "AAAA"}})

    def test_missing_payload_raises(self) -> None:
        with pytest.raises(FrameDecodeError, match="payload"):
            decode_message({"event": "media", "media": {"track": "inbound"}})


class TestStopAndOthers:
    def test_decodes_stop(self) -> None:
        signal = decode_message(
            {"event": "stop", "stop": {"accountSid": "AC-1", "callSid": "CA-1"}}
        )
        assert signal == StopSignal(account_sid="AC-1", call_sid="CA-1")

    def test_stop_without_body(self) -> None:
        assert decode_message({"event": "stop"}) == StopSignal(account_sid="", call_sid="")

    @pytest.mark.parametrize("event", ["connected", "mark", "dtmf", "something-new"])
    def test_other_events_are_ignored_signals(self, event: str) -> None:
        assert decode_message({"event": event}) == IgnoredSignal(event=event)

    @pytest.mark.parametrize("raw", ["{", "42", '"text"', '{"event": 5}', "{}"])
    def test_malformed_envelopes_raise(self, raw: str) -> None:
        with pytest.raises(FrameDecodeError):
            decode_message(raw)

    def test_deeply_nested_json_raises_decode_error(self) -> None:
        raw = "[" * 100_000 + "]" * 100_000

        with pytest.raises(FrameDecodeError, match="not valid JSON"):
            decode_message(raw)
