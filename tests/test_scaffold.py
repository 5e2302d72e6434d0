"""Tests for project scaffold: imports, logger, and custom exceptions."""

import json
import logging

import pytest

from call_transcriber.observability.logger import StructuredJsonFormatter, setup_logging
from call_transcriber.utils.errors import (
    ConfigurationError,
    FrameDecodeError,
    RecognitionError,
    RegistryClosedError,
    TranscriberError,
)


class TestModuleImports:
    """Verify all package modules are importable."""

    def test_top_level_import(self) -> None:
        import call_transcriber

        assert call_transcriber is not None

    def test_subpackage_imports(self) -> None:
        import call_transcriber.call
        import call_transcriber.observability.logger
        import call_transcriber.observability.metrics
        import call_transcriber.recognition
        import call_transcriber.server

        assert call_transcriber.call is not None
        assert call_transcriber.recognition is not None
        assert call_transcriber.server is not None

    def test_public_api_exports(self) -> None:
        from call_transcriber.call import CallHandler, TrackRegistry
        from call_transcriber.recognition import RecognitionSession, get_recognition_backend

        assert CallHandler is not None
        assert TrackRegistry is not None
        assert RecognitionSession is not None
        assert callable(get_recognition_backend)


class TestCustomExceptions:
    """Verify custom exception hierarchy and string representations."""

    def test_all_exceptions_inherit_from_transcriber_error(self) -> None:
        exception_classes = [
            FrameDecodeError,
            RecognitionError,
            RegistryClosedError,
            ConfigurationError,
        ]
        for cls in exception_classes:
            assert issubclass(cls, TranscriberError), (
                f"{cls.__name__} must inherit from TranscriberError"
            )

    def test_transcriber_error_str_without_call_sid(self) -> None:
        error = TranscriberError("something failed")
        assert str(error) == "something failed"

    def test_transcriber_error_str_with_call_sid(self) -> None:
        error = TranscriberError("something failed", call_sid="CA-123")
        assert str(error) == "[call=CA-123] something failed"

    def test_frame_decode_error_includes_context(self) -> None:
        error = FrameDecodeError(
            "bad payload", call_sid="CA-1", event="media", track_id="inbound"
        )
        assert error.event == "media"
        assert error.track_id == "inbound"
        assert "[call=CA-1]" in str(error)

    def test_recognition_error_includes_provider(self) -> None:
        error = RecognitionError("quota exceeded", provider="google")
        assert error.provider == "google"

    def test_configuration_error_includes_key(self) -> None:
        error = ConfigurationError("bad port", key="SERVER_PORT")
        assert error.key == "SERVER_PORT"
        assert str(error) == "bad port"

    def test_exceptions_are_catchable_as_transcriber_error(self) -> None:
        with pytest.raises(TranscriberError):
            raise RegistryClosedError("closed", track_id="inbound")


def _record(message: str, level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.json_output",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    """Verify structured JSON logger output format."""

    def test_output_is_valid_json(self) -> None:
        parsed = json.loads(StructuredJsonFormatter().format(_record("test message")))

        assert parsed["message"] == "test message"
        assert parsed["logger"] == "test.json_output"
        assert "timestamp" in parsed
        assert "severity" in parsed

    def test_severity_levels(self) -> None:
        formatter = StructuredJsonFormatter()

        warning = json.loads(formatter.format(_record("careful", logging.WARNING)))
        error = json.loads(formatter.format(_record("broken", logging.ERROR)))

        assert warning["severity"] == "WARNING"
        assert error["severity"] == "ERROR"

    def test_includes_extra_fields(self) -> None:
        record = _record(
            "Transcription (inbound): hello",
            call_sid="CA-42",
            track="inbound",
            error=RuntimeError("stream reset"),
        )

        parsed = json.loads(StructuredJsonFormatter().format(record))

        assert parsed["call_sid"] == "CA-42"
        assert parsed["track"] == "inbound"
        assert parsed["error"] == "stream reset"
        assert "stream_sid" not in parsed

    def test_timestamp_format(self) -> None:
        parsed = json.loads(StructuredJsonFormatter().format(_record("check format")))
        # ISO 8601: YYYY-MM-DDTHH:MM:SSZ
        timestamp = parsed["timestamp"]
        assert timestamp.endswith("Z")
        assert "T" in timestamp

    def test_exception_message_included(self) -> None:
        record = _record("failed")
        record.exc_info = (ValueError, ValueError("boom"), None)

        parsed = json.loads(StructuredJsonFormatter().format(record))
        assert parsed["exception"] == "boom"


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level
        yield
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)

    def test_installs_single_json_handler(self) -> None:
        setup_logging("debug")
        setup_logging("debug")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredJsonFormatter)
