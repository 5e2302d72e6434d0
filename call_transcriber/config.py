"""Service configuration loaded from environment variables.

Settings are read once at startup (after .env is loaded by the entry
point) and passed explicitly to the server, backend, and sessions.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from call_transcriber.recognition.interface import RecognitionConfig
from call_transcriber.utils.errors import ConfigurationError

DEFAULT_STREAM_TIMEOUT_SECONDS = 60.0
DEFAULT_SAMPLE_RATE = 8000
DEFAULT_LANGUAGE = "en-US"
DEFAULT_ENCODING = "MULAW"
DEFAULT_RETRY_COOLDOWN_SECONDS = 1.0
# Upper bound for SPEECH_RETRY_COOLDOWN, in seconds.
MAX_RETRY_COOLDOWN_SECONDS = 30.0
DEFAULT_TWIML_TEMPLATE_PATH = str(Path(__file__).parent / "templates" / "streams.xml")


@dataclass(frozen=True)
class Settings:
    """Immutable service settings.

    Configuration from environment variables:
        SERVER_HOST, SERVER_PORT, SPEECH_STREAM_TIMEOUT, SPEECH_SAMPLE_RATE,
        SPEECH_LANGUAGE, SPEECH_ENCODING, SPEECH_RETRY_COOLDOWN,
        RECOGNITION_PROVIDER, STREAM_URL, TWIML_TEMPLATE_PATH, LOG_LEVEL
    """

    server_host: str = "localhost"
    server_port: int = 8080
    stream_timeout_seconds: float = DEFAULT_STREAM_TIMEOUT_SECONDS
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE
    language_code: str = DEFAULT_LANGUAGE
    encoding: str = DEFAULT_ENCODING
    retry_cooldown_seconds: float = DEFAULT_RETRY_COOLDOWN_SECONDS
    recognition_provider: str = "google"
    stream_url: str = "wss://localhost:8080/"
    twiml_template_path: str = DEFAULT_TWIML_TEMPLATE_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Validated Settings.

        Raises:
            ConfigurationError: If a numeric value is malformed or out of range.
        """
        env = os.environ if environ is None else environ

        stream_timeout = _parse_float(
            env, "SPEECH_STREAM_TIMEOUT", DEFAULT_STREAM_TIMEOUT_SECONDS
        )
        if stream_timeout <= 0:
            raise ConfigurationError(
                f"SPEECH_STREAM_TIMEOUT must be positive, got {stream_timeout}",
                key="SPEECH_STREAM_TIMEOUT",
            )

        cooldown = _parse_float(
            env, "SPEECH_RETRY_COOLDOWN", DEFAULT_RETRY_COOLDOWN_SECONDS
        )
        if not 0 < cooldown <= MAX_RETRY_COOLDOWN_SECONDS:
            raise ConfigurationError(
                f"SPEECH_RETRY_COOLDOWN must be in (0, "
                f"{MAX_RETRY_COOLDOWN_SECONDS}], got {cooldown}",
                key="SPEECH_RETRY_COOLDOWN",
            )

        sample_rate = _parse_int(env, "SPEECH_SAMPLE_RATE", DEFAULT_SAMPLE_RATE)
        if sample_rate <= 0:
            raise ConfigurationError(
                f"SPEECH_SAMPLE_RATE must be positive, got {sample_rate}",
                key="SPEECH_SAMPLE_RATE",
            )

        return cls(
            server_host=env.get("SERVER_HOST", "localhost"),
            server_port=_parse_int(env, "SERVER_PORT", 8080),
            stream_timeout_seconds=stream_timeout,
            sample_rate_hz=sample_rate,
            language_code=env.get("SPEECH_LANGUAGE", DEFAULT_LANGUAGE),
            encoding=env.get("SPEECH_ENCODING", DEFAULT_ENCODING).upper(),
            retry_cooldown_seconds=cooldown,
            recognition_provider=env.get("RECOGNITION_PROVIDER", "google"),
            stream_url=env.get("STREAM_URL", "wss://localhost:8080/"),
            twiml_template_path=env.get(
                "TWIML_TEMPLATE_PATH", DEFAULT_TWIML_TEMPLATE_PATH
            ),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    def recognition_config(self) -> RecognitionConfig:
        """Return the fixed recognition config shared by every session."""
        return RecognitionConfig(
            encoding=self.encoding,
            sample_rate_hz=self.sample_rate_hz,
            language_code=self.language_code,
        )


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{key} must be an integer, got '{raw}'", key=key
        ) from exc


def _parse_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{key} must be a number, got '{raw}'", key=key
        ) from exc
