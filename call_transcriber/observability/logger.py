"""Structured JSON logger for GCP Cloud Logging ingestion.

Outputs JSON to stdout with severity, timestamp, and message fields
compatible with GCP Cloud Logging's structured log format.
"""

import json
import logging
import sys
from datetime import UTC, datetime

EXTRA_FIELDS = ("call_sid", "stream_sid", "track", "event", "error")


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as JSON for GCP Cloud Logging."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Include extra fields passed via the `extra` kwarg
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value if key != "error" else str(value)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with structured JSON output on stdout.

    Replaces any handlers already installed on the root logger so repeated
    calls (e.g. under uvicorn reload) do not duplicate lines.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)

