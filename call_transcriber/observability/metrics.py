"""Per-call transcription metrics collection and reporting.

Provides SessionStats counters kept by every recognition session,
the CallMetrics envelope assembled when a call ends, and
log_call_metrics() for emitting metrics as structured JSON to stdout.

Metrics are ingested by GCP Cloud Logging alongside regular log lines.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime


@dataclass
class SessionStats:
    """Counters for a single recognition session (one track)."""

    chunks_received: int = 0
    chunks_forwarded: int = 0
    chunks_dropped: int = 0
    streams_opened: int = 0
    renewals: int = 0
    errors: int = 0
    transcripts: int = 0


@dataclass
class CallMetrics:
    """All metrics collected for a single call."""

    call_sid: str
    stream_sid: str
    status: str
    duration_seconds: float
    tracks: dict[str, SessionStats] = field(default_factory=dict)

    @property
    def total_transcripts(self) -> int:
        return sum(stats.transcripts for stats in self.tracks.values())

    @property
    def total_dropped(self) -> int:
        return sum(stats.chunks_dropped for stats in self.tracks.values())


def log_call_metrics(metrics: CallMetrics) -> None:
    """Emit call metrics as a single structured JSON line to stdout.

    The JSON envelope includes timestamp, severity, and metric_type
    fields for GCP Cloud Logging structured log parsing. All
    CallMetrics fields are spread into the top level.

    Args:
        metrics: Populated CallMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "call_completion",
        **asdict(metrics),
        "total_transcripts": metrics.total_transcripts,
        "total_dropped": metrics.total_dropped,
    }
    print(json.dumps(entry))
