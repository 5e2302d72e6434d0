"""Per-call registry of tracks and their recognition sessions.

Tracks are created lazily on the first frame for a track id and live
until the call ends; there is no per-track teardown.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from call_transcriber.call.events import EventSink, TrackError, TranscriptFragment
from call_transcriber.observability.metrics import SessionStats
from call_transcriber.recognition.session import RecognitionSession, SessionObserver
from call_transcriber.utils.errors import RegistryClosedError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, SessionObserver], RecognitionSession]


class Track:
    """One directional audio sub-stream of a call.

    Acts as the session's observer, attaching the track id to every
    transcript and error before passing it to the call's sink.
    """

    def __init__(
        self, track_id: str, session_factory: SessionFactory, sink: EventSink
    ) -> None:
        self.track_id = track_id
        self._sink = sink
        self.session = session_factory(track_id, self)

    def on_transcription(self, text: str) -> None:
        self._sink.on_transcript(TranscriptFragment(track_id=self.track_id, text=text))

    def on_error(self, error: Exception) -> None:
        self._sink.on_error(TrackError(track_id=self.track_id, error=error))


class TrackRegistry:
    """Maps track ids to Tracks for the lifetime of one call.

    Args:
        session_factory: Callable(track_id, observer) -> RecognitionSession.
        sink: Receives track-attributed events from every session.
        call_sid: Call identifier used in log lines and errors.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        sink: EventSink,
        call_sid: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._sink = sink
        self.call_sid = call_sid
        self._tracks: dict[str, Track] = {}
        self._closed = False

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks

    @property
    def track_ids(self) -> list[str]:
        return list(self._tracks)

    @property
    def closed(self) -> bool:
        return self._closed

    def get_or_create(self, track_id: str) -> RecognitionSession:
        """Return the session for a track, creating it on first use.

        Raises:
            RegistryClosedError: If close_all() has already run.
        """
        track = self._tracks.get(track_id)
        if track is not None:
            return track.session

        if self._closed:
            raise RegistryClosedError(
                f"Cannot create track '{track_id}' after call teardown",
                call_sid=self.call_sid,
                track_id=track_id,
            )

        track = Track(track_id, self._session_factory, self._sink)
        self._tracks[track_id] = track
        logger.info(
            "Created recognition session for track %s",
            track_id,
            extra={"call_sid": self.call_sid, "track": track_id},
        )
        return track.session

    def close_all(self) -> None:
        """Close every session. A failure on one does not stop the others."""
        self._closed = True
        for track_id, track in self._tracks.items():
            logger.info(
                "Closing %s handler",
                track_id,
                extra={"call_sid": self.call_sid, "track": track_id},
            )
            try:
                track.session.close()
            except Exception:
                logger.error(
                    "Failed to close session for track %s",
                    track_id,
                    extra={"call_sid": self.call_sid, "track": track_id},
                    exc_info=True,
                )

    def stats(self) -> dict[str, SessionStats]:
        return {track_id: track.session.stats for track_id, track in self._tracks.items()}
