"""HTTP and WebSocket surface of the call transcriber.

POST /twiml returns the TwiML document that tells the telephony provider
where to open its media stream. The WebSocket endpoint at / accepts that
stream and drives one CallHandler per connection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from xml.sax.saxutils import quoteattr

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse, Response

from call_transcriber.call.events import EventSink
from call_transcriber.call.handler import CallHandler
from call_transcriber.call.registry import SessionFactory
from call_transcriber.config import Settings
from call_transcriber.recognition.interface import RecognitionBackend
from call_transcriber.recognition.registry import get_recognition_backend
from call_transcriber.recognition.session import RecognitionSession, SessionObserver

logger = logging.getLogger(__name__)

FALLBACK_TWIML = """<?xml version="1.0" encoding="UTF-8"?>
<Response>
  <Start>
    <Stream url={url}></Stream>
  </Start>
  <Pause length="40"/>
</Response>"""


def build_session_factory(
    settings: Settings, backend: RecognitionBackend
) -> SessionFactory:
    """Bind the shared backend and settings into a per-track session factory."""
    config = settings.recognition_config()

    def create_session(track_id: str, observer: SessionObserver) -> RecognitionSession:
        return RecognitionSession(
            backend,
            config,
            observer=observer,
            stream_timeout_seconds=settings.stream_timeout_seconds,
            retry_cooldown_seconds=settings.retry_cooldown_seconds,
            label=track_id,
        )

    return create_session


def render_twiml(settings: Settings) -> str:
    """Return the TwiML template, or the inline fallback if it is unreadable."""
    try:
        return Path(settings.twiml_template_path).read_text(encoding="utf-8")
    except OSError:
        logger.info("Template file not found, using inline TwiML")
        return FALLBACK_TWIML.format(url=quoteattr(settings.stream_url))


def create_app(
    settings: Settings | None = None,
    backend: RecognitionBackend | None = None,
    sink_factory: Callable[[], EventSink] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Service settings (defaults to Settings.from_env()).
        backend: Recognition backend shared by all calls (defaults to the
            configured provider).
        sink_factory: Creates the event sink for each call (defaults to a
            LoggingEventSink per call).

    Returns:
        Configured FastAPI app.
    """
    if settings is None:
        settings = Settings.from_env()
    if backend is None:
        backend = get_recognition_backend(settings.recognition_provider)
    session_factory = build_session_factory(settings, backend)

    app = FastAPI(title="Call Transcriber")
    app.state.settings = settings
    app.state.backend = backend

    @app.post("/twiml")
    async def twiml() -> Response:
        logger.info("POST TwiML")
        return Response(content=render_twiml(settings), media_type="text/xml")

    @app.get("/health")
    async def health() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.websocket("/")
    async def media_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Media WS: Connection accepted")
        sink = sink_factory() if sink_factory is not None else None
        handler = CallHandler(session_factory, sink=sink)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                if message.get("text") is not None:
                    handler.handle_message(message["text"])
                elif message.get("bytes") is not None:
                    handler.handle_binary(message["bytes"])
        except WebSocketDisconnect:
            logger.info("Media WS: Connection closed by peer")
        finally:
            handler.close()

    return app
