"""Service entry point.

Loads .env, configures structured JSON logging, and serves the FastAPI
app with uvicorn.
"""

import logging

import uvicorn
from dotenv import load_dotenv

from call_transcriber.config import Settings
from call_transcriber.observability.logger import setup_logging
from call_transcriber.server import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the HTTP/WebSocket server."""
    load_dotenv()
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Call transcriber starting")

    app = create_app(settings)
    logger.info(
        "Listening on http://%s:%d (TwiML endpoint: /twiml, media stream: /)",
        settings.server_host,
        settings.server_port,
    )
    # log_config=None keeps the JSON root handler for uvicorn's loggers.
    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
