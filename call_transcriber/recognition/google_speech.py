"""Google Cloud Speech-to-Text streaming backend.

Each BackendStream drives one StreamingRecognize call through the async
client. Audio written to the stream is placed on an asyncio.Queue that
feeds the request generator, so write() never waits on the network.
Responses are converted to RecognitionResult batches and delivered to the
listener in the order the service produced them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from call_transcriber.recognition.interface import (
    BackendStream,
    RecognitionBackend,
    RecognitionConfig,
    RecognitionResult,
    StreamListener,
)
from call_transcriber.utils.errors import RecognitionError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "google"

# Sentinel that ends the request generator (half-close).
_END_OF_AUDIO = None


def convert_response(response: Any) -> list[RecognitionResult]:
    """Convert a StreamingRecognizeResponse into RecognitionResult objects."""
    results: list[RecognitionResult] = []
    for result in getattr(response, "results", None) or []:
        alternatives = [
            alternative.transcript
            for alternative in (getattr(result, "alternatives", None) or [])
        ]
        results.append(
            RecognitionResult(
                alternatives=alternatives,
                is_final=bool(getattr(result, "is_final", False)),
            )
        )
    return results


class GoogleSpeechStream(BackendStream):
    """One StreamingRecognize call running as an asyncio task.

    Args:
        client: A google.cloud.speech.SpeechAsyncClient.
        config: Audio and language configuration sent in the first request.
        listener: Receives converted results and lifecycle events.
        loop: Event loop the pump task runs on.
    """

    def __init__(
        self,
        client: Any,
        config: RecognitionConfig,
        listener: StreamListener,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._client = client
        self._config = config
        self._listener = listener
        self._loop = loop
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._destroyed = False
        self._task = loop.create_task(self._pump())

    @property
    def task(self) -> asyncio.Task[None]:
        return self._task

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def write(self, chunk: bytes) -> None:
        if self._destroyed:
            raise RecognitionError(
                "Cannot write to a destroyed stream", provider=PROVIDER_NAME
            )
        self._queue.put_nowait(chunk)

    def destroy(self) -> None:
        """Half-close the request stream; the pump task finishes on its own."""
        if self._destroyed:
            return
        self._destroyed = True
        self._queue.put_nowait(_END_OF_AUDIO)

    def _streaming_config(self) -> Any:
        from google.cloud import speech

        recognition_config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding[self._config.encoding],
            sample_rate_hertz=self._config.sample_rate_hz,
            language_code=self._config.language_code,
        )
        return speech.StreamingRecognitionConfig(
            config=recognition_config,
            interim_results=self._config.interim_results,
        )

    async def _requests(self) -> AsyncIterator[Any]:
        from google.cloud import speech

        yield speech.StreamingRecognizeRequest(
            streaming_config=self._streaming_config()
        )
        while True:
            chunk = await self._queue.get()
            if chunk is _END_OF_AUDIO:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    async def _pump(self) -> None:
        try:
            responses = await self._client.streaming_recognize(
                requests=self._requests()
            )
            async for response in responses:
                self._listener.on_data(self, convert_response(response))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._destroyed = True
            self._listener.on_error(
                self,
                RecognitionError(
                    f"Streaming recognition failed: {exc}", provider=PROVIDER_NAME
                ),
            )
        else:
            self._destroyed = True
            self._listener.on_end(self)
        finally:
            self._destroyed = True
            self._listener.on_close(self)


class GoogleSpeechBackend(RecognitionBackend):
    """Google Cloud Speech-to-Text v1 streaming backend.

    The async client is created lazily on the first open so that missing
    credentials surface as a per-stream RecognitionError instead of a
    startup failure.

    Args:
        client: Optional pre-configured SpeechAsyncClient.
            If None, creates one via google.cloud.speech.
    """

    provider_name = PROVIDER_NAME

    def __init__(self, client: Any = None) -> None:
        self._client = client
        # Pump tasks held until they finish, including retired streams still draining.
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_tasks(self) -> int:
        """Number of stream tasks that have not finished yet."""
        return len(self._tasks)

    def _get_client(self) -> Any:
        if self._client is None:
            from google.cloud import speech

            self._client = speech.SpeechAsyncClient()
        return self._client

    def open(
        self, config: RecognitionConfig, listener: StreamListener
    ) -> GoogleSpeechStream:
        """Start a StreamingRecognize call on the running event loop.

        Raises:
            RecognitionError: If no event loop is running, the encoding is
                unknown, or the client cannot be created.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RecognitionError(
                "Streaming recognition requires a running event loop",
                provider=PROVIDER_NAME,
            ) from exc

        try:
            from google.cloud import speech

            speech.RecognitionConfig.AudioEncoding[config.encoding]
        except KeyError as exc:
            raise RecognitionError(
                f"Unsupported audio encoding: '{config.encoding}'",
                provider=PROVIDER_NAME,
            ) from exc

        try:
            client = self._get_client()
        except Exception as exc:
            raise RecognitionError(
                f"Failed to create speech client: {exc}", provider=PROVIDER_NAME
            ) from exc

        logger.debug(
            "Opening streaming recognition (%s, %d Hz, %s)",
            config.encoding,
            config.sample_rate_hz,
            config.language_code,
        )
        stream = GoogleSpeechStream(client, config, listener, loop)
        self._tasks.add(stream.task)
        stream.task.add_done_callback(self._tasks.discard)
        return stream
