"""Recognition backend registry with configuration-driven provider selection.

Maps provider name strings to backend classes. Use get_recognition_backend()
to instantiate a backend by name with backend-specific configuration.
"""

from call_transcriber.recognition.google_speech import GoogleSpeechBackend
from call_transcriber.recognition.interface import RecognitionBackend
from call_transcriber.recognition.null import NullRecognitionBackend
from call_transcriber.utils.errors import RecognitionError

RECOGNITION_BACKENDS: dict[str, type[RecognitionBackend]] = {
    "google": GoogleSpeechBackend,
    "null": NullRecognitionBackend,
}


def get_recognition_backend(provider: str, **kwargs: object) -> RecognitionBackend:
    """Create a recognition backend instance by provider name.

    Args:
        provider: Provider name (e.g., "google", "null").
        **kwargs: Backend-specific configuration passed to the constructor.

    Returns:
        An initialized RecognitionBackend instance.

    Raises:
        RecognitionError: If the provider name is not registered.
    """
    backend_cls = RECOGNITION_BACKENDS.get(provider)
    if not backend_cls:
        available = ", ".join(sorted(RECOGNITION_BACKENDS.keys()))
        raise RecognitionError(
            f"Unknown recognition provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return backend_cls(**kwargs)
