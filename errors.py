"""Shared error codes and user-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
MODEL_LOAD_FAILED = "MODEL_LOAD_FAILED"
MODEL_NOT_LOADED = "MODEL_NOT_LOADED"
START_FAILED = "START_FAILED"
RECOGNITION_ERROR = "RECOGNITION_ERROR"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission denied.",
    MODEL_LOAD_FAILED: "Could not load the speech model",
    MODEL_NOT_LOADED: "Speech model is not loaded.",
    START_FAILED: "Could not start dictation",
    RECOGNITION_ERROR: "Recognition error",
    ASR_PROTOCOL_ERROR: "Recognizer response format is invalid",
}


def user_message(code: str, detail: str = "") -> str:
    base = ERROR_MESSAGES.get(code, code)
    if not detail:
        return base
    return f"{base.rstrip('.')}: {detail}"


class ModelLoadError(Exception):
    """The speech model could not be unpacked or initialised."""
