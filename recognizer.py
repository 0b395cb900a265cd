"""Offline speech recognizer adapter built on Vosk.

The Vosk model is loaded once and kept for the whole screen session. Each
listening session gets its own ``KaldiRecognizer`` fed from the audio queue on
a background thread. Results arrive from the engine as small tagged JSON
objects (``{"partial": ...}`` or ``{"text": ...}``) and are forwarded through
``on_event`` as :class:`RecognitionEvent` values. Nothing raised inside the
worker escapes it: failures become ``error`` events.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import Callable, Optional

from loguru import logger

from errors import ASR_PROTOCOL_ERROR, RECOGNITION_ERROR, ModelLoadError
from models import AudioFrame, RecognitionEvent, RecognitionKind

try:
    import vosk
except Exception:  # pragma: no cover
    vosk = None  # type: ignore

EventCallback = Callable[[RecognitionEvent], None]


def decode_hypothesis(raw: str, key: str) -> str:
    """Pull ``key`` out of a Vosk result object.

    Raises ``ValueError`` when the payload is not a JSON object.
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return str(data.get(key, ""))


class VoskRecognizerAdapter:
    def __init__(
        self,
        sample_rate: int = 16000,
        listen_timeout_s: float = 0.0,
        poll_interval_s: float = 0.2,
    ) -> None:
        self._sample_rate = sample_rate
        self._listen_timeout_s = listen_timeout_s
        self._poll_interval_s = poll_interval_s
        self._lock = threading.Lock()
        self._model = None
        self._closed = False
        self._generation = 0
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def model_loaded(self) -> bool:
        return self._model is not None

    def load_model(self, model_path: str) -> None:
        """Load the model at ``model_path``; blocks, so call it off the UI thread."""
        if self._closed:
            raise ModelLoadError("recognizer has been shut down")
        if vosk is None:
            raise ModelLoadError("vosk is not installed")
        if not Path(model_path).is_dir():
            raise ModelLoadError(f"model not found at {model_path}")

        logger.info(f"Loading Vosk model from '{model_path}'...")
        try:
            model = vosk.Model(model_path)
        except Exception as exc:
            logger.error(f"Failed to load Vosk model: {exc}")
            raise ModelLoadError(str(exc) or "model initialisation failed") from exc

        with self._lock:
            self._model = model
        logger.info("Vosk model loaded")

    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: EventCallback,
    ) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("recognizer has been shut down")
            if self._model is None:
                raise RuntimeError("model is not loaded")
            self._stop_event.set()
            self._generation += 1
            self._stop_event = threading.Event()
            generation = self._generation
            stop_event = self._stop_event
            recognizer = vosk.KaldiRecognizer(self._model, float(self._sample_rate))

        self._thread = threading.Thread(
            target=self._worker,
            args=(generation, stop_event, recognizer, audio_queue, on_event),
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Recognition session {generation} started")

    def stop(self) -> None:
        with self._lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()
            thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)
        logger.debug("Recognition session stopped")

    def shutdown(self) -> None:
        """Release the model handle. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.stop()
        with self._lock:
            self._model = None
        logger.info("Recognizer shut down")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(
        self,
        generation: int,
        stop_event: threading.Event,
        recognizer: object,
        audio_queue: Queue[AudioFrame | None],
        on_event: EventCallback,
    ) -> None:
        """Decode frames until the sentinel, the timeout or ``stop()``."""

        def emit(event: RecognitionEvent) -> None:
            if stop_event.is_set() or generation != self._generation:
                logger.debug(f"Discarding {event.kind} event from stopped session {generation}")
                return
            on_event(event)

        limit = int(self._listen_timeout_s * self._sample_rate)
        samples = 0
        last_partial = ""

        try:
            while not stop_event.is_set():
                try:
                    frame = audio_queue.get(timeout=self._poll_interval_s)
                except Empty:
                    continue

                if frame is None:  # Sentinel
                    text = decode_hypothesis(recognizer.FinalResult(), "text")
                    emit(RecognitionEvent(kind=RecognitionKind.FINAL_RESULT.value, text=text))
                    return

                if recognizer.AcceptWaveform(frame.pcm16_bytes):
                    text = decode_hypothesis(recognizer.Result(), "text")
                    last_partial = ""
                    emit(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=text))
                else:
                    partial = decode_hypothesis(recognizer.PartialResult(), "partial")
                    if partial != last_partial:
                        last_partial = partial
                        emit(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=partial))

                samples += len(frame.pcm16_bytes) // (2 * max(frame.channels, 1))
                if limit and samples >= limit:
                    logger.info(f"Listening timeout after {self._listen_timeout_s}s of audio")
                    emit(RecognitionEvent(kind=RecognitionKind.TIMEOUT.value))
                    return
        except ValueError as exc:
            logger.warning(f"Malformed recognizer output: {exc}")
            emit(self._error_event(ASR_PROTOCOL_ERROR, exc))
        except Exception as exc:
            logger.exception("Recognition worker failed")
            emit(self._error_event(RECOGNITION_ERROR, exc))

    def _error_event(self, code: str, exc: Exception) -> RecognitionEvent:
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            code=code,
            message=str(exc) or type(exc).__name__,
        )
