"""Microphone capture feeding raw 16-bit PCM into the recognizer queue."""

from __future__ import annotations

import threading
import time
from queue import Full, Queue
from typing import Any

from loguru import logger

from models import AudioFrame

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore


def microphone_available() -> bool:
    """Whether an input device can be opened at all.

    Stands in for the microphone permission prompt: without a usable input
    device dictation is refused with a user-visible message.
    """
    if sd is None:
        return False
    try:
        device = sd.query_devices(kind="input")
    except Exception as exc:
        logger.warning(f"No usable input device: {exc}")
        return False
    return bool(device) and int(device.get("max_input_channels", 0)) > 0


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._running = False
        self._lock = threading.RLock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self.dropped_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
                finished_callback=self._on_finished,
            )
            self._stream.start()
            self._running = True
            logger.debug(f"Recording at {self.sample_rate} Hz, {blocksize} frames per block")

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            stream, self._stream = self._stream, None

        # PortAudio runs finished_callback on its own thread and waits for it
        # inside stop(), so the lock must not be held here.
        if stream is not None:
            stream.stop()
            stream.close()
        if self.dropped_chunks:
            logger.warning(f"Dropped {self.dropped_chunks} audio chunks (queue full)")
        self._emit_sentinel()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if status:
            logger.debug(f"Audio status: {status}")
        frame = AudioFrame(
            pcm16_bytes=bytes(indata),
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1

    def _on_finished(self) -> None:
        # Stream ended without stop(), e.g. the device went away: let the
        # recognizer flush what it has.
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stream = None
        logger.warning("Audio stream ended unexpectedly")
        self._emit_sentinel()

    def _emit_sentinel(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass
