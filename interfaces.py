"""Protocol interfaces used by DictationController."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Protocol

from models import AudioFrame, RecognitionEvent


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class RecognizerAdapter(Protocol):
    def load_model(self, model_path: str) -> None: ...

    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def shutdown(self) -> None: ...


class Clipboard(Protocol):
    def copy(self, text: str) -> bool: ...

