"""Core data models for the dictation editor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ModelState(str, Enum):
    UNLOADED = "UNLOADED"
    LOADING = "LOADING"
    READY = "READY"
    FAILED = "FAILED"


class RecognitionKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    FINAL_RESULT = "final_result"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Selection:
    """Cursor (collapsed) or highlighted range, always with start <= end."""

    start: int = 0
    end: int = 0

    def __post_init__(self) -> None:
        if self.start > self.end:
            lo, hi = self.end, self.start
            object.__setattr__(self, "start", lo)
            object.__setattr__(self, "end", hi)

    @classmethod
    def cursor(cls, position: int) -> "Selection":
        return cls(position, position)

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    @property
    def length(self) -> int:
        return self.end - self.start

    def clamp(self, text_length: int) -> "Selection":
        start = min(max(self.start, 0), text_length)
        end = min(max(self.end, 0), text_length)
        if start == self.start and end == self.end:
            return self
        return Selection(start, end)


@dataclass(frozen=True)
class TextBufferState:
    committed_text: str = ""
    selection: Selection = field(default_factory=Selection)
    partial_hypothesis: str = ""
    is_listening: bool = False
    model_state: ModelState = ModelState.UNLOADED
    last_error: str = ""


@dataclass(frozen=True)
class DisplayValue:
    text: str
    selection: Selection


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""


@dataclass
class ModelLoadResult:
    ok: bool
    message: str = ""
