"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_MODEL_PATH = "model"
DEFAULT_SAMPLE_RATE = 16000
DEFAULT_LOG_LEVEL = "INFO"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "dictado" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_model_path(self) -> str:
        data = self._read_all()
        return str(data.get("model_path", DEFAULT_MODEL_PATH))

    def set_model_path(self, path: str) -> None:
        data = self._read_all()
        data["model_path"] = path
        self._write_all(data)

    def get_sample_rate(self) -> int:
        data = self._read_all()
        try:
            return int(data.get("sample_rate", DEFAULT_SAMPLE_RATE))
        except (TypeError, ValueError):
            return DEFAULT_SAMPLE_RATE

    def get_listen_timeout_s(self) -> float:
        """Seconds of audio before a session times out; 0 means never."""
        data = self._read_all()
        try:
            return max(float(data.get("listen_timeout_s", 0.0)), 0.0)
        except (TypeError, ValueError):
            return 0.0

    def get_log_level(self) -> str:
        data = self._read_all()
        return str(data.get("log_level", DEFAULT_LOG_LEVEL)).upper()

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
