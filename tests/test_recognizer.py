"""Tests for VoskRecognizerAdapter."""

from __future__ import annotations

import time
from pathlib import Path
from queue import Queue
from unittest.mock import MagicMock, patch

import pytest

from errors import ASR_PROTOCOL_ERROR, RECOGNITION_ERROR, ModelLoadError
from models import AudioFrame, RecognitionEvent, RecognitionKind
from recognizer import VoskRecognizerAdapter, decode_hypothesis


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

def _make_frame(n_samples: int = 1600) -> AudioFrame:
    """Generate a silent AudioFrame (all zeros)."""
    return AudioFrame(
        pcm16_bytes=b"\x00\x00" * n_samples,
        sample_rate=16000,
        channels=1,
        timestamp_ms=0,
    )


def _terminal(event: RecognitionEvent) -> bool:
    return event.kind in (
        RecognitionKind.FINAL_RESULT.value,
        RecognitionKind.ERROR.value,
        RecognitionKind.TIMEOUT.value,
    )


def _wait_for_events(events: list, *, timeout: float = 3.0) -> None:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if any(_terminal(e) for e in events):
            return
        time.sleep(0.02)


def _fake_kaldi(
    accepts: list[bool],
    results: list[str] | None = None,
    partials: list[str] | None = None,
    final: str = '{"text" : ""}',
) -> MagicMock:
    kaldi = MagicMock()
    kaldi.AcceptWaveform.side_effect = accepts
    kaldi.Result.side_effect = results or []
    kaldi.PartialResult.side_effect = partials or []
    kaldi.FinalResult.return_value = final
    return kaldi


def _loaded_adapter(mock_vosk: MagicMock, tmp_path: Path, **kwargs) -> VoskRecognizerAdapter:  # noqa: ANN003
    adapter = VoskRecognizerAdapter(poll_interval_s=0.02, **kwargs)
    adapter.load_model(str(tmp_path))
    return adapter


# ---------------------------------------------------------------
# decode_hypothesis
# ---------------------------------------------------------------

def test_decode_hypothesis_reads_tagged_field() -> None:
    assert decode_hypothesis('{"partial" : "hola"}', "partial") == "hola"
    assert decode_hypothesis('{"text" : "hola mundo"}', "text") == "hola mundo"
    assert decode_hypothesis('{"partial" : "hola"}', "text") == ""


def test_decode_hypothesis_rejects_non_objects() -> None:
    with pytest.raises(ValueError):
        decode_hypothesis("not json", "text")
    with pytest.raises(ValueError):
        decode_hypothesis("[1, 2]", "text")


# ---------------------------------------------------------------
# Model loading
# ---------------------------------------------------------------

@patch("recognizer.vosk", None)
def test_load_model_without_vosk_raises(tmp_path: Path) -> None:
    adapter = VoskRecognizerAdapter()
    with pytest.raises(ModelLoadError, match="not installed"):
        adapter.load_model(str(tmp_path))


@patch("recognizer.vosk")
def test_load_model_missing_path_raises(mock_vosk: MagicMock, tmp_path: Path) -> None:
    adapter = VoskRecognizerAdapter()
    with pytest.raises(ModelLoadError, match="not found"):
        adapter.load_model(str(tmp_path / "missing"))
    mock_vosk.Model.assert_not_called()


@patch("recognizer.vosk")
def test_load_model_engine_failure_raises(mock_vosk: MagicMock, tmp_path: Path) -> None:
    mock_vosk.Model.side_effect = Exception("Failed to create a model")
    adapter = VoskRecognizerAdapter()

    with pytest.raises(ModelLoadError, match="Failed to create a model"):
        adapter.load_model(str(tmp_path))
    assert adapter.model_loaded is False


@patch("recognizer.vosk")
def test_start_without_model_raises(mock_vosk: MagicMock) -> None:
    adapter = VoskRecognizerAdapter()
    with pytest.raises(RuntimeError, match="not loaded"):
        adapter.start(Queue(), lambda e: None)


# ---------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------

@patch("recognizer.vosk")
def test_partials_finals_and_final_result(mock_vosk: MagicMock, tmp_path: Path) -> None:
    mock_vosk.KaldiRecognizer.return_value = _fake_kaldi(
        accepts=[False, False, False, True],
        results=['{"text" : "hola mundo"}'],
        partials=['{"partial" : "hola"}', '{"partial" : "hola"}', '{"partial" : "hola mundo"}'],
        final='{"text" : "adios"}',
    )
    adapter = _loaded_adapter(mock_vosk, tmp_path)
    events: list[RecognitionEvent] = []
    q: Queue[AudioFrame | None] = Queue()
    for _ in range(4):
        q.put(_make_frame())
    q.put(None)

    adapter.start(q, events.append)
    _wait_for_events(events)
    adapter.stop()

    assert [(e.kind, e.text) for e in events] == [
        (RecognitionKind.PARTIAL.value, "hola"),
        (RecognitionKind.PARTIAL.value, "hola mundo"),
        (RecognitionKind.FINAL.value, "hola mundo"),
        (RecognitionKind.FINAL_RESULT.value, "adios"),
    ]


@patch("recognizer.vosk")
def test_timeout_after_configured_audio(mock_vosk: MagicMock, tmp_path: Path) -> None:
    mock_vosk.KaldiRecognizer.return_value = _fake_kaldi(
        accepts=[False] * 10,
        partials=['{"partial" : ""}'] * 10,
    )
    adapter = _loaded_adapter(mock_vosk, tmp_path, listen_timeout_s=0.2)
    events: list[RecognitionEvent] = []
    q: Queue[AudioFrame | None] = Queue()
    for _ in range(5):
        q.put(_make_frame())  # 100 ms each

    adapter.start(q, events.append)
    _wait_for_events(events)
    adapter.stop()

    assert events[-1].kind == RecognitionKind.TIMEOUT.value
    assert q.qsize() == 3


@patch("recognizer.vosk")
def test_malformed_json_emits_protocol_error(mock_vosk: MagicMock, tmp_path: Path) -> None:
    mock_vosk.KaldiRecognizer.return_value = _fake_kaldi(accepts=[False], partials=["garbage"])
    adapter = _loaded_adapter(mock_vosk, tmp_path)
    events: list[RecognitionEvent] = []
    q: Queue[AudioFrame | None] = Queue()
    q.put(_make_frame())

    adapter.start(q, events.append)
    _wait_for_events(events)
    adapter.stop()

    assert len(events) == 1
    assert events[0].kind == RecognitionKind.ERROR.value
    assert events[0].code == ASR_PROTOCOL_ERROR


@patch("recognizer.vosk")
def test_engine_exception_emits_recognition_error(mock_vosk: MagicMock, tmp_path: Path) -> None:
    kaldi = MagicMock()
    kaldi.AcceptWaveform.side_effect = RuntimeError("decoder crashed")
    mock_vosk.KaldiRecognizer.return_value = kaldi
    adapter = _loaded_adapter(mock_vosk, tmp_path)
    events: list[RecognitionEvent] = []
    q: Queue[AudioFrame | None] = Queue()
    q.put(_make_frame())

    adapter.start(q, events.append)
    _wait_for_events(events)
    adapter.stop()

    assert events[0].code == RECOGNITION_ERROR
    assert events[0].message == "decoder crashed"


# ---------------------------------------------------------------
# Stop / shutdown
# ---------------------------------------------------------------

@patch("recognizer.vosk")
def test_events_after_stop_are_discarded(mock_vosk: MagicMock, tmp_path: Path) -> None:
    mock_vosk.KaldiRecognizer.return_value = _fake_kaldi(accepts=[], final='{"text" : "tarde"}')
    adapter = _loaded_adapter(mock_vosk, tmp_path)
    events: list[RecognitionEvent] = []
    q: Queue[AudioFrame | None] = Queue()

    adapter.start(q, events.append)
    adapter.stop()
    q.put(None)
    time.sleep(0.1)

    assert events == []


@patch("recognizer.vosk")
def test_stop_is_idempotent(mock_vosk: MagicMock, tmp_path: Path) -> None:
    adapter = _loaded_adapter(mock_vosk, tmp_path)
    adapter.stop()
    adapter.start(Queue(), lambda e: None)
    adapter.stop()
    adapter.stop()


@patch("recognizer.vosk")
def test_shutdown_releases_model_once(mock_vosk: MagicMock, tmp_path: Path) -> None:
    adapter = _loaded_adapter(mock_vosk, tmp_path)

    adapter.shutdown()
    adapter.shutdown()

    assert adapter.model_loaded is False
    with pytest.raises(RuntimeError, match="shut down"):
        adapter.start(Queue(), lambda e: None)
    with pytest.raises(ModelLoadError):
        adapter.load_model(str(tmp_path))
