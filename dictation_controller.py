"""Dictation screen controller.

Owns the :class:`TextBufferState` and the recognizer session. The state has a
single writer: the UI thread. Worker threads (model loading, decoding) only
post into a bounded queue, which the UI thread drains with
:meth:`DictationController.process_pending_events`.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from queue import Empty, Full, Queue
from typing import Callable, Optional, Union

from loguru import logger

import text_buffer
from errors import (
    MODEL_LOAD_FAILED,
    MODEL_NOT_LOADED,
    PERMISSION_DENIED,
    RECOGNITION_ERROR,
    START_FAILED,
    ModelLoadError,
    user_message,
)
from interfaces import Clipboard, Recorder, RecognizerAdapter
from models import (
    AudioFrame,
    DisplayValue,
    ModelLoadResult,
    ModelState,
    RecognitionEvent,
    RecognitionKind,
    Selection,
    TextBufferState,
)

StateCallback = Callable[[TextBufferState], None]
QueuedEvent = tuple[int, Union[RecognitionEvent, ModelLoadResult]]

NO_SESSION = 0


class DictationController:
    def __init__(
        self,
        recognizer: RecognizerAdapter,
        recorder: Recorder,
        clipboard: Clipboard,
        model_path: str = "model",
        queue_maxsize: int = 100,
        audio_queue_maxsize: int = 50,
        post_timeout_s: float = 1.0,
    ) -> None:
        self._recognizer = recognizer
        self._recorder = recorder
        self._clipboard = clipboard
        self._model_path = model_path
        self._audio_queue_maxsize = audio_queue_maxsize
        self._post_timeout_s = post_timeout_s

        self._state = TextBufferState()
        self._listeners: list[StateCallback] = []
        self._events: Queue[QueuedEvent] = Queue(maxsize=queue_maxsize)
        self._session_id = 0
        self._active_session = NO_SESSION
        self._microphone_granted = False
        self._load_thread: Optional[threading.Thread] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> TextBufferState:
        return self._state

    def display(self) -> DisplayValue:
        return text_buffer.project_display(self._state)

    @property
    def can_edit(self) -> bool:
        return not self._state.is_listening and bool(self._state.committed_text)

    @property
    def can_copy(self) -> bool:
        return bool(self._state.committed_text)

    @property
    def can_dictate(self) -> bool:
        return self._state.model_state == ModelState.READY

    @property
    def is_loading(self) -> bool:
        return self._state.model_state == ModelState.LOADING

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register ``callback`` for state changes; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Model lifecycle
    # ------------------------------------------------------------------

    def load_model(self, microphone_granted: bool) -> None:
        """Load the speech model in the background.

        The result shows up in the state after the next
        :meth:`process_pending_events`.
        """
        if self._closed:
            return
        self._microphone_granted = microphone_granted
        if not microphone_granted:
            self._set_error(PERMISSION_DENIED)
            return
        if self._state.model_state in (ModelState.LOADING, ModelState.READY):
            return

        self._update(replace(self._state, model_state=ModelState.LOADING))
        self._load_thread = threading.Thread(target=self._load_worker, daemon=True)
        self._load_thread.start()

    @property
    def model_path(self) -> str:
        return self._model_path

    def change_model(self, model_path: str, microphone_granted: bool) -> bool:
        """Point at another model and load it.

        Returns False when a model is already loaded or loading; the new path
        then only takes effect on the next start.
        """
        if self._closed or self._state.model_state in (ModelState.LOADING, ModelState.READY):
            return False
        self._model_path = model_path
        self.load_model(microphone_granted)
        return True

    def _load_worker(self) -> None:
        try:
            self._recognizer.load_model(self._model_path)
            result = ModelLoadResult(ok=True)
        except ModelLoadError as exc:
            result = ModelLoadResult(ok=False, message=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while loading the model")
            result = ModelLoadResult(ok=False, message=str(exc) or type(exc).__name__)
        self._post(NO_SESSION, result)

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    def start_listening(self) -> None:
        if self._closed or self._state.is_listening:
            return
        if self._state.model_state != ModelState.READY:
            self._set_error(MODEL_NOT_LOADED)
            return
        if not self._microphone_granted:
            self._set_error(PERMISSION_DENIED)
            return

        self._session_id += 1
        session_id = self._session_id
        self._active_session = session_id
        audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._audio_queue_maxsize)
        self._update(text_buffer.start_listening(self._state))
        logger.info(f"Dictation session {session_id} started")

        try:
            self._recognizer.start(audio_queue, self._make_listener(session_id))
            self._recorder.start(audio_queue)
        except Exception as exc:
            logger.exception("Failed to start dictation")
            self.stop_listening()
            self._set_error(START_FAILED, str(exc))

    def stop_listening(self) -> None:
        """Stop the current session, if any. Safe to call repeatedly."""
        if self._active_session != NO_SESSION:
            logger.info(f"Dictation session {self._active_session} stopped")
        self._active_session = NO_SESSION
        self._safe_stop_recognizer()
        self._safe_stop_recorder()
        self._update(text_buffer.stop_listening(self._state))

    def toggle_listening(self) -> None:
        if self._state.is_listening:
            self.stop_listening()
        else:
            self.start_listening()

    def _make_listener(self, session_id: int) -> Callable[[RecognitionEvent], None]:
        def on_event(event: RecognitionEvent) -> None:
            self._post(session_id, event)

        return on_event

    def _post(self, session_id: int, payload: Union[RecognitionEvent, ModelLoadResult]) -> None:
        """Hand a worker-side result to the UI thread. Called from worker threads."""
        try:
            self._events.put_nowait((session_id, payload))
            return
        except Full:
            if isinstance(payload, RecognitionEvent) and payload.kind == RecognitionKind.PARTIAL.value:
                logger.debug("Event queue full, dropping partial result")
                return
        try:
            self._events.put((session_id, payload), timeout=self._post_timeout_s)
        except Full:
            logger.warning(f"Event queue full, dropping {payload!r}")

    # ------------------------------------------------------------------
    # UI-thread event pump
    # ------------------------------------------------------------------

    def process_pending_events(self) -> int:
        """Apply everything the workers posted so far. Returns the number drained."""
        handled = 0
        while True:
            try:
                session_id, payload = self._events.get_nowait()
            except Empty:
                return handled
            handled += 1
            if self._closed:
                continue
            if isinstance(payload, ModelLoadResult):
                self._apply_load_result(payload)
            elif session_id != self._active_session:
                logger.debug(f"Discarding {payload.kind} event from session {session_id}")
            else:
                self._apply_recognition_event(payload)

    def _apply_load_result(self, result: ModelLoadResult) -> None:
        if result.ok:
            self._update(replace(self._state, model_state=ModelState.READY, last_error=""))
            return
        logger.error(f"Model load failed: {result.message}")
        self._update(
            replace(
                self._state,
                model_state=ModelState.FAILED,
                last_error=user_message(MODEL_LOAD_FAILED, result.message),
            )
        )

    def _apply_recognition_event(self, event: RecognitionEvent) -> None:
        kind = event.kind
        if kind == RecognitionKind.PARTIAL.value:
            self._update(text_buffer.merge_partial(self._state, event.text))
        elif kind == RecognitionKind.FINAL.value:
            self._update(text_buffer.merge_final(self._state, event.text))
        elif kind == RecognitionKind.FINAL_RESULT.value:
            self._update(text_buffer.merge_final(self._state, event.text))
            self.stop_listening()
        elif kind == RecognitionKind.ERROR.value:
            self.stop_listening()
            self._set_error(event.code or RECOGNITION_ERROR, event.message)
        elif kind == RecognitionKind.TIMEOUT.value:
            self.stop_listening()
        else:
            logger.warning(f"Unknown recognition event kind: {kind}")

    # ------------------------------------------------------------------
    # Manual edits (ignored while listening)
    # ------------------------------------------------------------------

    def delete_last_char(self) -> None:
        self._edit(text_buffer.delete_last_char)

    def delete_last_word(self) -> None:
        self._edit(text_buffer.delete_last_word)

    def clear_text(self) -> None:
        self._edit(text_buffer.clear_text)

    def update_text_field_value(self, text: str, selection: Optional[Selection] = None) -> None:
        if selection is None:
            selection = Selection.cursor(len(text))
        self._edit(lambda state: text_buffer.update_text_field_value(state, text, selection))

    def copy_text(self) -> bool:
        text = self._state.committed_text
        if not text:
            return False
        try:
            return self._clipboard.copy(text)
        except Exception as exc:
            logger.warning(f"Clipboard copy failed: {exc}")
            return False

    def _edit(self, transition: Callable[[TextBufferState], TextBufferState]) -> None:
        if self._closed:
            return
        if self._state.is_listening:
            logger.debug("Ignoring manual edit while listening")
            return
        self._update(transition(self._state))

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop listening and release the engine. Only the first call does anything."""
        if self._closed:
            return
        self.stop_listening()
        self._closed = True
        self._listeners.clear()
        try:
            self._recognizer.shutdown()
        except Exception:
            logger.exception("Recognizer shutdown failed")

    def __enter__(self) -> "DictationController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_error(self, code: str, detail: str = "") -> None:
        message = user_message(code, detail)
        logger.warning(f"{code}: {message}")
        self._update(replace(self._state, last_error=message))

    def _update(self, new_state: TextBufferState) -> None:
        if new_state == self._state:
            return
        self._state = new_state
        for callback in list(self._listeners):
            callback(new_state)

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception:
            logger.exception("Recorder stop failed")

    def _safe_stop_recognizer(self) -> None:
        try:
            self._recognizer.stop()
        except Exception:
            logger.exception("Recognizer stop failed")
