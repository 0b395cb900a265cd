"""Main dictation window: editor, dictation and edit buttons, error line."""

from __future__ import annotations

from typing import Callable, Optional

from dictation_controller import DictationController
from models import Selection, TextBufferState

try:
    from PySide6.QtCore import QTimer
    from PySide6.QtGui import QTextCursor
    from PySide6.QtWidgets import (
        QHBoxLayout,
        QLabel,
        QPlainTextEdit,
        QProgressBar,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception:  # pragma: no cover
    QTimer = None  # type: ignore
    QTextCursor = None  # type: ignore
    QHBoxLayout = object  # type: ignore
    QLabel = object  # type: ignore
    QPlainTextEdit = object  # type: ignore
    QProgressBar = object  # type: ignore
    QPushButton = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

ERROR_STYLE = "color: #D32F2F; font-size: 12px;"
STATUS_STYLE = "color: #555555; font-size: 11px;"


class DictationWindow(QWidget):
    def __init__(
        self,
        controller: DictationController,
        on_choose_model: Optional[Callable[[], None]] = None,
        poll_interval_ms: int = 30,
    ) -> None:
        if QTimer is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self._controller = controller
        self._rendering = False

        self.setWindowTitle("Dictado")
        self.resize(480, 640)

        self._editor = QPlainTextEdit()
        self._editor.setPlaceholderText("Press 'Dictate' to start...")
        self._editor.textChanged.connect(self._on_editor_changed)
        self._editor.selectionChanged.connect(self._on_editor_changed)
        self._editor.cursorPositionChanged.connect(self._on_editor_changed)

        self._dictate_button = QPushButton("DICTATE")
        self._dictate_button.clicked.connect(controller.toggle_listening)
        self._copy_button = QPushButton("COPY")
        self._copy_button.clicked.connect(self._on_copy)
        self._quit_button = QPushButton("QUIT")
        self._quit_button.clicked.connect(self.close)
        self._model_button = QPushButton("MODEL")
        self._model_button.setEnabled(on_choose_model is not None)
        if on_choose_model is not None:
            self._model_button.clicked.connect(on_choose_model)

        self._delete_char_button = QPushButton("Delete")
        self._delete_char_button.clicked.connect(controller.delete_last_char)
        self._delete_word_button = QPushButton("Word")
        self._delete_word_button.clicked.connect(controller.delete_last_word)
        self._clear_button = QPushButton("All")
        self._clear_button.clicked.connect(controller.clear_text)

        self._error_label = QLabel("")
        self._error_label.setWordWrap(True)
        self._error_label.setStyleSheet(ERROR_STYLE)
        self._status_label = QLabel("")
        self._status_label.setStyleSheet(STATUS_STYLE)

        self._progress = QProgressBar()
        self._progress.setRange(0, 0)  # busy indicator
        self._progress.setTextVisible(False)
        self._loading_label = QLabel("Loading speech model...")
        self._loading_label.setStyleSheet(STATUS_STYLE)

        main_row = QHBoxLayout()
        main_row.addWidget(self._dictate_button, 3)
        main_row.addWidget(self._copy_button, 2)
        main_row.addWidget(self._model_button)
        main_row.addWidget(self._quit_button)

        edit_row = QHBoxLayout()
        edit_row.addWidget(self._delete_char_button)
        edit_row.addWidget(self._delete_word_button)
        edit_row.addWidget(self._clear_button)

        layout = QVBoxLayout()
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(8)
        layout.addWidget(self._editor, 1)
        layout.addLayout(main_row)
        layout.addLayout(edit_row)
        layout.addWidget(self._status_label)
        layout.addWidget(self._error_label)
        layout.addWidget(self._progress)
        layout.addWidget(self._loading_label)
        self.setLayout(layout)

        self._status_timer: QTimer | None = None
        self._unsubscribe = controller.subscribe(self._on_state_changed)

        # Drain worker results on the UI thread.
        self._pump = QTimer(self)
        self._pump.timeout.connect(controller.process_pending_events)
        self._pump.start(poll_interval_ms)

        self.render()

    def render(self) -> None:
        state = self._controller.state
        self._render_editor()

        self._editor.setReadOnly(state.is_listening)
        self._dictate_button.setText("STOP" if state.is_listening else "DICTATE")
        self._dictate_button.setEnabled(self._controller.can_dictate)
        self._copy_button.setEnabled(self._controller.can_copy)
        can_edit = self._controller.can_edit
        self._delete_char_button.setEnabled(can_edit)
        self._delete_word_button.setEnabled(can_edit)
        self._clear_button.setEnabled(can_edit)

        self._error_label.setText(state.last_error)
        self._error_label.setVisible(bool(state.last_error))
        loading = self._controller.is_loading
        self._progress.setVisible(loading)
        self._loading_label.setVisible(loading)

    def _render_editor(self) -> None:
        display = self._controller.display()
        cursor = self._editor.textCursor()
        same_text = self._editor.toPlainText() == display.text
        same_selection = (
            cursor.selectionStart() == display.selection.start
            and cursor.selectionEnd() == display.selection.end
        )
        if same_text and same_selection:
            return

        self._rendering = True
        try:
            if not same_text:
                self._editor.setPlainText(display.text)
            cursor = self._editor.textCursor()
            cursor.setPosition(display.selection.start)
            cursor.setPosition(display.selection.end, QTextCursor.MoveMode.KeepAnchor)
            self._editor.setTextCursor(cursor)
            self._editor.ensureCursorVisible()
        finally:
            self._rendering = False

    def _on_state_changed(self, state: TextBufferState) -> None:
        self.render()

    def _on_editor_changed(self) -> None:
        if self._rendering or self._controller.state.is_listening:
            return
        cursor = self._editor.textCursor()
        self._controller.update_text_field_value(
            self._editor.toPlainText(),
            Selection(cursor.selectionStart(), cursor.selectionEnd()),
        )

    def _on_copy(self) -> None:
        if self._controller.copy_text():
            self.show_status("Copied")
        else:
            self.show_status("Nothing copied")

    def show_status(self, text: str, hide_after_ms: int = 1500) -> None:
        """Show a short status message and clear it after ``hide_after_ms``."""
        self._cancel_status_timer()
        self._status_label.setText(text)
        self._status_timer = QTimer()
        self._status_timer.setSingleShot(True)
        self._status_timer.timeout.connect(lambda: self._status_label.setText(""))
        self._status_timer.start(hide_after_ms)

    def _cancel_status_timer(self) -> None:
        if self._status_timer is not None:
            self._status_timer.stop()
            self._status_timer = None

    def closeEvent(self, event) -> None:  # noqa: ANN001, N802
        self._pump.stop()
        self._cancel_status_timer()
        self._unsubscribe()
        self._controller.close()
        event.accept()
