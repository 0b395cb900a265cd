"""Application entrypoint."""

from __future__ import annotations

import sys

from loguru import logger

from clipboard import PyperclipClipboard
from config import JsonConfigStore
from dictation_controller import DictationController
from logging_setup import configure_logging
from recognizer import VoskRecognizerAdapter
from recorder import SoundDeviceRecorder, microphone_available

try:
    from PySide6.QtWidgets import QApplication, QFileDialog, QMessageBox
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

from editor_window import DictationWindow


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        configure_logging(self.config_store.get_log_level())

        sample_rate = self.config_store.get_sample_rate()
        self.controller = DictationController(
            recognizer=VoskRecognizerAdapter(
                sample_rate=sample_rate,
                listen_timeout_s=self.config_store.get_listen_timeout_s(),
            ),
            recorder=SoundDeviceRecorder(sample_rate=sample_rate),
            clipboard=PyperclipClipboard(),
            model_path=self.config_store.get_model_path(),
        )
        self.window = DictationWindow(self.controller, on_choose_model=self._choose_model)

    def _choose_model(self) -> None:
        path = QFileDialog.getExistingDirectory(
            self.window, "Vosk model folder", self.controller.model_path
        )
        if not path:
            return
        self.config_store.set_model_path(path)
        if self.controller.change_model(path, microphone_granted=microphone_available()):
            return
        QMessageBox.information(self.window, "Saved", "Model saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        with self.controller:
            self.window.show()
            self.controller.load_model(microphone_granted=microphone_available())
            logger.info("Dictado started")
            return self.app.exec()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
