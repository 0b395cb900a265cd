"""Clipboard service for copying the dictated text."""

from __future__ import annotations

from loguru import logger

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore


class PyperclipClipboard:
    """Fire-and-forget clipboard writes; failures are logged, never raised."""

    def copy(self, text: str) -> bool:
        if not text:
            return False
        if pyperclip is None:
            logger.warning("Clipboard unavailable: pyperclip is not installed")
            return False
        try:
            pyperclip.copy(text)
        except Exception as exc:
            logger.warning(f"Clipboard copy failed: {exc}")
            return False
        logger.debug(f"Copied {len(text)} characters to the clipboard")
        return True
