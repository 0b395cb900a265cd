"""Pure transitions of the dictation text buffer.

Every function takes a :class:`TextBufferState` and returns a new one; nothing
here mutates its input, touches the engine or blocks. The controller applies
these on the UI thread only.
"""

from __future__ import annotations

from dataclasses import replace

from models import DisplayValue, Selection, TextBufferState


def _with_text(state: TextBufferState, text: str, selection: Selection) -> TextBufferState:
    return replace(state, committed_text=text, selection=selection.clamp(len(text)))


def merge_final(state: TextBufferState, text: str) -> TextBufferState:
    """Insert a confirmed fragment at the cursor, replacing any selection.

    The fragment is followed by a single space. When the character before the
    insertion point is already a space, one leading space of the fragment is
    dropped so the junction never doubles up.
    """
    if not text:
        return state

    old_text = state.committed_text
    sel = state.selection.clamp(len(old_text))

    fragment = text
    if sel.start > 0 and old_text[sel.start - 1] == " " and fragment.startswith(" "):
        fragment = fragment[1:]
    inserted = fragment + " "

    new_text = old_text[: sel.start] + inserted + old_text[sel.end :]
    new_state = _with_text(state, new_text, Selection.cursor(sel.start + len(inserted)))
    return replace(new_state, partial_hypothesis="")


def merge_partial(state: TextBufferState, text: str) -> TextBufferState:
    if not state.is_listening or state.partial_hypothesis == text:
        return state
    return replace(state, partial_hypothesis=text)


def project_display(state: TextBufferState) -> DisplayValue:
    """Text and cursor the screen should render for ``state``."""
    if state.is_listening and state.partial_hypothesis:
        committed = state.committed_text
        cursor = min(state.selection.start, len(committed))
        partial = state.partial_hypothesis
        return DisplayValue(
            text=committed[:cursor] + partial + committed[cursor:],
            selection=Selection.cursor(cursor + len(partial)),
        )
    return DisplayValue(text=state.committed_text, selection=state.selection)


def delete_last_char(state: TextBufferState) -> TextBufferState:
    text = state.committed_text
    if not text:
        return state

    sel = state.selection.clamp(len(text))
    if not sel.collapsed:
        return _with_text(state, text[: sel.start] + text[sel.end :], Selection.cursor(sel.start))
    if sel.start > 0:
        return _with_text(
            state, text[: sel.start - 1] + text[sel.start :], Selection.cursor(sel.start - 1)
        )
    return state


def delete_last_word(state: TextBufferState) -> TextBufferState:
    """Delete the word before the cursor, keeping the space that precedes it.

    Whitespace right before the cursor is skipped first. A non-empty selection
    is deleted as a range instead.
    """
    text = state.committed_text
    if not text:
        return state

    sel = state.selection.clamp(len(text))
    if not sel.collapsed:
        return delete_last_char(state)

    before = text[: sel.start]
    after = text[sel.start :]
    trimmed = before.rstrip()
    if not trimmed:
        return _with_text(state, after, Selection.cursor(0))

    last_space = trimmed.rfind(" ")
    new_before = "" if last_space == -1 else trimmed[: last_space + 1]
    return _with_text(state, new_before + after, Selection.cursor(len(new_before)))


def clear_text(state: TextBufferState) -> TextBufferState:
    return replace(state, committed_text="", selection=Selection(), partial_hypothesis="")


def update_text_field_value(
    state: TextBufferState, text: str, selection: Selection
) -> TextBufferState:
    return _with_text(state, text, selection)


def start_listening(state: TextBufferState) -> TextBufferState:
    return replace(state, is_listening=True, partial_hypothesis="")


def stop_listening(state: TextBufferState) -> TextBufferState:
    if not state.is_listening and not state.partial_hypothesis:
        return state
    return replace(state, is_listening=False, partial_hypothesis="")
