"""autosave.py — Debounced autosave session for one open document.

The UI owns one ``AutosaveController`` per open document and talks to it
only through ``edit()``, ``flush_now()`` and ``on_navigate_away()``.

States::

    idle -> dirty -> saving -> saved | error
                       ^  \\
                       |   -> dirty   (edited while the save was in flight)

Every save captures a fresh value of a monotonic sequence counter. When a
save resolves, its result (success or failure) is applied only if no newer
save has been issued since; otherwise it is dropped without touching any
state. Network calls may therefore overlap safely. A failed save keeps the
edit buffer and the dirty flag so the next cycle resends the same content.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from unity_store import config
from unity_store.config import logger

__all__ = [
    "AutosaveController",
    "STATE_DIRTY",
    "STATE_ERROR",
    "STATE_IDLE",
    "STATE_SAVED",
    "STATE_SAVING",
    "note_saver",
]

STATE_IDLE = "idle"
STATE_DIRTY = "dirty"
STATE_SAVING = "saving"
STATE_SAVED = "saved"
STATE_ERROR = "error"

_TRANSITIONS = {
    STATE_IDLE: {STATE_DIRTY, STATE_SAVING},
    STATE_DIRTY: {STATE_DIRTY, STATE_SAVING},
    STATE_SAVING: {STATE_SAVING, STATE_DIRTY, STATE_SAVED, STATE_ERROR},
    STATE_SAVED: {STATE_DIRTY, STATE_SAVING},
    STATE_ERROR: {STATE_DIRTY, STATE_SAVING},
}

SaveFn = Callable[[str, str], Awaitable[Any]]


class AutosaveController:
    def __init__(
        self,
        doc_id: str,
        save_fn: SaveFn,
        content: str = "",
        delay: Optional[float] = None,
        on_change: Optional[Callable[["AutosaveController"], None]] = None,
    ):
        self.doc_id = doc_id
        self.state = STATE_IDLE
        self.dirty = False
        self.error: Optional[str] = None
        self.last_result: Any = None
        self.saved_at: Optional[str] = None
        self._save_fn = save_fn
        self._content = content
        self._delay = config.AUTOSAVE_DEBOUNCE_SECONDS if delay is None else delay
        self._on_change = on_change
        self._seq = 0
        self._edit_version = 0
        self._in_flight = 0
        self._resave_pending = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def content(self) -> str:
        return self._content

    @property
    def sequence(self) -> int:
        return self._seq

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def edit(self, content: str) -> None:
        """Buffer new content and (re)arm the debounce timer."""
        self._content = content
        self._edit_version += 1
        self.dirty = True
        if self.state != STATE_SAVING:
            self._set_state(STATE_DIRTY)
        self._arm_timer()

    async def flush_now(self) -> bool:
        """Save immediately if dirty. Returns False if the save failed or went stale."""
        self._cancel_timer()
        if not self.dirty:
            return self.state != STATE_ERROR
        return await self._save()

    async def on_navigate_away(self) -> bool:
        """Flush pending edits before the UI switches or deletes the document."""
        self._cancel_timer()
        if self.dirty:
            return await self.flush_now()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.state != STATE_ERROR

    def close(self) -> None:
        self._cancel_timer()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_state(self, next_state: str) -> None:
        if next_state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Invalid autosave transition {self.state} -> {next_state}")
        self.state = next_state
        if self._on_change is not None:
            self._on_change(self)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not self.dirty:
            return
        if self._in_flight:
            self._resave_pending = True
            return
        self._spawn_save()

    def _spawn_save(self) -> None:
        task = asyncio.get_running_loop().create_task(self._save())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _save(self) -> bool:
        self._seq += 1
        seq = self._seq
        content = self._content
        version = self._edit_version
        self._in_flight += 1
        self._set_state(STATE_SAVING)
        try:
            result = await self._save_fn(self.doc_id, content)
        except Exception as exc:
            self._in_flight -= 1
            if seq != self._seq:
                logger.info("autosave: dropped stale failure for %s (seq %d < %d)", self.doc_id, seq, self._seq)
                self._after_flight()
                return False
            self.error = str(exc) or exc.__class__.__name__
            self._set_state(STATE_ERROR)
            self._after_flight()
            return False

        self._in_flight -= 1
        if seq != self._seq:
            logger.info("autosave: dropped stale result for %s (seq %d < %d)", self.doc_id, seq, self._seq)
            self._after_flight()
            return False

        self.error = None
        self.last_result = result
        self.saved_at = _updated_at(result)
        if self._edit_version == version:
            self.dirty = False
            self._set_state(STATE_SAVED)
        else:
            self._set_state(STATE_DIRTY)
        self._after_flight()
        return True

    def _after_flight(self) -> None:
        if self._in_flight == 0 and self._resave_pending:
            self._resave_pending = False
            if self.dirty:
                self._spawn_save()


def _updated_at(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    note = result.get("note")
    if isinstance(note, dict) and isinstance(note.get("updatedAt"), str):
        return note["updatedAt"]
    value = result.get("updatedAt")
    return value if isinstance(value, str) else None


def note_saver(client: Any) -> SaveFn:
    """Adapt ``DocumentStoreClient.save_note`` into an async ``save_fn``."""

    async def _save(note_id: str, content: str) -> Any:
        return await asyncio.to_thread(client.save_note, note_id, content)

    return _save
