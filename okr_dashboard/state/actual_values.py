"""Debounced saving of key-result actual values.

Typing into an actual-value field collapses into one save after an idle
period. Leaving the field saves immediately. Each key result has its own
timer and at most one save in flight; an edit made while a save is running
is sent once that save finishes, whether it succeeded or failed, so the
backend always ends up with the last value typed.

A failed save is logged and the value is kept as a pending draft. The
failed value itself is not retried automatically; the next edit or blur
sends it again.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from okr_dashboard.config import get_settings

logger = logging.getLogger(__name__)

SaveFn = Callable[[str, str], Any]
TimerFactory = Callable[..., Any]


class ActualValueSaver:
    """Per-key-result debounce with in-flight tracking.

    Args:
        save: Called as ``save(key_result_id, value)``; usually
            ``OkrApiClient.update_actual_value``.
        delay: Idle seconds before a typed value is saved. Defaults to settings.
        timer_factory: ``threading.Timer``-compatible constructor.
        on_saved: Optional callback with ``(key_result_id, save_result)``.
    """

    def __init__(
        self,
        save: SaveFn,
        delay: Optional[float] = None,
        timer_factory: TimerFactory = threading.Timer,
        on_saved: Optional[Callable[[str, Any], None]] = None,
    ) -> None:
        self._save = save
        self._delay = get_settings().actual_value_debounce_seconds if delay is None else delay
        self._timer_factory = timer_factory
        self._on_saved = on_saved
        self._lock = threading.Lock()
        self._timers: dict[str, Any] = {}
        self._drafts: dict[str, str] = {}
        self._in_flight: set[str] = set()
        self._queued: set[str] = set()
        self.failures: dict[str, str] = {}

    # ── Field events ──

    def edit(self, key_result_id: str, value: str) -> None:
        """Record a keystroke and restart the idle timer for this key result."""
        with self._lock:
            self._drafts[key_result_id] = value
            self._cancel_timer(key_result_id)
            timer = self._timer_factory(self._delay, self.flush, args=(key_result_id,))
            timer.daemon = True
            self._timers[key_result_id] = timer
        timer.start()

    def blur(self, key_result_id: str) -> None:
        """Field lost focus: skip the wait and save now."""
        with self._lock:
            self._cancel_timer(key_result_id)
        self.flush(key_result_id)

    # ── State ──

    def pending(self, key_result_id: str) -> Optional[str]:
        """Value typed but not yet saved, if any."""
        with self._lock:
            return self._drafts.get(key_result_id)

    def is_saving(self, key_result_id: str) -> bool:
        with self._lock:
            return key_result_id in self._in_flight

    def cancel_all(self) -> None:
        """Stop every pending timer. Drafts are kept."""
        with self._lock:
            for key_result_id in list(self._timers):
                self._cancel_timer(key_result_id)

    # ── Saving ──

    def flush(self, key_result_id: str) -> None:
        """Save the pending draft for one key result, if there is one."""
        with self._lock:
            self._timers.pop(key_result_id, None)
            if key_result_id not in self._drafts:
                return
            if key_result_id in self._in_flight:
                self._queued.add(key_result_id)
                return
            value = self._drafts.pop(key_result_id)
            self._in_flight.add(key_result_id)

        try:
            result = self._save(key_result_id, value)
        except Exception as e:
            logger.error("Failed to save actual value for %s: %s", key_result_id, e)
            with self._lock:
                # keep the typed value unless a newer edit already replaced it
                self._drafts.setdefault(key_result_id, value)
                self.failures[key_result_id] = str(e)
                self._in_flight.discard(key_result_id)
                # a newer queued edit is still sent; the failed value is not
                resend = (
                    key_result_id in self._queued
                    and self._drafts[key_result_id] != value
                )
                self._queued.discard(key_result_id)
            if resend:
                self.flush(key_result_id)
            return

        logger.debug("Saved actual value for %s", key_result_id)
        with self._lock:
            self.failures.pop(key_result_id, None)
            self._in_flight.discard(key_result_id)
            resend = key_result_id in self._queued
            self._queued.discard(key_result_id)

        if self._on_saved is not None:
            self._on_saved(key_result_id, result)
        if resend:
            self.flush(key_result_id)

    def _cancel_timer(self, key_result_id: str) -> None:
        timer = self._timers.pop(key_result_id, None)
        if timer is not None:
            timer.cancel()
