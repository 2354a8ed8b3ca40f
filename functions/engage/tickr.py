"""
Tickr: a countdown timer the host runs and every student screen follows.
"""

from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Callable, Optional

from engage.errors import InvalidInputError
from engage.store import DocumentStore
from shared.constants import DEFAULT_TIMER_SECONDS, TIMERS_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import Timer, TimerStatus
from shared.utils import get_unique_id, now_ms

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"label", "duration", "status", "end_time", "paused_at"}


def timer_path(timer_id: str) -> str:
    return f"{TIMERS_COLLECTION}/{timer_id}"


def create_timer(store: DocumentStore, class_id: str, host_id: str) -> Timer:
    if not class_id or not host_id:
        raise InvalidInputError("Missing class_id or host_id")
    timer = Timer(
        id=get_unique_id(),
        class_id=class_id,
        host_id=host_id,
        duration=DEFAULT_TIMER_SECONDS,
        created_at=now_ms(),
    )
    store.set(timer_path(timer.id), to_document(timer))
    return timer


def get_timer(store: DocumentStore, timer_id: str) -> Optional[Timer]:
    data = store.get(timer_path(timer_id))
    return from_document(Timer, data, timer_id) if data else None


def update_timer(store: DocumentStore, timer_id: str, changes: dict) -> None:
    changes = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
    if "status" in changes:
        changes["status"] = TimerStatus(changes["status"]).value
    store.update(timer_path(timer_id), changes)


def start_timer(store: DocumentStore, timer_id: str, duration_seconds: float) -> int:
    """Runs the timer for `duration_seconds` and returns the end time.

    Durations that are not a non-negative number fall back to the default.
    """
    if not timer_id:
        raise InvalidInputError("Missing timer id")
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, Real) or duration_seconds < 0:
        logger.warning("Invalid duration for timer %s: %r", timer_id, duration_seconds)
        duration_seconds = DEFAULT_TIMER_SECONDS
    end_time = now_ms() + int(duration_seconds * 1000)
    store.update(
        timer_path(timer_id),
        {
            "status": TimerStatus.RUNNING.value,
            "duration": duration_seconds,
            "end_time": end_time,
            "paused_at": None,
        },
    )
    return end_time


def pause_timer(store: DocumentStore, timer_id: str, remaining_seconds: float) -> None:
    """Freezes the timer; `duration` holds what is left so it can resume."""
    store.update(
        timer_path(timer_id),
        {
            "status": TimerStatus.PAUSED.value,
            "paused_at": now_ms(),
            "duration": remaining_seconds,
        },
    )


def stop_timer(store: DocumentStore, timer_id: str) -> None:
    store.update(
        timer_path(timer_id),
        {"status": TimerStatus.STOPPED.value, "end_time": None, "paused_at": None},
    )


def remaining_seconds(timer: Timer, now: Optional[int] = None) -> int:
    if timer.status == TimerStatus.RUNNING and timer.end_time is not None:
        now = now if now is not None else now_ms()
        return max(0, math.ceil((timer.end_time - now) / 1000))
    return max(0, math.ceil(timer.duration))


def on_timer_change(
    store: DocumentStore, timer_id: str, callback: Callable[[Timer], None]
) -> Callable[[], None]:
    def listener(_path: str) -> None:
        timer = get_timer(store, timer_id)
        if timer is not None:
            callback(timer)

    return store.watch(timer_path(timer_id), listener)
