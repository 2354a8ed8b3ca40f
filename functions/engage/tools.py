"""
Shared classroom tools (dice, coin and friends) synced through
`classes/{class_id}/tools/{tool_id}`.
"""

from __future__ import annotations

import random
from typing import Callable, List, Optional

from engage.errors import InvalidInputError
from engage.store import DocumentStore
from shared.constants import CLASSES_COLLECTION, TOOLS_COLLECTION
from shared.json_utils import from_document
from shared.types import ToolState
from shared.utils import now_ms

MAX_DICE = 6
COIN_SIDES = ("heads", "tails")


def tool_path(class_id: str, tool_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}/{TOOLS_COLLECTION}/{tool_id}"


def update_tool_state(store: DocumentStore, class_id: str, tool_id: str, state: dict) -> None:
    """Merges `state` into the tool document and stamps `updated_at`."""
    store.set(tool_path(class_id, tool_id), {**state, "updated_at": now_ms()}, merge=True)


def get_tool_state(store: DocumentStore, class_id: str, tool_id: str) -> Optional[ToolState]:
    data = store.get(tool_path(class_id, tool_id))
    if not data:
        return None
    return from_document(ToolState, {"type": tool_id, **data})


def on_tool_change(
    store: DocumentStore,
    class_id: str,
    tool_id: str,
    callback: Callable[[Optional[ToolState]], None],
) -> Callable[[], None]:
    return store.watch(
        tool_path(class_id, tool_id),
        lambda _path: callback(get_tool_state(store, class_id, tool_id)),
    )


def roll_dice(count: int = 1) -> List[int]:
    if not 1 <= count <= MAX_DICE:
        raise InvalidInputError(f"Roll between 1 and {MAX_DICE} dice")
    return [random.randint(1, 6) for _ in range(count)]


def flip_coin() -> str:
    return random.choice(COIN_SIDES)
