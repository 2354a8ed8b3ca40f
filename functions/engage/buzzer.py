"""
Class buzzer stored at `classes/{class_id}/tools/buzzer`.
"""

from __future__ import annotations

from typing import Callable

from engage.store import DocumentStore, Transaction
from shared.constants import CLASSES_COLLECTION, TOOLS_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import Buzz, BuzzerState, BuzzerStatus
from shared.utils import now_ms


def buzzer_path(class_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}/{TOOLS_COLLECTION}/buzzer"


def init_buzzer(store: DocumentStore, class_id: str) -> None:
    with store.transaction() as txn:
        if not txn.exists(buzzer_path(class_id)):
            txn.set(buzzer_path(class_id), to_document(BuzzerState()))


def set_buzzer_status(store: DocumentStore, class_id: str, status: BuzzerStatus) -> None:
    with store.transaction() as txn:
        if txn.exists(buzzer_path(class_id)):
            txn.update(buzzer_path(class_id), {"status": BuzzerStatus(status).value})
        else:
            txn.set(buzzer_path(class_id), to_document(BuzzerState(status=BuzzerStatus(status))))


def reset_buzzer(store: DocumentStore, class_id: str) -> None:
    store.set(buzzer_path(class_id), to_document(BuzzerState()))


def get_buzzer(store: DocumentStore, class_id: str) -> BuzzerState:
    data = store.get(buzzer_path(class_id))
    return from_document(BuzzerState, data) if data else BuzzerState()


def buzz_in(store: DocumentStore, class_id: str, user_id: str, display_name: str) -> bool:
    """Adds a buzz while the buzzer is open; each student buzzes once."""

    def run(txn: Transaction) -> bool:
        data = txn.get(buzzer_path(class_id))
        if not data:
            return False
        state = from_document(BuzzerState, data)
        if state.status != BuzzerStatus.OPEN:
            return False
        if any(buzz.user_id == user_id for buzz in state.buzzes):
            return False
        state.buzzes.append(Buzz(user_id=user_id, display_name=display_name, timestamp=now_ms()))
        txn.update(buzzer_path(class_id), {"buzzes": to_document(state)["buzzes"]})
        return True

    return store.run_transaction(run)


def on_buzzer_change(
    store: DocumentStore, class_id: str, callback: Callable[[BuzzerState], None]
) -> Callable[[], None]:
    """Reports a locked, empty buzzer until one has been set up."""
    return store.watch(buzzer_path(class_id), lambda _path: callback(get_buzzer(store, class_id)))
