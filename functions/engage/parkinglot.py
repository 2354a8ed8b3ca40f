"""
Parking lot: questions students leave for the host to answer later.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from engage.errors import InvalidInputError
from engage.store import DocumentStore
from shared.constants import PARKING_LOT_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import ParkingLotItem, QuestionStatus
from shared.utils import get_unique_id, now_ms
from shared.validation import is_valid_question


def item_path(question_id: str) -> str:
    return f"{PARKING_LOT_COLLECTION}/{question_id}"


def add_parking_lot_question(
    store: DocumentStore, class_id: str, user_id: str, user_name: str, question: str
) -> ParkingLotItem:
    check = is_valid_question(question)
    if not check.valid:
        raise InvalidInputError(check.error)
    item = ParkingLotItem(
        id=get_unique_id(),
        class_id=class_id,
        user_id=user_id,
        user_name=user_name,
        question=question.strip(),
        created_at=now_ms(),
    )
    store.set(item_path(item.id), to_document(item))
    return item


def mark_question_answered(store: DocumentStore, question_id: str) -> None:
    store.update(item_path(question_id), {"status": QuestionStatus.ANSWERED.value})


def answer_question(store: DocumentStore, question_id: str, answer: str) -> None:
    store.update(
        item_path(question_id),
        {
            "status": QuestionStatus.ANSWERED.value,
            "answer": answer,
            "answered_at": now_ms(),
        },
    )


def delete_question(store: DocumentStore, question_id: str) -> None:
    store.delete(item_path(question_id))


def get_parking_lot(
    store: DocumentStore, class_id: str, status: Optional[QuestionStatus] = None
) -> List[ParkingLotItem]:
    """Questions for the class, newest first."""
    where = [("class_id", "==", class_id)]
    if status is not None:
        where.append(("status", "==", QuestionStatus(status).value))
    docs = store.query(PARKING_LOT_COLLECTION, where=where)
    items = [from_document(ParkingLotItem, doc.data, doc.id) for doc in docs]
    items.sort(key=lambda item: item.created_at or 0, reverse=True)
    return items


def on_parking_lot_change(
    store: DocumentStore, class_id: str, callback: Callable[[List[ParkingLotItem]], None]
) -> Callable[[], None]:
    return store.watch(
        PARKING_LOT_COLLECTION, lambda _path: callback(get_parking_lot(store, class_id))
    )


def on_unanswered_count_change(
    store: DocumentStore, class_id: str, callback: Callable[[int], None]
) -> Callable[[], None]:
    return store.watch(
        PARKING_LOT_COLLECTION,
        lambda _path: callback(
            len(get_parking_lot(store, class_id, QuestionStatus.UNANSWERED))
        ),
    )
