"""
The points ledger.

A member's points live in three places that must agree: the class-scoped
score on `classes/{class_id}/members/{user_id}`, the lifetime total on
`users/{user_id}`, and the append-only log under
`classes/{class_id}/members/{user_id}/history`. Every change goes through
`apply_points` inside a store transaction, so readers see all three or none.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from engage import analytics
from engage.errors import NotFoundError
from engage.store import ArrayRemove, DocumentStore, Increment, Transaction, new_document_id
from engage.users import user_path
from shared.constants import (
    CLASSES_COLLECTION,
    HISTORY_COLLECTION,
    HISTORY_PAGE_SIZE,
    MEMBERS_COLLECTION,
)
from shared.json_utils import from_document, to_document
from shared.types import ClassMember, PointHistory
from shared.utils import now_ms

logger = logging.getLogger(__name__)

DEFAULT_NICKNAME = "Student"


def member_path(class_id: str, user_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}/{MEMBERS_COLLECTION}/{user_id}"


def history_collection(class_id: str, user_id: str) -> str:
    return f"{member_path(class_id, user_id)}/{HISTORY_COLLECTION}"


def apply_points(
    txn: Transaction,
    class_id: Optional[str],
    user_id: str,
    delta: int,
    reason: str,
    admin_id: Optional[str] = None,
    *,
    create_member: bool = False,
) -> None:
    """Moves `delta` points for one user inside an open transaction.

    With a class, the member score changes and a history entry is appended;
    the lifetime total always changes. A missing member is created with the
    fallback nickname when `create_member` is set and is an error otherwise.
    """
    now = now_ms()
    if class_id:
        path = member_path(class_id, user_id)
        if txn.exists(path):
            txn.update(path, {"score": Increment(delta)})
        elif create_member:
            member = ClassMember(
                user_id=user_id,
                class_id=class_id,
                nickname=DEFAULT_NICKNAME,
                score=delta,
                joined_at=now,
            )
            txn.set(path, to_document(member))
        else:
            raise NotFoundError("Student not found in class")

        entry = PointHistory(timestamp=now, points=delta, reason=reason, admin_id=admin_id)
        history_id = new_document_id()
        entry.id = history_id
        txn.set(f"{history_collection(class_id, user_id)}/{history_id}", to_document(entry))

    txn.set(
        user_path(user_id),
        {"lifetime_points": Increment(delta), "last_active": now},
        merge=True,
    )


def join_class_member(
    store: DocumentStore, class_id: str, user_id: str, nickname: str
) -> ClassMember:
    """Registers the member record once; later joins keep the existing score."""

    def run(txn: Transaction) -> dict:
        path = member_path(class_id, user_id)
        existing = txn.get(path)
        if existing:
            return existing
        member = ClassMember(
            user_id=user_id, class_id=class_id, nickname=nickname, joined_at=now_ms()
        )
        txn.set(path, to_document(member))
        return to_document(member)

    return from_document(ClassMember, store.run_transaction(run))


def award_points(
    store: DocumentStore,
    class_id: str,
    user_id: str,
    points: int,
    reason: str = "Activity",
) -> bool:
    """Adds positive points; anything else is ignored and returns False."""
    if points <= 0:
        return False
    store.run_transaction(
        lambda txn: apply_points(txn, class_id, user_id, points, reason, create_member=True)
    )
    logger.info("Awarded %d points to %s in %s (%s)", points, user_id, class_id, reason)
    analytics.log_point_transaction(store, user_id, points, reason, class_id)
    return True


def adjust_student_points(
    store: DocumentStore,
    class_id: str,
    user_id: str,
    points_change: int,
    admin_id: Optional[str] = None,
    reason: str = "Manual Adjustment",
) -> bool:
    """Adds or removes points for an existing member."""
    if points_change == 0:
        return False
    store.run_transaction(
        lambda txn: apply_points(txn, class_id, user_id, points_change, reason, admin_id)
    )
    logger.info("Adjusted %d points for %s in %s", points_change, user_id, class_id)
    analytics.log_point_transaction(store, user_id, points_change, reason, class_id)
    return True


def bulk_adjust_class_points(
    store: DocumentStore,
    class_id: str,
    points_change: int,
    admin_id: Optional[str] = None,
) -> int:
    """Applies the same change to every member in one transaction.

    Returns the number of members adjusted.
    """
    if points_change == 0:
        return 0

    def run(txn: Transaction) -> int:
        members = txn.query(f"{CLASSES_COLLECTION}/{class_id}/{MEMBERS_COLLECTION}")
        for member in members:
            apply_points(txn, class_id, member.id, points_change, "Bulk Adjustment", admin_id)
        return len(members)

    count = store.run_transaction(run)
    logger.info("Bulk adjusted %d points for %d members of %s", points_change, count, class_id)
    return count


def remove_student_from_class(
    store: DocumentStore, class_id: str, user_id: str, admin_id: Optional[str] = None
) -> None:
    """Zeroes the member's class score through the ledger and drops them.

    The history log stays behind; the user leaves `member_ids` and their
    profile no longer points at the class.
    """

    def run(txn: Transaction) -> int:
        member = txn.get(member_path(class_id, user_id))
        score = (member or {}).get("score", 0)
        if score:
            apply_points(txn, class_id, user_id, -score, "Removed from class", admin_id)
        if member is not None:
            txn.delete(member_path(class_id, user_id))
        class_path = f"{CLASSES_COLLECTION}/{class_id}"
        if txn.exists(class_path):
            txn.update(class_path, {"member_ids": ArrayRemove(user_id)})
        profile = txn.get(user_path(user_id))
        if profile and profile.get("joined_class_id") == class_id:
            txn.update(user_path(user_id), {"joined_class_id": None})
        return score

    removed = store.run_transaction(run)
    logger.info("Removed %s from %s (reset %d points)", user_id, class_id, removed)


def get_class_leaderboard(
    store: DocumentStore, class_id: str, limit: int = 10
) -> List[ClassMember]:
    docs = store.query(
        f"{CLASSES_COLLECTION}/{class_id}/{MEMBERS_COLLECTION}",
        order_by="score",
        descending=True,
        limit=limit,
    )
    return [from_document(ClassMember, doc.data) for doc in docs]


def get_class_member(store: DocumentStore, class_id: str, user_id: str) -> Optional[ClassMember]:
    data = store.get(member_path(class_id, user_id))
    return from_document(ClassMember, data) if data else None


def get_student_history(
    store: DocumentStore, class_id: str, user_id: str, limit: int = HISTORY_PAGE_SIZE
) -> List[PointHistory]:
    docs = store.query(
        history_collection(class_id, user_id),
        order_by="timestamp",
        descending=True,
        limit=limit,
    )
    return [from_document(PointHistory, doc.data, doc.id) for doc in docs]
