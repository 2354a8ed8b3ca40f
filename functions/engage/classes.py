"""
Classes: creation, joining by code, live activity and student counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from engage import analytics
from engage.errors import NotFoundError
from engage.scoring import join_class_member
from engage.store import ArrayUnion, DocumentStore
from engage.users import get_user_profile, user_path
from shared.constants import CLASS_CODE_LENGTH, CLASSES_COLLECTION, USERS_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import ActivityType, ClassRoom, CurrentActivity, UserProfile
from shared.utils import generate_code, now_ms

logger = logging.getLogger(__name__)


@dataclass
class StudentCounts:
    total: int
    active: int


def class_path(class_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}"


def generate_class_code() -> str:
    return generate_code(CLASS_CODE_LENGTH)


def create_class(
    store: DocumentStore,
    host_id: str,
    name: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    expires_at: Optional[int] = None,
) -> ClassRoom:
    code = generate_class_code()
    created_at = now_ms()
    room = ClassRoom(
        id=f"class_{created_at}_{code}",
        code=code,
        name=name,
        host_id=host_id,
        created_at=created_at,
        start_date=start_date or None,
        end_date=end_date or None,
        expires_at=expires_at,
    )
    store.set(class_path(room.id), to_document(room))
    logger.info("Host %s created class %s (%s)", host_id, room.id, code)
    return room


def _to_class(data: dict) -> ClassRoom:
    if not data.get("current_activity"):
        data = {**data, "current_activity": {"type": ActivityType.NONE.value}}
    return from_document(ClassRoom, data)


def get_class(store: DocumentStore, class_id: str) -> Optional[ClassRoom]:
    data = store.get(class_path(class_id))
    return _to_class(data) if data else None


def get_class_by_code(store: DocumentStore, code: str) -> Optional[ClassRoom]:
    docs = store.query(
        CLASSES_COLLECTION, where=[("code", "==", code.strip().upper())], limit=1
    )
    return _to_class(docs[0].data) if docs else None


def join_class(
    store: DocumentStore, user_id: str, code: str, nickname: Optional[str] = None
) -> str:
    """Adds the user to the class with `code` and returns its id."""
    room = get_class_by_code(store, code)
    if room is None:
        raise NotFoundError("Invalid class code")

    with store.transaction() as txn:
        txn.update(class_path(room.id), {"member_ids": ArrayUnion(user_id)})
        txn.set(user_path(user_id), {"joined_class_id": room.id}, merge=True)

    if not nickname:
        profile = get_user_profile(store, user_id)
        nickname = (profile.display_name if profile else "") or "Student"
    join_class_member(store, room.id, user_id, nickname)
    logger.info("User %s joined class %s", user_id, room.id)
    return room.id


def leave_class(store: DocumentStore, user_id: str) -> None:
    store.update(user_path(user_id), {"joined_class_id": None})


def get_hosted_classes(store: DocumentStore, host_id: str) -> List[ClassRoom]:
    docs = store.query(CLASSES_COLLECTION, where=[("host_id", "==", host_id)])
    return [_to_class(doc.data) for doc in docs]


def get_class_members(store: DocumentStore, class_id: str) -> List[UserProfile]:
    room = get_class(store, class_id)
    if room is None:
        return []
    profiles = (get_user_profile(store, uid) for uid in room.member_ids)
    return [profile for profile in profiles if profile is not None]


def update_class_activity(
    store: DocumentStore, class_id: str, activity: CurrentActivity
) -> None:
    """Switches the class's live activity.

    A launch is logged for analytics only when the type or id actually
    changes, so re-broadcasting the same activity does not count twice.
    """
    activity = CurrentActivity(
        type=ActivityType(activity.type), id=activity.id, state=activity.state
    )
    room = get_class(store, class_id)
    if room is None:
        raise NotFoundError(f"Class not found: {class_id}")

    store.update(class_path(class_id), {"current_activity": to_document(activity)})

    current = room.current_activity
    changed = current.type != activity.type or current.id != activity.id
    if activity.type != ActivityType.NONE and changed:
        analytics.log_activity_usage(store, activity.type.value, class_id)
    logger.info("Class %s activity is now %s", class_id, activity.type)


def on_class_change(
    store: DocumentStore, class_id: str, callback: Callable[[ClassRoom], None]
) -> Callable[[], None]:
    def listener(_path: str) -> None:
        room = get_class(store, class_id)
        if room is not None:
            callback(room)

    return store.watch(class_path(class_id), listener)


def on_hosted_classes_change(
    store: DocumentStore, host_id: str, callback: Callable[[List[ClassRoom]], None]
) -> Callable[[], None]:
    return store.watch(
        CLASSES_COLLECTION, lambda _path: callback(get_hosted_classes(store, host_id))
    )


def get_active_student_count(store: DocumentStore, class_id: str) -> int:
    """Students count as active while their profile points at the class."""
    try:
        return len(store.query(USERS_COLLECTION, where=[("joined_class_id", "==", class_id)]))
    except Exception:
        logger.exception("Could not count active students for %s", class_id)
        return 0


def get_class_student_counts(
    store: DocumentStore, class_id: str, total_members: Optional[int] = None
) -> StudentCounts:
    if total_members is None:
        room = get_class(store, class_id)
        total_members = len(room.member_ids) if room else 0
    return StudentCounts(total=total_members, active=get_active_student_count(store, class_id))
