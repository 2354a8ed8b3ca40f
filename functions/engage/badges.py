"""
Host-designed badges and awarding them to students.
"""

from __future__ import annotations

import logging
import mimetypes
from typing import Callable, List, Optional

from engage.errors import NotFoundError
from engage.storage import StorageClient
from engage.store import ArrayUnion, DocumentStore
from engage.users import user_path
from shared.constants import BADGES_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import Badge, BadgeAssignment, UserBadgeEnriched
from shared.utils import get_unique_id, now_ms

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "description", "image_url"}


def badge_path(badge_id: str) -> str:
    return f"{BADGES_COLLECTION}/{badge_id}"


def create_badge(
    store: DocumentStore,
    storage: StorageClient,
    host_id: str,
    name: str,
    description: str,
    image: bytes,
    content_type: str = "image/png",
) -> Badge:
    extension = mimetypes.guess_extension(content_type) or ".png"
    object_path = f"badges/{host_id}/{now_ms()}_{get_unique_id(6)}{extension}"
    image_url = storage.upload_bytes(object_path, image, content_type)

    badge = Badge(
        id=get_unique_id(),
        host_id=host_id,
        name=name,
        description=description,
        image_url=image_url,
        created_at=now_ms(),
    )
    store.set(badge_path(badge.id), to_document(badge))
    logger.info("Host %s created badge %s", host_id, badge.id)
    return badge


def get_badge(store: DocumentStore, badge_id: str) -> Optional[Badge]:
    data = store.get(badge_path(badge_id))
    return from_document(Badge, data, badge_id) if data else None


def get_host_badges(store: DocumentStore, host_id: str) -> List[Badge]:
    docs = store.query(BADGES_COLLECTION, where=[("host_id", "==", host_id)])
    badges = [from_document(Badge, doc.data, doc.id) for doc in docs]
    return [badge for badge in badges if not badge.deleted]


def update_badge(store: DocumentStore, badge_id: str, changes: dict) -> None:
    store.update(
        badge_path(badge_id),
        {key: value for key, value in changes.items() if key in EDITABLE_FIELDS},
    )


def soft_delete_badge(store: DocumentStore, badge_id: str) -> None:
    """Hides the badge from its host; students keep the ones they earned."""
    store.update(badge_path(badge_id), {"deleted": True})


def award_badge(store: DocumentStore, user_id: str, badge_id: str, host_id: str) -> BadgeAssignment:
    if get_badge(store, badge_id) is None:
        raise NotFoundError(f"Badge not found: {badge_id}")
    assignment = BadgeAssignment(badge_id=badge_id, awarded_at=now_ms(), awarded_by=host_id)
    store.update(user_path(user_id), {"badges": ArrayUnion(to_document(assignment))})
    logger.info("Badge %s awarded to %s by %s", badge_id, user_id, host_id)
    return assignment


def _assignments(store: DocumentStore, user_id: str) -> Optional[List[BadgeAssignment]]:
    data = store.get(user_path(user_id))
    if data is None:
        return None
    return [from_document(BadgeAssignment, item) for item in data.get("badges") or []]


def get_user_badges(store: DocumentStore, user_id: str) -> List[UserBadgeEnriched]:
    return [
        UserBadgeEnriched(assignment=assignment, details=get_badge(store, assignment.badge_id))
        for assignment in _assignments(store, user_id) or []
    ]


def on_badge_earned(
    store: DocumentStore, user_id: str, callback: Callable[[Badge], None]
) -> Callable[[], None]:
    """Calls `callback` once for every badge awarded after subscribing.

    Badges the user already holds when the subscription starts are ignored.
    """
    known: dict = {"count": None}

    def listener(_path: str) -> None:
        assignments = _assignments(store, user_id)
        if assignments is None:
            return
        if known["count"] is None:
            known["count"] = len(assignments)
            return
        fresh = assignments[known["count"]:]
        known["count"] = max(known["count"], len(assignments))
        for assignment in fresh:
            badge = get_badge(store, assignment.badge_id)
            if badge:
                callback(badge)

    return store.watch(user_path(user_id), listener)
