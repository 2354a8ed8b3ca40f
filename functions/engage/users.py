"""
User profiles. Authentication itself is handled by an external identity
provider; this module only keeps the profile documents in `users/{uid}`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from engage.errors import InvalidInputError
from engage.store import DocumentStore, Increment
from shared.constants import USERS_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import Role, UserProfile
from shared.utils import now_ms

logger = logging.getLogger(__name__)

# Counters, badges and ids move only through dedicated helpers.
EDITABLE_FIELDS = {"display_name", "photo_url", "role"}


def user_path(uid: str) -> str:
    return f"{USERS_COLLECTION}/{uid}"


def create_user_profile(
    store: DocumentStore,
    uid: str,
    email: str,
    display_name: str,
    role: Role = Role.PLAYER,
    photo_url: Optional[str] = None,
) -> UserProfile:
    now = now_ms()
    profile = UserProfile(
        uid=uid,
        email=email,
        display_name=display_name,
        role=Role(role),
        photo_url=photo_url or None,
        created_at=now,
        last_active=now,
    )
    store.set(user_path(uid), to_document(profile))
    logger.info("Created profile for %s (%s)", uid, profile.role)
    return profile


def get_user_profile(store: DocumentStore, uid: str) -> Optional[UserProfile]:
    data = store.get(user_path(uid))
    if not data:
        return None
    return get_user_profile_from(uid, data)


def ensure_user_profile(
    store: DocumentStore,
    uid: str,
    email: str,
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    role: Role = Role.PLAYER,
) -> UserProfile:
    """Sign-in hook: touches an existing profile or creates a missing one.

    A profile created here falls back to the part of the email before the @
    as its display name.
    """
    profile = get_user_profile(store, uid)
    if profile:
        update_last_active(store, uid)
        return profile
    name = display_name or email.split("@")[0] or "User"
    return create_user_profile(store, uid, email, name, role, photo_url)


def update_last_active(store: DocumentStore, uid: str) -> None:
    store.update(user_path(uid), {"last_active": now_ms()})


def _role_value(role: str) -> str:
    try:
        return Role(role).value
    except ValueError as exc:
        raise InvalidInputError(f"Unknown role: {role}") from exc


def update_user_role(store: DocumentStore, uid: str, role: Role) -> None:
    store.update(user_path(uid), {"role": _role_value(role)})


def update_user_profile(store: DocumentStore, uid: str, changes: dict) -> None:
    """Applies profile edits; only `EDITABLE_FIELDS` may change."""
    blocked = set(changes) - EDITABLE_FIELDS
    if blocked:
        raise InvalidInputError(f"Fields cannot be updated directly: {', '.join(sorted(blocked))}")
    if "role" in changes:
        changes = {**changes, "role": _role_value(changes["role"])}
    store.update(user_path(uid), changes)


def record_game_played(store: DocumentStore, uid: str) -> None:
    store.update(user_path(uid), {"games_played": Increment(1)})


def mark_game_won(store: DocumentStore, uid: str) -> None:
    store.update(user_path(uid), {"games_won": Increment(1)})


def get_lifetime_leaderboard(store: DocumentStore, limit: int = 100) -> List[UserProfile]:
    docs = store.query(
        USERS_COLLECTION,
        where=[("lifetime_points", ">", 0)],
        order_by="lifetime_points",
        descending=True,
        limit=limit,
    )
    return [get_user_profile_from(doc.id, doc.data) for doc in docs]


def get_user_profile_from(uid: str, data: dict) -> UserProfile:
    payload = {"uid": uid, "email": "", "display_name": "", **data}
    return from_document(UserProfile, payload)
