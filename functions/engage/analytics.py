"""
Usage analytics: best-effort event logging and the admin summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from engage.errors import InvalidInputError
from engage.store import DocumentStore
from shared.constants import (
    ANALYTICS_EVENTS_COLLECTION,
    CLASSES_COLLECTION,
    USERS_COLLECTION,
)
from shared.utils import now_ms

logger = logging.getLogger(__name__)

ACTIVITY_START = "activity_start"
POINT_AWARDED = "point_awarded"

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}


@dataclass
class AnalyticsFilter:
    range: str = "30d"
    start_date: Optional[int] = None
    end_date: Optional[int] = None


def log_event(store: DocumentStore, event_type: str, data: Optional[Dict[str, Any]] = None) -> None:
    """Records an analytics event. Failures are logged, never raised."""
    payload = {key: value for key, value in (data or {}).items() if value is not None}
    payload["type"] = event_type
    payload["timestamp"] = now_ms()
    try:
        store.add(ANALYTICS_EVENTS_COLLECTION, payload)
    except Exception:
        logger.exception("Failed to log analytics event %s", event_type)


def log_activity_usage(store: DocumentStore, activity_type: str, class_id: str) -> None:
    log_event(store, ACTIVITY_START, {"activity_type": activity_type, "class_id": class_id})


def log_point_transaction(
    store: DocumentStore,
    user_id: str,
    points: int,
    source: str,
    class_id: Optional[str] = None,
) -> None:
    log_event(
        store,
        POINT_AWARDED,
        {"user_id": user_id, "points": points, "source": source, "class_id": class_id},
    )


def _window(analytics_filter: AnalyticsFilter, now: int) -> tuple[int, int]:
    end = analytics_filter.end_date if analytics_filter.end_date is not None else now
    if analytics_filter.start_date is not None:
        return analytics_filter.start_date, end
    if analytics_filter.range == "all":
        return 0, end
    if analytics_filter.range == "custom":
        raise InvalidInputError("A custom range needs a start date")
    days = RANGE_DAYS.get(analytics_filter.range, 30)
    start = datetime.fromtimestamp(now / 1000, tz=timezone.utc) - timedelta(days=days)
    return int(start.timestamp() * 1000), end


def _date_key(timestamp: Any) -> str:
    if not isinstance(timestamp, (int, float)):
        return "Unknown"
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).date().isoformat()


def get_analytics_summary(
    store: DocumentStore,
    analytics_filter: Optional[AnalyticsFilter] = None,
    now: Optional[int] = None,
) -> dict:
    """Aggregates activity launches, points, classes and users for a window."""
    analytics_filter = analytics_filter or AnalyticsFilter()
    now = now if now is not None else now_ms()
    start, end = _window(analytics_filter, now)

    events = store.query(
        ANALYTICS_EVENTS_COLLECTION,
        where=[("timestamp", ">=", start), ("timestamp", "<=", end)],
        order_by="timestamp",
    )

    by_type: Dict[str, int] = {}
    by_date: Dict[str, Dict[str, int]] = {}
    points_by_date: Dict[str, int] = {}
    total_points = 0
    for event in events:
        data = event.data
        date_key = _date_key(data.get("timestamp"))
        activity = data.get("activity_type")
        if data.get("type") == ACTIVITY_START and activity:
            by_type[activity] = by_type.get(activity, 0) + 1
            day = by_date.setdefault(date_key, {})
            day[activity] = day.get(activity, 0) + 1
        if data.get("type") == POINT_AWARDED:
            points = data.get("points") or 0
            points_by_date[date_key] = points_by_date.get(date_key, 0) + points
            total_points += points

    active_classes = expired_classes = 0
    for doc in store.query(CLASSES_COLLECTION):
        expires_at = doc.data.get("expires_at")
        if expires_at is not None and expires_at < now:
            expired_classes += 1
        else:
            active_classes += 1

    users = store.query(USERS_COLLECTION)
    new_users = 0
    top_scanners: List[dict] = []
    for doc in users:
        user = doc.data
        if (user.get("created_at") or 0) >= start:
            new_users += 1
        if (user.get("lifetime_points") or 0) > 0:
            top_scanners.append(
                {
                    "id": doc.id,
                    "name": user.get("display_name") or user.get("email") or "User",
                    "points": user["lifetime_points"],
                }
            )
    top_scanners.sort(key=lambda entry: entry["points"], reverse=True)

    return {
        "total_users": len(users),
        "new_users": new_users,
        "classes": {
            "active": active_classes,
            "expired": expired_classes,
            "total": active_classes + expired_classes,
        },
        "activity_stats": {
            "total": sum(by_type.values()),
            "by_type": by_type,
            "by_date": by_date,
        },
        "point_stats": {"total": total_points, "by_date": points_by_date},
        "top_scanners": top_scanners[:10],
    }
