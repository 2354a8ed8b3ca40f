"""
Cloud quiz templates: hosts save question sets and may share them publicly.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from engage.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from engage.store import DocumentStore, Increment
from shared.constants import TEMPLATES_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import CloudTemplate
from shared.utils import get_unique_id, now_ms

PUBLIC_PAGE_SIZE = 50
SEARCH_POOL_SIZE = 100
PROTECTED_FIELDS = {"id", "created_by", "created_at"}


def template_path(template_id: str) -> str:
    return f"{TEMPLATES_COLLECTION}/{template_id}"


def save_cloud_template(
    store: DocumentStore,
    user_id: str,
    user_name: str,
    title: str,
    questions: List[Dict[str, Any]],
    is_public: bool = False,
    description: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
) -> str:
    if not title.strip():
        raise InvalidInputError("Template title is required")
    template = CloudTemplate(
        id=get_unique_id(),
        title=title.strip(),
        description=description,
        questions=list(questions),
        created_by=user_id,
        created_by_name=user_name,
        created_at=now_ms(),
        is_public=is_public,
        category=category,
        tags=list(tags or []),
    )
    store.set(template_path(template.id), to_document(template))
    return template.id


def get_cloud_template(store: DocumentStore, template_id: str) -> Optional[CloudTemplate]:
    data = store.get(template_path(template_id))
    return from_document(CloudTemplate, data, template_id) if data else None


def get_user_templates(store: DocumentStore, user_id: str) -> List[CloudTemplate]:
    docs = store.query(
        TEMPLATES_COLLECTION,
        where=[("created_by", "==", user_id)],
        order_by="created_at",
        descending=True,
    )
    return [from_document(CloudTemplate, doc.data, doc.id) for doc in docs]


def get_public_templates(store: DocumentStore, limit: int = PUBLIC_PAGE_SIZE) -> List[CloudTemplate]:
    docs = store.query(
        TEMPLATES_COLLECTION,
        where=[("is_public", "==", True)],
        order_by="times_used",
        descending=True,
        limit=limit,
    )
    return [from_document(CloudTemplate, doc.data, doc.id) for doc in docs]


def _owned_template(store: DocumentStore, template_id: str, user_id: str) -> CloudTemplate:
    template = get_cloud_template(store, template_id)
    if template is None:
        raise NotFoundError(f"Template not found: {template_id}")
    if template.created_by != user_id:
        raise PermissionDeniedError("Only the owner can change this template")
    return template


def delete_cloud_template(store: DocumentStore, template_id: str, user_id: str) -> None:
    _owned_template(store, template_id, user_id)
    store.delete(template_path(template_id))


def update_cloud_template(
    store: DocumentStore, template_id: str, user_id: str, updates: Dict[str, Any]
) -> None:
    _owned_template(store, template_id, user_id)
    changes = {key: value for key, value in updates.items() if key not in PROTECTED_FIELDS}
    if changes:
        store.update(template_path(template_id), changes)


def mark_cloud_template_as_used(store: DocumentStore, template_id: str) -> None:
    store.update(template_path(template_id), {"last_used": now_ms(), "times_used": Increment(1)})


def search_public_templates(store: DocumentStore, term: str) -> List[CloudTemplate]:
    """Case-insensitive match on title, description or tags of popular templates."""
    needle = term.lower()

    def found(template: CloudTemplate) -> bool:
        return (
            needle in template.title.lower()
            or needle in (template.description or "").lower()
            or any(needle in tag.lower() for tag in template.tags)
        )

    return [template for template in get_public_templates(store, SEARCH_POOL_SIZE) if found(template)]
