"""
PicPick photo contests: galleries, uploads and limited voting.

Each student has four votes per gallery and may give a single photo at most
two of them. The per-student tally lives in `galleries/{id}/voters/{uid}`
and moves in the same transaction as the photo's counter.
"""

from __future__ import annotations

import io
import logging
import random
import string
from typing import Callable, List, Optional

from PIL import Image, UnidentifiedImageError

from engage.errors import ConflictError, InvalidInputError, NotFoundError
from engage.storage import StorageClient
from engage.store import DocumentStore, Increment, Transaction
from shared.constants import (
    GALLERIES_COLLECTION,
    PHOTOS_COLLECTION,
    PICPICK_VOTES_PER_GALLERY,
    PICPICK_VOTES_PER_PHOTO,
    VOTES_COLLECTION,
)
from shared.json_utils import from_document, to_document
from shared.types import Gallery, Photo
from shared.utils import get_unique_id, now_ms

logger = logging.getLogger(__name__)

VOTERS_COLLECTION = "voters"
PHOTO_SIZE = 800
PHOTO_QUALITY = 90


def gallery_path(gallery_id: str) -> str:
    return f"{GALLERIES_COLLECTION}/{gallery_id}"


def photos_collection(gallery_id: str) -> str:
    return f"{gallery_path(gallery_id)}/{PHOTOS_COLLECTION}"


def photo_path(gallery_id: str, photo_id: str) -> str:
    return f"{photos_collection(gallery_id)}/{photo_id}"


def vote_path(gallery_id: str, photo_id: str, user_id: str) -> str:
    return f"{photo_path(gallery_id, photo_id)}/{VOTES_COLLECTION}/{user_id}"


def voter_path(gallery_id: str, user_id: str) -> str:
    return f"{gallery_path(gallery_id)}/{VOTERS_COLLECTION}/{user_id}"


def generate_gallery_code() -> str:
    return "".join(random.choice(string.ascii_uppercase + string.digits) for _ in range(6))


def create_gallery(
    store: DocumentStore,
    class_id: str,
    host_id: str,
    name: str,
    description: str = "",
    upload_start: Optional[int] = None,
    upload_end: Optional[int] = None,
    voting_start: Optional[int] = None,
    voting_end: Optional[int] = None,
) -> Gallery:
    if not name.strip():
        raise InvalidInputError("Gallery name is required")
    gallery = Gallery(
        id=get_unique_id(),
        name=name.strip(),
        description=description,
        code=generate_gallery_code(),
        class_id=class_id,
        host_id=host_id,
        upload_start=upload_start,
        upload_end=upload_end,
        voting_start=voting_start,
        voting_end=voting_end,
        created_at=now_ms(),
    )
    store.set(gallery_path(gallery.id), to_document(gallery))
    logger.info("Gallery %s created in class %s", gallery.id, class_id)
    return gallery


def get_gallery(store: DocumentStore, gallery_id: str) -> Optional[Gallery]:
    data = store.get(gallery_path(gallery_id))
    return from_document(Gallery, data, gallery_id) if data else None


def get_galleries_for_class(store: DocumentStore, class_id: str) -> List[Gallery]:
    docs = store.query(GALLERIES_COLLECTION, where=[("class_id", "==", class_id)])
    galleries = [from_document(Gallery, doc.data, doc.id) for doc in docs]
    galleries.sort(key=lambda gallery: gallery.created_at, reverse=True)
    return galleries


def on_galleries_change(
    store: DocumentStore, class_id: str, callback: Callable[[List[Gallery]], None]
) -> Callable[[], None]:
    return store.watch(
        GALLERIES_COLLECTION, lambda _path: callback(get_galleries_for_class(store, class_id))
    )


def square_photo(image: bytes) -> bytes:
    """Center-crops an upload to a square and re-encodes it as JPEG."""
    try:
        with Image.open(io.BytesIO(image)) as img:
            size = min(img.width, img.height)
            left = (img.width - size) // 2
            top = (img.height - size) // 2
            cropped = img.convert("RGB").crop((left, top, left + size, top + size))
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidInputError("Upload is not a readable image") from exc
    output = io.BytesIO()
    cropped.resize((PHOTO_SIZE, PHOTO_SIZE)).save(output, format="JPEG", quality=PHOTO_QUALITY)
    return output.getvalue()


def upload_photo(
    store: DocumentStore,
    storage: StorageClient,
    gallery_id: str,
    user_id: str,
    user_name: str,
    image: bytes,
    user_photo: Optional[str] = None,
) -> Photo:
    gallery = get_gallery(store, gallery_id)
    if gallery is None:
        raise NotFoundError(f"Gallery not found: {gallery_id}")
    if not gallery.upload_open:
        raise ConflictError("Uploads are closed for this gallery")

    photo_id = get_unique_id()
    object_path = f"picpick/{gallery_id}/{photo_id}.jpg"
    image_url = storage.upload_bytes(object_path, square_photo(image), "image/jpeg")

    photo = Photo(
        id=photo_id,
        image_url=image_url,
        user_id=user_id,
        user_name=user_name,
        storage_path=object_path,
        user_photo=user_photo,
        uploaded_at=now_ms(),
    )
    store.set(photo_path(gallery_id, photo_id), to_document(photo))
    return photo


def get_photos(store: DocumentStore, gallery_id: str) -> List[Photo]:
    docs = store.query(photos_collection(gallery_id), order_by="votes", descending=True)
    return [from_document(Photo, doc.data, doc.id) for doc in docs]


def vote_photo(
    store: DocumentStore, gallery_id: str, photo_id: str, user_id: str, user_name: str = ""
) -> int:
    """Casts one vote and returns the votes the student has left."""

    def run(txn: Transaction) -> int:
        gallery_data = txn.get(gallery_path(gallery_id))
        if gallery_data is None:
            raise NotFoundError(f"Gallery not found: {gallery_id}")
        if not gallery_data.get("voting_open"):
            raise ConflictError("Voting is closed for this gallery")
        photo_data = txn.get(photo_path(gallery_id, photo_id))
        if photo_data is None:
            raise NotFoundError(f"Photo not found: {photo_id}")
        if photo_data.get("user_id") == user_id:
            raise ConflictError("You cannot vote for your own photo")

        used = (txn.get(voter_path(gallery_id, user_id)) or {}).get("total", 0)
        if used >= PICPICK_VOTES_PER_GALLERY:
            raise ConflictError(f"You have used all {PICPICK_VOTES_PER_GALLERY} votes")
        vote = txn.get(vote_path(gallery_id, photo_id, user_id)) or {}
        if vote.get("count", 0) >= PICPICK_VOTES_PER_PHOTO:
            raise ConflictError("You already voted for this photo")

        now = now_ms()
        txn.set(
            vote_path(gallery_id, photo_id, user_id),
            {"user_id": user_id, "user_name": user_name, "voted_at": now, "count": Increment(1)},
            merge=True,
        )
        txn.set(voter_path(gallery_id, user_id), {"total": Increment(1)}, merge=True)
        txn.update(photo_path(gallery_id, photo_id), {"votes": Increment(1)})
        return PICPICK_VOTES_PER_GALLERY - used - 1

    return store.run_transaction(run)


def has_user_voted(store: DocumentStore, gallery_id: str, photo_id: str, user_id: str) -> bool:
    return store.get(vote_path(gallery_id, photo_id, user_id)) is not None


def get_user_vote_count(store: DocumentStore, gallery_id: str, user_id: str) -> int:
    return (store.get(voter_path(gallery_id, user_id)) or {}).get("total", 0)


def toggle_voting(store: DocumentStore, gallery_id: str, is_open: bool) -> None:
    store.update(gallery_path(gallery_id), {"voting_open": bool(is_open)})


def toggle_uploads(store: DocumentStore, gallery_id: str, is_open: bool) -> None:
    store.update(gallery_path(gallery_id), {"upload_open": bool(is_open)})


def toggle_vote_counts(store: DocumentStore, gallery_id: str, show: bool) -> None:
    store.update(gallery_path(gallery_id), {"show_vote_counts": bool(show)})


def delete_gallery(store: DocumentStore, storage: StorageClient, gallery_id: str) -> None:
    """Removes the gallery, its photos, their votes and the stored images."""
    object_paths: List[str] = []

    def run(txn: Transaction) -> None:
        object_paths.clear()
        for photo in txn.query(photos_collection(gallery_id)):
            for vote in txn.query(f"{photo.path}/{VOTES_COLLECTION}"):
                txn.delete(vote.path)
            if photo.data.get("storage_path"):
                object_paths.append(photo.data["storage_path"])
            txn.delete(photo.path)
        for voter in txn.query(f"{gallery_path(gallery_id)}/{VOTERS_COLLECTION}"):
            txn.delete(voter.path)
        txn.delete(gallery_path(gallery_id))

    store.run_transaction(run)
    for object_path in object_paths:
        try:
            storage.delete(object_path)
        except Exception:
            logger.exception("Could not delete stored image %s", object_path)
    logger.info("Deleted gallery %s with %d photos", gallery_id, len(object_paths))
