"""
Routes for PicPick photo contests.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from engage import picpick
from engage.dependencies import get_document_store, get_storage_client
from engage.schemas import (
    GalleryCreateRequest,
    PhotoVoteRequest,
    PhotoVoteResponse,
    StatusResponse,
    ToggleRequest,
)
from engage.storage import StorageClient
from engage.store import DocumentStore
from shared.types import Gallery, Photo

router = APIRouter(prefix="/galleries")


@router.post("", response_model=None, status_code=201)
def create_gallery(payload: GalleryCreateRequest, store: DocumentStore = Depends(get_document_store)) -> Gallery:
    return picpick.create_gallery(store, **payload.model_dump())


@router.get("", response_model=None)
def class_galleries(class_id: str, store: DocumentStore = Depends(get_document_store)) -> List[Gallery]:
    return picpick.get_galleries_for_class(store, class_id)


@router.get("/{gallery_id}", response_model=None)
def get_gallery(gallery_id: str, store: DocumentStore = Depends(get_document_store)) -> Gallery:
    gallery = picpick.get_gallery(store, gallery_id)
    if gallery is None:
        raise HTTPException(status_code=404, detail="Gallery not found")
    return gallery


@router.delete("/{gallery_id}", response_model=StatusResponse)
def delete_gallery(
    gallery_id: str,
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    picpick.delete_gallery(store, storage, gallery_id)
    return StatusResponse()


@router.post("/{gallery_id}/photos", response_model=None, status_code=201)
async def upload_photo(
    gallery_id: str,
    file: UploadFile = File(...),
    user_id: str = Form(...),
    user_name: str = Form(...),
    user_photo: str | None = Form(None),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
) -> Photo:
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Image file required")
    image = await file.read()
    return picpick.upload_photo(
        store, storage, gallery_id, user_id, user_name, image, user_photo
    )


@router.get("/{gallery_id}/photos", response_model=None)
def list_photos(gallery_id: str, store: DocumentStore = Depends(get_document_store)) -> List[Photo]:
    return picpick.get_photos(store, gallery_id)


@router.post("/{gallery_id}/photos/{photo_id}/votes", response_model=PhotoVoteResponse)
def vote_photo(
    gallery_id: str,
    photo_id: str,
    payload: PhotoVoteRequest,
    store: DocumentStore = Depends(get_document_store),
):
    remaining = picpick.vote_photo(store, gallery_id, photo_id, payload.user_id, payload.user_name)
    return PhotoVoteResponse(votes_remaining=remaining)


@router.get("/{gallery_id}/voters/{user_id}", response_model=PhotoVoteResponse)
def votes_remaining(gallery_id: str, user_id: str, store: DocumentStore = Depends(get_document_store)):
    used = picpick.get_user_vote_count(store, gallery_id, user_id)
    return PhotoVoteResponse(votes_remaining=max(0, picpick.PICPICK_VOTES_PER_GALLERY - used))


@router.put("/{gallery_id}/voting", response_model=StatusResponse)
def toggle_voting(gallery_id: str, payload: ToggleRequest, store: DocumentStore = Depends(get_document_store)):
    picpick.toggle_voting(store, gallery_id, payload.enabled)
    return StatusResponse()


@router.put("/{gallery_id}/uploads", response_model=StatusResponse)
def toggle_uploads(gallery_id: str, payload: ToggleRequest, store: DocumentStore = Depends(get_document_store)):
    picpick.toggle_uploads(store, gallery_id, payload.enabled)
    return StatusResponse()


@router.put("/{gallery_id}/vote-counts", response_model=StatusResponse)
def toggle_vote_counts(gallery_id: str, payload: ToggleRequest, store: DocumentStore = Depends(get_document_store)):
    picpick.toggle_vote_counts(store, gallery_id, payload.enabled)
    return StatusResponse()
