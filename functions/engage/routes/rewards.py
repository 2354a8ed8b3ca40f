"""
Routes for badges and LeaderGrid QR codes.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from engage import badges, leadergrid
from engage.config import get_settings
from engage.dependencies import get_document_store, get_storage_client
from engage.schemas import (
    AwardBadgeRequest,
    BadgeUpdateRequest,
    LeaderGridCreateRequest,
    LeaderGridRedeemRequest,
    StatusResponse,
)
from engage.storage import StorageClient
from engage.store import DocumentStore
from shared.types import (
    Badge,
    BadgeAssignment,
    LeaderGridCode,
    RedemptionRecord,
    RedemptionResult,
    UserBadgeEnriched,
)

router = APIRouter()


# Badges


@router.post("/badges", response_model=None, status_code=201)
async def create_badge(
    file: UploadFile = File(...),
    host_id: str = Form(...),
    name: str = Form(...),
    description: str = Form(""),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
) -> Badge:
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Image file required")
    image = await file.read()
    return badges.create_badge(store, storage, host_id, name, description, image, file.content_type)


@router.get("/badges", response_model=None)
def host_badges(host_id: str, store: DocumentStore = Depends(get_document_store)) -> List[Badge]:
    return badges.get_host_badges(store, host_id)


@router.get("/badges/{badge_id}", response_model=None)
def get_badge(badge_id: str, store: DocumentStore = Depends(get_document_store)) -> Badge:
    badge = badges.get_badge(store, badge_id)
    if badge is None:
        raise HTTPException(status_code=404, detail="Badge not found")
    return badge


@router.patch("/badges/{badge_id}", response_model=StatusResponse)
def update_badge(badge_id: str, payload: BadgeUpdateRequest, store: DocumentStore = Depends(get_document_store)):
    badges.update_badge(store, badge_id, payload.model_dump(exclude_unset=True))
    return StatusResponse()


@router.delete("/badges/{badge_id}", response_model=StatusResponse)
def delete_badge(badge_id: str, store: DocumentStore = Depends(get_document_store)):
    badges.soft_delete_badge(store, badge_id)
    return StatusResponse()


@router.post("/badges/{badge_id}/award", response_model=None)
def award_badge(
    badge_id: str, payload: AwardBadgeRequest, store: DocumentStore = Depends(get_document_store)
) -> BadgeAssignment:
    return badges.award_badge(store, payload.user_id, badge_id, payload.host_id)


@router.get("/users/{uid}/badges", response_model=None)
def user_badges(uid: str, store: DocumentStore = Depends(get_document_store)) -> List[UserBadgeEnriched]:
    return badges.get_user_badges(store, uid)


# LeaderGrid


@router.post("/leadergrid/codes", response_model=None, status_code=201)
def create_code(payload: LeaderGridCreateRequest, store: DocumentStore = Depends(get_document_store)) -> LeaderGridCode:
    return leadergrid.create_leadergrid_code(
        store,
        payload.host_id,
        payload.class_id,
        payload.name,
        payload.description,
        payload.points,
        max_scans=payload.max_scans,
        expires_at=payload.expires_at,
    )


@router.get("/leadergrid/codes", response_model=None)
def list_codes(host_id: str, class_id: str, store: DocumentStore = Depends(get_document_store)) -> List[LeaderGridCode]:
    return leadergrid.get_leadergrid_codes(store, host_id, class_id)


@router.delete("/leadergrid/codes/{code_id}", response_model=StatusResponse)
def delete_code(code_id: str, store: DocumentStore = Depends(get_document_store)):
    leadergrid.delete_leadergrid_code(store, code_id)
    return StatusResponse()


@router.post("/leadergrid/redeem", response_model=None)
def redeem_code(payload: LeaderGridRedeemRequest, store: DocumentStore = Depends(get_document_store)) -> RedemptionResult:
    return leadergrid.redeem_leadergrid_code(
        store,
        payload.user_id,
        payload.code,
        current_class_id=payload.class_id,
        cooldown_seconds=get_settings().leadergrid_cooldown_seconds,
    )


@router.get("/users/{uid}/redemptions", response_model=None)
def redemption_history(uid: str, store: DocumentStore = Depends(get_document_store)) -> List[RedemptionRecord]:
    return leadergrid.get_user_redemption_history(store, uid)
