"""
Routes for trainer access codes, cloud quiz templates and usage analytics.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from engage import access_codes, analytics, templates
from engage.dependencies import get_document_store
from engage.schemas import (
    AccessCodeCreateRequest,
    AccessCodeRedeemRequest,
    AccessCodeResponse,
    CloudTemplateCreateRequest,
    CloudTemplateResponse,
    CloudTemplateUpdateRequest,
    RedeemedResponse,
    StatusResponse,
)
from engage.store import DocumentStore
from shared.types import AccessCode, CloudTemplate

router = APIRouter()


# Access codes


@router.post("/access-codes", response_model=AccessCodeResponse, status_code=201)
def create_access_code(payload: AccessCodeCreateRequest, store: DocumentStore = Depends(get_document_store)):
    code = access_codes.create_access_code(
        store,
        payload.created_by,
        payload.tier,
        max_uses=payload.max_uses,
        expires_in_days=payload.expires_in_days,
        custom_code=payload.custom_code,
    )
    return AccessCodeResponse(code=code)


@router.post("/access-codes/trial", response_model=AccessCodeResponse, status_code=201)
def create_trial_code(store: DocumentStore = Depends(get_document_store)):
    return AccessCodeResponse(code=access_codes.create_trial_code(store))


@router.get("/access-codes", response_model=None)
def list_access_codes(
    active_only: bool = False, store: DocumentStore = Depends(get_document_store)
) -> List[AccessCode]:
    if active_only:
        return access_codes.get_active_access_codes(store)
    return access_codes.get_all_access_codes(store)


@router.get("/access-codes/{code}", response_model=None)
def validate_access_code(code: str, store: DocumentStore = Depends(get_document_store)) -> AccessCode:
    access_code = access_codes.validate_access_code(store, code)
    if access_code is None:
        raise HTTPException(status_code=404, detail="Invalid or expired access code")
    return access_code


@router.post("/access-codes/{code}/redeem", response_model=RedeemedResponse)
def redeem_access_code(
    code: str, payload: AccessCodeRedeemRequest, store: DocumentStore = Depends(get_document_store)
):
    return RedeemedResponse(redeemed=access_codes.redeem_access_code(store, code, payload.user_id))


@router.post("/access-codes/{code}/deactivate", response_model=StatusResponse)
def deactivate_access_code(code: str, store: DocumentStore = Depends(get_document_store)):
    access_codes.deactivate_access_code(store, code)
    return StatusResponse()


@router.delete("/access-codes/{code}", response_model=StatusResponse)
def delete_access_code(code: str, store: DocumentStore = Depends(get_document_store)):
    access_codes.delete_access_code(store, code)
    return StatusResponse()


# Cloud templates


@router.post("/templates", response_model=CloudTemplateResponse, status_code=201)
def save_template(payload: CloudTemplateCreateRequest, store: DocumentStore = Depends(get_document_store)):
    template_id = templates.save_cloud_template(
        store,
        payload.user_id,
        payload.user_name,
        payload.title,
        payload.questions,
        is_public=payload.is_public,
        description=payload.description,
        category=payload.category,
        tags=payload.tags,
    )
    return CloudTemplateResponse(id=template_id)


@router.get("/templates", response_model=None)
def list_templates(
    user_id: str | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
) -> List[CloudTemplate]:
    if user_id:
        return templates.get_user_templates(store, user_id)
    if search:
        return templates.search_public_templates(store, search)
    return templates.get_public_templates(store, limit)


@router.get("/templates/{template_id}", response_model=None)
def get_template(template_id: str, store: DocumentStore = Depends(get_document_store)) -> CloudTemplate:
    template = templates.get_cloud_template(store, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.patch("/templates/{template_id}", response_model=StatusResponse)
def update_template(
    template_id: str, payload: CloudTemplateUpdateRequest, store: DocumentStore = Depends(get_document_store)
):
    updates = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    templates.update_cloud_template(store, template_id, payload.user_id, updates)
    return StatusResponse()


@router.delete("/templates/{template_id}", response_model=StatusResponse)
def delete_template(template_id: str, user_id: str, store: DocumentStore = Depends(get_document_store)):
    templates.delete_cloud_template(store, template_id, user_id)
    return StatusResponse()


@router.post("/templates/{template_id}/used", response_model=StatusResponse)
def mark_template_used(template_id: str, store: DocumentStore = Depends(get_document_store)):
    templates.mark_cloud_template_as_used(store, template_id)
    return StatusResponse()


# Analytics


@router.get("/analytics/summary", response_model=None)
def analytics_summary(
    range_: str = Query("30d", alias="range", pattern="^(7d|30d|90d|all|custom)$"),
    start_date: int | None = None,
    end_date: int | None = None,
    store: DocumentStore = Depends(get_document_store),
) -> dict:
    return analytics.get_analytics_summary(
        store, analytics.AnalyticsFilter(range=range_, start_date=start_date, end_date=end_date)
    )
