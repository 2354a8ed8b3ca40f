"""
Routes for users, classes and the points ledger.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from engage import classes, scoring, users
from engage.config import get_settings
from engage.dependencies import get_document_store
from engage.schemas import (
    ActivityRequest,
    AdjustPointsRequest,
    AwardPointsRequest,
    BulkAdjustRequest,
    BulkAdjustResponse,
    ClassCreateRequest,
    JoinClassRequest,
    JoinClassResponse,
    LeaveClassRequest,
    RoleUpdateRequest,
    StatusResponse,
    StudentCountsResponse,
    UserCreateRequest,
)
from engage.store import DocumentStore
from shared.types import ClassMember, ClassRoom, CurrentActivity, PointHistory, UserProfile

router = APIRouter()


@router.post("/users", response_model=None, status_code=201)
def ensure_user(payload: UserCreateRequest, store: DocumentStore = Depends(get_document_store)) -> UserProfile:
    return users.ensure_user_profile(
        store,
        payload.uid,
        payload.email,
        display_name=payload.display_name,
        photo_url=payload.photo_url,
        role=payload.role,
    )


@router.get("/users/leaderboard", response_model=None)
def lifetime_leaderboard(
    limit: int = Query(100, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[UserProfile]:
    return users.get_lifetime_leaderboard(store, limit)


@router.get("/users/{uid}", response_model=None)
def get_user(uid: str, store: DocumentStore = Depends(get_document_store)) -> UserProfile:
    profile = users.get_user_profile(store, uid)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.patch("/users/{uid}", response_model=StatusResponse)
def update_user(uid: str, changes: dict, store: DocumentStore = Depends(get_document_store)):
    users.update_user_profile(store, uid, changes)
    return StatusResponse()


@router.put("/users/{uid}/role", response_model=StatusResponse)
def update_role(uid: str, payload: RoleUpdateRequest, store: DocumentStore = Depends(get_document_store)):
    users.update_user_role(store, uid, payload.role)
    return StatusResponse()


@router.post("/users/{uid}/active", response_model=StatusResponse)
def touch_user(uid: str, store: DocumentStore = Depends(get_document_store)):
    users.update_last_active(store, uid)
    return StatusResponse()


@router.post("/classes", response_model=None, status_code=201)
def create_class(payload: ClassCreateRequest, store: DocumentStore = Depends(get_document_store)) -> ClassRoom:
    return classes.create_class(
        store,
        payload.host_id,
        payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        expires_at=payload.expires_at,
    )


@router.post("/classes/join", response_model=JoinClassResponse)
def join_class(payload: JoinClassRequest, store: DocumentStore = Depends(get_document_store)):
    class_id = classes.join_class(store, payload.user_id, payload.code, payload.nickname)
    return JoinClassResponse(class_id=class_id)


@router.post("/classes/leave", response_model=StatusResponse)
def leave_class(payload: LeaveClassRequest, store: DocumentStore = Depends(get_document_store)):
    classes.leave_class(store, payload.user_id)
    return StatusResponse()


@router.get("/classes", response_model=None)
def hosted_classes(host_id: str, store: DocumentStore = Depends(get_document_store)) -> List[ClassRoom]:
    return classes.get_hosted_classes(store, host_id)


@router.get("/classes/by-code/{code}", response_model=None)
def class_by_code(code: str, store: DocumentStore = Depends(get_document_store)) -> ClassRoom:
    room = classes.get_class_by_code(store, code)
    if room is None:
        raise HTTPException(status_code=404, detail="Invalid class code")
    return room


@router.get("/classes/{class_id}", response_model=None)
def get_class(class_id: str, store: DocumentStore = Depends(get_document_store)) -> ClassRoom:
    room = classes.get_class(store, class_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Class not found")
    return room


@router.get("/classes/{class_id}/members", response_model=None)
def class_members(class_id: str, store: DocumentStore = Depends(get_document_store)) -> List[UserProfile]:
    return classes.get_class_members(store, class_id)


@router.get("/classes/{class_id}/student-counts", response_model=StudentCountsResponse)
def student_counts(class_id: str, store: DocumentStore = Depends(get_document_store)):
    counts = classes.get_class_student_counts(store, class_id)
    return StudentCountsResponse(total=counts.total, active=counts.active)


@router.put("/classes/{class_id}/activity", response_model=StatusResponse)
def set_activity(class_id: str, payload: ActivityRequest, store: DocumentStore = Depends(get_document_store)):
    classes.update_class_activity(
        store, class_id, CurrentActivity(type=payload.type, id=payload.id, state=payload.state)
    )
    return StatusResponse()


@router.get("/classes/{class_id}/leaderboard", response_model=None)
def class_leaderboard(
    class_id: str,
    limit: int | None = Query(None, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[ClassMember]:
    return scoring.get_class_leaderboard(store, class_id, limit or get_settings().leaderboard_limit)


@router.get("/classes/{class_id}/members/{user_id}", response_model=None)
def class_member(class_id: str, user_id: str, store: DocumentStore = Depends(get_document_store)) -> ClassMember:
    member = scoring.get_class_member(store, class_id, user_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Student not found in class")
    return member


@router.get("/classes/{class_id}/members/{user_id}/history", response_model=None)
def student_history(
    class_id: str,
    user_id: str,
    limit: int | None = Query(None, ge=1, le=500),
    store: DocumentStore = Depends(get_document_store),
) -> List[PointHistory]:
    return scoring.get_student_history(store, class_id, user_id, limit or get_settings().history_limit)


@router.delete("/classes/{class_id}/members/{user_id}", response_model=StatusResponse)
def remove_student(
    class_id: str,
    user_id: str,
    admin_id: str | None = None,
    store: DocumentStore = Depends(get_document_store),
):
    scoring.remove_student_from_class(store, class_id, user_id, admin_id)
    return StatusResponse()


@router.post("/classes/{class_id}/points/award", response_model=StatusResponse)
def award_points(class_id: str, payload: AwardPointsRequest, store: DocumentStore = Depends(get_document_store)):
    scoring.award_points(store, class_id, payload.user_id, payload.points, payload.reason)
    return StatusResponse()


@router.post("/classes/{class_id}/points/adjust", response_model=StatusResponse)
def adjust_points(class_id: str, payload: AdjustPointsRequest, store: DocumentStore = Depends(get_document_store)):
    scoring.adjust_student_points(
        store, class_id, payload.user_id, payload.points_change, payload.admin_id, payload.reason
    )
    return StatusResponse()


@router.post("/classes/{class_id}/points/bulk", response_model=BulkAdjustResponse)
def bulk_adjust(class_id: str, payload: BulkAdjustRequest, store: DocumentStore = Depends(get_document_store)):
    updated = scoring.bulk_adjust_class_points(store, class_id, payload.points_change, payload.admin_id)
    return BulkAdjustResponse(updated=updated)
