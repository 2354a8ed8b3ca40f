"""
Pydantic request and response schemas for the engagement API.

Domain records are dataclasses and are returned as-is; the models here
describe what callers send.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import (
    MAX_CLASS_NAME_LENGTH,
    MAX_NICKNAME_LENGTH,
    MAX_POINTS,
    MAX_QUESTION_LENGTH,
)
from shared.types import (
    AccessTier,
    ActivityType,
    BuzzerStatus,
    PollStatus,
    PulseFeeling,
    Role,
)


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"


# Users


class UserCreateRequest(BaseModel):
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: Role = Role.PLAYER


class RoleUpdateRequest(BaseModel):
    role: Role


# Classes and points


class ClassCreateRequest(BaseModel):
    host_id: str
    name: str = Field(..., min_length=1, max_length=MAX_CLASS_NAME_LENGTH)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    expires_at: Optional[int] = None


class JoinClassRequest(BaseModel):
    user_id: str
    code: str = Field(..., min_length=1, max_length=16)
    nickname: Optional[str] = Field(default=None, max_length=MAX_NICKNAME_LENGTH)


class JoinClassResponse(BaseModel):
    class_id: str


class LeaveClassRequest(BaseModel):
    user_id: str


class ActivityRequest(BaseModel):
    type: ActivityType = ActivityType.NONE
    id: Optional[str] = None
    state: Optional[Dict[str, Any]] = None


class AwardPointsRequest(BaseModel):
    user_id: str
    points: int = Field(..., ge=-MAX_POINTS, le=MAX_POINTS)
    reason: str = "Activity"


class AdjustPointsRequest(BaseModel):
    user_id: str
    points_change: int = Field(..., ge=-MAX_POINTS, le=MAX_POINTS)
    admin_id: Optional[str] = None
    reason: str = "Manual Adjustment"


class BulkAdjustRequest(BaseModel):
    points_change: int = Field(..., ge=-MAX_POINTS, le=MAX_POINTS)
    admin_id: Optional[str] = None


class BulkAdjustResponse(BaseModel):
    updated: int


class StudentCountsResponse(BaseModel):
    total: int
    active: int


# Badges


class BadgeUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class AwardBadgeRequest(BaseModel):
    user_id: str
    host_id: str


# Polls


class PollOptionModel(BaseModel):
    id: str
    text: str
    color: str = ""


class PollCreateRequest(BaseModel):
    class_id: str
    host_id: str
    question: str = Field(..., min_length=1, max_length=MAX_QUESTION_LENGTH)
    options: List[PollOptionModel]


class PollVoteRequest(BaseModel):
    user_id: str
    option_id: str


class PollResultsRequest(BaseModel):
    show: bool


class PollStatusRequest(BaseModel):
    status: PollStatus


# Buzzer


class BuzzerStatusRequest(BaseModel):
    status: BuzzerStatus


class BuzzRequest(BaseModel):
    user_id: str
    display_name: str


class BuzzResponse(BaseModel):
    accepted: bool


# Quiz Battle


class QuizAnswerModel(BaseModel):
    id: str
    text: str


class QuizQuestionModel(BaseModel):
    id: str
    text: str
    answers: List[QuizAnswerModel]
    correct_answer_index: int
    time_limit: int = 20
    points: int = 1000
    type: str = "multiple-choice"
    media_url: Optional[str] = None
    notes: Optional[str] = None


class QuizSettingsModel(BaseModel):
    time_per_question: int = 20
    show_answers_immediately: bool = True
    points_per_question: int = 1000


class QuizCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    class_id: str
    created_by: str
    description: str = ""
    questions: List[QuizQuestionModel] = Field(default_factory=list)
    settings: Optional[QuizSettingsModel] = None


class QuizUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[QuizQuestionModel]] = None
    settings: Optional[QuizSettingsModel] = None


class CloneQuizRequest(BaseModel):
    user_id: str


class GameCreateRequest(BaseModel):
    quiz_id: str
    class_id: str
    host_id: str


class GameJoinRequest(BaseModel):
    user_id: str
    nickname: str = Field(..., min_length=1, max_length=MAX_NICKNAME_LENGTH)


class NextQuestionRequest(BaseModel):
    current_index: int


class GameAnswerRequest(BaseModel):
    user_id: str
    question_index: int = Field(..., ge=0)
    answer_index: int = Field(..., ge=0)
    time_to_answer: int = Field(..., ge=0)


# Live rooms


class RoomQuestionModel(BaseModel):
    id: str
    question: str
    options: List[str]
    correct_answer: int
    time_limit: int = 20
    points: int = 1000
    type: str = "multiple-choice"
    image_url: Optional[str] = None


class RoomCreateRequest(BaseModel):
    host_id: str
    title: str = Field(..., min_length=1)
    game_type: str = "trivia"
    questions: List[RoomQuestionModel]


class RoomCreateResponse(BaseModel):
    room_code: str


class RoomJoinRequest(BaseModel):
    player_name: str = Field(..., min_length=1, max_length=MAX_NICKNAME_LENGTH)


class RoomJoinResponse(BaseModel):
    player_id: str


class RoomNextRequest(BaseModel):
    current_index: int


class RoomAnswerRequest(BaseModel):
    player_id: str
    question_id: str
    selected_option: int
    time_elapsed: float = Field(..., ge=0)


# Energy and pulse checks


class EnergyRequest(BaseModel):
    user_id: str
    display_name: str
    level: int


class PulseResponseRequest(BaseModel):
    user_id: str
    display_name: str
    feeling: PulseFeeling


# LeaderGrid


class LeaderGridCreateRequest(BaseModel):
    host_id: str
    class_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""
    points: int = Field(..., ge=1, le=MAX_POINTS)
    max_scans: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[int] = None


class LeaderGridRedeemRequest(BaseModel):
    user_id: str
    code: str
    class_id: Optional[str] = None


# Parking lot


class ParkingLotCreateRequest(BaseModel):
    class_id: str
    user_id: str
    user_name: str
    question: str = Field(..., min_length=1, max_length=MAX_QUESTION_LENGTH)


class ParkingLotAnswerRequest(BaseModel):
    answer: str


# Word Storm


class WordStormCreateRequest(BaseModel):
    class_id: str
    host_id: str


class WordRequest(BaseModel):
    text: str = Field(..., max_length=100)


class ClearedResponse(BaseModel):
    cleared: int


# Tickr and tools


class TimerCreateRequest(BaseModel):
    class_id: str
    host_id: str


class TimerUpdateRequest(BaseModel):
    label: Optional[str] = None
    duration: Optional[int] = None


class TimerStartRequest(BaseModel):
    duration_seconds: Any = None


class TimerStartResponse(BaseModel):
    end_time: int


class TimerPauseRequest(BaseModel):
    remaining_seconds: float = Field(..., ge=0)


class ToolStateRequest(BaseModel):
    active: Optional[bool] = None
    data: Optional[Dict[str, Any]] = None


class DiceRequest(BaseModel):
    count: int = 1


# PicPick


class GalleryCreateRequest(BaseModel):
    class_id: str
    host_id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    upload_start: Optional[int] = None
    upload_end: Optional[int] = None
    voting_start: Optional[int] = None
    voting_end: Optional[int] = None


class PhotoVoteRequest(BaseModel):
    user_id: str
    user_name: str = ""


class PhotoVoteResponse(BaseModel):
    votes_remaining: int


class ToggleRequest(BaseModel):
    enabled: bool


# Workbooks and gradebook


class AlbumBlockModel(BaseModel):
    id: str
    type: str
    content: str = ""
    media_url: Optional[str] = None
    question_type: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    correct_answer_hash: Optional[str] = None
    points: int = Field(default=0, ge=0, le=MAX_POINTS)


class AlbumPageModel(BaseModel):
    id: str
    title: str
    order: int = 0
    blocks: List[AlbumBlockModel] = Field(default_factory=list)


class AlbumTemplateCreateRequest(BaseModel):
    designer_id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    pages: List[AlbumPageModel] = Field(default_factory=list)


class AlbumTemplateUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_published: Optional[bool] = None
    pages: Optional[List[AlbumPageModel]] = None


class AssignmentSettingsModel(BaseModel):
    allow_late_submissions: bool = True
    is_guided: bool = False
    show_correct_answers_after_submission: bool = False


class AssignAlbumRequest(BaseModel):
    template_id: str
    class_id: str
    trainer_id: str
    due_date: Optional[int] = None
    settings: Optional[AssignmentSettingsModel] = None


class ProgressOpenRequest(BaseModel):
    class_album_id: str
    class_id: str
    student_id: str


class AlbumAnswerRequest(BaseModel):
    block_id: str
    answer: Any


class CompletePageRequest(BaseModel):
    page_id: str


class GradeAnswerRequest(BaseModel):
    block_id: str
    awarded_points: int = Field(..., ge=0, le=MAX_POINTS)
    feedback: Optional[str] = None
    grader_id: Optional[str] = None


class GradeAnswerResponse(BaseModel):
    delta: int


# Access codes and cloud templates


class AccessCodeCreateRequest(BaseModel):
    created_by: str
    tier: AccessTier = AccessTier.PRO
    max_uses: int = Field(default=1, ge=0)
    expires_in_days: Optional[int] = Field(default=None, ge=1)
    custom_code: Optional[str] = None


class AccessCodeResponse(BaseModel):
    code: str


class AccessCodeRedeemRequest(BaseModel):
    user_id: str


class RedeemedResponse(BaseModel):
    redeemed: bool


class CloudTemplateCreateRequest(BaseModel):
    user_id: str
    user_name: str
    title: str = Field(..., min_length=1)
    questions: List[Dict[str, Any]] = Field(default_factory=list)
    is_public: bool = False
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class CloudTemplateResponse(BaseModel):
    id: str


class CloudTemplateUpdateRequest(BaseModel):
    user_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[Dict[str, Any]]] = None
    is_public: Optional[bool] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
