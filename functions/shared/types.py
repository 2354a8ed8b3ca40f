# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from enum import StrEnum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class Role(StrEnum):
    HOST = "host"
    PLAYER = "player"


class ActivityType(StrEnum):
    NONE = "none"
    RANDOMIZER = "randomizer"
    TICKR = "tickr"
    PICPICK = "picpick"
    QUIZBATTLE = "quizbattle"
    WORDSTORM = "wordstorm"
    POLL = "poll"
    BUZZER = "buzzer"
    COMMITMENT = "commitment"


class PollStatus(StrEnum):
    ACTIVE = "active"
    CLOSED = "closed"


class GameStatus(StrEnum):
    LOBBY = "lobby"
    PLAYING = "playing"
    FINISHED = "finished"


class GamePhase(StrEnum):
    QUESTION = "question"
    REVEAL = "reveal"


class BuzzerStatus(StrEnum):
    LOCKED = "locked"
    OPEN = "open"


class TimerStatus(StrEnum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class QuestionStatus(StrEnum):
    UNANSWERED = "unanswered"
    ANSWERED = "answered"


class WordStormStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


class PulseFeeling(StrEnum):
    ENERGIZED = "energized"
    GOOD = "good"
    OK = "ok"
    TIRED = "tired"
    NEED_BREAK = "need_break"


class BlockType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    QUESTION = "question"
    SEPARATOR = "separator"
    HEADER = "header"


class QuestionType(StrEnum):
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"


class ProgressStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AssignmentStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class AccessTier(StrEnum):
    STARTER = "starter"
    PRO = "pro"
    UNLIMITED = "unlimited"
    TRIAL = "trial"


# Users


@dataclass
class BadgeAssignment:
    badge_id: str
    awarded_at: int
    awarded_by: str


@dataclass
class UserProfile:
    uid: str
    email: str
    display_name: str
    role: Role = Role.PLAYER
    photo_url: Optional[str] = None
    joined_class_id: Optional[str] = None
    lifetime_points: int = 0
    games_played: int = 0
    games_won: int = 0
    badges: List[BadgeAssignment] = field(default_factory=list)
    created_at: int = 0
    last_active: int = 0


# Classes and the points ledger


@dataclass
class CurrentActivity:
    type: ActivityType = ActivityType.NONE
    id: Optional[str] = None
    state: Optional[Dict[str, Any]] = None


@dataclass
class ClassRoom:
    id: str
    code: str
    name: str
    host_id: str
    member_ids: List[str] = field(default_factory=list)
    created_at: int = 0
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    expires_at: Optional[int] = None
    current_activity: CurrentActivity = field(default_factory=CurrentActivity)


@dataclass
class ClassMember:
    user_id: str
    class_id: str
    nickname: str
    score: int = 0
    joined_at: int = 0


@dataclass
class PointHistory:
    """One immutable entry in a member's point log."""

    timestamp: int
    points: int
    reason: str
    admin_id: Optional[str] = None
    id: Optional[str] = None


# Badges


@dataclass
class Badge:
    id: str
    host_id: str
    name: str
    description: str
    image_url: str
    created_at: int = 0
    deleted: bool = False


@dataclass
class UserBadgeEnriched:
    assignment: BadgeAssignment
    details: Optional[Badge]


# Polls


@dataclass
class PollOption:
    id: str
    text: str
    color: str = ""


@dataclass
class Poll:
    id: str
    class_id: str
    host_id: str
    question: str
    options: List[PollOption]
    status: PollStatus = PollStatus.ACTIVE
    show_results: bool = False
    created_at: int = 0


@dataclass
class Vote:
    id: str
    option_id: str
    created_at: int = 0


# Quiz battle


@dataclass
class QuizAnswer:
    id: str
    text: str


@dataclass
class QuizQuestion:
    id: str
    text: str
    answers: List[QuizAnswer]
    correct_answer_index: int
    time_limit: int = 20
    points: int = 1000
    type: str = "multiple-choice"
    media_url: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class QuizSettings:
    time_per_question: int = 20
    show_answers_immediately: bool = True
    points_per_question: int = 1000


@dataclass
class Quiz:
    id: str
    title: str
    class_id: str
    created_by: str
    description: str = ""
    questions: List[QuizQuestion] = field(default_factory=list)
    settings: QuizSettings = field(default_factory=QuizSettings)
    created_at: int = 0


@dataclass
class Player:
    nickname: str
    score: int = 0
    joined_at: int = 0


@dataclass
class Game:
    id: str
    quiz_id: str
    class_id: str
    host_id: str
    status: GameStatus = GameStatus.LOBBY
    current_question_index: int = -1
    question_start_time: Optional[int] = None
    phase: GamePhase = GamePhase.QUESTION
    players: Dict[str, Player] = field(default_factory=dict)
    created_at: int = 0


@dataclass
class QuizResponse:
    id: str
    user_id: str
    question_index: int
    answer_index: int
    time_to_answer: int
    correct: bool
    points_earned: int
    timestamp: int = 0


# Energy and pulse checks


@dataclass
class StudentEnergy:
    user_id: str
    display_name: str
    level: int
    timestamp: int = 0


@dataclass
class PulseResponse:
    user_id: str
    display_name: str
    feeling: PulseFeeling
    timestamp: int = 0


@dataclass
class PulseCheck:
    id: str
    class_id: str
    active: bool
    start_time: int
    responses: List[PulseResponse] = field(default_factory=list)


# Buzzer


@dataclass
class Buzz:
    user_id: str
    display_name: str
    timestamp: int


@dataclass
class BuzzerState:
    status: BuzzerStatus = BuzzerStatus.LOCKED
    buzzes: List[Buzz] = field(default_factory=list)


# Leader grid


@dataclass
class LeaderGridCode:
    id: str
    code: str
    name: str
    host_id: str
    points: int
    description: str = ""
    class_id: Optional[str] = None
    max_scans: Optional[int] = None
    expires_at: Optional[int] = None
    current_scans: int = 0
    redeemed_by: List[str] = field(default_factory=list)
    created_at: int = 0


@dataclass
class RedemptionResult:
    success: bool
    message: str
    points: int = 0


@dataclass
class RedemptionRecord:
    code_id: str
    code_name: str
    points: int
    timestamp: int
    class_id: Optional[str] = None


# Parking lot, word storm, timers, tools


@dataclass
class ParkingLotItem:
    id: str
    class_id: str
    user_id: str
    user_name: str
    question: str
    status: QuestionStatus = QuestionStatus.UNANSWERED
    created_at: int = 0
    answer: Optional[str] = None
    answered_at: Optional[int] = None


@dataclass
class WordStorm:
    id: str
    class_id: str
    host_id: str
    status: WordStormStatus = WordStormStatus.ACTIVE
    created_at: int = 0


@dataclass
class WordSubmission:
    id: str
    text: str
    created_at: int = 0


@dataclass
class WordCount:
    text: str
    count: int


@dataclass
class Timer:
    id: str
    class_id: str
    host_id: str
    status: TimerStatus = TimerStatus.STOPPED
    duration: int = 300
    label: str = "Break Time"
    end_time: Optional[int] = None
    paused_at: Optional[int] = None
    created_at: int = 0


@dataclass
class ToolState:
    type: str
    active: bool = False
    data: Dict[str, Any] = field(default_factory=dict)
    updated_at: int = 0


# Photo contests


@dataclass
class Gallery:
    id: str
    name: str
    code: str
    class_id: str
    host_id: str
    description: str = ""
    upload_start: Optional[int] = None
    upload_end: Optional[int] = None
    voting_start: Optional[int] = None
    voting_end: Optional[int] = None
    upload_open: bool = True
    voting_open: bool = False
    show_vote_counts: bool = False
    created_at: int = 0


@dataclass
class Photo:
    id: str
    image_url: str
    user_id: str
    user_name: str
    storage_path: str = ""
    user_photo: Optional[str] = None
    uploaded_at: int = 0
    votes: int = 0


# Workbooks


@dataclass
class AlbumBlock:
    id: str
    type: BlockType
    content: str = ""
    media_url: Optional[str] = None
    question_type: Optional[str] = None
    options: List[str] = field(default_factory=list)
    correct_answer_hash: Optional[str] = None
    points: int = 0


@dataclass
class AlbumPage:
    id: str
    title: str
    order: int = 0
    blocks: List[AlbumBlock] = field(default_factory=list)


@dataclass
class AlbumTemplate:
    id: str
    title: str
    designer_id: str
    description: str = ""
    cover_image_url: Optional[str] = None
    is_published: bool = False
    created_at: int = 0
    updated_at: int = 0
    pages: List[AlbumPage] = field(default_factory=list)
    total_points_available: int = 0


@dataclass
class AssignmentSettings:
    allow_late_submissions: bool = True
    is_guided: bool = False
    show_correct_answers_after_submission: bool = False


@dataclass
class ClassAlbum:
    id: str
    template_id: str
    class_id: str
    assigned_by_user_id: str
    title: str
    total_points_available: int = 0
    assigned_at: int = 0
    due_date: Optional[int] = None
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    settings: AssignmentSettings = field(default_factory=AssignmentSettings)


@dataclass
class AlbumAnswer:
    answer: Any
    submitted_at: int
    awarded_points: Optional[int] = None
    is_correct: Optional[bool] = None
    feedback: Optional[str] = None
    needs_grading: bool = False


@dataclass
class AlbumProgress:
    id: str
    class_album_id: str
    student_id: str
    class_id: str
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    percent_complete: int = 0
    current_points_earned: int = 0
    completed_page_ids: List[str] = field(default_factory=list)
    last_accessed_at: int = 0
    answers: Dict[str, AlbumAnswer] = field(default_factory=dict)


# Admin


@dataclass
class AccessCode:
    code: str
    tier: AccessTier
    created_by: str
    created_at: int = 0
    expires_at: Optional[int] = None
    used_by: Optional[str] = None
    used_at: Optional[int] = None
    max_uses: int = 1
    current_uses: int = 0
    active: bool = True


@dataclass
class CloudTemplate:
    id: str
    title: str
    created_by: str
    created_by_name: str
    questions: List[Dict[str, Any]] = field(default_factory=list)
    description: Optional[str] = None
    created_at: int = 0
    last_used: Optional[int] = None
    times_used: int = 0
    is_public: bool = False
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)


# Live quiz rooms (real-time key-value store)


class RoomStatus(StrEnum):
    LOBBY = "lobby"
    ACTIVE = "active"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass
class RoomQuestion:
    id: str
    question: str
    options: List[str]
    correct_answer: int
    time_limit: int = 20
    points: int = 1000
    type: str = "multiple-choice"
    image_url: Optional[str] = None


@dataclass
class RoomPlayer:
    id: str
    name: str
    score: int = 0
    current_answer: Optional[str] = None
    answered_at: Optional[int] = None
    joined_at: int = 0


@dataclass
class RoomAnswer:
    player_id: str
    question_id: str
    selected_option: int
    answered_at: int
    time_elapsed: float
    points_earned: int


@dataclass
class RoomSettings:
    room_code: str
    title: str
    host_id: str
    type: str = "trivia"
    description: Optional[str] = None
    show_leaderboard_between_questions: bool = True
    auto_advance: bool = False
    auto_advance_delay: int = 5


@dataclass
class RoomState:
    room_code: str
    settings: RoomSettings
    status: RoomStatus = RoomStatus.LOBBY
    current_question_index: int = -1
    question_started_at: Optional[int] = None
    questions: List[RoomQuestion] = field(default_factory=list)
    players: Dict[str, RoomPlayer] = field(default_factory=dict)
    answers: Dict[str, Dict[str, RoomAnswer]] = field(default_factory=dict)
    created_at: int = 0
    started_at: Optional[int] = None


@dataclass
class RoomLeaderboardEntry:
    player_id: str
    player_name: str
    score: int
    correct_answers: int
    rank: int = 0
