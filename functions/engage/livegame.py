"""
Live quiz rooms kept in the real-time key-value store under `games/{room_code}`.

Rooms are short-lived and joined by a six-character code; every player and
answer lives inside the room's tree so a single watch shows the whole game.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Callable, List, Optional

from engage.errors import ConflictError, NotFoundError
from engage.kv import KeyValueStore
from shared.constants import ROOM_CODE_ALPHABET
from shared.json_utils import from_document, to_document
from shared.types import (
    RoomAnswer,
    RoomLeaderboardEntry,
    RoomPlayer,
    RoomQuestion,
    RoomSettings,
    RoomState,
    RoomStatus,
)
from shared.utils import generate_code, now_ms, round_half_up

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
MIN_POINTS_RATIO = 0.5


def room_path(room_code: str) -> str:
    return f"games/{room_code}"


def generate_room_code() -> str:
    return generate_code(ROOM_CODE_LENGTH, ROOM_CODE_ALPHABET)


def _load(kv: KeyValueStore, room_code: str) -> RoomState:
    data = kv.get(room_path(room_code))
    if data is None:
        raise NotFoundError(f"Room not found: {room_code}")
    return from_document(RoomState, data)


def create_game(
    kv: KeyValueStore,
    host_id: str,
    title: str,
    game_type: str,
    questions: List[RoomQuestion],
) -> str:
    room_code = generate_room_code()
    while kv.exists(room_path(room_code)):
        room_code = generate_room_code()
    state = RoomState(
        room_code=room_code,
        settings=RoomSettings(room_code=room_code, title=title, host_id=host_id, type=game_type),
        questions=questions,
        created_at=now_ms(),
    )
    kv.set(room_path(room_code), to_document(state))
    logger.info("Live room %s opened by %s", room_code, host_id)
    return room_code


def join_game(kv: KeyValueStore, room_code: str, player_name: str) -> str:
    if not check_room_exists(kv, room_code):
        raise NotFoundError(f"Room not found: {room_code}")
    suffix = "".join(random.choice(string.ascii_lowercase + string.digits) for _ in range(7))
    player_id = f"player_{now_ms()}_{suffix}"
    player = RoomPlayer(id=player_id, name=player_name, joined_at=now_ms())
    kv.set(f"{room_path(room_code)}/players/{player_id}", to_document(player))
    return player_id


def start_game(kv: KeyValueStore, room_code: str) -> None:
    now = now_ms()

    def apply(data: Optional[dict]) -> dict:
        if data is None:
            raise NotFoundError(f"Room not found: {room_code}")
        data.update(
            {
                "status": RoomStatus.ACTIVE.value,
                "started_at": now,
                "current_question_index": 0,
                "question_started_at": now,
            }
        )
        return data

    kv.transact(room_path(room_code), apply)


def next_question(kv: KeyValueStore, room_code: str, current_index: int) -> RoomStatus:
    """Advances to the next question, or finishes after the last one."""
    state = _load(kv, room_code)
    if current_index + 1 >= len(state.questions):
        kv.update(
            room_path(room_code),
            {"status": RoomStatus.FINISHED.value, "question_started_at": None},
        )
        return RoomStatus.FINISHED
    kv.update(
        room_path(room_code),
        {"current_question_index": current_index + 1, "question_started_at": now_ms()},
    )
    return RoomStatus.ACTIVE


def answer_points(question: RoomQuestion, time_elapsed: float) -> int:
    """Full points for an instant answer, falling linearly to half at the limit."""
    time_ratio = max(0.0, 1 - time_elapsed / question.time_limit) if question.time_limit else 0.0
    multiplier = MIN_POINTS_RATIO + time_ratio * (1 - MIN_POINTS_RATIO)
    return round_half_up(question.points * multiplier)


def submit_answer(
    kv: KeyValueStore,
    room_code: str,
    player_id: str,
    question_id: str,
    selected_option: int,
    time_elapsed: float,
) -> Optional[RoomAnswer]:
    """Scores a player's answer once; repeats and unknown questions return None."""
    outcome: dict = {}

    def apply(data: Optional[dict]) -> Optional[dict]:
        outcome.clear()
        if data is None:
            raise NotFoundError(f"Room not found: {room_code}")
        state = from_document(RoomState, data)
        question = next((q for q in state.questions if q.id == question_id), None)
        if question is None:
            return data
        if player_id in state.answers.get(question_id, {}):
            return data
        player = state.players.get(player_id)
        if player is None:
            raise ConflictError(f"Player {player_id} is not in room {room_code}")

        correct = selected_option == question.correct_answer
        now = now_ms()
        answer = RoomAnswer(
            player_id=player_id,
            question_id=question_id,
            selected_option=selected_option,
            answered_at=now,
            time_elapsed=time_elapsed,
            points_earned=answer_points(question, time_elapsed) if correct else 0,
        )
        data.setdefault("answers", {}).setdefault(question_id, {})[player_id] = to_document(answer)
        data["players"][player_id].update(
            {
                "score": player.score + answer.points_earned,
                "current_answer": str(selected_option),
                "answered_at": now,
            }
        )
        outcome["answer"] = answer
        return data

    kv.transact(room_path(room_code), apply)
    return outcome.get("answer")


def get_leaderboard(kv: KeyValueStore, room_code: str) -> List[RoomLeaderboardEntry]:
    data = kv.get(room_path(room_code))
    if not data or not data.get("players"):
        return []
    state = from_document(RoomState, data)

    entries = []
    for player in state.players.values():
        correct = sum(
            1
            for by_player in state.answers.values()
            if player.id in by_player and by_player[player.id].points_earned > 0
        )
        entries.append(
            RoomLeaderboardEntry(
                player_id=player.id,
                player_name=player.name,
                score=player.score,
                correct_answers=correct,
            )
        )
    entries.sort(key=lambda entry: entry.score, reverse=True)
    for rank, entry in enumerate(entries, start=1):
        entry.rank = rank
    return entries


def subscribe_to_game(
    kv: KeyValueStore, room_code: str, callback: Callable[[Optional[dict]], None]
) -> Callable[[], None]:
    return kv.watch(room_path(room_code), callback)


def check_room_exists(kv: KeyValueStore, room_code: str) -> bool:
    return kv.exists(room_path(room_code))
