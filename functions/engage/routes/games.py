"""
Routes for Quiz Battle (document store) and live trivia rooms (key-value
store).
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from engage import livegame, quizbattle
from engage.dependencies import get_document_store, get_kv_store
from engage.kv import KeyValueStore
from engage.schemas import (
    CloneQuizRequest,
    GameAnswerRequest,
    GameCreateRequest,
    GameJoinRequest,
    NextQuestionRequest,
    QuizCreateRequest,
    QuizUpdateRequest,
    RoomAnswerRequest,
    RoomCreateRequest,
    RoomCreateResponse,
    RoomJoinRequest,
    RoomJoinResponse,
    RoomNextRequest,
    StatusResponse,
)
from engage.store import DocumentStore
from shared.json_utils import from_document
from shared.types import (
    Game,
    Player,
    Quiz,
    QuizQuestion,
    QuizResponse,
    QuizSettings,
    RoomAnswer,
    RoomLeaderboardEntry,
    RoomQuestion,
)

router = APIRouter()


# Quizzes


@router.post("/quizzes", response_model=None, status_code=201)
def create_quiz(payload: QuizCreateRequest, store: DocumentStore = Depends(get_document_store)) -> Quiz:
    questions = [from_document(QuizQuestion, question.model_dump()) for question in payload.questions]
    settings = from_document(QuizSettings, payload.settings.model_dump()) if payload.settings else None
    return quizbattle.create_quiz(
        store,
        payload.title,
        payload.class_id,
        payload.created_by,
        questions,
        description=payload.description,
        settings=settings,
    )


@router.get("/quizzes", response_model=None)
def list_quizzes(
    class_id: str | None = None,
    user_id: str | None = None,
    store: DocumentStore = Depends(get_document_store),
) -> List[Quiz]:
    if class_id:
        return quizbattle.get_quizzes_by_class(store, class_id)
    if user_id:
        return quizbattle.get_quizzes_by_user(store, user_id)
    raise HTTPException(status_code=400, detail="class_id or user_id is required")


@router.get("/quizzes/{quiz_id}", response_model=None)
def get_quiz(quiz_id: str, store: DocumentStore = Depends(get_document_store)) -> Quiz:
    quiz = quizbattle.get_quiz(store, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.patch("/quizzes/{quiz_id}", response_model=StatusResponse)
def update_quiz(quiz_id: str, payload: QuizUpdateRequest, store: DocumentStore = Depends(get_document_store)):
    quizbattle.update_quiz(store, quiz_id, payload.model_dump(exclude_unset=True))
    return StatusResponse()


@router.delete("/quizzes/{quiz_id}", response_model=StatusResponse)
def delete_quiz(quiz_id: str, store: DocumentStore = Depends(get_document_store)):
    quizbattle.delete_quiz(store, quiz_id)
    return StatusResponse()


@router.post("/quizzes/{quiz_id}/clone", response_model=None, status_code=201)
def clone_quiz(quiz_id: str, payload: CloneQuizRequest, store: DocumentStore = Depends(get_document_store)) -> Quiz:
    return quizbattle.clone_quiz(store, quiz_id, payload.user_id)


# Quiz Battle games


@router.post("/games", response_model=None, status_code=201)
def create_game(payload: GameCreateRequest, store: DocumentStore = Depends(get_document_store)) -> Game:
    return quizbattle.create_game(store, payload.quiz_id, payload.class_id, payload.host_id)


@router.get("/games/{game_id}", response_model=None)
def get_game(game_id: str, store: DocumentStore = Depends(get_document_store)) -> dict:
    game = quizbattle.get_game(store, game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return {"game": game, "leaderboard": quizbattle.get_leaderboard(game.players)}


@router.post("/games/{game_id}/players", response_model=None)
def join_game(game_id: str, payload: GameJoinRequest, store: DocumentStore = Depends(get_document_store)) -> Player:
    return quizbattle.join_game(store, game_id, payload.user_id, payload.nickname)


@router.post("/games/{game_id}/start", response_model=StatusResponse)
def start_game(game_id: str, store: DocumentStore = Depends(get_document_store)):
    quizbattle.start_game(store, game_id)
    return StatusResponse()


@router.post("/games/{game_id}/next", response_model=StatusResponse)
def next_question(game_id: str, payload: NextQuestionRequest, store: DocumentStore = Depends(get_document_store)):
    quizbattle.next_question(store, game_id, payload.current_index)
    return StatusResponse()


@router.post("/games/{game_id}/reveal", response_model=StatusResponse)
def reveal_answer(game_id: str, store: DocumentStore = Depends(get_document_store)):
    quizbattle.reveal_answer(store, game_id)
    return StatusResponse()


@router.post("/games/{game_id}/end", response_model=StatusResponse)
def end_game(game_id: str, store: DocumentStore = Depends(get_document_store)):
    quizbattle.end_game(store, game_id)
    return StatusResponse()


@router.post("/games/{game_id}/answers", response_model=None)
def submit_game_answer(
    game_id: str, payload: GameAnswerRequest, store: DocumentStore = Depends(get_document_store)
) -> Optional[QuizResponse]:
    return quizbattle.submit_answer(
        store,
        game_id,
        payload.user_id,
        payload.question_index,
        payload.answer_index,
        payload.time_to_answer,
    )


@router.get("/games/{game_id}/answers/{question_index}", response_model=None)
def game_responses(
    game_id: str, question_index: int, store: DocumentStore = Depends(get_document_store)
) -> List[QuizResponse]:
    return quizbattle.get_responses(store, game_id, question_index)


# Live rooms


@router.post("/rooms", response_model=RoomCreateResponse, status_code=201)
def create_room(payload: RoomCreateRequest, kv: KeyValueStore = Depends(get_kv_store)):
    questions = [from_document(RoomQuestion, question.model_dump()) for question in payload.questions]
    room_code = livegame.create_game(kv, payload.host_id, payload.title, payload.game_type, questions)
    return RoomCreateResponse(room_code=room_code)


@router.get("/rooms/{room_code}", response_model=None)
def get_room(room_code: str, kv: KeyValueStore = Depends(get_kv_store)) -> dict:
    state = kv.get(livegame.room_path(room_code))
    if state is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return state


@router.post("/rooms/{room_code}/players", response_model=RoomJoinResponse)
def join_room(room_code: str, payload: RoomJoinRequest, kv: KeyValueStore = Depends(get_kv_store)):
    return RoomJoinResponse(player_id=livegame.join_game(kv, room_code, payload.player_name))


@router.post("/rooms/{room_code}/start", response_model=StatusResponse)
def start_room(room_code: str, kv: KeyValueStore = Depends(get_kv_store)):
    livegame.start_game(kv, room_code)
    return StatusResponse()


@router.post("/rooms/{room_code}/next", response_model=None)
def next_room_question(room_code: str, payload: RoomNextRequest, kv: KeyValueStore = Depends(get_kv_store)) -> dict:
    return {"status": livegame.next_question(kv, room_code, payload.current_index)}


@router.post("/rooms/{room_code}/answers", response_model=None)
def submit_room_answer(
    room_code: str, payload: RoomAnswerRequest, kv: KeyValueStore = Depends(get_kv_store)
) -> Optional[RoomAnswer]:
    return livegame.submit_answer(
        kv,
        room_code,
        payload.player_id,
        payload.question_id,
        payload.selected_option,
        payload.time_elapsed,
    )


@router.get("/rooms/{room_code}/leaderboard", response_model=None)
def room_leaderboard(room_code: str, kv: KeyValueStore = Depends(get_kv_store)) -> List[RoomLeaderboardEntry]:
    return livegame.get_leaderboard(kv, room_code)
