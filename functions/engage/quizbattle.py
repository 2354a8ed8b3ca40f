"""
Quiz Battle: quizzes, hosted games and player responses in the document
store. Correct answers earn class points through the ledger.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from engage import analytics
from engage.errors import ConflictError, InvalidInputError, NotFoundError
from engage.scoring import apply_points
from engage.store import DocumentStore, Transaction
from shared.constants import GAMES_COLLECTION, QUIZZES_COLLECTION, RESPONSES_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import (
    Game,
    GamePhase,
    GameStatus,
    Player,
    Quiz,
    QuizQuestion,
    QuizResponse,
    QuizSettings,
)
from shared.utils import get_unique_id, now_ms, round_half_up

logger = logging.getLogger(__name__)

QUIZ_POINTS_REASON = "Quiz Battle"
QUIZ_EDITABLE_FIELDS = {"title", "description", "questions", "settings", "class_id"}


@dataclass
class LeaderboardEntry:
    user_id: str
    player: Player


def quiz_path(quiz_id: str) -> str:
    return f"{QUIZZES_COLLECTION}/{quiz_id}"


def game_path(game_id: str) -> str:
    return f"{GAMES_COLLECTION}/{game_id}"


def responses_collection(game_id: str) -> str:
    return f"{game_path(game_id)}/{RESPONSES_COLLECTION}"


# Quizzes


def create_quiz(
    store: DocumentStore,
    title: str,
    class_id: str,
    created_by: str,
    questions: List[QuizQuestion],
    description: str = "",
    settings: Optional[QuizSettings] = None,
) -> Quiz:
    _check_questions(questions)
    quiz = Quiz(
        id=get_unique_id(),
        title=title,
        description=description,
        class_id=class_id,
        created_by=created_by,
        questions=questions,
        settings=settings or QuizSettings(),
        created_at=now_ms(),
    )
    store.set(quiz_path(quiz.id), to_document(quiz))
    logger.info("Quiz %s created by %s", quiz.id, created_by)
    return quiz


def _check_questions(questions: List[QuizQuestion]) -> None:
    for question in questions:
        if not 0 <= question.correct_answer_index < len(question.answers):
            raise InvalidInputError(
                f"Question {question.id} has no answer at index {question.correct_answer_index}"
            )
        if question.time_limit <= 0:
            raise InvalidInputError(f"Question {question.id} needs a positive time limit")


def get_quiz(store: DocumentStore, quiz_id: str) -> Optional[Quiz]:
    data = store.get(quiz_path(quiz_id))
    return from_document(Quiz, data, quiz_id) if data else None


def update_quiz(store: DocumentStore, quiz_id: str, changes: dict) -> None:
    changes = {key: value for key, value in changes.items() if key in QUIZ_EDITABLE_FIELDS}
    if "questions" in changes:
        _check_questions(
            [
                question if isinstance(question, QuizQuestion) else from_document(QuizQuestion, question)
                for question in changes["questions"]
            ]
        )
        changes["questions"] = [
            to_document(question) if isinstance(question, QuizQuestion) else question
            for question in changes["questions"]
        ]
    if isinstance(changes.get("settings"), QuizSettings):
        changes["settings"] = to_document(changes["settings"])
    store.update(quiz_path(quiz_id), changes)


def delete_quiz(store: DocumentStore, quiz_id: str) -> None:
    store.delete(quiz_path(quiz_id))


def clone_quiz(store: DocumentStore, quiz_id: str, user_id: str) -> Quiz:
    quiz = get_quiz(store, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz not found")
    copy = replace(
        quiz,
        id=get_unique_id(),
        title=f"{quiz.title} (Copy)",
        created_by=user_id,
        created_at=now_ms(),
    )
    store.set(quiz_path(copy.id), to_document(copy))
    return copy


def get_quizzes_by_class(store: DocumentStore, class_id: str) -> List[Quiz]:
    docs = store.query(QUIZZES_COLLECTION, where=[("class_id", "==", class_id)])
    return [from_document(Quiz, doc.data, doc.id) for doc in docs]


def get_quizzes_by_user(store: DocumentStore, user_id: str) -> List[Quiz]:
    docs = store.query(QUIZZES_COLLECTION, where=[("created_by", "==", user_id)])
    return [from_document(Quiz, doc.data, doc.id) for doc in docs]


# Games


def create_game(store: DocumentStore, quiz_id: str, class_id: str, host_id: str) -> Game:
    if get_quiz(store, quiz_id) is None:
        raise NotFoundError("Quiz not found")
    game = Game(
        id=get_unique_id(),
        quiz_id=quiz_id,
        class_id=class_id,
        host_id=host_id,
        created_at=now_ms(),
    )
    store.set(game_path(game.id), to_document(game))
    logger.info("Game %s created for quiz %s", game.id, quiz_id)
    return game


def get_game(store: DocumentStore, game_id: str) -> Optional[Game]:
    data = store.get(game_path(game_id))
    return from_document(Game, data, game_id) if data else None


def update_game(store: DocumentStore, game_id: str, changes: dict) -> None:
    store.update(game_path(game_id), changes)


def start_game(store: DocumentStore, game_id: str) -> None:
    """Moves the lobby into play; index -1 is the countdown before question one."""
    update_game(
        store,
        game_id,
        {
            "status": GameStatus.PLAYING.value,
            "current_question_index": -1,
            "question_start_time": now_ms(),
            "phase": GamePhase.QUESTION.value,
        },
    )


def next_question(store: DocumentStore, game_id: str, current_index: int) -> None:
    update_game(
        store,
        game_id,
        {
            "current_question_index": current_index + 1,
            "question_start_time": now_ms(),
            "phase": GamePhase.QUESTION.value,
        },
    )


def reveal_answer(store: DocumentStore, game_id: str) -> None:
    update_game(
        store, game_id, {"phase": GamePhase.REVEAL.value, "question_start_time": None}
    )


def end_game(store: DocumentStore, game_id: str) -> None:
    update_game(
        store, game_id, {"status": GameStatus.FINISHED.value, "question_start_time": None}
    )


def join_game(store: DocumentStore, game_id: str, user_id: str, nickname: str) -> Player:
    player = Player(nickname=nickname, joined_at=now_ms())
    update_game(store, game_id, {f"players.{user_id}": to_document(player)})
    return player


def update_player_score(store: DocumentStore, game_id: str, user_id: str, score: int) -> None:
    update_game(store, game_id, {f"players.{user_id}.score": score})


# Responses


def calculate_score(time_to_answer: float, time_limit: float, max_points: int = 1000) -> int:
    """Speed bonus: full points at 0 ms falling linearly to half at the limit."""
    time_limit_ms = time_limit * 1000
    ratio = min(time_to_answer / time_limit_ms, 1) if time_limit_ms > 0 else 1
    return round_half_up(max_points * (1 - ratio * 0.5))


def submit_answer(
    store: DocumentStore,
    game_id: str,
    user_id: str,
    question_index: int,
    answer_index: int,
    time_to_answer: int,
) -> Optional[QuizResponse]:
    """Records a player's answer and scores it.

    The first submission per player and question wins; repeats return None.
    Correctness and points are worked out from the quiz, and a correct
    answer moves the player's game score and class points in the same
    transaction as the response.
    """

    def run(txn: Transaction) -> Optional[tuple]:
        game_data = txn.get(game_path(game_id))
        if game_data is None:
            raise NotFoundError("Game not found")
        game = from_document(Game, game_data, game_id)
        if game.status != GameStatus.PLAYING:
            raise ConflictError("Game is not in progress")

        response_path = f"{responses_collection(game_id)}/{user_id}-{question_index}"
        if txn.exists(response_path):
            return None

        quiz_data = txn.get(quiz_path(game.quiz_id))
        if quiz_data is None:
            raise NotFoundError("Quiz not found")
        quiz = from_document(Quiz, quiz_data, game.quiz_id)
        if not 0 <= question_index < len(quiz.questions):
            raise InvalidInputError(f"No question at index {question_index}")
        question = quiz.questions[question_index]

        correct = answer_index == question.correct_answer_index
        points = calculate_score(time_to_answer, question.time_limit, question.points) if correct else 0
        response = QuizResponse(
            id=f"{user_id}-{question_index}",
            user_id=user_id,
            question_index=question_index,
            answer_index=answer_index,
            time_to_answer=time_to_answer,
            correct=correct,
            points_earned=points,
            timestamp=now_ms(),
        )
        txn.set(response_path, to_document(response))

        if points > 0:
            if user_id in game.players:
                txn.update(
                    game_path(game_id),
                    {f"players.{user_id}.score": game.players[user_id].score + points},
                )
            if game.class_id:
                apply_points(
                    txn, game.class_id, user_id, points, QUIZ_POINTS_REASON, create_member=True
                )
        return response, game.class_id

    outcome = store.run_transaction(run)
    if outcome is None:
        logger.info("Ignoring repeat answer from %s on question %d", user_id, question_index)
        return None
    response, class_id = outcome
    if response.points_earned > 0 and class_id:
        analytics.log_point_transaction(
            store, user_id, response.points_earned, QUIZ_POINTS_REASON, class_id
        )
    return response


def get_responses(store: DocumentStore, game_id: str, question_index: int) -> List[QuizResponse]:
    docs = store.query(
        responses_collection(game_id), where=[("question_index", "==", question_index)]
    )
    return [from_document(QuizResponse, doc.data, doc.id) for doc in docs]


def on_game_change(
    store: DocumentStore, game_id: str, callback: Callable[[Game], None]
) -> Callable[[], None]:
    def listener(_path: str) -> None:
        game = get_game(store, game_id)
        if game is not None:
            callback(game)

    return store.watch(game_path(game_id), listener)


def on_responses_change(
    store: DocumentStore,
    game_id: str,
    question_index: int,
    callback: Callable[[List[QuizResponse]], None],
) -> Callable[[], None]:
    return store.watch(
        responses_collection(game_id),
        lambda _path: callback(get_responses(store, game_id, question_index)),
    )


def generate_game_pin() -> str:
    return str(random.randint(100000, 999999))


def get_leaderboard(players: Dict[str, Player]) -> List[LeaderboardEntry]:
    entries = [LeaderboardEntry(user_id=uid, player=player) for uid, player in players.items()]
    entries.sort(key=lambda entry: entry.player.score, reverse=True)
    return entries
