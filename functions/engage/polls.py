"""
Live polls: one vote per student, re-voting replaces the earlier choice.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from engage.errors import ConflictError, InvalidInputError, NotFoundError
from engage.store import DocumentStore, Transaction
from shared.constants import POLLS_COLLECTION, VOTES_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import Poll, PollOption, PollStatus, Vote
from shared.utils import get_unique_id, now_ms
from shared.validation import is_valid_answer_option, is_valid_question

logger = logging.getLogger(__name__)


def poll_path(poll_id: str) -> str:
    return f"{POLLS_COLLECTION}/{poll_id}"


def votes_collection(poll_id: str) -> str:
    return f"{poll_path(poll_id)}/{VOTES_COLLECTION}"


def create_poll(
    store: DocumentStore,
    class_id: str,
    host_id: str,
    question: str,
    options: List[PollOption],
) -> Poll:
    check = is_valid_question(question)
    if not check.valid:
        raise InvalidInputError(check.error)
    if len(options) < 2:
        raise InvalidInputError("A poll needs at least two options")
    for option in options:
        check = is_valid_answer_option(option.text)
        if not check.valid:
            raise InvalidInputError(check.error)
    if len({option.id for option in options}) != len(options):
        raise InvalidInputError("Poll option ids must be unique")

    poll = Poll(
        id=get_unique_id(),
        class_id=class_id,
        host_id=host_id,
        question=question.strip(),
        options=options,
        created_at=now_ms(),
    )
    store.set(poll_path(poll.id), to_document(poll))
    logger.info("Poll %s created in class %s", poll.id, class_id)
    return poll


def get_poll(store: DocumentStore, poll_id: str) -> Optional[Poll]:
    data = store.get(poll_path(poll_id))
    return from_document(Poll, data, poll_id) if data else None


def on_poll_change(
    store: DocumentStore, poll_id: str, callback: Callable[[Optional[Poll]], None]
) -> Callable[[], None]:
    return store.watch(poll_path(poll_id), lambda _path: callback(get_poll(store, poll_id)))


def vote_poll(store: DocumentStore, poll_id: str, user_id: str, option_id: str) -> Vote:
    """Records `user_id`'s choice, replacing any earlier vote."""

    def run(txn: Transaction) -> Vote:
        data = txn.get(poll_path(poll_id))
        if data is None:
            raise NotFoundError(f"Poll not found: {poll_id}")
        poll = from_document(Poll, data, poll_id)
        if poll.status != PollStatus.ACTIVE:
            raise ConflictError("This poll is closed")
        if option_id not in {option.id for option in poll.options}:
            raise InvalidInputError(f"Unknown option: {option_id}")
        vote = Vote(id=user_id, option_id=option_id, created_at=now_ms())
        txn.set(f"{votes_collection(poll_id)}/{user_id}", to_document(vote))
        return vote

    return store.run_transaction(run)


def get_votes(store: DocumentStore, poll_id: str) -> List[Vote]:
    return [
        from_document(Vote, doc.data, doc.id)
        for doc in store.query(votes_collection(poll_id))
    ]


def on_votes_change(
    store: DocumentStore, poll_id: str, callback: Callable[[List[Vote]], None]
) -> Callable[[], None]:
    return store.watch(
        votes_collection(poll_id), lambda _path: callback(get_votes(store, poll_id))
    )


def toggle_poll_results(store: DocumentStore, poll_id: str, show: bool) -> None:
    store.update(poll_path(poll_id), {"show_results": bool(show)})


def update_poll_status(store: DocumentStore, poll_id: str, status: PollStatus) -> None:
    store.update(poll_path(poll_id), {"status": PollStatus(status).value})


def get_poll_results(store: DocumentStore, poll_id: str) -> Dict[str, int]:
    """Vote count per option id, including options nobody picked."""
    poll = get_poll(store, poll_id)
    if poll is None:
        raise NotFoundError(f"Poll not found: {poll_id}")
    counts = {option.id: 0 for option in poll.options}
    for vote in get_votes(store, poll_id):
        if vote.option_id in counts:
            counts[vote.option_id] += 1
    return counts
