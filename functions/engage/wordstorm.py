"""
Word Storm: students submit words, the host shows them as a cloud.

Every submission is its own document so the host can animate words as they
arrive; the cloud is an aggregate over them.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from engage.errors import ConflictError, NotFoundError
from engage.store import DocumentStore, Transaction
from shared.constants import WORDS_COLLECTION, WORDSTORMS_COLLECTION
from shared.json_utils import from_document, to_document
from shared.types import WordCount, WordStorm, WordStormStatus, WordSubmission
from shared.utils import get_unique_id, now_ms

logger = logging.getLogger(__name__)


def storm_path(storm_id: str) -> str:
    return f"{WORDSTORMS_COLLECTION}/{storm_id}"


def words_collection(storm_id: str) -> str:
    return f"{storm_path(storm_id)}/{WORDS_COLLECTION}"


def create_word_storm(store: DocumentStore, class_id: str, host_id: str) -> WordStorm:
    storm = WordStorm(id=get_unique_id(), class_id=class_id, host_id=host_id, created_at=now_ms())
    store.set(storm_path(storm.id), to_document(storm))
    return storm


def get_word_storm(store: DocumentStore, storm_id: str) -> Optional[WordStorm]:
    data = store.get(storm_path(storm_id))
    return from_document(WordStorm, data, storm_id) if data else None


def submit_word(store: DocumentStore, storm_id: str, text: str) -> Optional[WordSubmission]:
    """Adds a normalised word; blank input is ignored and returns None."""
    normalized = text.strip().lower()
    if not normalized:
        return None

    def run(txn: Transaction) -> WordSubmission:
        data = txn.get(storm_path(storm_id))
        if data is None:
            raise NotFoundError(f"Word Storm not found: {storm_id}")
        if data.get("status") == WordStormStatus.COMPLETED.value:
            raise ConflictError("This Word Storm has ended")
        submission = WordSubmission(id=get_unique_id(), text=normalized, created_at=now_ms())
        txn.set(f"{words_collection(storm_id)}/{submission.id}", to_document(submission))
        return submission

    return store.run_transaction(run)


def get_words(store: DocumentStore, storm_id: str) -> List[WordSubmission]:
    docs = store.query(words_collection(storm_id), order_by="created_at")
    return [from_document(WordSubmission, doc.data, doc.id) for doc in docs]


def on_words_change(
    store: DocumentStore, storm_id: str, callback: Callable[[List[WordSubmission]], None]
) -> Callable[[], None]:
    return store.watch(words_collection(storm_id), lambda _path: callback(get_words(store, storm_id)))


def clear_word_storm(store: DocumentStore, storm_id: str) -> int:
    def run(txn: Transaction) -> int:
        docs = txn.query(words_collection(storm_id))
        for doc in docs:
            txn.delete(doc.path)
        return len(docs)

    cleared = store.run_transaction(run)
    logger.info("Cleared %d words from Word Storm %s", cleared, storm_id)
    return cleared


def complete_word_storm(store: DocumentStore, storm_id: str) -> None:
    store.update(storm_path(storm_id), {"status": WordStormStatus.COMPLETED.value})


def get_word_counts(words: List[WordSubmission]) -> List[WordCount]:
    """Collapses submissions into a cloud, most frequent first."""
    counts: dict = {}
    for word in words:
        counts[word.text] = counts.get(word.text, 0) + 1
    cloud = [WordCount(text=text, count=count) for text, count in counts.items()]
    cloud.sort(key=lambda entry: (-entry.count, entry.text))
    return cloud
