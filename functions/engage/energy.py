"""
Student energy meters and the host's pulse checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from engage.errors import InvalidInputError, NotFoundError
from engage.store import DocumentStore, Transaction
from shared.constants import (
    CLASSES_COLLECTION,
    DEFAULT_ENERGY_LEVEL,
    ENERGY_COLLECTION,
    HIGH_ENERGY_THRESHOLD,
    LOW_ENERGY_THRESHOLD,
    PULSE_CHECKS_COLLECTION,
)
from shared.json_utils import from_document, to_document
from shared.types import PulseCheck, PulseFeeling, PulseResponse, StudentEnergy
from shared.utils import now_ms, round_half_up

logger = logging.getLogger(__name__)

ENERGY_LEVELS = (0, 25, 50, 75, 100)

FEELING_TO_ENERGY = {
    PulseFeeling.ENERGIZED: 100,
    PulseFeeling.GOOD: 75,
    PulseFeeling.OK: 50,
    PulseFeeling.TIRED: 25,
    PulseFeeling.NEED_BREAK: 0,
}


@dataclass
class EnergySummary:
    count: int
    average: int
    low_count: int
    high_count: int


@dataclass
class PulseSummary:
    total: int
    by_feeling: Dict[str, int] = field(default_factory=dict)


def energy_collection(class_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}/{ENERGY_COLLECTION}"


def pulse_collection(class_id: str) -> str:
    return f"{CLASSES_COLLECTION}/{class_id}/{PULSE_CHECKS_COLLECTION}"


def _check_level(level: int) -> int:
    if level not in ENERGY_LEVELS:
        raise InvalidInputError(f"Energy level must be one of {ENERGY_LEVELS}")
    return level


# Energy


def set_student_energy(
    store: DocumentStore, class_id: str, user_id: str, display_name: str, level: int
) -> StudentEnergy:
    energy = StudentEnergy(
        user_id=user_id,
        display_name=display_name,
        level=_check_level(level),
        timestamp=now_ms(),
    )
    store.set(f"{energy_collection(class_id)}/{user_id}", to_document(energy))
    return energy


def init_student_energy(
    store: DocumentStore,
    class_id: str,
    user_id: str,
    display_name: str,
    default_level: int = DEFAULT_ENERGY_LEVEL,
) -> bool:
    """Creates the meter only when the student has none; returns True if created."""
    path = f"{energy_collection(class_id)}/{user_id}"
    with store.transaction() as txn:
        if txn.exists(path):
            return False
        energy = StudentEnergy(
            user_id=user_id,
            display_name=display_name,
            level=_check_level(default_level),
            timestamp=now_ms(),
        )
        txn.set(path, to_document(energy))
    return True


def get_class_energy(store: DocumentStore, class_id: str) -> List[StudentEnergy]:
    return [
        from_document(StudentEnergy, doc.data)
        for doc in store.query(energy_collection(class_id))
    ]


def get_student_energy(store: DocumentStore, class_id: str, user_id: str) -> Optional[StudentEnergy]:
    data = store.get(f"{energy_collection(class_id)}/{user_id}")
    return from_document(StudentEnergy, data) if data else None


def on_energy_change(
    store: DocumentStore, class_id: str, callback: Callable[[List[StudentEnergy]], None]
) -> Callable[[], None]:
    return store.watch(
        energy_collection(class_id), lambda _path: callback(get_class_energy(store, class_id))
    )


def on_student_energy_change(
    store: DocumentStore,
    class_id: str,
    user_id: str,
    callback: Callable[[Optional[StudentEnergy]], None],
) -> Callable[[], None]:
    return store.watch(
        f"{energy_collection(class_id)}/{user_id}",
        lambda _path: callback(get_student_energy(store, class_id, user_id)),
    )


def reset_all_energy(store: DocumentStore, class_id: str) -> int:
    now = now_ms()

    def run(txn: Transaction) -> int:
        docs = txn.query(energy_collection(class_id))
        for doc in docs:
            txn.update(doc.path, {"level": DEFAULT_ENERGY_LEVEL, "timestamp": now})
        return len(docs)

    return store.run_transaction(run)


def summarize_energy(entries: List[StudentEnergy]) -> EnergySummary:
    if not entries:
        return EnergySummary(count=0, average=0, low_count=0, high_count=0)
    total = sum(entry.level for entry in entries)
    return EnergySummary(
        count=len(entries),
        average=round_half_up(total / len(entries)),
        low_count=sum(1 for entry in entries if entry.level <= LOW_ENERGY_THRESHOLD),
        high_count=sum(1 for entry in entries if entry.level >= HIGH_ENERGY_THRESHOLD),
    )


# Pulse checks


def _deactivate_active(txn: Transaction, class_id: str) -> int:
    active = txn.query(pulse_collection(class_id), where=[("active", "==", True)])
    for doc in active:
        txn.update(doc.path, {"active": False})
    return len(active)


def launch_pulse_check(store: DocumentStore, class_id: str) -> PulseCheck:
    """Starts a new pulse check; any running one is closed first."""

    def run(txn: Transaction) -> PulseCheck:
        _deactivate_active(txn, class_id)
        start = now_ms()
        pulse = PulseCheck(id=f"pulse_{start}", class_id=class_id, active=True, start_time=start)
        txn.set(f"{pulse_collection(class_id)}/{pulse.id}", to_document(pulse))
        return pulse

    pulse = store.run_transaction(run)
    logger.info("Pulse check %s launched in %s", pulse.id, class_id)
    return pulse


def close_pulse_check(store: DocumentStore, class_id: str, session_id: str) -> None:
    store.update(f"{pulse_collection(class_id)}/{session_id}", {"active": False})


def deactivate_all_pulse_checks(store: DocumentStore, class_id: str) -> int:
    return store.run_transaction(lambda txn: _deactivate_active(txn, class_id))


def submit_pulse_response(
    store: DocumentStore,
    class_id: str,
    session_id: str,
    user_id: str,
    display_name: str,
    feeling: PulseFeeling,
) -> StudentEnergy:
    """Records how a student feels, replacing their earlier answer.

    The student's energy meter follows the feeling.
    """
    feeling = PulseFeeling(feeling)
    pulse_path = f"{pulse_collection(class_id)}/{session_id}"

    def run(txn: Transaction) -> StudentEnergy:
        data = txn.get(pulse_path)
        if data is None:
            raise NotFoundError(f"Pulse check not found: {session_id}")
        now = now_ms()
        pulse = from_document(PulseCheck, data)
        response = PulseResponse(
            user_id=user_id, display_name=display_name, feeling=feeling, timestamp=now
        )
        responses = [r for r in pulse.responses if r.user_id != user_id]
        position = next(
            (i for i, r in enumerate(pulse.responses) if r.user_id == user_id), len(responses)
        )
        responses.insert(position, response)
        txn.update(pulse_path, {"responses": [to_document(r) for r in responses]})

        energy = StudentEnergy(
            user_id=user_id,
            display_name=display_name,
            level=FEELING_TO_ENERGY[feeling],
            timestamp=now,
        )
        txn.set(f"{energy_collection(class_id)}/{user_id}", to_document(energy))
        return energy

    return store.run_transaction(run)


def get_pulse_check(store: DocumentStore, class_id: str, session_id: str) -> Optional[PulseCheck]:
    data = store.get(f"{pulse_collection(class_id)}/{session_id}")
    return from_document(PulseCheck, data) if data else None


def get_active_pulse_check(store: DocumentStore, class_id: str) -> Optional[PulseCheck]:
    docs = store.query(pulse_collection(class_id), where=[("active", "==", True)], limit=1)
    return from_document(PulseCheck, docs[0].data) if docs else None


def on_pulse_check_change(
    store: DocumentStore,
    class_id: str,
    session_id: str,
    callback: Callable[[Optional[PulseCheck]], None],
) -> Callable[[], None]:
    return store.watch(
        f"{pulse_collection(class_id)}/{session_id}",
        lambda _path: callback(get_pulse_check(store, class_id, session_id)),
    )


def on_active_pulse_check(
    store: DocumentStore, class_id: str, callback: Callable[[Optional[PulseCheck]], None]
) -> Callable[[], None]:
    return store.watch(
        pulse_collection(class_id),
        lambda _path: callback(get_active_pulse_check(store, class_id)),
    )


def summarize_pulse(pulse: PulseCheck) -> PulseSummary:
    counts = {feeling.value: 0 for feeling in PulseFeeling}
    for response in pulse.responses:
        counts[PulseFeeling(response.feeling).value] += 1
    return PulseSummary(total=len(pulse.responses), by_feeling=counts)
