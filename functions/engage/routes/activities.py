"""
Routes for the in-class activities: polls, buzzer, energy and pulse checks,
parking lot, Word Storm, Tickr and the small tools.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from engage import buzzer, energy, parkinglot, polls, tickr, tools, wordstorm
from engage.dependencies import get_document_store
from engage.schemas import (
    BuzzerStatusRequest,
    BuzzRequest,
    BuzzResponse,
    ClearedResponse,
    DiceRequest,
    EnergyRequest,
    ParkingLotAnswerRequest,
    ParkingLotCreateRequest,
    PollCreateRequest,
    PollResultsRequest,
    PollStatusRequest,
    PollVoteRequest,
    PulseResponseRequest,
    StatusResponse,
    TimerCreateRequest,
    TimerPauseRequest,
    TimerStartRequest,
    TimerStartResponse,
    TimerUpdateRequest,
    ToolStateRequest,
    WordRequest,
    WordStormCreateRequest,
)
from engage.store import DocumentStore
from shared.types import (
    BuzzerState,
    ParkingLotItem,
    Poll,
    PollOption,
    PulseCheck,
    QuestionStatus,
    StudentEnergy,
    Timer,
    ToolState,
    Vote,
    WordStorm,
    WordSubmission,
)

router = APIRouter()


# Polls


@router.post("/polls", response_model=None, status_code=201)
def create_poll(payload: PollCreateRequest, store: DocumentStore = Depends(get_document_store)) -> Poll:
    options = [PollOption(**option.model_dump()) for option in payload.options]
    return polls.create_poll(store, payload.class_id, payload.host_id, payload.question, options)


@router.get("/polls/{poll_id}", response_model=None)
def get_poll(poll_id: str, store: DocumentStore = Depends(get_document_store)) -> Poll:
    poll = polls.get_poll(store, poll_id)
    if poll is None:
        raise HTTPException(status_code=404, detail="Poll not found")
    return poll


@router.post("/polls/{poll_id}/votes", response_model=None)
def vote(poll_id: str, payload: PollVoteRequest, store: DocumentStore = Depends(get_document_store)) -> Vote:
    return polls.vote_poll(store, poll_id, payload.user_id, payload.option_id)


@router.get("/polls/{poll_id}/votes", response_model=None)
def list_votes(poll_id: str, store: DocumentStore = Depends(get_document_store)) -> List[Vote]:
    return polls.get_votes(store, poll_id)


@router.get("/polls/{poll_id}/results", response_model=Dict[str, int])
def poll_results(poll_id: str, store: DocumentStore = Depends(get_document_store)):
    return polls.get_poll_results(store, poll_id)


@router.put("/polls/{poll_id}/show-results", response_model=StatusResponse)
def show_results(poll_id: str, payload: PollResultsRequest, store: DocumentStore = Depends(get_document_store)):
    polls.toggle_poll_results(store, poll_id, payload.show)
    return StatusResponse()


@router.put("/polls/{poll_id}/status", response_model=StatusResponse)
def poll_status(poll_id: str, payload: PollStatusRequest, store: DocumentStore = Depends(get_document_store)):
    polls.update_poll_status(store, poll_id, payload.status)
    return StatusResponse()


# Buzzer


@router.get("/classes/{class_id}/buzzer", response_model=None)
def get_buzzer(class_id: str, store: DocumentStore = Depends(get_document_store)) -> BuzzerState:
    return buzzer.get_buzzer(store, class_id)


@router.put("/classes/{class_id}/buzzer/status", response_model=StatusResponse)
def buzzer_status(class_id: str, payload: BuzzerStatusRequest, store: DocumentStore = Depends(get_document_store)):
    buzzer.set_buzzer_status(store, class_id, payload.status)
    return StatusResponse()


@router.post("/classes/{class_id}/buzzer/reset", response_model=StatusResponse)
def buzzer_reset(class_id: str, store: DocumentStore = Depends(get_document_store)):
    buzzer.reset_buzzer(store, class_id)
    return StatusResponse()


@router.post("/classes/{class_id}/buzzer/buzz", response_model=BuzzResponse)
def buzz(class_id: str, payload: BuzzRequest, store: DocumentStore = Depends(get_document_store)):
    return BuzzResponse(accepted=buzzer.buzz_in(store, class_id, payload.user_id, payload.display_name))


# Energy and pulse checks


@router.get("/classes/{class_id}/energy", response_model=None)
def class_energy(class_id: str, store: DocumentStore = Depends(get_document_store)) -> dict:
    entries = energy.get_class_energy(store, class_id)
    return {"students": entries, "summary": energy.summarize_energy(entries)}


@router.put("/classes/{class_id}/energy", response_model=None)
def set_energy(class_id: str, payload: EnergyRequest, store: DocumentStore = Depends(get_document_store)) -> StudentEnergy:
    return energy.set_student_energy(store, class_id, payload.user_id, payload.display_name, payload.level)


@router.delete("/classes/{class_id}/energy", response_model=ClearedResponse)
def reset_energy(class_id: str, store: DocumentStore = Depends(get_document_store)):
    return ClearedResponse(cleared=energy.reset_all_energy(store, class_id))


@router.post("/classes/{class_id}/pulse-checks", response_model=None, status_code=201)
def launch_pulse(class_id: str, store: DocumentStore = Depends(get_document_store)) -> PulseCheck:
    return energy.launch_pulse_check(store, class_id)


@router.get("/classes/{class_id}/pulse-checks/active", response_model=None)
def active_pulse(class_id: str, store: DocumentStore = Depends(get_document_store)) -> Optional[PulseCheck]:
    return energy.get_active_pulse_check(store, class_id)


@router.get("/classes/{class_id}/pulse-checks/{session_id}", response_model=None)
def get_pulse(class_id: str, session_id: str, store: DocumentStore = Depends(get_document_store)) -> dict:
    pulse = energy.get_pulse_check(store, class_id, session_id)
    if pulse is None:
        raise HTTPException(status_code=404, detail="Pulse check not found")
    return {"pulse_check": pulse, "summary": energy.summarize_pulse(pulse)}


@router.post("/classes/{class_id}/pulse-checks/{session_id}/close", response_model=StatusResponse)
def close_pulse(class_id: str, session_id: str, store: DocumentStore = Depends(get_document_store)):
    energy.close_pulse_check(store, class_id, session_id)
    return StatusResponse()


@router.post("/classes/{class_id}/pulse-checks/{session_id}/responses", response_model=None)
def pulse_response(
    class_id: str,
    session_id: str,
    payload: PulseResponseRequest,
    store: DocumentStore = Depends(get_document_store),
) -> StudentEnergy:
    return energy.submit_pulse_response(
        store, class_id, session_id, payload.user_id, payload.display_name, payload.feeling
    )


# Parking lot


@router.post("/parking-lot", response_model=None, status_code=201)
def add_question(payload: ParkingLotCreateRequest, store: DocumentStore = Depends(get_document_store)) -> ParkingLotItem:
    return parkinglot.add_parking_lot_question(
        store, payload.class_id, payload.user_id, payload.user_name, payload.question
    )


@router.get("/classes/{class_id}/parking-lot", response_model=None)
def parking_lot(
    class_id: str,
    status: QuestionStatus | None = None,
    store: DocumentStore = Depends(get_document_store),
) -> List[ParkingLotItem]:
    return parkinglot.get_parking_lot(store, class_id, status)


@router.post("/parking-lot/{question_id}/answered", response_model=StatusResponse)
def mark_answered(question_id: str, store: DocumentStore = Depends(get_document_store)):
    parkinglot.mark_question_answered(store, question_id)
    return StatusResponse()


@router.post("/parking-lot/{question_id}/answer", response_model=StatusResponse)
def answer_question(
    question_id: str, payload: ParkingLotAnswerRequest, store: DocumentStore = Depends(get_document_store)
):
    parkinglot.answer_question(store, question_id, payload.answer)
    return StatusResponse()


@router.delete("/parking-lot/{question_id}", response_model=StatusResponse)
def delete_question(question_id: str, store: DocumentStore = Depends(get_document_store)):
    parkinglot.delete_question(store, question_id)
    return StatusResponse()


# Word Storm


@router.post("/wordstorms", response_model=None, status_code=201)
def create_storm(payload: WordStormCreateRequest, store: DocumentStore = Depends(get_document_store)) -> WordStorm:
    return wordstorm.create_word_storm(store, payload.class_id, payload.host_id)


@router.get("/wordstorms/{storm_id}", response_model=None)
def get_storm(storm_id: str, store: DocumentStore = Depends(get_document_store)) -> dict:
    storm = wordstorm.get_word_storm(store, storm_id)
    if storm is None:
        raise HTTPException(status_code=404, detail="Word Storm not found")
    words = wordstorm.get_words(store, storm_id)
    return {"storm": storm, "words": words, "cloud": wordstorm.get_word_counts(words)}


@router.post("/wordstorms/{storm_id}/words", response_model=None)
def submit_word(
    storm_id: str, payload: WordRequest, store: DocumentStore = Depends(get_document_store)
) -> Optional[WordSubmission]:
    return wordstorm.submit_word(store, storm_id, payload.text)


@router.delete("/wordstorms/{storm_id}/words", response_model=ClearedResponse)
def clear_storm(storm_id: str, store: DocumentStore = Depends(get_document_store)):
    return ClearedResponse(cleared=wordstorm.clear_word_storm(store, storm_id))


@router.post("/wordstorms/{storm_id}/complete", response_model=StatusResponse)
def complete_storm(storm_id: str, store: DocumentStore = Depends(get_document_store)):
    wordstorm.complete_word_storm(store, storm_id)
    return StatusResponse()


# Tickr


@router.post("/timers", response_model=None, status_code=201)
def create_timer(payload: TimerCreateRequest, store: DocumentStore = Depends(get_document_store)) -> Timer:
    return tickr.create_timer(store, payload.class_id, payload.host_id)


@router.get("/timers/{timer_id}", response_model=None)
def get_timer(timer_id: str, store: DocumentStore = Depends(get_document_store)) -> dict:
    timer = tickr.get_timer(store, timer_id)
    if timer is None:
        raise HTTPException(status_code=404, detail="Timer not found")
    return {"timer": timer, "remaining_seconds": tickr.remaining_seconds(timer)}


@router.patch("/timers/{timer_id}", response_model=StatusResponse)
def update_timer(timer_id: str, payload: TimerUpdateRequest, store: DocumentStore = Depends(get_document_store)):
    tickr.update_timer(store, timer_id, payload.model_dump(exclude_unset=True))
    return StatusResponse()


@router.post("/timers/{timer_id}/start", response_model=TimerStartResponse)
def start_timer(timer_id: str, payload: TimerStartRequest, store: DocumentStore = Depends(get_document_store)):
    return TimerStartResponse(end_time=tickr.start_timer(store, timer_id, payload.duration_seconds))


@router.post("/timers/{timer_id}/pause", response_model=StatusResponse)
def pause_timer(timer_id: str, payload: TimerPauseRequest, store: DocumentStore = Depends(get_document_store)):
    tickr.pause_timer(store, timer_id, payload.remaining_seconds)
    return StatusResponse()


@router.post("/timers/{timer_id}/stop", response_model=StatusResponse)
def stop_timer(timer_id: str, store: DocumentStore = Depends(get_document_store)):
    tickr.stop_timer(store, timer_id)
    return StatusResponse()


# Tools


@router.get("/classes/{class_id}/tools/{tool_id}", response_model=None)
def get_tool(class_id: str, tool_id: str, store: DocumentStore = Depends(get_document_store)) -> ToolState:
    state = tools.get_tool_state(store, class_id, tool_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Tool state not found")
    return state


@router.put("/classes/{class_id}/tools/{tool_id}", response_model=StatusResponse)
def set_tool(
    class_id: str, tool_id: str, payload: ToolStateRequest, store: DocumentStore = Depends(get_document_store)
):
    tools.update_tool_state(store, class_id, tool_id, payload.model_dump(exclude_unset=True))
    return StatusResponse()


@router.post("/tools/dice", response_model=List[int])
def roll_dice(payload: DiceRequest):
    return tools.roll_dice(payload.count)


@router.post("/tools/coin", response_model=Dict[str, str])
def flip_coin():
    return {"result": tools.flip_coin()}
