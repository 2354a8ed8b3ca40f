"""
WebSocket streams for screens that follow live state.

Each socket sends the current snapshot on connect and then one message per
change, until the client disconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, WebSocket
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder

from engage import buzzer, classes, livegame, tickr
from engage.dependencies import get_document_store, get_kv_store
from engage.kv import KeyValueStore
from engage.store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws")

Subscribe = Callable[[Callable[[Any], None]], Callable[[], None]]


async def stream_updates(websocket: WebSocket, subscribe: Subscribe) -> None:
    """Bridges a store subscription onto the socket.

    Subscribing reads the first snapshot, so it runs in the threadpool.
    Store listeners may fire on any thread, so updates are handed to the
    event loop through a queue.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue()

    def push(value: Any) -> None:
        loop.call_soon_threadsafe(updates.put_nowait, jsonable_encoder(value))

    async def pump() -> None:
        while True:
            await websocket.send_json(await updates.get())

    unsubscribe = await run_in_threadpool(subscribe, push)
    sender = asyncio.create_task(pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        sender.cancel()
        unsubscribe()
        logger.debug("Closed live stream %s", websocket.url.path)


@router.websocket("/classes/{class_id}")
async def class_stream(
    websocket: WebSocket, class_id: str, store: DocumentStore = Depends(get_document_store)
):
    await stream_updates(websocket, lambda push: classes.on_class_change(store, class_id, push))


@router.websocket("/classes/{class_id}/buzzer")
async def buzzer_stream(
    websocket: WebSocket, class_id: str, store: DocumentStore = Depends(get_document_store)
):
    await stream_updates(websocket, lambda push: buzzer.on_buzzer_change(store, class_id, push))


@router.websocket("/timers/{timer_id}")
async def timer_stream(
    websocket: WebSocket, timer_id: str, store: DocumentStore = Depends(get_document_store)
):
    await stream_updates(websocket, lambda push: tickr.on_timer_change(store, timer_id, push))


@router.websocket("/rooms/{room_code}")
async def room_stream(websocket: WebSocket, room_code: str, kv: KeyValueStore = Depends(get_kv_store)):
    await stream_updates(websocket, lambda push: livegame.subscribe_to_game(kv, room_code, push))
