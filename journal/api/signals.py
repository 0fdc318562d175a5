"""Broadcast signals API: admins publish, everyone reads or streams."""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from journal.api.deps import get_admin_user, get_current_user, get_store, user_from_token
from journal.database import get_session
from journal.models.broadcast_signal import BroadcastSignal
from journal.models.user import User
from journal.schemas.signal import SignalCreate, SignalRead
from journal.services.signal_hub import hub
from journal.store import JournalStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/signals", tags=["signals"])


def _notify_telegram(signal: BroadcastSignal):
    from journal.services.telegram_bot import format_signal, get_bot

    bot = get_bot()
    if bot:
        bot.notify(format_signal(signal))


@router.get("", response_model=list[SignalRead], dependencies=[Depends(get_current_user)])
def list_signals(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: JournalStore = Depends(get_store),
):
    return store.list_signals(limit=limit, offset=offset)


@router.post("", response_model=SignalRead, status_code=201)
def broadcast_signal(
    data: SignalCreate,
    admin: User = Depends(get_admin_user),
    store: JournalStore = Depends(get_store),
):
    signal = store.create_signal(BroadcastSignal(**data.model_dump(), created_by=admin.id))
    payload = SignalRead.model_validate(signal)
    delivered = hub.publish(jsonable_encoder(payload))
    _notify_telegram(signal)
    logger.info(f"Signal {signal.id} {signal.pair} broadcast to {delivered} live subscribers")
    return payload


@router.websocket("/stream")
async def stream_signals(
    websocket: WebSocket,
    token: str = Query(...),
    session: Session = Depends(get_session),
):
    if user_from_token(token, session) is None:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    async with hub.subscription() as queue:
        try:
            while True:
                await websocket.send_json(await queue.get())
        except WebSocketDisconnect:
            logger.info("Signal stream subscriber disconnected")
