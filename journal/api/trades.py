"""Trade journal API: log, edit, close, delete and watch trades."""

import asyncio
import logging

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response
from pydantic import ValidationError
from sqlmodel import Session

from journal.api.deps import (
    get_current_user,
    get_feed,
    get_screenshot_uploader,
    get_store,
    user_from_token,
)
from journal.config import settings
from journal.database import get_session
from journal.engine import trade_cycle
from journal.engine.price_watch import build_quote, is_watching, latest_quote, price_watch
from journal.models.habit import Habit
from journal.models.trade import Trade
from journal.models.user import User
from journal.schemas.trade import HabitRead, LiveQuoteRead, TradeCreate, TradeRead, TradeUpdate
from journal.services.analytics import trades_to_csv
from journal.services.price_feed import PriceFeed
from journal.services.profit import MODEL_MARGINED, initial_margin, profit_model, risk_reward_ratio
from journal.services.uploads import Screenshot, ScreenshotUploader, UploadError
from journal.store import JournalStore
from journal.utils.constants import STATUS_IN_PROGRESS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trades", tags=["trades"])


def to_read(trade: Trade, habit: Habit | None = None) -> TradeRead:
    """API view of a trade with derived figures."""
    margin = float(initial_margin(trade)) if profit_model(trade) == MODEL_MARGINED else None
    return TradeRead.model_validate(trade).model_copy(update={
        "rr_ratio": risk_reward_ratio(trade),
        "initial_margin": margin,
        "habit": HabitRead.model_validate(habit) if habit else None,
    })


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def _owned_or_404(store: JournalStore, user: User, trade_id: int) -> Trade:
    trade = store.get_trade(trade_id)
    if not trade or trade.user_id != user.id:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade


@router.get("", response_model=list[TradeRead])
def list_trades(
    status: str | None = None,
    outcome: str | None = None,
    pair: str | None = None,
    tag: str | None = None,
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    trades = store.list_trades(
        user.id, status=status, outcome=outcome, pair=pair, tag=tag, limit=limit, offset=offset,
    )
    habits = store.habits_by_trade(user.id)
    return [to_read(t, habits.get(t.id)) for t in trades]


@router.post("", response_model=TradeRead, status_code=201)
async def create_trade(
    data: TradeCreate,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    trade = await trade_cycle.create_trade(store, user.id, data)
    return to_read(trade, store.get_habit(trade.id))


@router.post("/with-screenshot", response_model=TradeRead, status_code=201)
async def create_trade_with_screenshot(
    payload: str = Form(..., description="TradeCreate as JSON"),
    screenshot: UploadFile = File(...),
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    uploader: ScreenshotUploader = Depends(get_screenshot_uploader),
):
    """Log a trade with a chart screenshot; a failed upload saves nothing."""
    try:
        data = TradeCreate.model_validate_json(payload)
    except ValidationError as e:
        raise _validation_error(e)

    shot = Screenshot(
        filename=screenshot.filename or "screenshot",
        content=await screenshot.read(),
        content_type=screenshot.content_type or "",
    )
    try:
        trade = await trade_cycle.create_trade(store, user.id, data, screenshot=shot, uploader=uploader)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return to_read(trade, store.get_habit(trade.id))


@router.get("/export.csv")
def export_trades(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    csv_text = trades_to_csv(store.list_trades(user.id))
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="trades.csv"'},
    )


@router.get("/{trade_id}", response_model=TradeRead)
def get_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    trade = _owned_or_404(store, user, trade_id)
    return to_read(trade, store.get_habit(trade.id))


@router.put("/{trade_id}", response_model=TradeRead)
def update_trade(
    trade_id: int,
    data: TradeUpdate,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    try:
        trade = trade_cycle.update_trade(store, user.id, trade_id, data)
    except trade_cycle.TradeNotFound:
        raise HTTPException(status_code=404, detail="Trade not found")
    except trade_cycle.TradeLocked as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise _validation_error(e)
    return to_read(trade, store.get_habit(trade.id))


@router.delete("/{trade_id}", status_code=204)
def delete_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    try:
        trade_cycle.delete_trade(store, user.id, trade_id)
    except trade_cycle.TradeNotFound:
        raise HTTPException(status_code=404, detail="Trade not found")


@router.post("/{trade_id}/close", response_model=TradeRead)
async def close_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    feed: PriceFeed = Depends(get_feed),
):
    """Finalize a trade at the live price (static levels if no quote)."""
    try:
        trade, _ = await trade_cycle.close_trade(store, user.id, trade_id, feed)
    except trade_cycle.TradeNotFound:
        raise HTTPException(status_code=404, detail="Trade not found")
    except trade_cycle.TradeLocked as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_read(trade, store.get_habit(trade.id))


@router.get("/{trade_id}/quote", response_model=LiveQuoteRead)
async def trade_quote(
    trade_id: int,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    feed: PriceFeed = Depends(get_feed),
):
    """Live price and the outcome it implies; served from the watch if one runs."""
    trade = _owned_or_404(store, user, trade_id)
    quote = latest_quote(trade_id)
    if quote is None:
        price = await feed.get_price(trade.pair, is_crypto=trade.is_crypto)
        quote = build_quote(trade, price)
    return quote


@router.websocket("/{trade_id}/live")
async def live_trade(
    websocket: WebSocket,
    trade_id: int,
    token: str = Query(...),
    session: Session = Depends(get_session),
):
    """Stream quotes while the client stays connected and the trade is open."""
    user = user_from_token(token, session)
    trade = session.get(Trade, trade_id) if user else None
    if trade is None or trade.user_id != user.id:
        await websocket.close(code=1008)
        return
    if trade.status != STATUS_IN_PROGRESS:
        await websocket.close(code=1008, reason="Trade is not in progress")
        return

    await websocket.accept()
    async with price_watch(trade_id):
        try:
            while True:
                await asyncio.sleep(settings.price_poll_seconds)
                quote = latest_quote(trade_id)
                if quote is None:
                    if not is_watching(trade_id):
                        break
                    continue
                await websocket.send_json(jsonable_encoder(quote))
        except WebSocketDisconnect:
            logger.info(f"Live view of trade {trade_id} closed by client")
            return
    await websocket.close()
