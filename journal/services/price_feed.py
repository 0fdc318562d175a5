"""Live prices for open trades.

Quotes come from Hyperliquid mid prices. The REST ``all_mids`` call is retried
with exponential backoff; if every attempt fails, a one-shot ``allMids``
websocket subscription is tried before giving up. Callers always get either a
float or the ``"unavailable"`` sentinel, never an exception.
"""

import asyncio
import logging
import re
from typing import Any, Callable

from hyperliquid.info import Info

from journal.config import settings
from journal.utils.constants import PRICE_UNAVAILABLE
from journal.utils.records import to_float

logger = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[/\-_:\s]")
_QUOTE_SUFFIXES = ("USDT", "USDC", "PERP", "USD")


def to_hl_ticker(pair: str) -> str:
    """Convert a journal pair symbol to a Hyperliquid ticker.

    "BTC/USDT", "btc-usd", "ETHUSDT" -> "BTC"/"ETH"; "1000PEPE" -> "kPEPE".
    """
    symbol = (pair or "").strip().upper()
    if not symbol:
        return ""
    symbol = _SEPARATORS_RE.split(symbol, maxsplit=1)[0]
    for suffix in _QUOTE_SUFFIXES:
        if symbol.endswith(suffix) and len(symbol) > len(suffix):
            symbol = symbol[: -len(suffix)]
            break
    # Hyperliquid uses 'kX' instead of '1000X' (e.g. kBONK, kPEPE)
    if symbol.startswith("1000") and len(symbol) > 4:
        return "k" + symbol[4:]
    return symbol


def _mid(mids: Any, ticker: str) -> float | None:
    if not isinstance(mids, dict):
        return None
    return to_float(mids.get(ticker))


class PriceFeed:
    """Fetches live mid prices with retry, backoff and a streaming fallback."""

    def __init__(
        self,
        info: Any = None,
        stream_info_factory: Callable[[], Any] | None = None,
        attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        stream_timeout: float | None = None,
    ):
        self._info = info
        self._stream_info: Any = None
        self._stream_info_factory = stream_info_factory or (lambda: Info(skip_ws=False))
        self.attempts = max(1, attempts if attempts is not None else settings.price_retry_attempts)
        self.base_delay = base_delay if base_delay is not None else settings.price_retry_base_delay
        self.max_delay = max_delay if max_delay is not None else settings.price_retry_max_delay
        self.stream_timeout = (
            stream_timeout if stream_timeout is not None else settings.price_stream_timeout
        )

    def _rest_info(self):
        # Info() downloads exchange metadata on construction
        if self._info is None:
            self._info = Info(skip_ws=True)
        return self._info

    def _get_stream_info(self):
        if self._stream_info is None:
            self._stream_info = self._stream_info_factory()
        return self._stream_info

    async def get_price(self, pair: str, is_crypto: bool = True) -> float | str:
        """Current mid price for ``pair``, or "unavailable"."""
        ticker = to_hl_ticker(pair)
        if not ticker or not is_crypto:
            # No forex source; the journal works without a quote
            return PRICE_UNAVAILABLE

        try:
            mids = await self._fetch_mids()
        except Exception as e:
            logger.warning(f"REST quote for {pair} failed after {self.attempts} attempts: {e}")
        else:
            price = _mid(mids, ticker)
            if price is None:
                logger.info(f"No Hyperliquid market for {pair} ({ticker})")
                return PRICE_UNAVAILABLE
            return price

        price = await self._stream_price(ticker)
        if price is None:
            logger.warning(f"Price for {pair} unavailable (REST and stream both failed)")
            return PRICE_UNAVAILABLE
        return price

    async def _fetch_mids(self) -> dict:
        loop = asyncio.get_running_loop()
        delay = self.base_delay
        last_error: Exception | None = None
        for attempt in range(1, self.attempts + 1):
            try:
                # all_mids is synchronous; run in executor
                return await loop.run_in_executor(None, lambda: self._rest_info().all_mids())
            except Exception as e:
                last_error = e
                logger.warning(f"all_mids attempt {attempt}/{self.attempts} failed: {e}")
                if attempt < self.attempts:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self.max_delay)
        raise last_error

    async def _stream_price(self, ticker: str) -> float | None:
        """Wait for one allMids push that carries ``ticker``."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        subscription = {"type": "allMids"}

        def _resolve(value: float):
            if not future.done():
                future.set_result(value)

        def _on_message(message: dict):
            data = message.get("data") if isinstance(message, dict) else None
            price = _mid((data or {}).get("mids"), ticker)
            if price is not None:
                loop.call_soon_threadsafe(_resolve, price)

        try:
            info = await loop.run_in_executor(None, self._get_stream_info)
            sub_id = info.subscribe(subscription, _on_message)
        except Exception as e:
            logger.warning(f"Price stream subscription failed for {ticker}: {e}")
            return None

        try:
            return await asyncio.wait_for(future, timeout=self.stream_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Price stream for {ticker} timed out after {self.stream_timeout}s")
            return None
        finally:
            try:
                info.unsubscribe(subscription, sub_id)
            except Exception as e:
                logger.debug(f"Price stream unsubscribe failed: {e}")


_feed: PriceFeed | None = None


def get_price_feed() -> PriceFeed:
    """Process-wide feed, created on first use."""
    global _feed
    if _feed is None:
        _feed = PriceFeed()
    return _feed
