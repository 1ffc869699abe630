"""Live price lookup for the recommendation feed.

Uses **yfinance** for unauthenticated last-trade prices.  The lookup is best
effort: any failure comes back as a ``QuoteResult`` with ``error`` set and no
prices, and the listing carries on with the static levels.
"""

from __future__ import annotations

import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd
import yfinance as yf  # type: ignore[import-untyped]
from loguru import logger

from .settings import settings

# Suppress noisy yfinance FutureWarning about pandas ChainedAssignment
warnings.filterwarnings("ignore", category=FutureWarning, module="yfinance")


@dataclass
class QuoteResult:
    """Outcome of one price lookup: prices on success, ``error`` on failure."""
    prices: dict[str, float] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def prices_or_empty(self) -> dict[str, float]:
        return dict(self.prices) if self.ok else {}


def _last_closes(frame: pd.DataFrame | None, symbols: list[str]) -> dict[str, float]:
    if frame is None or frame.empty:
        return {}

    multi = isinstance(frame.columns, pd.MultiIndex)
    tickers_first = multi and any(sym in frame.columns.get_level_values(0) for sym in symbols)

    prices: dict[str, float] = {}
    for sym in symbols:
        try:
            if tickers_first:
                closes = frame[sym]["Close"]
            elif multi:
                closes = frame["Close"][sym]
            elif len(symbols) == 1:
                closes = frame["Close"]
            else:
                continue
        except KeyError:
            continue

        closes = closes.dropna()
        if closes.empty:
            continue
        prices[sym] = float(closes.iloc[-1])
    return prices


class LivePriceClient:
    def __init__(self, enabled: bool | None = None, timeout: float | None = None) -> None:
        self.enabled = settings.live_prices_enabled if enabled is None else enabled
        self.timeout = settings.quote_timeout_seconds if timeout is None else timeout

    def fetch(self, symbols: Iterable[str]) -> QuoteResult:
        wanted = sorted({str(s).strip().upper() for s in symbols if str(s).strip()})
        if not self.enabled or not wanted:
            return QuoteResult()

        try:
            frame = yf.download(
                tickers=wanted,
                period="1d",
                interval="1m",
                group_by="ticker",
                auto_adjust=True,
                progress=False,
                threads=False,
                timeout=self.timeout,
            )
            prices = _last_closes(frame, wanted)
        except Exception as exc:
            logger.warning("Live price fetch failed for {}: {}", ",".join(wanted), exc)
            return QuoteResult(error=str(exc))

        missing = [s for s in wanted if s not in prices]
        if missing:
            logger.debug("No live price for {}", ",".join(missing))
        logger.info("Fetched live prices for {}/{} symbols", len(prices), len(wanted))
        return QuoteResult(prices=prices)
