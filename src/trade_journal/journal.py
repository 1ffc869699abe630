from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from loguru import logger

from .errors import AlreadyClosed, InvalidOutcome, NotFound
from .models import TERMINAL_OUTCOMES, ConfirmedTrade, Recommendation, utc_now
from .settings import settings
from .store import TradeStore


class TradeJournal:
    """Lifecycle of confirmed trades: confirm opens a trade, close settles it.

    Trades are never deleted.  The store is injected so tests can run on the
    in-memory backend; ``clock`` returns the timestamp stamped on confirm and
    close.
    """

    def __init__(
        self,
        store: TradeStore,
        clock: Callable[[], datetime] = utc_now,
        validate_outcomes: bool | None = None,
        reject_reclose: bool | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.validate_outcomes = settings.validate_outcomes if validate_outcomes is None else validate_outcomes
        self.reject_reclose = settings.reject_reclose if reject_reclose is None else reject_reclose

    def list_confirmed(self) -> list[ConfirmedTrade]:
        return self.store.all()

    def confirm(self, recommendation_id: int, recommendations: Iterable[Recommendation]) -> ConfirmedTrade:
        rec_id = int(recommendation_id)
        selected = next((r for r in recommendations if r.id == rec_id), None)
        if selected is None:
            raise NotFound()

        trade = ConfirmedTrade.from_recommendation(selected, confirmed_at=self.clock())
        # insert() is the duplicate check; it raises AlreadyConfirmed atomically
        self.store.insert(trade)
        logger.info("Confirmed trade {} {} ({})", trade.id, trade.symbol, trade.strategy)
        return trade

    def close(self, trade_id: int, outcome: Any = "neutral", notes: str = "") -> ConfirmedTrade:
        trade = self.store.get(int(trade_id))
        if trade is None:
            raise NotFound()

        if self.validate_outcomes and (not isinstance(outcome, str) or outcome not in TERMINAL_OUTCOMES):
            raise InvalidOutcome(f"Invalid outcome {outcome!r}; expected one of win, loss, neutral")
        if not isinstance(outcome, str):
            outcome = json.dumps(outcome)
        if self.reject_reclose and not trade.is_open:
            raise AlreadyClosed()
        if not trade.is_open:
            logger.info("Re-closing trade {}: {} -> {}", trade.id, trade.outcome, outcome)

        trade.close(outcome=outcome, notes=notes, closed_at=self.clock())
        self.store.update(trade)
        logger.info("Closed trade {} {} as {}", trade.id, trade.symbol, outcome)
        return trade
