import json
from datetime import datetime, timedelta, timezone

import pytest

from trade_journal.journal import TradeJournal
from trade_journal.models import ConfirmedTrade, Recommendation
from trade_journal.store import MemoryTradeStore

# ------------------------- Helpers ------------------------- #

RAW_RECOMMENDATIONS = [
    {
        "id": 1,
        "symbol": "SPY",
        "strategy": "Bull Call Spread",
        "strike_info": "510/515 C",
        "entry": 100,
        "stop": 90,
        "target": 120,
        "expiry": "2026-10-23",
        "confidence_level": 4,
        "premium": 2.15,
    },
    {
        "id": 2,
        "symbol": "AAPL",
        "strategy": "Long Put",
        "strike_info": "225 P",
        "entry": 228.4,
        "stop": 231.0,
        "target": 221.5,
        "expiry": "2026-10-30",
        "confidence_level": 3,
        "premium": 3.4,
    },
]


class FixedClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def assert_lifecycle_invariant(trade: ConfirmedTrade) -> None:
    if trade.status == "open":
        assert trade.outcome == "pending"
        assert trade.closed_at is None
    else:
        assert trade.status == "closed"
        assert trade.outcome in {"win", "loss", "neutral"}
        assert trade.closed_at is not None

# ------------------------- Fixtures ------------------------- #

@pytest.fixture
def recommendations():
    return [Recommendation.from_dict(r) for r in RAW_RECOMMENDATIONS]


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 21, 14, 30, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return MemoryTradeStore()


@pytest.fixture
def journal(store, clock):
    return TradeJournal(store, clock=clock, validate_outcomes=True, reject_reclose=False)


@pytest.fixture
def recommendations_file(tmp_path):
    path = tmp_path / "trades.json"
    path.write_text(json.dumps(RAW_RECOMMENDATIONS), encoding="utf-8")
    return path
