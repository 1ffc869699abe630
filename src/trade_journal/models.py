from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Literal

from .errors import MalformedInput


TradeStatus = Literal["open", "closed"]
Outcome = Literal["pending", "win", "loss", "neutral"]

TERMINAL_OUTCOMES: frozenset[str] = frozenset({"win", "loss", "neutral"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Recommendation:
    """One curated trade idea for the day."""
    id: int
    symbol: str
    strategy: str
    strike_info: str
    entry: float
    stop: float
    target: float
    expiry: str
    confidence_level: int
    premium: float | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Recommendation":
        if not isinstance(raw, dict):
            raise MalformedInput("Invalid recommendation record")
        try:
            premium = raw.get("premium")
            return cls(
                id=int(raw["id"]),
                symbol=str(raw["symbol"]),
                strategy=str(raw.get("strategy", "")),
                strike_info=str(raw.get("strike_info", "")),
                entry=float(raw["entry"]),
                stop=float(raw["stop"]),
                target=float(raw["target"]),
                expiry=str(raw.get("expiry", "")),
                confidence_level=int(raw.get("confidence_level", 1)),
                premium=float(premium) if premium is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedInput(f"Invalid recommendation record: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RECOMMENDATION_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(Recommendation))


@dataclass
class ConfirmedTrade:
    """A recommendation the user took, tracked from open to closed."""
    id: int
    symbol: str
    strategy: str
    strike_info: str
    entry: float
    stop: float
    target: float
    expiry: str
    confidence_level: int
    premium: float | None
    confirmed_at: datetime
    status: TradeStatus = "open"
    outcome: str = "pending"
    notes: str = ""
    closed_at: datetime | None = None

    @classmethod
    def from_recommendation(cls, rec: Recommendation, confirmed_at: datetime) -> "ConfirmedTrade":
        return cls(**rec.to_dict(), confirmed_at=confirmed_at)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ConfirmedTrade":
        rec = Recommendation.from_dict(raw)
        try:
            closed_at = raw.get("closed_at")
            return cls(
                **rec.to_dict(),
                confirmed_at=parse_timestamp(raw["confirmed_at"]),
                status=str(raw.get("status", "open")),  # type: ignore[arg-type]
                outcome=str(raw.get("outcome", "pending")),
                notes=str(raw.get("notes") or ""),
                closed_at=parse_timestamp(closed_at) if closed_at else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedInput(f"Invalid confirmed trade record: {exc}") from exc

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    def close(self, outcome: str, notes: str, closed_at: datetime) -> None:
        self.status = "closed"
        self.outcome = outcome
        self.notes = notes
        self.closed_at = closed_at

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {name: getattr(self, name) for name in RECOMMENDATION_FIELDS}
        out["confirmed_at"] = format_timestamp(self.confirmed_at)
        out["status"] = self.status
        out["outcome"] = self.outcome
        out["notes"] = self.notes
        if self.closed_at is not None:
            out["closed_at"] = format_timestamp(self.closed_at)
        return out


@dataclass
class WeeklySummary:
    total_taken: int = 0
    wins: int = 0
    losses: int = 0
    neutral: int = 0
    win_rate: int = 0
    skipped_hit_target: int = 0
    window_start: datetime | None = field(default=None, compare=False)
    window_end: datetime | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, int]:
        return {
            "totalTaken": self.total_taken,
            "wins": self.wins,
            "losses": self.losses,
            "neutral": self.neutral,
            "winRate": self.win_rate,
            "skippedHitTarget": self.skipped_hit_target,
        }
