"""Weekly win/loss summary over confirmed trades.

The week runs from the most recent Sunday 00:00 local time for seven
calendar days (inclusive start, exclusive end).

``skipped_hit_target`` is a heuristic: today's recommendation count minus the
trades taken this week, floored at zero.  It does not look at prices, and
mixing a daily count with a weekly one is a known quirk kept for
compatibility with existing dashboards.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, time, timedelta, tzinfo

from .models import ConfirmedTrade, WeeklySummary
from .settings import settings


def week_window(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    local_now = now.astimezone(tz)
    days_since_sunday = (local_now.weekday() + 1) % 7
    start_date = local_now.date() - timedelta(days=days_since_sunday)
    start = datetime.combine(start_date, time.min, tzinfo=tz)
    end = datetime.combine(start_date + timedelta(days=7), time.min, tzinfo=tz)
    return start, end


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_weekly_summary(
    confirmed_trades: Iterable[ConfirmedTrade],
    total_recommendations_today: int,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> WeeklySummary:
    trades = list(confirmed_trades)
    if not trades:
        return WeeklySummary(skipped_hit_target=max(int(total_recommendations_today), 0))

    zone = tz or settings.tzinfo
    start, end = week_window(now or datetime.now(zone), zone)

    summary = WeeklySummary(window_start=start, window_end=end)
    for trade in trades:
        if not (start <= trade.confirmed_at < end):
            continue
        summary.total_taken += 1
        if trade.status != "closed":
            continue
        if trade.outcome == "win":
            summary.wins += 1
        elif trade.outcome == "loss":
            summary.losses += 1
        else:
            summary.neutral += 1

    if summary.total_taken:
        summary.win_rate = _round_half_up(summary.wins / summary.total_taken * 100)
    summary.skipped_hit_target = max(int(total_recommendations_today) - summary.total_taken, 0)
    return summary
