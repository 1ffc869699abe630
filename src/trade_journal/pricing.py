from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from .models import Recommendation


def _as_live_price(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    price = float(value)
    if not math.isfinite(price):
        return None
    return price


def adjust_to_live_price(rec: Recommendation, live_price: Any = None) -> dict[str, Any]:
    """Re-anchor entry/stop/target on the live price.

    The distances from entry to stop and entry to target are taken from the
    static recommendation, so risk and reward stay the same size.  Without a
    usable price the static levels come back untouched.
    """
    out = rec.to_dict()
    live = _as_live_price(live_price)
    if live is None:
        return out

    stop_diff = rec.entry - rec.stop
    target_diff = rec.target - rec.entry
    out["entry"] = round(live, 2)
    out["stop"] = round(live - stop_diff, 2)
    out["target"] = round(live + target_diff, 2)
    out["currentPrice"] = round(live, 2)
    return out


def apply_live_prices(recs: Iterable[Recommendation], prices: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [adjust_to_live_price(rec, prices.get(rec.symbol, prices.get(rec.symbol.upper()))) for rec in recs]
