"""Durable storage for confirmed trades.

Every backend is keyed by trade id and exposes atomic per-id ``insert`` and
``update`` so two requests touching different trades never overwrite each
other's work.
"""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

from .db import MAX_SQLITE_INTEGER, connection, initialize_database
from .errors import AlreadyConfirmed, MalformedInput, NotFound
from .models import ConfirmedTrade, format_timestamp, parse_timestamp
from .settings import settings


class TradeStore(ABC):
    @abstractmethod
    def all(self) -> list[ConfirmedTrade]:
        """Every confirmed trade, oldest first."""

    @abstractmethod
    def get(self, trade_id: int) -> ConfirmedTrade | None:
        ...

    @abstractmethod
    def insert(self, trade: ConfirmedTrade) -> None:
        """Add a new trade.  Raises ``AlreadyConfirmed`` if the id exists."""

    @abstractmethod
    def update(self, trade: ConfirmedTrade) -> None:
        """Replace an existing trade by id.  Raises ``NotFound`` if missing."""


class MemoryTradeStore(TradeStore):
    def __init__(self) -> None:
        self._trades: dict[int, ConfirmedTrade] = {}
        self._lock = threading.Lock()

    def all(self) -> list[ConfirmedTrade]:
        with self._lock:
            return [ConfirmedTrade.from_dict(t.to_dict()) for t in self._trades.values()]

    def get(self, trade_id: int) -> ConfirmedTrade | None:
        with self._lock:
            trade = self._trades.get(int(trade_id))
            return ConfirmedTrade.from_dict(trade.to_dict()) if trade else None

    def insert(self, trade: ConfirmedTrade) -> None:
        with self._lock:
            if trade.id in self._trades:
                raise AlreadyConfirmed()
            self._trades[trade.id] = ConfirmedTrade.from_dict(trade.to_dict())

    def update(self, trade: ConfirmedTrade) -> None:
        with self._lock:
            if trade.id not in self._trades:
                raise NotFound()
            self._trades[trade.id] = ConfirmedTrade.from_dict(trade.to_dict())


class SqliteTradeStore(TradeStore):
    _COLUMNS = (
        "id, symbol, strategy, strike_info, entry, stop, target, expiry, "
        "confidence_level, premium, confirmed_at, status, outcome, notes, closed_at"
    )

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = Path(db_path or settings.db_path)
        initialize_database(self.db_path)

    @staticmethod
    def _fits(trade_id: int) -> bool:
        # sqlite INTEGER is signed 64-bit; larger ids can never be stored
        return -MAX_SQLITE_INTEGER - 1 <= int(trade_id) <= MAX_SQLITE_INTEGER

    @staticmethod
    def _row_to_trade(row: sqlite3.Row) -> ConfirmedTrade:
        return ConfirmedTrade(
            id=int(row["id"]),
            symbol=str(row["symbol"]),
            strategy=str(row["strategy"] or ""),
            strike_info=str(row["strike_info"] or ""),
            entry=float(row["entry"]),
            stop=float(row["stop"]),
            target=float(row["target"]),
            expiry=str(row["expiry"] or ""),
            confidence_level=int(row["confidence_level"] or 0),
            premium=float(row["premium"]) if row["premium"] is not None else None,
            confirmed_at=parse_timestamp(row["confirmed_at"]),
            status=str(row["status"]),  # type: ignore[arg-type]
            outcome=str(row["outcome"]),
            notes=str(row["notes"] or ""),
            closed_at=parse_timestamp(row["closed_at"]) if row["closed_at"] else None,
        )

    def all(self) -> list[ConfirmedTrade]:
        with connection(self.db_path) as conn:
            rows = conn.execute(f"SELECT {self._COLUMNS} FROM confirmed_trades ORDER BY seq ASC").fetchall()
        return [self._row_to_trade(r) for r in rows]

    def get(self, trade_id: int) -> ConfirmedTrade | None:
        if not self._fits(trade_id):
            return None
        with connection(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM confirmed_trades WHERE id = ? LIMIT 1",
                (int(trade_id),),
            ).fetchone()
        return self._row_to_trade(row) if row else None

    def insert(self, trade: ConfirmedTrade) -> None:
        if not self._fits(trade.id):
            raise MalformedInput(f"Trade id {trade.id} is out of range")
        try:
            with connection(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO confirmed_trades (
                        id, symbol, strategy, strike_info, entry, stop, target, expiry,
                        confidence_level, premium, confirmed_at, status, outcome, notes, closed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        trade.id,
                        trade.symbol,
                        trade.strategy,
                        trade.strike_info,
                        trade.entry,
                        trade.stop,
                        trade.target,
                        trade.expiry,
                        trade.confidence_level,
                        trade.premium,
                        format_timestamp(trade.confirmed_at),
                        trade.status,
                        trade.outcome,
                        trade.notes,
                        format_timestamp(trade.closed_at) if trade.closed_at else None,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise AlreadyConfirmed() from exc

    def update(self, trade: ConfirmedTrade) -> None:
        if not self._fits(trade.id):
            raise NotFound()
        with connection(self.db_path) as conn:
            cur = conn.execute(
                """
                UPDATE confirmed_trades
                SET status = ?, outcome = ?, notes = ?, closed_at = ?
                WHERE id = ?
                """,
                (
                    trade.status,
                    trade.outcome,
                    trade.notes,
                    format_timestamp(trade.closed_at) if trade.closed_at else None,
                    trade.id,
                ),
            )
            updated = cur.rowcount
        if updated == 0:
            raise NotFound()


class JsonFileTradeStore(TradeStore):
    """Flat JSON array on disk, the layout of ``userTrades.json``.

    Mutations hold a process-wide lock around the read-modify-write and swap
    the file in with ``os.replace``.
    """

    _locks: dict[str, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or settings.user_trades_path)
        key = str(self.path.resolve())
        with self._locks_guard:
            self._lock = self._locks.setdefault(key, threading.Lock())

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Error reading user trades from {}: {}", self.path, exc)
            return []
        if not isinstance(raw, list):
            logger.warning("User trades file {} is not a JSON array; ignoring it", self.path)
            return []
        return [r for r in raw if isinstance(r, dict)]

    def _write(self, records: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".userTrades-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def all(self) -> list[ConfirmedTrade]:
        with self._lock:
            records = self._read()
        return [ConfirmedTrade.from_dict(r) for r in records]

    def get(self, trade_id: int) -> ConfirmedTrade | None:
        for trade in self.all():
            if trade.id == int(trade_id):
                return trade
        return None

    def insert(self, trade: ConfirmedTrade) -> None:
        with self._lock:
            records = self._read()
            if any(_record_id(r) == trade.id for r in records):
                raise AlreadyConfirmed()
            records.append(trade.to_dict())
            self._write(records)

    def update(self, trade: ConfirmedTrade) -> None:
        with self._lock:
            records = self._read()
            for idx, record in enumerate(records):
                if _record_id(record) == trade.id:
                    records[idx] = trade.to_dict()
                    self._write(records)
                    return
        raise NotFound()


def _record_id(record: dict[str, Any]) -> int | None:
    try:
        return int(record.get("id"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def build_store(backend: str | None = None) -> TradeStore:
    kind = (backend or settings.store_backend).lower()
    if kind == "json":
        return JsonFileTradeStore(settings.user_trades_path)
    if kind == "sqlite":
        return SqliteTradeStore(settings.db_path)
    raise ValueError(f"Unknown store backend '{kind}'")
