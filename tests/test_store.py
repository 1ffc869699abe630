import json
import sqlite3
import threading
from datetime import datetime, timezone

import pytest

from trade_journal import db
from trade_journal.errors import AlreadyConfirmed, MalformedInput, NotFound
from trade_journal.models import ConfirmedTrade
from trade_journal.store import JsonFileTradeStore, MemoryTradeStore, SqliteTradeStore, build_store

WHEN = datetime(2026, 10, 20, 13, 45, 12, 250000, tzinfo=timezone.utc)

# ------------------------- Fixtures ------------------------- #

@pytest.fixture(params=["memory", "sqlite", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryTradeStore()
    if request.param == "sqlite":
        return SqliteTradeStore(tmp_path / "journal.sqlite3")
    return JsonFileTradeStore(tmp_path / "userTrades.json")


@pytest.fixture
def trades(recommendations):
    return [ConfirmedTrade.from_recommendation(r, confirmed_at=WHEN) for r in recommendations]

# ------------------------- Tests ------------------------- #

def test_empty_store(any_store):
    assert any_store.all() == []
    assert any_store.get(1) is None


def test_insert_and_read_back(any_store, trades):
    any_store.insert(trades[1])
    any_store.insert(trades[0])

    listed = any_store.all()
    assert [t.id for t in listed] == [2, 1]
    assert listed[0].to_dict() == trades[1].to_dict()
    assert any_store.get(1).confirmed_at == WHEN


def test_duplicate_insert_rejected(any_store, trades):
    any_store.insert(trades[0])
    with pytest.raises(AlreadyConfirmed):
        any_store.insert(trades[0])
    assert len(any_store.all()) == 1


def test_update_replaces_by_id(any_store, trades):
    any_store.insert(trades[0])
    any_store.insert(trades[1])
    trade = any_store.get(1)
    trade.close("loss", "stopped out", WHEN)

    any_store.update(trade)

    stored = any_store.get(1)
    assert stored.status == "closed"
    assert stored.outcome == "loss"
    assert stored.notes == "stopped out"
    assert stored.closed_at == WHEN
    assert any_store.get(2).status == "open"
    assert [t.id for t in any_store.all()] == [1, 2]


def test_update_missing_raises(any_store, trades):
    with pytest.raises(NotFound):
        any_store.update(trades[0])
    assert any_store.all() == []


def test_returned_records_are_detached(any_store, trades):
    any_store.insert(trades[0])
    copy = any_store.get(1)
    copy.notes = "edited locally"
    assert any_store.get(1).notes == ""


def test_json_store_writes_original_layout(tmp_path, trades):
    path = tmp_path / "userTrades.json"
    store = JsonFileTradeStore(path)
    store.insert(trades[0])

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert isinstance(raw, list)
    assert raw[0]["id"] == 1
    assert raw[0]["status"] == "open"
    assert raw[0]["outcome"] == "pending"
    assert raw[0]["confirmed_at"] == "2026-10-20T13:45:12.250Z"
    assert "closed_at" not in raw[0]


def test_json_store_reads_node_written_records(tmp_path):
    path = tmp_path / "userTrades.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": 4,
                    "symbol": "TSLA",
                    "strategy": "Long Call",
                    "strike_info": "250 C",
                    "entry": 245,
                    "stop": 238,
                    "target": 260,
                    "expiry": "2026-10-23",
                    "confidence_level": 2,
                    "premium": 5.1,
                    "confirmed_at": "2026-10-19T15:02:03.004Z",
                    "status": "closed",
                    "outcome": "win",
                    "notes": "",
                    "closed_at": "2026-10-20T18:00:00.000Z",
                }
            ]
        ),
        encoding="utf-8",
    )
    trade = JsonFileTradeStore(path).get(4)
    assert trade.outcome == "win"
    assert trade.closed_at == datetime(2026, 10, 20, 18, 0, tzinfo=timezone.utc)


def test_json_store_treats_corrupt_file_as_empty(tmp_path):
    path = tmp_path / "userTrades.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileTradeStore(path).all() == []


def test_json_store_concurrent_inserts_keep_every_trade(tmp_path, recommendations):
    store = JsonFileTradeStore(tmp_path / "userTrades.json")
    base = recommendations[0].to_dict()

    def confirm(i):
        rec = ConfirmedTrade.from_dict({**base, "id": 100 + i, "confirmed_at": "2026-10-20T12:00:00Z"})
        store.insert(rec)

    threads = [threading.Thread(target=confirm, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(t.id for t in store.all()) == list(range(100, 120))


def test_sqlite_store_persists_across_instances(tmp_path, trades):
    db_path = tmp_path / "journal.sqlite3"
    SqliteTradeStore(db_path).insert(trades[0])
    assert SqliteTradeStore(db_path).get(1).symbol == "SPY"


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_store("postgres")


def test_sqlite_store_treats_out_of_range_id_as_missing(tmp_path, trades):
    store = SqliteTradeStore(tmp_path / "journal.sqlite3")
    store.insert(trades[0])
    huge = ConfirmedTrade.from_dict({**trades[0].to_dict(), "id": 10**23})

    assert store.get(10**23) is None
    with pytest.raises(NotFound):
        store.update(huge)
    with pytest.raises(MalformedInput):
        store.insert(huge)
    assert [t.id for t in store.all()] == [1]


def test_sqlite_store_closes_every_connection(tmp_path, trades, monkeypatch):
    opened = []
    real_connect = sqlite3.connect

    class TrackingConnection(sqlite3.Connection):
        closed = False

        def close(self):
            self.closed = True
            super().close()

    def tracking_connect(*args, **kwargs):
        conn = real_connect(*args, factory=TrackingConnection, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(db.sqlite3, "connect", tracking_connect)

    store = SqliteTradeStore(tmp_path / "journal.sqlite3")
    store.insert(trades[0])
    with pytest.raises(AlreadyConfirmed):
        store.insert(trades[0])
    store.get(1)
    store.all()
    trades[0].close("win", "", datetime(2026, 10, 20, tzinfo=timezone.utc))
    store.update(trades[0])
    with pytest.raises(NotFound):
        store.update(trades[1])

    assert len(opened) >= 7
    assert all(conn.closed for conn in opened)
