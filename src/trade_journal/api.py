from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator
from starlette.concurrency import run_in_threadpool

from .db import MAX_SQLITE_INTEGER
from .errors import MalformedInput, NotFound, TradeJournalError
from .journal import TradeJournal
from .pricing import apply_live_prices
from .quotes import LivePriceClient
from .recommendations import RecommendationSource
from .settings import settings
from .store import TradeStore, build_store
from .summary import compute_weekly_summary


class ClosePayload(BaseModel):
    # outcome is checked by the journal so a wrong type reads as an invalid outcome
    outcome: Any = "neutral"
    notes: Any = ""

    @field_validator("notes", mode="before")
    @classmethod
    def coerce_notes(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value)


class JournalController:
    def __init__(
        self,
        source: RecommendationSource | None = None,
        store: TradeStore | None = None,
        quotes: LivePriceClient | None = None,
        journal: TradeJournal | None = None,
    ) -> None:
        self.source = source or RecommendationSource()
        self.quotes = quotes or LivePriceClient()
        self._store = store
        self._journal = journal

    @property
    def journal(self) -> TradeJournal:
        if self._journal is None:
            if self._store is None:
                self._store = build_store()
            self._journal = TradeJournal(self._store)
        return self._journal

    def start(self) -> None:
        journal = self.journal
        logger.info(
            "Trade journal started: {} store, recommendations from {}",
            type(journal.store).__name__,
            self.source.path,
        )

    @staticmethod
    def _parse_id(raw_id: str) -> int:
        text = str(raw_id or "").strip()
        if not re.fullmatch(r"[0-9]+", text):
            raise NotFound()
        trade_id = int(text)
        if trade_id > MAX_SQLITE_INTEGER:
            raise NotFound()
        return trade_id

    def recommendations(self) -> list[dict[str, Any]]:
        recs = self.source.load()
        result = self.quotes.fetch(rec.symbol for rec in recs)
        return apply_live_prices(recs, result.prices_or_empty())

    def confirm(self, raw_id: str) -> dict[str, Any]:
        trade = self.journal.confirm(self._parse_id(raw_id), self.source.load())
        return trade.to_dict()

    def user_trades(self) -> list[dict[str, Any]]:
        return [t.to_dict() for t in self.journal.list_confirmed()]

    def close(self, raw_id: str, body: bytes) -> dict[str, Any]:
        trade_id = self._parse_id(raw_id)
        try:
            raw = json.loads(body) if body.strip() else {}
            if not isinstance(raw, dict):
                raise MalformedInput()
            payload = ClosePayload.model_validate(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise MalformedInput() from exc

        trade = self.journal.close(trade_id, payload.outcome, payload.notes)
        return trade.to_dict()

    def summary(self) -> dict[str, int]:
        trades = self.journal.list_confirmed()
        return compute_weekly_summary(trades, self.source.count()).to_dict()


def create_app(controller: JournalController | None = None, client_dir: Path | None = None) -> FastAPI:
    ctl = controller or JournalController()
    app = FastAPI(title="Trade Journal API", version="1.0.0")
    app.state.controller = ctl

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(TradeJournalError)
    async def journal_error_handler(request: Request, exc: TradeJournalError) -> JSONResponse:
        logger.debug("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.on_event("startup")
    def on_startup() -> None:
        ctl.start()

    @app.get("/api/trades")
    def get_trades() -> list[dict[str, Any]]:
        return ctl.recommendations()

    @app.post("/api/trades/{trade_id}/confirm", status_code=201)
    def post_confirm(trade_id: str) -> dict[str, Any]:
        return ctl.confirm(trade_id)

    @app.get("/api/user-trades")
    def get_user_trades() -> list[dict[str, Any]]:
        return ctl.user_trades()

    @app.post("/api/user-trades/{trade_id}/close")
    async def post_close(trade_id: str, request: Request) -> dict[str, Any]:
        body = await request.body()
        return await run_in_threadpool(ctl.close, trade_id, body)

    @app.get("/api/summary")
    def get_summary() -> dict[str, int]:
        return ctl.summary()

    @app.get("/healthz")
    def healthz() -> JSONResponse:
        return JSONResponse({"ok": True, "time": datetime.now(timezone.utc).isoformat()})

    static_path = Path(client_dir or settings.client_dir)
    if static_path.exists():
        app.mount("/", StaticFiles(directory=str(static_path), html=True), name="client")

    return app


app = create_app()
