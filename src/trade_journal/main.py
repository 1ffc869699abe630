from __future__ import annotations

import uvicorn
from loguru import logger

from .db import initialize_database
from .logging_config import configure_logging
from .settings import settings


def run_server(host: str | None = None, port: int | None = None) -> None:
    configure_logging(settings.log_level, settings.log_file)
    if settings.store_backend == "sqlite":
        initialize_database()

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Trade journal listening on {}:{} ({} store)", bind_host, bind_port, settings.store_backend)

    uvicorn.run(
        "trade_journal.api:app",
        host=bind_host,
        port=bind_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
