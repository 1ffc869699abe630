"""
  ============================================
   TRADE JOURNAL -- Launcher
  ============================================

  Usage:
    python run_journal.py                  # serve the API and client
    python run_journal.py --port 8080      # custom port
    python run_journal.py --summary        # print this week's summary and exit
"""

import argparse
import json

from trade_journal.logging_config import configure_logging
from trade_journal.main import run_server
from trade_journal.recommendations import RecommendationSource
from trade_journal.settings import settings
from trade_journal.store import build_store
from trade_journal.summary import compute_weekly_summary


def print_summary() -> None:
    store = build_store()
    summary = compute_weekly_summary(store.all(), RecommendationSource().count())
    print(json.dumps(summary.to_dict(), indent=2))
    if summary.window_start and summary.window_end:
        print(f"week: {summary.window_start:%Y-%m-%d} -> {summary.window_end:%Y-%m-%d} ({settings.timezone})")


def main() -> None:
    parser = argparse.ArgumentParser(description="Personal trade journal")
    parser.add_argument("--host", default=None, help="Bind address (default from HOST)")
    parser.add_argument("--port", type=int, default=None, help="Port (default from PORT)")
    parser.add_argument("--summary", action="store_true", help="Print the weekly summary and exit")
    args = parser.parse_args()

    if args.summary:
        configure_logging("WARNING")
        print_summary()
        return

    run_server(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
