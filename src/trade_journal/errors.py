"""Error kinds surfaced by the journal.

Each error carries the HTTP status and the human-readable message the API
returns as ``{"error": message}``.  None of them are fatal to the process.
"""

from __future__ import annotations


class TradeJournalError(Exception):
    status_code: int = 400
    message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFound(TradeJournalError):
    """Unknown recommendation or confirmed-trade id."""

    status_code = 404
    message = "Trade not found"


class AlreadyConfirmed(TradeJournalError):
    """A confirmed trade already exists for this recommendation id."""

    status_code = 400
    message = "Trade already confirmed"


class AlreadyClosed(TradeJournalError):
    status_code = 400
    message = "Trade already closed"


class MalformedInput(TradeJournalError):
    status_code = 400
    message = "Invalid JSON"


class InvalidOutcome(TradeJournalError):
    status_code = 400
    message = "Invalid outcome"
