from loguru import logger

from trade_journal.logging_config import configure_logging


def test_file_sink_receives_records(tmp_path):
    log_file = tmp_path / "logs" / "journal.log"
    configure_logging("INFO", log_file)
    try:
        logger.info("Confirmed trade {} {}", 1, "SPY")
        logger.debug("hidden below INFO")
    finally:
        # remove() drains the enqueued sinks
        logger.remove()

    text = log_file.read_text(encoding="utf-8")
    assert "| INFO |" in text
    assert "Confirmed trade 1 SPY" in text
    assert "hidden below INFO" not in text


def test_console_only_without_log_file(tmp_path, capsys):
    configure_logging("warning")
    try:
        logger.warning("quote lookup failed")
        logger.info("not shown")
    finally:
        logger.remove()

    out = capsys.readouterr().out
    assert "| WARNING |" in out
    assert "quote lookup failed" in out
    assert "not shown" not in out
    assert list(tmp_path.iterdir()) == []
