from __future__ import annotations

import logging
from pathlib import Path

from scanband.logging_utils import LOGGER_NAME, get_logger, setup_logging


def test_get_logger_returns_package_children() -> None:
    assert get_logger().name == LOGGER_NAME
    assert get_logger("session").name == "scanband.session"
    assert get_logger("scanband.timing").name == "scanband.timing"
    assert get_logger("session").handlers == []


def test_setup_twice_does_not_stack_handlers(tmp_path: Path) -> None:
    setup_logging(console_level="debug")
    logger = setup_logging(console_level="WARNING", log_file=tmp_path / "logs" / "sweep.log")

    assert len(logger.handlers) == 2
    assert logger.propagate is False
    console = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]
    assert [h.level for h in console] == [logging.WARNING]


def test_child_records_reach_log_file(tmp_path: Path) -> None:
    log_file = tmp_path / "sweep.log"
    logger = setup_logging(console_level="ERROR", log_file=log_file)

    get_logger("session").info("first frame received")
    for h in logger.handlers:
        h.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "[INFO][scanband.session] first frame received" in text


def test_unknown_level_falls_back_to_info() -> None:
    logger = setup_logging(console_level="chatty")
    assert [h.level for h in logger.handlers] == [logging.INFO]
