"""Tests for logging helpers: lazy adapter, JSON formatter and setup."""

from __future__ import annotations

import json
import logging

import pytest

from org_hierarchy.infra.logging import JSONFormatter, get_lazy_logger
from org_hierarchy.infra.logging import config as logging_config


def test_lazy_logger_skips_disabled_levels() -> None:
    calls: list[int] = []
    logger = get_lazy_logger("tests.lazy.disabled")
    logger.logger.setLevel(logging.INFO)

    logger.debug(lambda: calls.append(1) or "expensive")

    assert calls == []


def test_lazy_logger_evaluates_enabled_levels(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_lazy_logger("tests.lazy.enabled")

    with caplog.at_level(logging.DEBUG, logger="tests.lazy.enabled"):
        logger.debug(lambda: "moved 3 nodes")
        logger.info("node %s under %s", lambda: 2, 1)

    assert [r.getMessage() for r in caplog.records] == ["moved 3 nodes", "node 2 under 1"]


def test_json_formatter_includes_extra_and_static() -> None:
    formatter = JSONFormatter(static={"service": "org-hierarchy"})
    record = logging.LogRecord(
        name="org_hierarchy.features.hierarchy.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Hierarchy node created",
        args=(),
        exc_info=None,
    )
    record.node_id = 2
    record.kind = "department"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Hierarchy node created"
    assert payload["level"] == "INFO"
    assert payload["service"] == "org-hierarchy"
    assert payload["node_id"] == 2
    assert payload["kind"] == "department"
    assert payload["timestamp"].endswith("Z")
    assert "trace_id" not in payload


def test_json_formatter_keeps_exceptions_on_one_line() -> None:
    formatter = JSONFormatter()
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    line = formatter.format(record)

    assert "\n" not in line
    assert "RuntimeError: boom" in json.loads(line)["exception"]


def test_setup_logging_runs_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []
    monkeypatch.setattr(logging_config, "_LOGGING_INITIALIZED", False)
    monkeypatch.setattr(logging_config, "configure_logging", lambda **kw: calls.append(kw))

    logging_config.setup_logging()
    logging_config.setup_logging()
    logging_config.setup_logging(force=True, log_level="DEBUG")

    assert len(calls) == 2
    assert calls[1]["log_level"] == "DEBUG"


def test_configure_logging_writes_json_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "hierarchy.jsonl"
    root = logging.getLogger()
    previous_handlers = root.handlers[:]
    previous_level = root.level

    try:
        logging_config.configure_logging(
            log_level="INFO",
            json_logs=True,
            console_enabled=False,
            file_path=log_file,
            capture_warnings=False,
        )
        logging.getLogger("tests.file").info("Hierarchy node deleted", extra={"deleted": 3})
        logging_config.shutdown()
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)

    payload = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert payload["message"] == "Hierarchy node deleted"
    assert payload["deleted"] == 3
    assert payload["service"] == "org-hierarchy"
