import json
import logging

import pytest

from boozy_bot.logging import (
    StructuredFormatter,
    UpdateContextFilter,
    configure_logging,
    current_update_key,
    role_log_path,
    update_context,
)


def _config(tmp_path, json_format=False):
    return {
        "logging": {"level": "DEBUG", "json_format": json_format},
        "paths": {"log_file": str(tmp_path / "boozy-bot.log")},
    }


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in [h for h in root.handlers if getattr(h, "_boozy_bot", False)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def _record(message="hello"):
    return logging.LogRecord("services.worker", logging.INFO, __file__, 1, message, None, None)


def test_update_context_nests_and_restores():
    assert current_update_key() == ""
    with update_context("upd-1", attempt=1):
        with update_context("upd-2", attempt=3):
            assert current_update_key() == "upd-2"
        assert current_update_key() == "upd-1"
    assert current_update_key() == ""


def test_filter_tags_role_and_update():
    context_filter = UpdateContextFilter("work")
    outside = _record()
    context_filter.filter(outside)
    with update_context("upd-7", attempt=2):
        inside = _record()
        context_filter.filter(inside)

    assert (outside.role, outside.update_key) == ("work", "-")
    assert (inside.role, inside.update_key, inside.attempt) == ("work", "upd-7", 2)


def test_json_lines_carry_update_fields_only_inside_an_update():
    context_filter = UpdateContextFilter("work")
    formatter = StructuredFormatter()
    idle = _record("idle")
    context_filter.filter(idle)
    with update_context("upd-9", attempt=1):
        busy = _record("busy")
        context_filter.filter(busy)

    idle_entry = json.loads(formatter.format(idle))
    busy_entry = json.loads(formatter.format(busy))
    assert "update" not in idle_entry
    assert busy_entry["update"] == "upd-9"
    assert busy_entry["attempt"] == 1
    assert busy_entry["role"] == "work"


def test_each_role_gets_its_own_log_file(tmp_path):
    config = _config(tmp_path)
    assert role_log_path(config, "listen").name == "boozy-bot-listen.log"
    assert role_log_path(config, "work").name == "boozy-bot-work.log"
    assert role_log_path(config).name == "boozy-bot.log"


def test_configure_logging_writes_tagged_lines_and_replaces_handlers(tmp_path, root_logger):
    config = _config(tmp_path)
    configure_logging(config, role="work")
    path = configure_logging(config, role="work")

    ours = [h for h in root_logger.handlers if getattr(h, "_boozy_bot", False)]
    assert len(ours) == 2
    with update_context("upd-12", attempt=1):
        logging.getLogger("services.worker").info("handled")
    for handler in ours:
        handler.flush()

    line = path.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert "| work | upd-12 | services.worker | handled" in line
    assert logging.getLogger("httpx").level == logging.WARNING
