"""Tests for log formatting and persistence to system_logs."""

import json
import logging
import sys

import pytest
from sqlalchemy import select

from fm_tracker.logging_utils import (
    CentralizedLogManager,
    JsonFormatter,
    configure_logging,
    disable_centralized_logging,
    enable_centralized_logging,
)
from fm_tracker.models import SystemLog


def _record(name="fm_tracker.services.station_store", level=logging.WARNING, msg="update failed", **extra):
    record = logging.makeLogRecord(
        {"name": name, "levelno": level, "levelname": logging.getLevelName(level), "msg": msg}
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extra_fields():
    record = _record(station_id=7, version=2, location=object())

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "fm_tracker.services.station_store"
    assert payload["message"] == "update failed"
    assert payload["station_id"] == 7
    assert payload["version"] == 2
    assert payload["location"].startswith("<object")
    assert "timestamp" in payload


def test_json_formatter_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.makeLogRecord({"msg": "failed", "levelname": "ERROR", "levelno": logging.ERROR})
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["traceback"]


def test_configure_logging_replaces_own_handler():
    root = logging.getLogger()
    previous_level = root.level
    try:
        first = configure_logging(level="debug", fmt="text")
        second = configure_logging(level="info", fmt="json")

        assert first not in root.handlers
        assert second in root.handlers
        assert isinstance(second.formatter, JsonFormatter)
        assert root.level == logging.INFO
    finally:
        root.removeHandler(second)
        root.setLevel(previous_level)


@pytest.mark.asyncio
async def test_manager_persists_records(session_factory):
    manager = CentralizedLogManager("api", logging.WARNING, 10, session_factory=session_factory)
    handler = manager.create_handler()
    await manager.start()

    handler.handle(_record(station_id=3))
    handler.handle(_record(level=logging.INFO, msg="too quiet"))
    handler.handle(_record(name="sqlalchemy.engine.Engine", msg="BEGIN"))
    await manager.stop()

    async with session_factory() as session:
        rows = (await session.execute(select(SystemLog))).scalars().all()

    assert len(rows) == 1
    assert rows[0].service == "api"
    assert rows[0].message == "update failed"
    assert rows[0].extra == {"station_id": 3}


@pytest.mark.asyncio
async def test_full_queue_counts_dropped_records(session_factory):
    manager = CentralizedLogManager("api", logging.WARNING, 1, session_factory=session_factory)
    handler = manager.create_handler()

    handler.handle(_record(msg="first"))
    handler.handle(_record(msg="second"))
    handler.handle(_record(msg="third"))

    assert manager.dropped == 2
    assert manager.queue.qsize() == 1


@pytest.mark.asyncio
async def test_enable_is_opt_in():
    assert await enable_centralized_logging("api") is None


@pytest.mark.asyncio
async def test_enable_and_disable(session_factory):
    root = logging.getLogger()
    previous_level = root.level
    try:
        manager = await enable_centralized_logging("worker", session_factory=session_factory, force=True)
        assert manager.handler in root.handlers

        logging.getLogger("fm_tracker.tests").error("poll failed", extra={"attempt": 2})
        await disable_centralized_logging(manager)
        assert manager.handler not in root.handlers
    finally:
        root.setLevel(previous_level)

    async with session_factory() as session:
        rows = (await session.execute(select(SystemLog).where(SystemLog.service == "worker"))).scalars().all()

    assert [row.message for row in rows] == ["poll failed"]
    assert rows[0].level == "ERROR"
    assert rows[0].extra == {"attempt": 2}


@pytest.mark.asyncio
async def test_disable_none_is_noop():
    await disable_centralized_logging(None)
