from __future__ import annotations

import functools
import json
import logging
import os
import sys
import threading
from collections.abc import Callable, Generator

import pytest
from freezegun import freeze_time

from ilsbridge.service.logging.configuration import LoggingConfiguration, LogLevel
from ilsbridge.service.logging.log import (
    TEXT_LOG_FORMAT,
    JSONFormatter,
    create_stream_handler,
    setup_logging,
)


class TestJSONFormatter:
    LogRecordCallable = Callable[..., logging.LogRecord]

    @pytest.fixture()
    def log_record(self) -> LogRecordCallable:
        return functools.partial(
            logging.LogRecord,
            name="some logger",
            level=logging.DEBUG,
            pathname="pathname",
            lineno=104,
            msg="A message",
            args={},
            exc_info=None,
            func=None,
        )

    @freeze_time("1990-05-05")
    def test_format(self, log_record: LogRecordCallable):
        formatter = JSONFormatter()
        record = log_record()
        data = json.loads(formatter.format(record))
        assert "host" in data
        assert data["name"] == "some logger"
        assert data["timestamp"] == "1990-05-05T00:00:00+00:00"
        assert data["level"] == "DEBUG"
        assert data["message"] == "A message"
        assert data["filename"] == "pathname"
        assert "traceback" not in data
        assert data["process"] == os.getpid()

        # If the record has no process, the process field is not included in the log.
        record = log_record()
        record.process = None
        data = json.loads(formatter.format(record))
        assert "process" not in data

    def test_format_thread(self, log_record: LogRecordCallable) -> None:
        formatter = JSONFormatter()
        record = log_record()

        # Since we are in the main thread, the thread field is not included in the log.
        data = json.loads(formatter.format(record))
        assert "thread" not in data

        # A record from a worker thread carries its thread id.
        record = log_record()
        record.thread = (threading.main_thread().ident or 0) + 1
        data = json.loads(formatter.format(record))
        assert data["thread"] == record.thread

    def test_format_exception(self, log_record: LogRecordCallable) -> None:
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = log_record(exc_info=sys.exc_info())
        data = json.loads(formatter.format(record))
        assert "ValueError: boom" in data["traceback"]

    @pytest.mark.parametrize(
        "msg, args, expected",
        [
            ("Hello %s", ("world",), "Hello world"),
            (b"Bytes %s", (b"too",), "Bytes too"),
            ("Mapped %(key)s", ({"key": "value"},), "Mapped value"),
            ("Too few %s %s", ("args",), "Log message could not be formatted."),
        ],
    )
    def test_format_args(
        self,
        log_record: LogRecordCallable,
        msg: str | bytes,
        args: tuple[object, ...],
        expected: str,
    ) -> None:
        formatter = JSONFormatter()
        record = log_record(msg=msg, args=args)
        data = json.loads(formatter.format(record))
        assert data["message"].startswith(expected)


class TestLogLevel:
    def test_levelno(self) -> None:
        assert LogLevel.debug.levelno == logging.DEBUG
        assert LogLevel.error.levelno == logging.ERROR

    @pytest.mark.parametrize(
        "level, expected",
        [
            (logging.INFO, LogLevel.info),
            ("warning", LogLevel.warning),
            ("ERROR", LogLevel.error),
        ],
    )
    def test_from_level(self, level: int | str, expected: LogLevel) -> None:
        assert LogLevel.from_level(level) == expected

    def test_from_level_invalid(self) -> None:
        with pytest.raises(ValueError, match="'loud' is not a valid LogLevel"):
            LogLevel.from_level("loud")


class TestSetupLogging:
    @pytest.fixture
    def restore_root_logger(self) -> Generator[None]:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        urllib3_level = logging.getLogger("urllib3.connectionpool").level
        yield
        root.handlers = handlers
        root.setLevel(level)
        logging.getLogger("urllib3.connectionpool").setLevel(urllib3_level)

    def test_create_stream_handler(self) -> None:
        formatter = logging.Formatter(TEXT_LOG_FORMAT)
        handler = create_stream_handler(formatter)
        assert isinstance(handler, logging.StreamHandler)
        assert handler.formatter is formatter

    @pytest.mark.usefixtures("restore_root_logger")
    def test_setup_logging_json(self) -> None:
        setup_logging(
            LoggingConfiguration(level=LogLevel.debug, verbose_level=LogLevel.error)
        )
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        [handler] = root.handlers
        assert isinstance(handler.formatter, JSONFormatter)
        assert logging.getLogger("urllib3.connectionpool").level == logging.ERROR

    @pytest.mark.usefixtures("restore_root_logger")
    def test_setup_logging_text(self) -> None:
        setup_logging(LoggingConfiguration(json_format=False))
        root = logging.getLogger()
        assert root.level == logging.INFO
        [handler] = root.handlers
        assert not isinstance(handler.formatter, JSONFormatter)
        assert handler.formatter is not None
        assert handler.formatter._fmt == TEXT_LOG_FORMAT
