from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from ilsbridge.service.logging.configuration import LoggingConfiguration
from ilsbridge.util.datetime_helpers import from_timestamp
from ilsbridge.util.json import json_serializer


class JSONFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__()
        self.hostname = socket.getfqdn()
        self.main_thread_id = threading.main_thread().ident

    def format(self, record: logging.LogRecord) -> str:
        def ensure_str(s: Any) -> Any:
            """Ensure that unicode strings are used for a record's message.
            We don't want to try to interpolate an incompatible byte type; it
            could lead to a UnicodeDecodeError.
            """
            if isinstance(s, bytes):
                s = s.decode("utf-8", errors="replace")
            return s

        message = ensure_str(record.msg)
        if record.args:
            record_args: tuple[Any, ...] | dict[str, Any] | None = None
            if isinstance(record.args, Mapping):
                record_args = {
                    ensure_str(k): ensure_str(v) for k, v in record.args.items()
                }
            elif isinstance(record.args, Sequence):
                record_args = tuple(ensure_str(arg) for arg in record.args)

            if record_args is not None:
                try:
                    message = message % record_args
                except Exception as e:
                    # A broken log call must not break the code doing the work,
                    # but it has to be visible in the output.
                    message = (
                        "Log message could not be formatted. Exception: %r. Original message: message=%r args=%r"
                        % (e, message, record_args)
                    )
        data = dict(
            host=self.hostname,
            name=record.name,
            level=record.levelname,
            filename=record.filename,
            message=message,
            timestamp=from_timestamp(record.created).isoformat(),
        )
        if record.exc_info:
            data["traceback"] = self.formatException(record.exc_info)
        if record.process:
            data["process"] = record.process
        if record.thread and record.thread != self.main_thread_id:
            data["thread"] = record.thread
        if record.stack_info:
            data["stack"] = self.formatStack(record.stack_info)

        return json_serializer(data)


TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def create_stream_handler(formatter: logging.Formatter) -> logging.Handler:
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    return stream_handler


def setup_logging(config: LoggingConfiguration | None = None) -> None:
    """Configure the root logger from a LoggingConfiguration.

    If no configuration is passed in, it is loaded from the environment.
    """
    config = config or LoggingConfiguration()
    formatter = (
        JSONFormatter() if config.json_format else logging.Formatter(TEXT_LOG_FORMAT)
    )
    logging.basicConfig(
        force=True,
        level=config.level.value,
        handlers=[create_stream_handler(formatter)],
    )

    # The HTTP libraries log every connection at DEBUG, which drowns out the
    # per-call logging done by the Alma request gateway.
    for logger in (
        "requests.packages.urllib3.connectionpool",
        "urllib3.connectionpool",
    ):
        logging.getLogger(logger).setLevel(config.verbose_level.value)
