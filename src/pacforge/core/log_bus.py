"""LogBus for publishing log records to subscribers.

Loggers publish every emitted record here; tests subscribe to
assert on what a build reported. Subscriber failures never abort a build.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str


Subscriber = Callable[[LogRecord], None]


class LogBus:
    def __init__(self) -> None:
        self._subs: list[Subscriber] = []

    def subscribe(self, cb: Subscriber) -> None:
        self._subs.append(cb)

    def unsubscribe(self, cb: Subscriber) -> None:
        with contextlib.suppress(ValueError):
            self._subs.remove(cb)

    def publish(self, record: LogRecord) -> None:
        for cb in list(self._subs):
            try:
                cb(record)
            except Exception:
                # Never route through the logger here (recursion).
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def clear(self) -> None:
        self._subs.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
