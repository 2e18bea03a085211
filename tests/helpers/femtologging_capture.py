"""Helpers for capturing femtologging output in tests."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import time
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(slots=True)
class FemtoLogRecord:
    """Captured femtologging record for test assertions."""

    logger: str
    level: str
    message: str
    exc_info: object | None = None


class FemtoLogCapture:
    """Collect records handed over by femtologging's worker thread."""

    def __init__(self) -> None:
        """Initialise storage and synchronization primitives."""
        self.records: list[FemtoLogRecord] = []
        self._condition = threading.Condition()

    def handle(self, logger: str, level: str, message: str) -> None:
        """Handle a plain log record."""
        self._append_record(
            FemtoLogRecord(logger=str(logger), level=str(level), message=message)
        )

    def handle_record(self, record: dict[str, object]) -> None:
        """Handle structured record payloads from femtologging."""
        self._append_record(
            FemtoLogRecord(
                logger=str(record.get("logger", "")),
                level=str(record.get("level", "")),
                message=str(record.get("message", "")),
                exc_info=record.get("exc_info"),
            )
        )

    def _append_record(self, record: FemtoLogRecord) -> None:
        with self._condition:
            self.records.append(record)
            self._condition.notify_all()

    @property
    def messages(self) -> list[str]:
        """Return the captured messages in arrival order."""
        with self._condition:
            return [record.message for record in self.records]

    def wait_for_message(self, fragment: str, timeout: float = 1.0) -> FemtoLogRecord:
        """Wait for a record whose message contains ``fragment`` and return it."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while True:
                for record in self.records:
                    if fragment in record.message:
                        return record
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)
            seen = [record.message for record in self.records]
        msg = f"No record containing {fragment!r}; captured {seen!r}"
        raise AssertionError(msg)

    def wait_for_timeout(self, timeout: float = 0.1) -> None:
        """Wait for the specified duration to allow records to flush."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)


@contextlib.contextmanager
def capture_femto_logs(
    *logger_names: str,
    level: str = "TRACE",
) -> typ.Iterator[FemtoLogCapture]:
    """Capture logs emitted on each of the named femtologging loggers."""
    handler = FemtoLogCapture()
    previous: list[tuple[typ.Any, typ.Any, typ.Any]] = []
    for name in logger_names:
        logger = get_logger(name)
        previous.append((logger, logger.level, logger.propagate))
        logger.set_level(level)
        logger.set_propagate(False)
        logger.add_handler(handler)
    try:
        yield handler
    finally:
        for logger, previous_level, previous_propagate in previous:
            logger.remove_handler(handler)
            logger.set_level(previous_level)
            logger.set_propagate(previous_propagate)
