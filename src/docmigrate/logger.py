"""Operational logging for migrations.

Migration clients report operational events (moves, slow updates) through a
:class:`ModelLogger`. The default implementation forwards to the standard
``logging`` module; migration runners may supply their own to collect events.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

MIGRATION_LOGGER = "docmigrate.migration"


@runtime_checkable
class ModelLogger(Protocol):
    """Sink for operational migration events."""

    def log(self, msg: str, data: dict[str, Any]) -> None: ...

    def error(self, msg: str, data: dict[str, Any]) -> None: ...


class LoggingModelLogger:
    """ModelLogger backed by a standard library logger.

    Messages ending in ``slow`` are emitted at WARNING, other events at INFO.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(MIGRATION_LOGGER)

    def log(self, msg: str, data: dict[str, Any]) -> None:
        level = logging.WARNING if msg.endswith("slow") else logging.INFO
        self.logger.log(level, f"{msg} {data}", extra={"migration_event": msg, "migration_data": data})

    def error(self, msg: str, data: dict[str, Any]) -> None:
        self.logger.error(f"{msg} {data}", extra={"migration_event": msg, "migration_data": data})


class RecordingModelLogger:
    """ModelLogger that keeps events in memory, e.g. for migration reports."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def log(self, msg: str, data: dict[str, Any]) -> None:
        self.events.append(("log", msg, data))

    def error(self, msg: str, data: dict[str, Any]) -> None:
        self.events.append(("error", msg, data))

    def messages(self) -> list[str]:
        """Return the event messages in order."""
        return [msg for _, msg, _ in self.events]
