from __future__ import annotations

import logging
from typing import Any, Protocol


class ExtractionLogger(Protocol):
    def info(self, message: str, **fields: Any) -> None: ...

    def warning(self, message: str, **fields: Any) -> None: ...

    def error(self, message: str, **fields: Any) -> None: ...


class NullExtractionLogger:
    def info(self, message: str, **fields: Any) -> None:
        return None

    def warning(self, message: str, **fields: Any) -> None:
        return None

    def error(self, message: str, **fields: Any) -> None:
        return None


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in fields.items())


class StdlibExtractionLogger:
    """Adapts a ``logging.Logger`` to the extraction logging port."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("app.extraction")

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if fields:
            self._logger.log(level, "%s %s", message, _format_fields(fields))
        else:
            self._logger.log(level, "%s", message)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)


class RecordingExtractionLogger:
    """Keeps every event in memory; used for decision trails and in tests."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def info(self, message: str, **fields: Any) -> None:
        self.events.append(("info", message, fields))

    def warning(self, message: str, **fields: Any) -> None:
        self.events.append(("warning", message, fields))

    def error(self, message: str, **fields: Any) -> None:
        self.events.append(("error", message, fields))

    def messages(self, level: str | None = None) -> list[str]:
        return [message for event_level, message, _ in self.events if level is None or event_level == level]
