"""Raw process events and log filtering."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class EventKind(enum.Enum):
    """What happened to the process."""

    STARTED = "Started"
    EXITED = "Exited"
    STDOUT = "Stdout"
    STDERR = "Stderr"


class LogSource(enum.Enum):
    """The stream a log line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessEvent:
    """A single event from a running process.

    ``pid`` is set for started events; ``code`` and ``signal`` for exit events;
    ``data`` holds the line for log events.
    """

    kind: EventKind
    data: str | None = None
    pid: int | None = None
    code: int | None = None
    signal: int | None = None
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def started(cls, pid: int) -> "ProcessEvent":
        """The process has started with the given pid."""
        return cls(EventKind.STARTED, pid=pid)

    @classmethod
    def exited(cls, code: int | None, signal: int | None = None) -> "ProcessEvent":
        """The process has exited."""
        return cls(EventKind.EXITED, code=code, signal=signal)

    @classmethod
    def log(cls, source: LogSource, data: str) -> "ProcessEvent":
        """A line of output from stdout or stderr."""
        kind = EventKind.STDOUT if source is LogSource.STDOUT else EventKind.STDERR
        return cls(kind, data=data)

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready representation of the event."""
        event_type: Any
        if self.kind is EventKind.STARTED:
            event_type = {EventKind.STARTED.value: {"pid": self.pid}}
        elif self.kind is EventKind.EXITED:
            event_type = {
                EventKind.EXITED.value: {"code": self.code, "signal": self.signal}
            }
        else:
            event_type = self.kind.value
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": event_type,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessEvent":
        """Rebuild an event from :meth:`to_dict` output."""
        try:
            raw_timestamp = data["timestamp"]
            event_type = data["event_type"]
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r} in process event") from exc
        if raw_timestamp.endswith("Z"):
            raw_timestamp = raw_timestamp[:-1] + "+00:00"
        timestamp = datetime.fromisoformat(raw_timestamp)
        payload = data.get("data")

        if isinstance(event_type, str):
            try:
                kind = EventKind(event_type)
            except ValueError as exc:
                raise ValueError(f"unknown process event type: {event_type!r}") from exc
            if kind not in (EventKind.STDOUT, EventKind.STDERR):
                raise ValueError(f"event type {event_type!r} requires fields")
            return cls(kind, data=payload, timestamp=timestamp)

        if isinstance(event_type, dict) and len(event_type) == 1:
            (name, fields), = event_type.items()
            if name == EventKind.STARTED.value:
                return cls(
                    EventKind.STARTED, data=payload, pid=fields["pid"], timestamp=timestamp
                )
            if name == EventKind.EXITED.value:
                return cls(
                    EventKind.EXITED,
                    data=payload,
                    code=fields.get("code"),
                    signal=fields.get("signal"),
                    timestamp=timestamp,
                )
        raise ValueError(f"unknown process event type: {event_type!r}")


class LogFilter(ABC):
    """Decides whether a log line is kept, and in what form."""

    @abstractmethod
    def filter(self, line: str, source: LogSource) -> str | None:
        """Return the line (or part of it) to keep, or None to drop it."""


class NoOpFilter(LogFilter):
    """A filter that keeps every line, dropping only a trailing line terminator."""

    def filter(self, line: str, source: LogSource) -> str | None:
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        return line