"""Interfaces for attaching to services that are already running."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator


@dataclass
class AttachConfig:
    """Options for attaching to an existing service."""

    follow_from_start: bool = False
    history_lines: int | None = 100
    timeout_seconds: int | None = 30


class ServiceStatus(enum.Enum):
    """The state of an attached service."""

    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    UNKNOWN = "unknown"


class AttachedHandle(ABC):
    """Controls a service that was attached to rather than launched."""

    @abstractmethod
    def id(self) -> str:
        """The identifier of the service."""

    @abstractmethod
    async def status(self) -> ServiceStatus:
        """Check the current state of the service."""

    @abstractmethod
    async def start(self) -> None:
        """Start the service if it is stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the service."""

    @abstractmethod
    async def restart(self) -> None:
        """Restart the service."""

    @abstractmethod
    async def reload(self) -> None:
        """Reload the service configuration."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Stop monitoring the service."""


class Attacher(ABC):
    """Connects to existing services."""

    @abstractmethod
    async def attach(
        self, target: Any, config: AttachConfig
    ) -> tuple[AsyncIterator[Any], AttachedHandle]:
        """Attach to the target, returning an event stream and a control handle."""