"""An executor that runs commands through a chosen launcher."""

from __future__ import annotations

from typing import Any, AsyncIterator

from execkit.command import Command
from execkit.events import LogFilter, ProcessEvent
from execkit.launcher import Launcher
from execkit.process import ExitResult, ProcessHandle


class Executor:
    """Runs commands for a named service via a launcher."""

    def __init__(self, service_name: str, launcher: Launcher) -> None:
        self.service_name = service_name
        self.launcher = launcher
        self.log_filter: LogFilter | None = None

    def with_log_filter(self, log_filter: LogFilter) -> "Executor":
        """Set the log filter and return this executor."""
        self.log_filter = log_filter
        return self

    async def launch(
        self, target: Any, command: Command
    ) -> tuple[AsyncIterator[ProcessEvent], ProcessHandle]:
        """Start the command and return its event stream and handle."""
        return await self.launcher.launch(target, command)

    async def execute(self, target: Any, command: Command) -> ExitResult:
        """Run the command to completion and return its result."""
        return await self.launcher.execute(target, command)

    def __repr__(self) -> str:
        return f"Executor(service_name={self.service_name!r}, launcher={self.launcher!r})"