"""The interface for running commands in a given context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from execkit.command import Command
from execkit.events import ProcessEvent
from execkit.process import ExitResult, ProcessHandle


class Launcher(ABC):
    """Runs commands for a target in a specific context (local, SSH, sudo...)."""

    @abstractmethod
    async def launch(
        self, target: Any, command: Command
    ) -> tuple[AsyncIterator[ProcessEvent], ProcessHandle]:
        """Start the command, returning its event stream and a control handle."""

    async def execute(self, target: Any, command: Command) -> ExitResult:
        """Run the command to completion and capture every line of output."""
        events, handle = await self.launch(target, command)
        lines = [f"{event.data}\n" async for event in events if event.data is not None]
        status = await handle.wait()
        return ExitResult(status=status, output="".join(lines))