"""Process exit results and the interface for controlling a running process."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ExitStatus:
    """How a process ended: an exit code, or the signal that killed it."""

    code: int | None
    signal: int | None = None

    def success(self) -> bool:
        """True if the process exited with code 0."""
        return self.code == 0

    def terminated_by_signal(self) -> bool:
        """True if the process was killed by a signal."""
        return self.signal is not None


@dataclass(frozen=True)
class ExitResult:
    """An exit status together with the captured output."""

    status: ExitStatus
    output: str

    def success(self) -> bool:
        """True if the process exited with code 0."""
        return self.status.success()

    def code(self) -> int | None:
        """The exit code, if the process exited normally."""
        return self.status.code


class ProcessHandle(ABC):
    """Controls a running process."""

    @abstractmethod
    def pid(self) -> int | None:
        """The process id, if known."""

    @abstractmethod
    async def wait(self) -> ExitStatus:
        """Wait for the process to finish."""

    @abstractmethod
    async def terminate(self) -> None:
        """Ask the process to shut down gracefully (SIGTERM)."""

    @abstractmethod
    async def kill(self) -> None:
        """Stop the process forcefully (SIGKILL)."""

    @abstractmethod
    async def interrupt(self) -> None:
        """Interrupt the process (SIGINT)."""

    @abstractmethod
    async def reload(self) -> None:
        """Ask the process to reload its configuration (SIGHUP)."""