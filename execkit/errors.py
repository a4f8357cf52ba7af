"""Exceptions raised while launching, controlling and attaching to processes."""

from __future__ import annotations


class ExecutorError(Exception):
    """Base class for every error raised by the command executor."""

    def with_layer_context(self, layer: str) -> "NestedLauncherError":
        """Wrap this error with the name of the launcher layer it passed through."""
        return NestedLauncherError(layer, self)


class SpawnFailedError(ExecutorError):
    """A process could not be spawned or a service operation failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"failed to spawn process: {reason}")


class SignalTerminatedError(ExecutorError):
    """The process was terminated by a signal."""

    def __init__(self, signal: int) -> None:
        self.signal = signal
        super().__init__(f"process terminated by signal {signal}")


class SignalFailedError(ExecutorError):
    """A signal could not be delivered to the process."""

    def __init__(self, signal: int, reason: str) -> None:
        self.signal = signal
        self.reason = reason
        super().__init__(f"failed to send signal {signal}: {reason}")


class CommandNotFoundError(ExecutorError):
    """The requested program does not exist."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"command not found: {command}")


class NestedLauncherError(ExecutorError):
    """An error that surfaced through a wrapping launcher such as SSH or sudo."""

    def __init__(self, layer: str, source: BaseException) -> None:
        self.layer = layer
        self.source = source
        super().__init__(f"Error in {layer} launcher: {source}")
        self.__cause__ = source