"""Attaching to services that already run on the local machine."""

from __future__ import annotations

import asyncio
from typing import Any

from execkit.attacher import AttachConfig, AttachedHandle, Attacher, ServiceStatus
from execkit.command import Command
from execkit.errors import SpawnFailedError
from execkit.events import LogFilter, LogSource, NoOpFilter, ProcessEvent
from execkit.target import ManagedService

_TAIL_PROGRAMS = ("tail", "journalctl")


def _supports_tail_flags(program: str) -> bool:
    """Whether the log program understands ``-n`` and ``-f`` like tail does."""
    return any(
        program == name or program.endswith(f"/{name}") for name in _TAIL_PROGRAMS
    )


async def _run(command: Command, failure: str) -> tuple[int, bytes]:
    """Run the command to completion and return its exit code and stderr."""
    try:
        process = await asyncio.create_subprocess_exec(
            *command.argv(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **command.subprocess_kwargs(),
        )
        _, stderr = await process.communicate()
    except OSError as exc:
        raise SpawnFailedError(f"{failure}: {exc}") from exc
    assert process.returncode is not None
    return process.returncode, stderr


async def _run_checked(command: Command, failure: str) -> None:
    """Run the command and raise SpawnFailedError if it exits unsuccessfully."""
    returncode, stderr = await _run(command, failure)
    if returncode != 0:
        raise SpawnFailedError(f"{failure}: {stderr.decode(errors='replace')}")


async def check_service_status(service: ManagedService) -> ServiceStatus:
    """Run the service's status command and interpret its exit code.

    Exit code 0 means running, 3 stopped (as systemd reports), 1 failed;
    anything else is unknown.
    """
    returncode, _ = await _run(
        service.status_command, "Failed to check service status"
    )
    if returncode == 0:
        return ServiceStatus.RUNNING
    if returncode == 3:
        return ServiceStatus.STOPPED
    if returncode == 1:
        return ServiceStatus.FAILED
    return ServiceStatus.UNKNOWN


class AttachedEventStream:
    """Asynchronous stream of log lines from an attached service.

    Lines come from the log command's stdout. When the output ends, or the
    stream is closed, the log process is killed.
    """

    def __init__(
        self,
        service_name: str,
        process: asyncio.subprocess.Process,
        log_filter: LogFilter | None = None,
    ) -> None:
        self.service_name = service_name
        self._process: asyncio.subprocess.Process | None = process
        self._stdout: asyncio.StreamReader | None = process.stdout
        self._filter: LogFilter = log_filter if log_filter is not None else NoOpFilter()

    def __aiter__(self) -> "AttachedEventStream":
        return self

    async def __anext__(self) -> ProcessEvent:
        while self._stdout is not None:
            try:
                raw = await self._stdout.readline()
            except (OSError, ValueError):
                raw = b""
            if not raw:
                self._stdout = None
                break
            line = raw.decode(errors="replace")
            if line.endswith("\n"):
                line = line[:-1]
                if line.endswith("\r"):
                    line = line[:-1]
            kept = self._filter.filter(line, LogSource.STDOUT)
            if kept is not None:
                return ProcessEvent.log(LogSource.STDOUT, kept)
        self.close()
        raise StopAsyncIteration

    def close(self) -> None:
        """Kill the log process if it is still running."""
        process, self._process = self._process, None
        if process is not None and process.returncode is None:
            try:
                process.kill()
            except (OSError, ProcessLookupError):
                pass

    async def __aenter__(self) -> "AttachedEventStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class LocalServiceHandle(AttachedHandle):
    """Controls a local service through its configured commands."""

    def __init__(self, service: ManagedService) -> None:
        self.service = service

    def id(self) -> str:
        return self.service.name

    async def status(self) -> ServiceStatus:
        return await check_service_status(self.service)

    async def start(self) -> None:
        await _run_checked(self.service.start_command, "Failed to start service")

    async def stop(self) -> None:
        await _run_checked(self.service.stop_command, "Failed to stop service")

    async def restart(self) -> None:
        if self.service.restart_command is not None:
            await _run_checked(
                self.service.restart_command, "Failed to restart service"
            )
        else:
            await self.stop()
            await self.start()

    async def reload(self) -> None:
        if self.service.reload_command is None:
            raise SpawnFailedError("Service does not support reload")
        await _run_checked(self.service.reload_command, "Failed to reload service")

    async def disconnect(self) -> None:
        """Nothing to release for a local service."""

    def __repr__(self) -> str:
        return f"LocalServiceHandle(service={self.service.name!r})"


class LocalAttacher(Attacher):
    """Attaches to managed services running on the local machine."""

    async def attach(
        self, target: ManagedService, config: AttachConfig
    ) -> tuple[AttachedEventStream, LocalServiceHandle]:
        status = await check_service_status(target)
        if status is not ServiceStatus.RUNNING:
            raise SpawnFailedError(f"Service '{target.name}' is not running")

        log_command = target.log_command.copy()
        if _supports_tail_flags(log_command.program):
            if config.history_lines is not None and config.history_lines > 0:
                log_command.with_args(["-n", str(config.history_lines)])
            if config.follow_from_start:
                log_command.with_arg("-f")

        try:
            process = await asyncio.create_subprocess_exec(
                *log_command.argv(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                **log_command.subprocess_kwargs(),
            )
        except OSError as exc:
            raise SpawnFailedError(f"Failed to start log streaming: {exc}") from exc

        events = AttachedEventStream(target.name, process)
        return events, LocalServiceHandle(target)

    def __repr__(self) -> str:
        return "LocalAttacher()"