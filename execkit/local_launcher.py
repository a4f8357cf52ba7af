"""Launching commands as local processes, directly or through Docker."""

from __future__ import annotations

import asyncio
import os
import signal as _signal
from typing import Any

from execkit.command import Command
from execkit.errors import SignalFailedError, SpawnFailedError
from execkit.events import LogFilter, LogSource, NoOpFilter, ProcessEvent
from execkit.executor import Executor
from execkit.launcher import Launcher
from execkit.process import ExitStatus, ProcessHandle
from execkit.target import (
    CommandTarget,
    ComposeService,
    DockerContainer,
    ManagedProcess,
    SystemdPortable,
    SystemdService,
)

_IS_POSIX = os.name == "posix"


async def _spawn(command: Command, failure: str) -> asyncio.subprocess.Process:
    """Start the command with piped stdout and stderr."""
    try:
        return await asyncio.create_subprocess_exec(
            *command.argv(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **command.subprocess_kwargs(),
        )
    except OSError as exc:
        raise SpawnFailedError(f"{failure}: {exc}") from exc


async def _output(command: Command) -> tuple[int, bytes, bytes]:
    """Run the command to completion and return its exit code and output."""
    process = await asyncio.create_subprocess_exec(
        *command.argv(),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        **command.subprocess_kwargs(),
    )
    stdout, stderr = await process.communicate()
    assert process.returncode is not None
    return process.returncode, stdout, stderr


def _append_inner_command(wrapper: Command, command: Command) -> None:
    """Pass the incoming program and arguments through, unless it is a bare shell."""
    if command.program and command.program != "sh":
        wrapper.with_arg(command.program).with_args(command.args)


def _log_command(container_id: str) -> Command:
    return Command("docker").with_args(["logs", "-f", "--tail", "all", container_id])


async def _create_container(command: Command, layer: str, tool: str, failure: str) -> str:
    """Run a container-creating command and return the container id it prints."""
    try:
        returncode, stdout, stderr = await _output(command)
    except OSError as exc:
        raise SpawnFailedError(f"Failed to run {tool}: {exc}").with_layer_context(
            layer
        ) from exc
    if returncode != 0:
        message = stderr.decode(errors="replace")
        raise SpawnFailedError(f"{failure}: {message}").with_layer_context(layer)
    container_id = stdout.decode(errors="replace").strip()
    if not container_id:
        raise SpawnFailedError("Failed to get container ID")
    return container_id


class ProcessEventStream:
    """Asynchronous stream of events from a local process.

    A started event comes first, followed by filtered lines from stdout and
    stderr as they arrive. The stream ends once both pipes are closed.
    """

    def __init__(
        self,
        service_name: str,
        pid: int,
        stdout: asyncio.StreamReader | None,
        stderr: asyncio.StreamReader | None,
        log_filter: LogFilter | None = None,
    ) -> None:
        self.service_name = service_name
        self._pid = pid
        self._sources = [
            (reader, source)
            for reader, source in ((stdout, LogSource.STDOUT), (stderr, LogSource.STDERR))
            if reader is not None
        ]
        self._filter: LogFilter = log_filter if log_filter is not None else NoOpFilter()
        self._started_sent = False
        self._queue: asyncio.Queue[tuple[LogSource, str] | None] = asyncio.Queue()
        self._open = len(self._sources)
        self._readers: list[asyncio.Task[None]] | None = None

    async def _read(self, reader: asyncio.StreamReader, source: LogSource) -> None:
        try:
            while True:
                raw = await reader.readline()
                if not raw:
                    break
                line = raw.decode(errors="replace")
                if line.endswith("\n"):
                    line = line[:-1]
                    if line.endswith("\r"):
                        line = line[:-1]
                await self._queue.put((source, line))
        except (OSError, ValueError, asyncio.IncompleteReadError):
            pass
        finally:
            await self._queue.put(None)

    def __aiter__(self) -> "ProcessEventStream":
        return self

    async def __anext__(self) -> ProcessEvent:
        if not self._started_sent:
            self._started_sent = True
            return ProcessEvent.started(self._pid)
        if self._readers is None:
            self._readers = [
                asyncio.ensure_future(self._read(reader, source))
                for reader, source in self._sources
            ]
        while self._open > 0 or not self._queue.empty():
            item = await self._queue.get()
            if item is None:
                self._open -= 1
                continue
            source, line = item
            kept = self._filter.filter(line, source)
            if kept is not None:
                return ProcessEvent.log(source, kept)
        raise StopAsyncIteration


class LocalProcessHandle(ProcessHandle):
    """Controls a local child process.

    When ``kill_on_drop`` is set, :meth:`close` (or leaving an ``async with``
    block) kills the process if it is still running.
    """

    def __init__(self, process: asyncio.subprocess.Process, kill_on_drop: bool = True) -> None:
        self._process = process
        self.kill_on_drop = kill_on_drop

    def pid(self) -> int | None:
        return self._process.pid

    async def wait(self) -> ExitStatus:
        try:
            returncode = await self._process.wait()
        except OSError as exc:
            raise SpawnFailedError(f"Failed to wait for process: {exc}") from exc
        if returncode < 0 and _IS_POSIX:
            return ExitStatus(code=None, signal=-returncode)
        return ExitStatus(code=returncode, signal=None)

    def _send(self, name: str, number: int) -> None:
        try:
            os.kill(self._process.pid, getattr(_signal, name))
        except OSError as exc:
            raise SignalFailedError(number, str(exc)) from exc

    def _force_kill(self) -> None:
        try:
            self._process.kill()
        except OSError as exc:
            raise SignalFailedError(-1, str(exc)) from exc

    async def terminate(self) -> None:
        if _IS_POSIX:
            self._send("SIGTERM", 15)
        else:
            self._force_kill()

    async def kill(self) -> None:
        if _IS_POSIX:
            self._send("SIGKILL", 9)
        else:
            self._force_kill()

    async def interrupt(self) -> None:
        if _IS_POSIX:
            self._send("SIGINT", 2)
        else:
            await self.terminate()

    async def reload(self) -> None:
        if _IS_POSIX:
            self._send("SIGHUP", 1)
        else:
            raise SignalFailedError(-1, "SIGHUP not supported on Windows")

    def close(self) -> None:
        """Kill the process if it is still running and ``kill_on_drop`` is set."""
        if self.kill_on_drop and self._process.returncode is None:
            try:
                self._process.kill()
            except (OSError, ProcessLookupError):
                pass

    async def __aenter__(self) -> "LocalProcessHandle":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class LocalLauncher(Launcher):
    """Runs commands on the local machine."""

    async def launch(
        self, target: Any, command: Command
    ) -> tuple[ProcessEventStream, LocalProcessHandle]:
        if isinstance(target, (CommandTarget, ManagedProcess)):
            process = await _spawn(command, "Failed to spawn process")
            return self._wrap(process, "local_process", kill_on_drop=True)

        if isinstance(target, SystemdService):
            raise SpawnFailedError("SystemdService not yet implemented")

        if isinstance(target, SystemdPortable):
            process = await _spawn(command, "Failed to spawn portablectl command")
            return self._wrap(process, target.unit_name, kill_on_drop=True)

        if isinstance(target, DockerContainer):
            return await self._launch_docker(target, command)

        if isinstance(target, ComposeService):
            return await self._launch_compose(target, command)

        raise TypeError(f"unsupported target: {target!r}")

    @staticmethod
    def _wrap(
        process: asyncio.subprocess.Process, service_name: str, kill_on_drop: bool
    ) -> tuple[ProcessEventStream, LocalProcessHandle]:
        events = ProcessEventStream(
            service_name, process.pid, process.stdout, process.stderr
        )
        return events, LocalProcessHandle(process, kill_on_drop=kill_on_drop)

    async def _launch_docker(
        self, container: DockerContainer, command: Command
    ) -> tuple[ProcessEventStream, LocalProcessHandle]:
        docker = Command("docker").with_args(["run", "-d"])
        if container.name is not None:
            docker.with_args(["--name", container.name])
        for key, value in container.env.items():
            docker.with_args(["-e", f"{key}={value}"])
        for host, inside in container.volumes:
            docker.with_args(["-v", f"{host}:{inside}"])
        if container.working_dir is not None:
            docker.with_args(["-w", container.working_dir])
        docker.with_arg(container.image)
        _append_inner_command(docker, command)

        container_id = await _create_container(
            docker, "Docker", "docker", "Failed to create container"
        )
        log_process = await _spawn(_log_command(container_id), "Failed to start log streaming")
        service_name = container.name or f"docker_{container_id[:12]}"
        return self._wrap(log_process, service_name, kill_on_drop=container.remove_on_exit)

    async def _launch_compose(
        self, compose: ComposeService, command: Command
    ) -> tuple[ProcessEventStream, LocalProcessHandle]:
        compose_cmd = Command("docker-compose").with_args(["-f", compose.compose_file])
        if compose.project_name is not None:
            compose_cmd.with_args(["-p", compose.project_name])
        compose_cmd.with_args(["run", "-d", compose.service_name])
        _append_inner_command(compose_cmd, command)

        container_id = await _create_container(
            compose_cmd,
            "DockerCompose",
            "docker-compose",
            "Failed to start compose service",
        )
        log_process = await _spawn(_log_command(container_id), "Failed to start log streaming")
        return self._wrap(log_process, compose.service_name, kill_on_drop=False)

    def __repr__(self) -> str:
        return "LocalLauncher()"


def local_executor(service_name: str) -> Executor:
    """An executor that runs commands as local processes."""
    return Executor(str(service_name), LocalLauncher())