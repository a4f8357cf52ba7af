"""Execution targets: what to run, independent of where it runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Union

from execkit.command import Command
from execkit.errors import SpawnFailedError


@dataclass(frozen=True)
class CommandTarget:
    """A one-off command."""


@dataclass(frozen=True)
class ManagedProcess:
    """A process whose pid and lifecycle are tracked by the launcher."""

    process_group: int | None = None
    restart_on_failure: bool = False

    def with_process_group(self, pgid: int) -> "ManagedProcess":
        """Return a copy that runs in the given process group."""
        return replace(self, process_group=pgid)

    def with_restart_on_failure(self) -> "ManagedProcess":
        """Return a copy that is restarted when it fails."""
        return replace(self, restart_on_failure=True)


@dataclass(frozen=True)
class SystemdService:
    """A service managed through systemctl."""

    unit_name: str


@dataclass(frozen=True)
class SystemdPortable:
    """A portable service managed through portablectl."""

    image_name: str
    unit_name: str


@dataclass(frozen=True)
class ManagedService:
    """A service controlled through a set of user-supplied commands.

    Restart falls back to stop followed by start when no restart command is
    given; reload is unsupported without a reload command.
    """

    name: str
    status_command: Command
    start_command: Command
    stop_command: Command
    log_command: Command
    restart_command: Command | None = None
    reload_command: Command | None = None

    @staticmethod
    def builder(name: str) -> "ManagedServiceBuilder":
        """Start building a managed service with the given name."""
        return ManagedServiceBuilder(name)


class ManagedServiceBuilder:
    """Collects the commands of a :class:`ManagedService`."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._status: Command | None = None
        self._start: Command | None = None
        self._stop: Command | None = None
        self._restart: Command | None = None
        self._reload: Command | None = None
        self._log: Command | None = None

    def status_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the command that reports whether the service runs."""
        self._status = command
        return self

    def start_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the command that starts the service."""
        self._start = command
        return self

    def stop_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the command that stops the service."""
        self._stop = command
        return self

    def restart_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the optional command that restarts the service."""
        self._restart = command
        return self

    def reload_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the optional command that reloads the service."""
        self._reload = command
        return self

    def log_command(self, command: Command) -> "ManagedServiceBuilder":
        """Set the command that tails the service logs."""
        self._log = command
        return self

    def build(self) -> ManagedService:
        """Build the service, raising SpawnFailedError if a required command is missing."""
        required = (
            ("status_command", self._status),
            ("start_command", self._start),
            ("stop_command", self._stop),
            ("log_command", self._log),
        )
        for label, command in required:
            if command is None:
                raise SpawnFailedError(f"{label} is required")
        assert self._status and self._start and self._stop and self._log
        return ManagedService(
            name=self._name,
            status_command=self._status,
            start_command=self._start,
            stop_command=self._stop,
            log_command=self._log,
            restart_command=self._restart,
            reload_command=self._reload,
        )


@dataclass
class DockerContainer:
    """A Docker container to run a command in.

    The ``with_*`` methods return modified copies and leave the original alone.
    """

    image: str
    name: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    volumes: list[tuple[str, str]] = field(default_factory=list)
    working_dir: str | None = None
    remove_on_exit: bool = True

    def _copy(self, **changes: object) -> "DockerContainer":
        changes.setdefault("env", dict(self.env))
        changes.setdefault("volumes", list(self.volumes))
        return replace(self, **changes)

    def with_name(self, name: str) -> "DockerContainer":
        """Return a copy with the given container name."""
        return self._copy(name=name)

    def with_env(self, key: str, value: str) -> "DockerContainer":
        """Return a copy with an extra environment variable."""
        env = dict(self.env)
        env[key] = value
        return self._copy(env=env)

    def with_volume(self, host: str, container: str) -> "DockerContainer":
        """Return a copy with an extra host-to-container volume mount."""
        return self._copy(volumes=[*self.volumes, (host, container)])

    def with_working_dir(self, directory: str) -> "DockerContainer":
        """Return a copy with the given working directory inside the container."""
        return self._copy(working_dir=directory)

    def with_remove_on_exit(self, remove: bool) -> "DockerContainer":
        """Return a copy that is, or is not, removed when it exits."""
        return self._copy(remove_on_exit=remove)


@dataclass(frozen=True)
class ComposeService:
    """A service defined in a docker-compose file."""

    compose_file: Path
    service_name: str
    project_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "compose_file", Path(os.fspath(self.compose_file)))

    def with_project_name(self, name: str) -> "ComposeService":
        """Return a copy with the given compose project name."""
        return replace(self, project_name=name)


Target = Union[
    CommandTarget,
    ManagedProcess,
    SystemdService,
    SystemdPortable,
    DockerContainer,
    ComposeService,
]