"""Running commands and attaching to services on remote hosts over SSH.

The ``ssh`` command-line client is used, so authentication follows the
user's normal SSH setup (agent, keys, ``~/.ssh/config``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, AsyncIterator

from execkit.attacher import AttachConfig, AttachedHandle, Attacher, ServiceStatus
from execkit.command import Command, StrOrPath
from execkit.errors import ExecutorError
from execkit.events import ProcessEvent
from execkit.executor import Executor
from execkit.launcher import Launcher
from execkit.local_attacher import LocalAttacher
from execkit.local_launcher import LocalLauncher
from execkit.process import ProcessHandle
from execkit.target import ManagedService

_SHELL_SPECIAL = set("\"'\\$`!*?<>|&;()[]{}")


@dataclass(frozen=True)
class SshConfig:
    """How to reach a remote host. The ``with_*`` methods return modified copies."""

    host: str
    user: str | None = None
    port: int | None = None
    identity_file: Path | None = None
    extra_args: tuple[str, ...] = ()

    def with_user(self, user: str) -> "SshConfig":
        """Return a copy that logs in as the given user."""
        return replace(self, user=user)

    def with_port(self, port: int) -> "SshConfig":
        """Return a copy that connects to the given port."""
        return replace(self, port=port)

    def with_identity_file(self, path: StrOrPath) -> "SshConfig":
        """Return a copy that authenticates with the given private key file."""
        return replace(self, identity_file=Path(path))

    def with_extra_arg(self, arg: str) -> "SshConfig":
        """Return a copy with one more argument for the ssh client."""
        return replace(self, extra_args=(*self.extra_args, arg))

    def host_string(self) -> str:
        """``user@host`` when a user is set, otherwise just the host."""
        return f"{self.user}@{self.host}" if self.user else self.host

    def _layer(self) -> str:
        return f"SSH[{self.host_string()}]"


def shell_escape(value: str) -> str:
    """Quote a string for a POSIX shell when it holds whitespace or metacharacters."""
    if any(char.isspace() or char in _SHELL_SPECIAL for char in value):
        return "'" + value.replace("'", "'\"'\"'") + "'"
    return value


def format_remote_command(command: Command) -> str:
    """Render the command as a single line for the remote shell."""
    if not command.args:
        return command.program
    return " ".join([command.program, *(shell_escape(arg) for arg in command.args)])


def wrap_command_with_ssh(command: Command, config: SshConfig) -> Command:
    """Build an ``ssh`` command that runs the given command on the remote host."""
    ssh = Command("ssh")
    if config.port is not None:
        ssh.with_args(["-p", str(config.port)])
    if config.identity_file is not None:
        ssh.with_args(["-i", str(config.identity_file)])
    ssh.with_args(config.extra_args)
    ssh.with_arg(config.host_string())
    ssh.with_arg(format_remote_command(command))
    return ssh


def transform_for_ssh(service: ManagedService, config: SshConfig) -> ManagedService:
    """Return a copy of the service whose commands all run through SSH."""

    def wrap(command: Command | None) -> Command | None:
        return None if command is None else wrap_command_with_ssh(command, config)

    return replace(
        service,
        status_command=wrap_command_with_ssh(service.status_command, config),
        start_command=wrap_command_with_ssh(service.start_command, config),
        stop_command=wrap_command_with_ssh(service.stop_command, config),
        log_command=wrap_command_with_ssh(service.log_command, config),
        restart_command=wrap(service.restart_command),
        reload_command=wrap(service.reload_command),
    )


class SshLauncher(Launcher):
    """Wraps another launcher so that commands run on a remote host.

    Launchers nest: an SSH launcher around another SSH launcher reaches a
    host through a jump host.
    """

    def __init__(self, inner: Launcher, config: SshConfig) -> None:
        self.inner = inner
        self.config = config

    @classmethod
    def to_host(cls, host: str) -> "SshLauncher":
        """An SSH launcher to the given host on top of a local launcher."""
        return cls(LocalLauncher(), SshConfig(host))

    async def launch(
        self, target: Any, command: Command
    ) -> tuple[AsyncIterator[ProcessEvent], ProcessHandle]:
        ssh_command = wrap_command_with_ssh(command, self.config)
        try:
            return await self.inner.launch(target, ssh_command)
        except ExecutorError as exc:
            raise exc.with_layer_context(self.config._layer()) from exc

    def __repr__(self) -> str:
        return f"SshLauncher(inner={self.inner!r}, config={self.config!r})"


class SshServiceHandle(AttachedHandle):
    """Controls a remote service through a handle whose commands go over SSH."""

    def __init__(self, inner_handle: AttachedHandle, ssh_config: SshConfig) -> None:
        self.inner_handle = inner_handle
        self.ssh_config = ssh_config

    def id(self) -> str:
        return f"ssh:{self.ssh_config.host_string()}/{self.inner_handle.id()}"

    async def status(self) -> ServiceStatus:
        return await self.inner_handle.status()

    async def start(self) -> None:
        await self.inner_handle.start()

    async def stop(self) -> None:
        await self.inner_handle.stop()

    async def restart(self) -> None:
        await self.inner_handle.restart()

    async def reload(self) -> None:
        await self.inner_handle.reload()

    async def disconnect(self) -> None:
        await self.inner_handle.disconnect()


class SshAttacher(Attacher):
    """Wraps another attacher so that it attaches to services on a remote host."""

    def __init__(self, inner: Attacher, config: SshConfig) -> None:
        self.inner = inner
        self.config = config

    @classmethod
    def to_host(cls, host: str) -> "SshAttacher":
        """An SSH attacher to the given host on top of a local attacher."""
        return cls(LocalAttacher(), SshConfig(host))

    async def attach(
        self, target: Any, config: AttachConfig
    ) -> tuple[AsyncIterator[Any], SshServiceHandle]:
        if not isinstance(target, ManagedService):
            raise TypeError(f"target cannot be attached over SSH: {target!r}")
        remote_target = transform_for_ssh(target, self.config)
        try:
            events, inner_handle = await self.inner.attach(remote_target, config)
        except ExecutorError as exc:
            raise exc.with_layer_context(self.config._layer()) from exc
        return events, SshServiceHandle(inner_handle, self.config)

    def __repr__(self) -> str:
        return f"SshAttacher(inner={self.inner!r}, config={self.config!r})"


def ssh_executor(service_name: str, inner: Launcher, config: SshConfig) -> Executor:
    """An executor that runs commands on a remote host through the inner launcher."""
    return Executor(str(service_name), SshLauncher(inner, config))