"""A launcher that runs commands with elevated privileges through sudo.

Password prompts are not handled: sudo must be configured with NOPASSWD or
have cached credentials, otherwise commands hang or fail. Output of the
privileged command is streamed as ordinary events.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

from execkit.command import Command
from execkit.errors import ExecutorError
from execkit.events import ProcessEvent
from execkit.launcher import Launcher
from execkit.process import ProcessHandle


def _sudo_command(command: Command) -> Command:
    """Wrap the command as ``sudo -E program args...`` keeping env and directory."""
    wrapped = (
        Command("sudo").with_arg("-E").with_arg(command.program).with_args(command.args)
    )
    wrapped.with_envs(command.env)
    if command.current_dir is not None:
        wrapped.with_current_dir(command.current_dir)
    return wrapped


class SudoLauncher(Launcher):
    """Wraps another launcher so that every command runs under sudo."""

    def __init__(self, inner: Launcher) -> None:
        self.inner = inner

    async def launch(
        self, target: Any, command: Command
    ) -> tuple[AsyncIterator[ProcessEvent], ProcessHandle]:
        try:
            return await self.inner.launch(target, _sudo_command(command))
        except ExecutorError as exc:
            raise exc.with_layer_context("Sudo") from exc

    def __repr__(self) -> str:
        return f"SudoLauncher(inner={self.inner!r})"