"""A reusable description of a program to run."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

StrOrPath = Union[str, "os.PathLike[str]"]


@dataclass
class Command:
    """A program with arguments, environment and working directory.

    The ``with_*`` methods change the command in place and return it, so
    calls can be chained. Use :meth:`copy` to get an independent command.
    """

    program: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    current_dir: Path | None = None
    env_clear: bool = False

    def __post_init__(self) -> None:
        self.program = os.fspath(self.program)
        self.args = [os.fspath(arg) for arg in self.args]
        self.env = {str(key): str(value) for key, value in self.env.items()}
        if self.current_dir is not None:
            self.current_dir = Path(self.current_dir)

    def with_arg(self, arg: StrOrPath) -> "Command":
        """Append one argument."""
        self.args.append(os.fspath(arg))
        return self

    def with_args(self, args: Iterable[StrOrPath]) -> "Command":
        """Append several arguments."""
        self.args.extend(os.fspath(arg) for arg in args)
        return self

    def with_env(self, key: str, value: str) -> "Command":
        """Set one environment variable."""
        self.env[str(key)] = str(value)
        return self

    def with_envs(
        self, variables: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> "Command":
        """Set several environment variables."""
        for key, value in dict(variables).items():
            self.with_env(key, value)
        return self

    def with_env_clear(self) -> "Command":
        """Start from an empty environment instead of inheriting the current one."""
        self.env_clear = True
        return self

    def with_current_dir(self, path: StrOrPath) -> "Command":
        """Run the command in the given working directory."""
        self.current_dir = Path(path)
        return self

    def copy(self) -> "Command":
        """Return an independent copy of this command."""
        return Command(
            program=self.program,
            args=list(self.args),
            env=dict(self.env),
            current_dir=self.current_dir,
            env_clear=self.env_clear,
        )

    def argv(self) -> list[str]:
        """The program followed by its arguments."""
        return [self.program, *self.args]

    def build_env(self) -> dict[str, str]:
        """The full environment the process will see."""
        base: dict[str, str] = {} if self.env_clear else dict(os.environ)
        base.update(self.env)
        return base

    def subprocess_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``subprocess``/``asyncio`` process creation."""
        return {"env": self.build_env(), "cwd": self.current_dir}