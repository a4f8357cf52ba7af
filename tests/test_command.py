import os
from pathlib import Path

from execkit.command import Command


def test_command_creation():
    cmd = Command("echo")
    assert cmd.program == "echo"
    assert len(cmd.args) == 0


def test_command_with_args():
    cmd = Command("ls")
    cmd.with_arg("-la").with_arg("/tmp")
    assert len(cmd.args) == 2
    assert cmd.args[0] == "-la"
    assert cmd.args[1] == "/tmp"


def test_command_builder():
    cmd = (
        Command("echo")
        .with_arg("hello")
        .with_arg("world")
        .with_env("TEST_VAR", "test_value")
        .with_current_dir("/tmp")
    )
    assert cmd.program == "echo"
    assert len(cmd.args) == 2
    assert cmd.args[0] == "hello"
    assert cmd.args[1] == "world"
    assert cmd.env.get("TEST_VAR") == "test_value"
    assert cmd.current_dir == Path("/tmp")


def test_command_prepare():
    cmd = Command("echo").with_arg("hello").with_arg("world")
    assert cmd.argv() == ["echo", "hello", "world"]


def test_command_clone():
    cmd1 = Command("test").with_arg("arg1").with_env("KEY", "VALUE")
    cmd2 = cmd1.copy()
    assert cmd1.program == cmd2.program
    assert cmd1.args == cmd2.args
    assert cmd1.env == cmd2.env


def test_copy_is_independent():
    cmd1 = Command("test").with_arg("arg1")
    cmd2 = cmd1.copy()
    cmd2.with_arg("arg2").with_env("KEY", "VALUE")
    assert cmd1.args == ["arg1"]
    assert cmd1.env == {}
    assert cmd2.args == ["arg1", "arg2"]


def test_command_preparation_nested():
    cmd = Command("echo")
    cmd.with_arg("hello").with_arg("world")
    assert cmd.program == "echo"
    assert len(cmd.args) == 2
    assert cmd.argv()[0] == "echo"


def test_with_args_and_envs():
    cmd = Command("ls").with_args(["-l", Path("/tmp")]).with_envs({"A": "1"}).with_envs(
        [("B", "2")]
    )
    assert cmd.args == ["-l", "/tmp"]
    assert cmd.env == {"A": "1", "B": "2"}


def test_build_env_inherits_by_default(monkeypatch):
    monkeypatch.setenv("EXECKIT_INHERITED", "yes")
    env = Command("true").with_env("EXTRA", "1").build_env()
    assert env["EXECKIT_INHERITED"] == "yes"
    assert env["EXTRA"] == "1"


def test_build_env_with_clear(monkeypatch):
    monkeypatch.setenv("EXECKIT_INHERITED", "yes")
    env = Command("true").with_env_clear().with_env("ONLY", "this").build_env()
    assert env == {"ONLY": "this"}


def test_subprocess_kwargs():
    cmd = Command("true").with_env_clear().with_env("K", "V").with_current_dir("/tmp")
    kwargs = cmd.subprocess_kwargs()
    assert kwargs["env"] == {"K": "V"}
    assert kwargs["cwd"] == Path("/tmp")


def test_subprocess_kwargs_without_dir():
    kwargs = Command("true").subprocess_kwargs()
    assert kwargs["cwd"] is None
    assert kwargs["env"] == dict(os.environ)