# execkit

`execkit` is a library that starts commands and lets you control them while
they run. The same command can be run in several ways:

- as a local process,
- inside a Docker container or a docker-compose service,
- on a remote host, through the `ssh` client,
- with raised privileges, through `sudo`.

A running process gives you its output as a stream of events. You can send it
signals, wait for its exit status, or run it to the end and collect all of its
output in one call.

The package is built on `asyncio` and uses only the standard library.

## Describing a command

`execkit.command.Command` describes *what* to run: the program, its arguments,
its environment variables and its working directory. The `with_*` methods
change the command in place and return it, so you can chain them.
`copy()` returns an independent copy.

```python
from execkit.command import Command

cmd = (
    Command("echo")
    .with_arg("hello")
    .with_arg("world")
    .with_env("GREETING", "hi")
    .with_current_dir("/tmp")
)

print(cmd.argv())   # ['echo', 'hello', 'world']
```

By default the process inherits the current environment, with the command's
own variables added on top. Call `with_env_clear()` to start from an empty
environment instead.

## Running it

A launcher decides *where* a command runs. An `Executor` pairs a launcher
with a service name.

```python
import asyncio

from execkit.command import Command
from execkit.local_launcher import local_executor
from execkit.target import CommandTarget


async def main():
    executor = local_executor("demo")
    result = await executor.execute(CommandTarget(), Command("echo").with_arg("hi"))
    print(result.success(), result.code(), result.output)


asyncio.run(main())
```

`execute` waits for the process to exit. It returns an `ExitResult` that holds
the exit status and the captured lines, each ending in a newline.

`launch` returns immediately with two objects:

- an async stream of `ProcessEvent`s: first a started event carrying the pid,
  then stdout and stderr lines as they arrive;
- a `ProcessHandle`, which can `wait`, `terminate` (SIGTERM), `kill`
  (SIGKILL), `interrupt` (SIGINT) or `reload` (SIGHUP) the process.

```python
events, handle = await executor.launch(CommandTarget(), Command("ping").with_arg("localhost"))
async for event in events:
    print(event.kind, event.data)
    break
await handle.terminate()
status = await handle.wait()
print(status.terminated_by_signal())
```

`LocalProcessHandle` is also an async context manager. When you leave the
block, or call `close()`, it kills the process if the process is still running
and `kill_on_drop` is set.

`ProcessEvent.to_dict()` and `ProcessEvent.from_dict()` convert events to and
from plain dictionaries.

## Targets

The classes in `execkit.target` describe how the work is hosted.
`LocalLauncher` handles them as follows:

- `CommandTarget` and `ManagedProcess`: the command runs as a child process.
- `SystemdPortable`: the command (usually a `portablectl` call) runs as-is.
- `DockerContainer`: the launcher runs `docker run -d`, passing the name,
  environment, volumes, working directory and image, for example
  `DockerContainer("alpine:latest").with_name("job").with_env("KEY", "value")`.
  It then streams `docker logs -f` from the new container.
- `ComposeService`: the launcher runs `docker-compose -f FILE [-p PROJECT] run -d SERVICE`
  and then streams the container's logs.

For the Docker and compose targets, the command's program and arguments are
passed to the container, except when the program is an empty string or `sh`.

`ManagedService` describes a service through your own status, start, stop and
log commands, plus optional restart and reload commands. Build one with
`ManagedService.builder(name)`. `build()` raises `SpawnFailedError` if any of
the required commands is missing.

## Wrapping launchers

Launchers can be nested:

- `SudoLauncher` turns each command into `sudo -E program args...` and keeps
  its environment and working directory.
- `SshLauncher` wraps each command in an `ssh` call to another host. One
  `SshLauncher` can wrap another to reach a host through a bastion.

```python
from execkit.executor import Executor
from execkit.local_launcher import LocalLauncher
from execkit.ssh import SshConfig, SshLauncher
from execkit.sudo import SudoLauncher

bastion = SshLauncher(LocalLauncher(), SshConfig("bastion.example.com").with_user("jump"))
target = SshLauncher(bastion, SshConfig("internal.example.com").with_user("app").with_port(2222))
executor = Executor("remote-job", SudoLauncher(target))
```

`SshLauncher.to_host(host)` is a shortcut for an SSH launcher on top of a
local launcher. `ssh_executor(name, inner, config)` builds an executor around
an SSH launcher. `wrap_command_with_ssh`, `format_remote_command` and
`shell_escape` are also available if you want to build SSH command lines
yourself.

When a wrapped launcher fails, the error is re-raised as a
`NestedLauncherError` that names the layer, for example
`SSH[app@internal.example.com]` or `Sudo`. Every error in the package derives
from `execkit.errors.ExecutorError`.

## Attaching to running services

`LocalAttacher.attach(service, config)` connects to a `ManagedService` that is
already running. It first runs the service's status command and raises
`SpawnFailedError` if the service is not running. It then starts the service's
log command.

- If the log program is `tail` or `journalctl`, `AttachConfig.history_lines`
  becomes `-n N`, and `follow_from_start` adds `-f`.
- The returned `AttachedEventStream` yields the log command's stdout lines.
  The log process is killed when the output ends or when you call `close()`.
- The returned `LocalServiceHandle` runs the service's commands to `start`,
  `stop`, `restart` and `reload` the service, and to report its `status`.
  Without a restart command, `restart` runs stop and then start. Without a
  reload command, `reload` raises an error.

`check_service_status` reads the status command's exit code:

| Exit code | Status |
|-----------|--------|
| 0 | `RUNNING` |
| 3 | `STOPPED` |
| 1 | `FAILED` |
| anything else | `UNKNOWN` |

```python
from execkit.attacher import AttachConfig
from execkit.local_attacher import LocalAttacher

events, handle = await LocalAttacher().attach(service, AttachConfig())
print(await handle.status())
```

`SshAttacher` does the same on a remote host: it wraps each of the service's
commands with `ssh` before attaching. The handle it returns reports its id as
`ssh:HOST/NAME`.

## Simulated test services

`execkit.services` contains simulated services for test workflows:
`GraphNodeService`, `AnvilService`, `PostgresService` and `IpfsService`.
They start no real processes.

- `parse_action(payload)` turns a dictionary such as
  `{"type": "CreateDatabase", "name": "test_db"}` into an action object. It
  raises `ValueError` if the payload is invalid.
- `await dispatch_action(action)` returns the list of events the action
  produces.
- `event_to_dict(event)` converts an event to a dictionary whose `"event"` key
  names the event.

## What it does not do

- There is no command-line program and no daemon or server. This is a library
  only.
- `LocalLauncher` does not run `SystemdService` targets; it raises
  `SpawnFailedError`.
- Input is never forwarded to a process; stdin is not connected. Neither sudo
  nor ssh password prompts are answered.
- The filter you set with `Executor.with_log_filter` is only stored on the
  executor. The event streams pass every line through unchanged.