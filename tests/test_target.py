from pathlib import Path

import pytest

from execkit.command import Command
from execkit.errors import SpawnFailedError
from execkit.target import (
    ComposeService,
    DockerContainer,
    ManagedProcess,
    ManagedService,
    SystemdPortable,
    SystemdService,
)


def _cmd(name):
    return Command(name)


def test_managed_process_defaults_and_copies():
    base = ManagedProcess()
    assert base.process_group is None
    assert base.restart_on_failure is False
    grouped = base.with_process_group(42).with_restart_on_failure()
    assert grouped.process_group == 42
    assert grouped.restart_on_failure is True
    assert base == ManagedProcess()


def test_systemd_targets_keep_names():
    assert SystemdService("nginx.service").unit_name == "nginx.service"
    portable = SystemdPortable("portable-service", "portable-service.service")
    assert portable.image_name == "portable-service"
    assert portable.unit_name == "portable-service.service"


def test_managed_service_builder_complete():
    service = (
        ManagedService.builder("web")
        .status_command(_cmd("status"))
        .start_command(_cmd("start"))
        .stop_command(_cmd("stop"))
        .log_command(_cmd("tail"))
        .build()
    )
    assert service.name == "web"
    assert service.status_command.program == "status"
    assert service.log_command.program == "tail"
    assert service.restart_command is None
    assert service.reload_command is None


def test_managed_service_builder_optional_commands():
    service = (
        ManagedService.builder("web")
        .status_command(_cmd("status"))
        .start_command(_cmd("start"))
        .stop_command(_cmd("stop"))
        .log_command(_cmd("tail"))
        .restart_command(_cmd("restart"))
        .reload_command(_cmd("reload"))
        .build()
    )
    assert service.restart_command.program == "restart"
    assert service.reload_command.program == "reload"


@pytest.mark.parametrize(
    "missing",
    ["status_command", "start_command", "stop_command", "log_command"],
)
def test_managed_service_builder_requires_commands(missing):
    builder = ManagedService.builder("web")
    for name in ["status_command", "start_command", "stop_command", "log_command"]:
        if name != missing:
            getattr(builder, name)(_cmd(name))
    with pytest.raises(SpawnFailedError) as info:
        builder.build()
    assert info.value.reason == f"{missing} is required"


def test_docker_container_defaults():
    container = DockerContainer("alpine:latest")
    assert container.image == "alpine:latest"
    assert container.name is None
    assert container.env == {}
    assert container.volumes == []
    assert container.working_dir is None
    assert container.remove_on_exit is True


def test_docker_container_builders_return_copies():
    base = DockerContainer("alpine:latest")
    configured = (
        base.with_name("test-container")
        .with_env("KEY", "VALUE")
        .with_volume("/host", "/data")
        .with_working_dir("/work")
        .with_remove_on_exit(False)
    )
    assert configured.name == "test-container"
    assert configured.env == {"KEY": "VALUE"}
    assert configured.volumes == [("/host", "/data")]
    assert configured.working_dir == "/work"
    assert configured.remove_on_exit is False
    assert base == DockerContainer("alpine:latest")


def test_docker_container_volumes_keep_order():
    container = DockerContainer("img").with_volume("/a", "/x").with_volume("/b", "/y")
    assert container.volumes == [("/a", "/x"), ("/b", "/y")]


def test_compose_service_paths_and_project():
    compose = ComposeService("docker-compose.yml", "web")
    assert compose.compose_file == Path("docker-compose.yml")
    assert compose.service_name == "web"
    assert compose.project_name is None
    named = compose.with_project_name("proj")
    assert named.project_name == "proj"
    assert compose.project_name is None