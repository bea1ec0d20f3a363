"""Host pid resolution for a container's main process."""

from __future__ import annotations

from typing import TYPE_CHECKING

from systemd_docker.errors import ContainerRuntimeError, InvalidStateError

if TYPE_CHECKING:
    from systemd_docker.runtime import DockerClient


async def resolve_pid(client: DockerClient, container_id: str) -> int:
    """Return the host-visible pid of the container's main process.

    A pid of 0 means the container exists but nothing is running in it
    (for instance it exited between create and inspect).
    """
    info = await client.inspect_container(container_id)
    if info is None:
        raise ContainerRuntimeError(f"Failed to find container {container_id}")
    if info.pid <= 0:
        raise InvalidStateError(f"Pid is {info.pid} for container {container_id}")
    return info.pid
