"""Named container lookup: attach, restart, or clear the way for a launch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from systemd_docker.errors import ContainerRuntimeError
from systemd_docker.logger import logger

if TYPE_CHECKING:
    from systemd_docker.runtime import DockerClient
    from systemd_docker.types import InvocationContext


async def lookup_named_container(ctx: InvocationContext, client: DockerClient) -> None:
    """Reuse an existing container named ``ctx.name`` where possible.

    Leaves ``ctx`` unattached when a fresh launch is needed:

    - no name, or no container by that name
    - a stopped container that ``--rm`` says to throw away

    A running container is adopted as-is, even with ``--rm``: we only ever
    remove stopped containers found here. A stopped one without ``--rm`` is
    started again and adopted.
    """
    if not ctx.name:
        return

    info = await client.inspect_container(ctx.name)
    if info is None:
        logger.debug("No existing container", name=ctx.name)
        return

    if info.running:
        logger.info("Attaching to running container", name=ctx.name, container=info.id)
        ctx.attach(info.id, info.pid)
        return

    if ctx.auto_remove:
        logger.info("Removing stopped container", name=ctx.name, container=info.id)
        await client.remove_container(info.id, force=True)
        return

    logger.info("Starting existing container", name=ctx.name, container=info.id)
    await client.start_container(info.id)

    info = await client.inspect_container(ctx.name)
    if info is None:
        raise ContainerRuntimeError(f"Container {ctx.name} disappeared after start")
    ctx.attach(info.id, info.pid)
