"""Supervision: keep the proxy alive for the container's lifetime.

Provides:
  - supervise(): wait until the container is observed stopped
  - relay_logs(): follow container output onto our stdout/stderr
  - remove_if_requested(): --rm cleanup after supervision
"""

from __future__ import annotations

import enum
import sys
from typing import TYPE_CHECKING, BinaryIO

from systemd_docker.errors import ContainerRuntimeError
from systemd_docker.logger import logger
from systemd_docker.runtime._logs import STDERR

if TYPE_CHECKING:
    from systemd_docker.runtime import DockerClient
    from systemd_docker.types import ContainerInfo, InvocationContext


class SupervisionState(enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


def needs_supervision(ctx: InvocationContext) -> bool:
    """Only log relay and --rm give the proxy a reason to stay alive."""
    return ctx.relay_logs or ctx.auto_remove


async def supervise(ctx: InvocationContext, client: DockerClient) -> ContainerInfo | None:
    """Block until the container is observed not running.

    RUNNING -> STOPPED is the only transition, guarded by the runtime's own
    running flag. While running we block on the wait endpoint, then look
    again: the daemon may still report running for a moment after wait
    returns, in which case we simply wait again.

    Returns the last inspect result, or ``None`` when there was nothing to
    supervise.
    """
    if not needs_supervision(ctx):
        return None

    state = SupervisionState.RUNNING
    info: ContainerInfo | None = None
    while state is SupervisionState.RUNNING:
        info = await client.inspect_container(ctx.container_id)
        if info is None:
            raise ContainerRuntimeError(f"Container {ctx.container_id} disappeared")
        if info.running:
            status = await client.wait_container(ctx.container_id)
            logger.debug("Wait returned", container=ctx.container_id, status=status)
        else:
            state = SupervisionState.STOPPED

    logger.info("Container stopped", container=ctx.container_id, exit_code=info.exit_code)
    return info


async def relay_logs(
    ctx: InvocationContext,
    client: DockerClient,
    *,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> None:
    """Copy the container's combined output to our own streams.

    Runs as a background task until the daemon closes the stream.
    Failures are logged, never raised.
    """
    if not ctx.relay_logs:
        return

    out = stdout if stdout is not None else sys.stdout.buffer
    err = stderr if stderr is not None else sys.stderr.buffer
    try:
        # TTY containers send raw output instead of multiplexed frames
        info = await client.inspect_container(ctx.container_id)
        tty = info is not None and info.tty
        async for stream_type, chunk in client.stream_logs(ctx.container_id, tty=tty):
            sink = err if stream_type == STDERR else out
            sink.write(chunk)
            sink.flush()
    except Exception as exc:
        logger.warning(
            "Log relay stopped",
            container=ctx.container_id,
            err=str(exc),
            err_type=type(exc).__name__,
        )
    else:
        logger.debug("Log stream closed", container=ctx.container_id)


async def remove_if_requested(ctx: InvocationContext, client: DockerClient) -> None:
    if not ctx.auto_remove:
        return
    await client.remove_container(ctx.container_id, force=True)
    logger.info("Removed container", container=ctx.container_id)
