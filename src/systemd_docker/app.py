"""Invocation flow: from command line to container exit.

    parse args -> find/launch container -> notify systemd -> pid file
        -> (log relay in background) -> wait for exit -> --rm cleanup

Every step either succeeds or raises; nothing is retried and nothing done
by an earlier step is rolled back when a later one fails.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from typing import BinaryIO

from systemd_docker.args import parse_context
from systemd_docker.config import Settings
from systemd_docker.container_runner import (
    launch_container,
    lookup_named_container,
    relay_logs,
    remove_if_requested,
    supervise,
)
from systemd_docker.errors import InvalidStateError
from systemd_docker.logger import logger
from systemd_docker.notify import NotifyClient
from systemd_docker.pidfile import write_pid_file
from systemd_docker.runtime import DockerClient
from systemd_docker.types import InvocationContext

# Seconds the log relay may keep draining after the container stopped
LOG_DRAIN_TIMEOUT = 5.0


async def run_container(
    ctx: InvocationContext,
    client: DockerClient,
    settings: Settings,
    *,
    stderr: BinaryIO | None = None,
) -> None:
    """Attach to or launch the container; ``ctx`` is attached afterwards."""
    await lookup_named_container(ctx, client)
    if not ctx.attached:
        await launch_container(ctx, client, settings, stderr=stderr)
    if ctx.host_pid <= 0:
        raise InvalidStateError(f"Failed to launch container, pid is {ctx.host_pid}")


async def _run(
    ctx: InvocationContext,
    client: DockerClient,
    settings: Settings,
    *,
    stdout: BinaryIO | None,
    stderr: BinaryIO | None,
) -> None:
    await run_container(ctx, client, settings, stderr=stderr)

    NotifyClient(ctx.notify_socket, proc_root=settings.proc_root).notify(
        ctx.host_pid, container_notifies=ctx.notify
    )
    write_pid_file(ctx.pid_file, ctx.host_pid)

    relay = asyncio.create_task(relay_logs(ctx, client, stdout=stdout, stderr=stderr))
    try:
        await supervise(ctx, client)
        # the daemon closes the log stream once the container has stopped
        await asyncio.wait([relay], timeout=LOG_DRAIN_TIMEOUT)
    finally:
        relay.cancel()
        # the relay never decides the outcome of the run
        (result,) = await asyncio.gather(relay, return_exceptions=True)
        if isinstance(result, Exception):
            logger.warning("Log relay failed", container=ctx.container_id, err=str(result))

    await remove_if_requested(ctx, client)


async def main_with_args(
    argv: Sequence[str],
    settings: Settings,
    *,
    environ: Mapping[str, str] | None = None,
    client: DockerClient | None = None,
    stdout: BinaryIO | None = None,
    stderr: BinaryIO | None = None,
) -> InvocationContext:
    """Run one full invocation and return its populated context."""
    ctx = parse_context(
        argv,
        environ=os.environ if environ is None else environ,
        notify_socket=settings.notify_socket,
    )
    logger.debug(
        "Parsed arguments",
        name=ctx.name or None,
        rm=ctx.auto_remove,
        logs=ctx.relay_logs,
        notify=ctx.notify,
    )

    if client is not None:
        await _run(ctx, client, settings, stdout=stdout, stderr=stderr)
        return ctx

    async with DockerClient.from_settings(settings) as docker:
        await _run(ctx, docker, settings, stdout=stdout, stderr=stderr)
    return ctx
