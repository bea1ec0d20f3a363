"""Fresh container launch through the ``docker run`` CLI.

The CLI is used instead of the Engine API's create endpoint so that every
``docker run`` flag the unit file passes keeps its exact CLI meaning.
With ``-d`` the CLI prints the new container id on stdout and exits.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, BinaryIO

from systemd_docker.container_runner._pid import resolve_pid
from systemd_docker.errors import ContainerRuntimeError
from systemd_docker.logger import logger

if TYPE_CHECKING:
    from systemd_docker.config import Settings
    from systemd_docker.runtime import DockerClient
    from systemd_docker.types import InvocationContext


async def forward_stream(stream: asyncio.StreamReader, sink: BinaryIO) -> None:
    """Copy a subprocess pipe to ``sink`` until EOF.

    If ``sink`` stops accepting writes the pipe is still drained to EOF,
    so the child never blocks on a full pipe.
    """
    broken = False
    while True:
        chunk = await stream.read(8192)
        if not chunk:
            break
        if broken:
            continue
        try:
            sink.write(chunk)
            sink.flush()
        except (OSError, ValueError) as exc:
            broken = True
            logger.warning("Dropping docker output", err=str(exc))


async def launch_container(
    ctx: InvocationContext,
    client: DockerClient,
    settings: Settings,
    *,
    stderr: BinaryIO | None = None,
) -> None:
    """Run ``docker run <ctx.args>`` and attach to the container it creates."""
    sink = stderr if stderr is not None else sys.stderr.buffer
    cmd = [settings.cli, "run", *ctx.args]
    logger.debug("Launching container", cmd=cmd)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ContainerRuntimeError(f"Failed to execute {settings.cli}: {exc}") from exc

    assert proc.stdout is not None
    assert proc.stderr is not None

    # docker's own diagnostics (pull progress, errors) go straight through
    stderr_task = asyncio.ensure_future(forward_stream(proc.stderr, sink))
    stdout = await proc.stdout.read()
    exit_code = await proc.wait()
    await stderr_task

    if exit_code != 0:
        raise ContainerRuntimeError(
            f"{settings.cli} run exited with code {exit_code}", status=exit_code
        )

    container_id = stdout.decode(errors="replace").strip()
    if not container_id:
        raise ContainerRuntimeError(f"{settings.cli} run did not print a container id")

    pid = await resolve_pid(client, container_id)
    ctx.attach(container_id, pid)
    logger.info("Container launched", container=container_id, pid=pid)
