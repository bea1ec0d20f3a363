"""Container runner: get a container running and see it through to exit.

This package is split into focused submodules:
  _lookup: reuse an existing named container (attach / restart / clear)
  _launch: create a fresh container with `docker run`
  _pid: host pid resolution with validation
  _supervise: wait-for-exit loop, log relay, --rm cleanup
"""

from systemd_docker.container_runner._launch import forward_stream, launch_container
from systemd_docker.container_runner._lookup import lookup_named_container
from systemd_docker.container_runner._pid import resolve_pid
from systemd_docker.container_runner._supervise import (
    SupervisionState,
    needs_supervision,
    relay_logs,
    remove_if_requested,
    supervise,
)

__all__ = [
    "SupervisionState",
    "forward_stream",
    "launch_container",
    "lookup_named_container",
    "needs_supervision",
    "relay_logs",
    "remove_if_requested",
    "resolve_pid",
    "supervise",
]
