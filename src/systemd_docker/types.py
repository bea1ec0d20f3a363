"""Data models for systemd-docker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from systemd_docker.errors import InvalidStateError


@dataclass
class InvocationContext:
    """Everything one invocation learns, filled in stage by stage.

    Fields only ever go from unset to set. ``container_id`` and ``host_pid``
    are written together through :meth:`attach`.
    """

    raw_args: list[str]  # docker run arguments as given (after the `run` marker)
    args: list[str] = field(default_factory=list)  # rewritten arguments for `docker run`
    name: str = ""  # empty = always launch a new container
    auto_remove: bool = False
    detach_requested: bool = False  # -d was already present in raw_args
    relay_logs: bool = True
    notify: bool = False  # container speaks sd_notify itself
    inherit_env: bool = False
    notify_socket: str = ""
    pid_file: str = ""
    container_id: str = ""
    host_pid: int = 0

    @property
    def attached(self) -> bool:
        return bool(self.container_id)

    def attach(self, container_id: str, host_pid: int) -> None:
        """Adopt a running container and its host pid."""
        if self.container_id:
            raise InvalidStateError(
                f"Already attached to container {self.container_id}, refusing {container_id}"
            )
        if not container_id:
            raise InvalidStateError("Cannot attach to a container without an id")
        if host_pid <= 0:
            raise InvalidStateError(f"Pid is {host_pid} for container {container_id}")
        self.container_id = container_id
        self.host_pid = host_pid


@dataclass(frozen=True)
class ContainerInfo:
    """The part of a container inspect payload the proxy cares about."""

    id: str
    name: str
    running: bool
    pid: int
    tty: bool = False
    exit_code: int | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> ContainerInfo:
        state = raw.get("State") or {}
        config = raw.get("Config") or {}
        return cls(
            id=raw.get("Id", ""),
            name=raw.get("Name", "").lstrip("/"),
            running=bool(state.get("Running", False)),
            pid=int(state.get("Pid") or 0),
            tty=bool(config.get("Tty", False)),
            exit_code=state.get("ExitCode"),
        )
