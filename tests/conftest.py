"""Shared test fixtures for systemd-docker."""

from __future__ import annotations

import asyncio
import os
import shutil
import socket
import tempfile
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import pytest

from systemd_docker.errors import ContainerRuntimeError
from systemd_docker.types import ContainerInfo

# ---------------------------------------------------------------------------
# Shared helpers (plain functions/classes, not fixtures: importable by test files)
# ---------------------------------------------------------------------------


def make_settings(**overrides):
    """Create a Settings object with defaults, bypassing env and .env.

    Usage::

        s = make_settings(proc_root=str(tmp_path), notify_socket="/run/notify")
    """
    from systemd_docker.config import Settings

    defaults = {
        "docker_host": "unix:///var/run/docker.sock",
        "notify_socket": "",
        "cli": "docker",
        "api_version": None,
        "proc_root": "/proc",
    }
    defaults.update(overrides)
    return Settings.model_construct(**defaults)


@dataclass
class FakeContainer:
    id: str
    name: str = ""
    running: bool = True
    pid: int = 4242
    tty: bool = False
    exit_code: int | None = None
    restart_pid: int = 0  # pid the main process gets when started again


class FakeDockerClient:
    """In-memory stand-in for ``runtime.DockerClient``.

    ``wait_container`` stops the container (exit code 0) unless
    ``running_after_wait`` says to keep reporting it running for a few more
    inspects, which mimics the daemon lagging behind the wait endpoint.
    """

    def __init__(self) -> None:
        self.containers: dict[str, FakeContainer] = {}
        self.calls: list[tuple[str, str]] = []
        self.logs: list[tuple[int, bytes]] = []
        self.logs_error: Exception | None = None
        self.start_error: Exception | None = None
        self.remove_error: Exception | None = None
        self.running_after_wait = 0

    def add(self, container_id: str, **kwargs) -> FakeContainer:
        container = FakeContainer(id=container_id, **kwargs)
        self.containers[container_id] = container
        return container

    def _find(self, key: str) -> FakeContainer | None:
        if key in self.containers:
            return self.containers[key]
        return next((c for c in self.containers.values() if c.name and c.name == key), None)

    def calls_of(self, op: str) -> list[str]:
        return [target for name, target in self.calls if name == op]

    async def inspect_container(self, name_or_id: str) -> ContainerInfo | None:
        self.calls.append(("inspect", name_or_id))
        c = self._find(name_or_id)
        if c is None:
            return None
        return ContainerInfo(
            id=c.id,
            name=c.name,
            running=c.running,
            pid=c.pid if c.running else 0,
            tty=c.tty,
            exit_code=c.exit_code,
        )

    async def start_container(self, container_id: str) -> None:
        self.calls.append(("start", container_id))
        if self.start_error is not None:
            raise self.start_error
        c = self.containers[container_id]
        c.running = True
        if c.restart_pid:
            c.pid = c.restart_pid

    async def remove_container(self, container_id: str, *, force: bool = True) -> None:
        self.calls.append(("remove", container_id))
        if self.remove_error is not None:
            raise self.remove_error
        if container_id not in self.containers:
            raise ContainerRuntimeError(f"No such container: {container_id}", status=404)
        del self.containers[container_id]

    async def wait_container(self, container_id: str) -> int:
        self.calls.append(("wait", container_id))
        c = self.containers[container_id]
        if self.running_after_wait > 0:
            self.running_after_wait -= 1
            return 0
        c.running = False
        c.exit_code = 0
        return 0

    async def stream_logs(
        self, container_id: str, *, tty: bool = False
    ) -> AsyncIterator[tuple[int, bytes]]:
        self.calls.append(("logs", container_id))
        for frame in self.logs:
            yield frame
        if self.logs_error is not None:
            raise self.logs_error


class FakeProcess:
    """Simulates asyncio.subprocess.Process for `docker run`.

    Must be created inside a running event loop (StreamReader needs one).
    """

    def __init__(self) -> None:
        self.stdin = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self._returncode: int | None = None
        self._wait_event = asyncio.Event()
        self.pid = 12345

    def emit_stdout(self, data: bytes) -> None:
        self.stdout.feed_data(data)

    def emit_stderr(self, data: bytes) -> None:
        self.stderr.feed_data(data)

    def close(self, code: int = 0) -> None:
        """Simulate process exit."""
        self._returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._wait_event.set()

    async def wait(self) -> int:
        await self._wait_event.wait()
        return self._returncode  # type: ignore[return-value]

    @property
    def returncode(self) -> int | None:
        return self._returncode


def fake_docker_run(
    docker: FakeDockerClient,
    *,
    container_id: str = "abc123",
    name: str = "",
    pid: int = 4242,
    exit_code: int = 0,
    stderr: bytes = b"",
):
    """Build a ``create_subprocess_exec`` replacement that "creates" a container.

    Returns ``(fake_exec, commands)``; ``commands`` collects every argv spawned.
    """
    commands: list[list[str]] = []

    async def _exec(*cmd: str, **kwargs) -> FakeProcess:
        commands.append(list(cmd))
        proc = FakeProcess()
        if exit_code == 0:
            docker.add(container_id, name=name, pid=pid)
            proc.emit_stdout(f"{container_id}\n".encode())
        if stderr:
            proc.emit_stderr(stderr)
        proc.close(exit_code)
        return proc

    return _exec, commands


class FakeProcRoot:
    """A directory standing in for /proc: a pid is alive while its dir exists."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def __str__(self) -> str:
        return str(self.root)

    def spawn(self, pid: int) -> None:
        (self.root / str(pid)).mkdir(exist_ok=True)

    def kill(self, pid: int) -> None:
        (self.root / str(pid)).rmdir()


class NotifyListener:
    """A bound AF_UNIX datagram socket playing the part of systemd."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        self.sock.bind(path)
        self.sock.setblocking(False)

    def messages(self) -> list[str]:
        received: list[str] = []
        while True:
            try:
                received.append(self.sock.recv(4096).decode("ascii"))
            except BlockingIOError:
                return received

    def close(self) -> None:
        self.sock.close()


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the caller's systemd/docker environment out of every test."""
    for var in list(os.environ):
        if var.startswith("SYSTEMD_DOCKER_") or var in ("DOCKER_HOST", "NOTIFY_SOCKET"):
            monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Reusable fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def short_tmp():
    """A short temp dir: unix socket paths are limited to ~108 bytes."""
    path = tempfile.mkdtemp(prefix="sdd-", dir="/tmp")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def docker() -> FakeDockerClient:
    return FakeDockerClient()


@pytest.fixture
def proc(tmp_path: Path) -> FakeProcRoot:
    return FakeProcRoot(tmp_path / "proc")


@pytest.fixture
def notify_listener(short_tmp: Path):
    listener = NotifyListener(str(short_tmp / "notify.sock"))
    yield listener
    listener.close()
