"""Container runtime access (Docker Engine API)."""

from systemd_docker.runtime.client import DockerClient

__all__ = ["DockerClient"]
