"""Configuration: Pydantic BaseSettings read from the process environment.

The proxy runs as a systemd ``ExecStart`` so everything is configured through
environment variables (optionally a ``.env`` file in the working directory).
Two variables keep the names the surrounding tools already use:

    DOCKER_HOST     Engine API endpoint (``unix://`` or ``tcp://``)
    NOTIFY_SOCKET   set by systemd for ``Type=notify`` units

Everything else is prefixed with ``SYSTEMD_DOCKER_``.

There is no cached singleton: ``load_settings()`` builds a fresh instance and
callers pass it into the components that need it.

Usage::

    from systemd_docker.config import load_settings

    s = load_settings()
    print(s.docker_host)
"""

from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
_SUPPORTED_SCHEMES = ("unix", "tcp", "http", "https")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SYSTEMD_DOCKER_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    docker_host: str = Field(DEFAULT_DOCKER_HOST, validation_alias="DOCKER_HOST")
    notify_socket: str = Field("", validation_alias="NOTIFY_SOCKET")
    cli: str = "docker"  # binary used for `docker run`
    api_version: str | None = None  # e.g. "1.43"; unversioned paths when None
    proc_root: str = "/proc"

    @field_validator("docker_host")
    @classmethod
    def _check_docker_host(cls, v: str) -> str:
        # DOCKER_HOST= (set but empty) means the default socket, like the docker CLI
        v = v.strip() or DEFAULT_DOCKER_HOST
        if urlsplit(v).scheme not in _SUPPORTED_SCHEMES:
            raise ValueError(f"unsupported DOCKER_HOST scheme: {v!r}")
        return v

    @field_validator("api_version")
    @classmethod
    def _strip_version_prefix(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().lstrip("v")
        return v or None

    @property
    def docker_endpoint(self) -> tuple[str, str | None]:
        """Split ``docker_host`` into ``(base_url, unix_socket_path)``.

        Unix endpoints talk HTTP over the socket, so the base URL host is a
        placeholder. TCP endpoints become plain ``http://`` URLs.
        """
        parts = urlsplit(self.docker_host)
        if parts.scheme == "unix":
            return "http://docker", parts.path
        if parts.scheme in ("tcp", "http"):
            return f"http://{parts.netloc}", None
        return f"https://{parts.netloc}", None


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment; keyword overrides win."""
    return Settings(**overrides)
