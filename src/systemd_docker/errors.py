"""Exception taxonomy.

Every stage of an invocation raises one of these. Nothing in the main path
recovers locally: the entry point logs the error and exits non-zero.
"""

from __future__ import annotations


class SystemdDockerError(Exception):
    """Base class for all failures surfaced to the command line."""


class UsageError(SystemdDockerError):
    """The invocation itself is malformed (missing ``run``, bad own flag)."""


class ContainerRuntimeError(SystemdDockerError, RuntimeError):
    """The container runtime rejected or failed an operation."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class InvalidStateError(SystemdDockerError):
    """Resolved data violates an invariant, e.g. a non-positive pid."""


class EarlyExitError(SystemdDockerError):
    """The container's main process died before systemd was notified."""


class NotifyError(SystemdDockerError):
    """A notification datagram could not be delivered."""


class PidFileError(SystemdDockerError, OSError):
    """The requested pid file could not be written."""
