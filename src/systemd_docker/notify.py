"""sd_notify handshake with systemd.

systemd forked us, but the process it should track is the container's main
process, which the docker daemon started somewhere else. We tell it so with
``MAINPID=<pid>`` over the ``NOTIFY_SOCKET`` datagram socket, then report
``READY=1`` unless the container was given the socket to do that itself
(``--notify``).

Each message is one datagram of ASCII ``KEY=VALUE`` text, no newline.
"""

from __future__ import annotations

import contextlib
import os
import socket
from pathlib import Path

from systemd_docker.errors import EarlyExitError, NotifyError
from systemd_docker.logger import logger


def pid_alive(pid: int, proc_root: str = "/proc") -> bool:
    """A process is alive while its procfs directory exists."""
    return Path(proc_root, str(pid)).exists()


def socket_address(path: str) -> str:
    """Map ``@name`` to the Linux abstract namespace, as systemd does."""
    if path.startswith("@"):
        return "\0" + path[1:]
    return path


class NotifyClient:
    """Sends the MAINPID/READY handshake for one container pid."""

    def __init__(self, socket_path: str, *, proc_root: str = "/proc") -> None:
        self.socket_path = socket_path
        self.proc_root = proc_root

    def _send(self, sock: socket.socket, message: str) -> None:
        try:
            sock.send(message.encode("ascii"))
        except OSError as exc:
            raise NotifyError(f"Failed to send {message!r} to {self.socket_path}: {exc}") from exc
        logger.debug("Sent notification", message=message, socket=self.socket_path)

    def notify(self, pid: int, *, container_notifies: bool = False) -> None:
        """Report ``pid`` as the unit's main process and, usually, readiness.

        Raises:
            EarlyExitError: the container's process died before or during
                the handshake. If it died after MAINPID was sent, tracking is
                handed back to this process first.
            NotifyError: a datagram could not be delivered.
        """
        if not pid_alive(pid, self.proc_root):
            raise EarlyExitError("Container exited before we could notify systemd")

        if not self.socket_path:
            return

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        with sock:
            try:
                sock.connect(socket_address(self.socket_path))
            except OSError as exc:
                raise NotifyError(f"Failed to connect to {self.socket_path}: {exc}") from exc

            self._send(sock, f"MAINPID={pid}")

            if not pid_alive(pid, self.proc_root):
                # the container is gone: let systemd track us instead
                with contextlib.suppress(OSError):
                    sock.send(f"MAINPID={os.getpid()}".encode("ascii"))
                raise EarlyExitError("Container exited before we could notify systemd")

            if not container_notifies:
                self._send(sock, "READY=1")

        logger.info("Notified systemd", pid=pid, ready=not container_notifies)
