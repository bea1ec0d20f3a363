"""Pid file writing."""

from __future__ import annotations

import os
from pathlib import Path

from systemd_docker.errors import PidFileError
from systemd_docker.logger import logger


def write_pid_file(path: str, pid: int) -> None:
    """Write ``pid`` as plain decimal text, replacing any previous contents.

    No-op without a path or a valid pid. The file is world-readable (0644)
    so ``PIDFile=`` consumers running as other users can read it.
    """
    if not path or pid <= 0:
        return
    try:
        Path(path).write_text(str(pid))
        os.chmod(path, 0o644)
    except OSError as exc:
        raise PidFileError(f"Failed to write pid file {path}: {exc}") from exc
    logger.debug("Wrote pid file", path=path, pid=pid)
