"""Entry point for `systemd-docker` / `python -m systemd_docker`.

Usage:
    systemd-docker [--pid-file PATH] [--logs[=BOOL]] [--notify[=BOOL]]
                   [--env[=BOOL]] [--rm] run <docker run args...>

Typical unit file::

    [Service]
    Type=notify
    NotifyAccess=all
    ExecStart=/usr/bin/systemd-docker --notify=false run --rm --name web nginx
"""

from __future__ import annotations

import asyncio
import sys

from pydantic import ValidationError

from systemd_docker.app import main_with_args
from systemd_docker.config import load_settings
from systemd_docker.errors import SystemdDockerError
from systemd_docker.logger import logger


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    try:
        settings = load_settings()
    except ValidationError as exc:
        logger.error("Invalid configuration", err=str(exc))
        sys.exit(1)

    try:
        asyncio.run(main_with_args(args, settings))
    except SystemdDockerError as exc:
        logger.error(str(exc), error=type(exc).__name__)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
