"""Command-line interpretation and ``docker run`` argument rewriting.

The command line is ``systemd-docker [own flags] run <docker run args...>``.
Only our own flags are parsed properly. The docker half is scanned token by
token for the handful of options that change what we do (``--rm``,
``-d``, ``--name``); everything else passes through untouched so we never
have to track docker's flag grammar.
"""

from __future__ import annotations

import argparse
from collections.abc import Mapping, Sequence

from systemd_docker.errors import UsageError
from systemd_docker.types import InvocationContext

RUN_MARKER = "run"

# Host-specific variables that must never leak into the container with --env
_NON_INHERITED_ENV = frozenset({"HOME", "PATH"})

_RM_FLAGS = frozenset({"-rm", "--rm"})
_DETACH_FLAGS = frozenset({"-d", "-detach", "--detach"})
_NAME_FLAGS = ("-name", "--name")


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing usage and exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def _build_parser() -> _ArgumentParser:
    parser = _ArgumentParser(
        prog="systemd-docker",
        description="Run a docker container as the main process of a systemd unit",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-p", "--pid-file", default="", help="Write the container pid here")
    parser.add_argument(
        "-l",
        "--logs",
        nargs="?",
        const=True,
        default=True,
        type=_parse_bool,
        help="Relay container logs to stdout/stderr (default: true)",
    )
    parser.add_argument(
        "-n",
        "--notify",
        nargs="?",
        const=True,
        default=False,
        type=_parse_bool,
        help="Pass NOTIFY_SOCKET into the container; it reports READY=1 itself",
    )
    parser.add_argument(
        "-e",
        "--env",
        nargs="?",
        const=True,
        default=False,
        type=_parse_bool,
        help="Pass this process's environment into the container",
    )
    parser.add_argument(
        "--rm", action="store_true", help="Remove the container after it exits"
    )
    return parser


def find_run_marker(argv: Sequence[str]) -> int:
    """Index of the first literal ``run`` token, or -1."""
    for i, arg in enumerate(argv):
        if arg == RUN_MARKER:
            return i
    return -1


def _scan_run_args(ctx: InvocationContext) -> None:
    """Pick out --rm/-d/--name and build the initial rewritten vector."""
    raw = ctx.raw_args
    rewritten: list[str] = []
    for i, arg in enumerate(raw):
        if arg in _RM_FLAGS:
            # removal is our job after supervision, never docker's
            ctx.auto_remove = True
            continue
        if arg in _DETACH_FLAGS:
            ctx.detach_requested = True
        elif arg in _NAME_FLAGS:
            if i + 1 < len(raw):
                ctx.name = raw[i + 1]
        elif arg.startswith(tuple(f"{flag}=" for flag in _NAME_FLAGS)):
            ctx.name = arg.split("=", 1)[1]
        rewritten.append(arg)

    if not ctx.detach_requested:
        rewritten.insert(0, "-d")
    ctx.args = rewritten


def _environment_args(ctx: InvocationContext, environ: Mapping[str, str]) -> list[str]:
    """Flags prepended for sd_notify passthrough and environment inheritance."""
    extra: list[str] = []
    if ctx.notify and ctx.notify_socket:
        extra += ["-e", f"NOTIFY_SOCKET={ctx.notify_socket}"]
        extra += ["-v", f"{ctx.notify_socket}:{ctx.notify_socket}"]
    else:
        ctx.notify = False

    if ctx.inherit_env:
        for key, value in environ.items():
            if key in _NON_INHERITED_ENV:
                continue
            extra += ["-e", f"{key}={value}"]
    return extra


def parse_context(
    argv: Sequence[str],
    *,
    environ: Mapping[str, str],
    notify_socket: str = "",
) -> InvocationContext:
    """Interpret the full command line into an :class:`InvocationContext`.

    Pure: the environment snapshot and notify socket path are parameters,
    and ``argv`` is never modified.
    """
    i = find_run_marker(argv)
    if i < 0:
        raise UsageError(f"'{RUN_MARKER}' not found in arguments: {list(argv)}")

    own_args = list(argv[:i])
    opts = _build_parser().parse_args(own_args)

    ctx = InvocationContext(
        raw_args=list(argv[i + 1 :]),
        relay_logs=opts.logs,
        notify=opts.notify,
        inherit_env=opts.env,
        auto_remove=opts.rm,
        notify_socket=notify_socket,
        pid_file=opts.pid_file,
    )
    _scan_run_args(ctx)

    extra = _environment_args(ctx, environ)
    if extra:
        ctx.args = extra + ctx.args
    return ctx
