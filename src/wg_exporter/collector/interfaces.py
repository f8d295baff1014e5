"""
Interface discovery and the subprocess plumbing shared by the parsers.

Every call into the wg tool goes through run_wg(), which always passes an
argument vector (never a shell string) and enforces a timeout.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Iterable, List, Sequence, Union

from wg_exporter.errors import CommandError, CommandTimeout

log = logging.getLogger(__name__)

# wg normally answers in milliseconds; anything slower is stuck
WG_COMMAND_TIMEOUT = 5.0

# Linux IFNAMSIZ is 16 including the trailing NUL
MAX_INTERFACE_NAME_LENGTH = 15

_NAME_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789-_"
)

Command = Union[str, Sequence[str]]


def is_valid_interface_name(name: str) -> bool:
    if not name or len(name) > MAX_INTERFACE_NAME_LENGTH:
        return False
    return all(ch in _NAME_CHARS for ch in name)


def command_argv(command: Command) -> List[str]:
    """Turn the configured wg command into an argv prefix.

    A plain string is split like a shell would ("python -m foo" is three
    arguments) but is never handed to a shell.
    """
    if isinstance(command, str):
        argv = shlex.split(command)
    else:
        argv = list(command)
    if not argv:
        raise CommandError("wg command is empty")
    return argv


def run_wg(command: Command, args: Sequence[str], timeout: float = WG_COMMAND_TIMEOUT) -> str:
    """Run `<command> <args...>` and return its stdout.

    Raises CommandError if the tool can't be started or exits non-zero,
    CommandTimeout if it runs longer than `timeout` seconds.
    """
    argv = command_argv(command) + list(args)
    log.debug("Running %s", argv)

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeout(f"{' '.join(argv)} timed out after {timeout:.1f}s") from e
    except OSError as e:
        raise CommandError(f"failed to execute {argv[0]}: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise CommandError(
            f"{' '.join(argv)} exited with status {result.returncode}: {stderr or 'no output'}"
        )

    return result.stdout.decode("utf-8", errors="replace")


def discover_interfaces(
    command: Command,
    denylist: Iterable[str] = (),
    timeout: float = WG_COMMAND_TIMEOUT,
) -> List[str]:
    """List WireGuard interfaces, minus invalid names and the denylist.

    `wg show interfaces` prints the names space-separated on one line in
    current versions and one per line in some older ones. Multi-line output
    is taken a whole line per name, so a line like "bad name" is rejected
    instead of turning into two names.
    """
    output = run_wg(command, ["show", "interfaces"], timeout=timeout)

    denied = set(denylist)
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    found = lines if len(lines) > 1 else output.split()
    interfaces = []

    for name in found:
        if not is_valid_interface_name(name):
            log.warning("Invalid interface name detected, skipping: %r", name)
            continue
        if name in denied:
            log.debug("Interface %s is on the denylist, skipping", name)
            continue
        if name not in interfaces:
            interfaces.append(name)

    log.info(
        "Discovered WireGuard interfaces: count=%d filtered=%d",
        len(interfaces), len(found) - len(interfaces),
    )
    return interfaces
