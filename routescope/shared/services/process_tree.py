"""Process-table helpers for walking a process's ancestry.

Used to find the session-start cache record written for the host
process that (indirectly) launched the current one.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Iterator


def parent_pid(pid: int) -> int | None:
    """Return the parent PID of *pid* using `ps`, or None if unknown."""
    try:
        out = subprocess.check_output(
            ["ps", "-o", "ppid=", "-p", str(pid)],
            text=True,
            stderr=subprocess.DEVNULL,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    text = out.strip()
    if not text:
        return None
    try:
        return int(text.split()[0])
    except ValueError:
        return None


def is_pid_alive(pid: int) -> bool:
    """Signal-zero liveness probe. Sends nothing to the process."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user.
        return True
    except (OSError, OverflowError):
        # Pid outside the C int range.
        return False
    return True


def iter_ancestors(
    start_pid: int,
    parent_of: Callable[[int], int | None],
    max_hops: int,
) -> Iterator[int]:
    """Yield *start_pid* and its ancestors, at most *max_hops* PIDs.

    Stops at PID 1 (init), at an unknown parent, or when a PID repeats.
    """
    pid: int | None = start_pid
    seen: set[int] = set()
    hops = 0
    while pid is not None and pid > 1 and hops < max_hops:
        if pid in seen:
            return
        seen.add(pid)
        yield pid
        hops += 1
        pid = parent_of(pid)
