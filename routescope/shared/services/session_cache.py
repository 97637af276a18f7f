"""Session cache — PID-keyed session identity files in the temp directory.

Storage layout:
    {tempdir}/ccr-sessions/{owner_pid}.json

The session-start hook writes one record for the host process that owns
the session. Later invocations running somewhere below that host walk
their process ancestry to find it. Records whose owner is no longer
alive are deleted when a reader comes across them.
"""
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from routescope.engine.config import ResolverContext
from routescope.engine.models import SessionCacheRecord
from routescope.shared.services.durable_write import atomic_write_json
from routescope.shared.services.process_tree import iter_ancestors

logger = logging.getLogger(__name__)


class SessionCache:
    """Read, write and garbage-collect session cache records."""

    def __init__(self, cache_dir: Path) -> None:
        self._dir = Path(cache_dir)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, pid: int) -> Path:
        return self._dir / f"{pid}.json"

    def write(self, record: SessionCacheRecord) -> Path:
        path = self.path_for(record.pid)
        atomic_write_json(path, record.to_dict(), indent=None)
        logger.debug("Cached session %s for pid %d", record.session_id, record.pid)
        return path

    def read(self, pid: int) -> SessionCacheRecord | None:
        """Load the record for *pid*; None when missing or malformed."""
        path = self.path_for(pid)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.debug("Unreadable session cache %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return SessionCacheRecord.from_dict(data)

    def delete(self, pid: int) -> bool:
        try:
            self.path_for(pid).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.debug("Could not remove session cache for pid %d: %s", pid, exc)
            return False
        return True

    def find_in_ancestry(
        self,
        start_pid: int,
        parent_of: Callable[[int], int | None],
        is_alive: Callable[[int], bool],
        max_hops: int,
    ) -> SessionCacheRecord | None:
        """Return the first live record found walking up from *start_pid*.

        A record whose owner process has exited is deleted and the walk
        continues with the next ancestor.
        """
        if not self._dir.is_dir():
            return None
        for pid in iter_ancestors(start_pid, parent_of, max_hops):
            if not self.path_for(pid).exists():
                continue
            record = self.read(pid)
            if record is None:
                continue
            if is_alive(record.pid):
                return record
            logger.debug(
                "Removing stale session cache for pid %d (session %s)",
                pid, record.session_id,
            )
            self.delete(pid)
        return None

    def prune_stale(self, is_alive: Callable[[int], bool]) -> int:
        """Delete every record whose owner is gone. Returns the count removed."""
        if not self._dir.is_dir():
            return 0
        removed = 0
        for path in sorted(self._dir.glob("*.json")):
            try:
                pid = int(path.stem)
            except ValueError:
                continue
            record = self.read(pid)
            owner = record.pid if record is not None else pid
            if is_alive(owner):
                continue
            if self.delete(pid):
                removed += 1
        if removed:
            logger.info("Pruned %d stale session cache record(s)", removed)
        return removed


def record_session_start(
    ctx: ResolverContext,
    hook_input: dict[str, Any] | None,
) -> SessionCacheRecord | None:
    """Cache the session id announced by a session-start hook payload.

    The hook runs as a direct child of the host, so the record is keyed
    by the hook's parent PID. Returns None when the payload carries no
    session id or the owner PID cannot be determined.
    """
    if not isinstance(hook_input, dict):
        return None
    session_id = hook_input.get("session_id")
    if not isinstance(session_id, str) or not session_id:
        return None

    owner = ctx.parent_of(ctx.pid)
    if owner is None or owner <= 1:
        logger.debug("No usable parent pid for session %s", session_id)
        return None

    cwd = hook_input.get("cwd")
    record = SessionCacheRecord(
        session_id=session_id,
        pid=owner,
        cwd=cwd if isinstance(cwd, str) and cwd else str(ctx.cwd),
        timestamp_ms=int(time.time() * 1000),
    )
    SessionCache(ctx.session_cache_dir).write(record)
    return record
