"""Tests for the PID-keyed session cache."""
from __future__ import annotations

import json
from pathlib import Path

from routescope.engine.config import ResolverContext
from routescope.engine.models import SessionCacheRecord
from routescope.shared.services.process_tree import is_pid_alive
from routescope.shared.services.session_cache import SessionCache, record_session_start


def _ctx(tmp_path: Path, parents: dict | None = None) -> ResolverContext:
    parents = parents or {}
    return ResolverContext(
        home=tmp_path / "home",
        cwd=Path("/work/app"),
        temp_dir=tmp_path / "tmp",
        pid=4242,
        parent_of=parents.get,
        is_alive=lambda pid: False,
    )


class TestSessionCacheRecord:
    """Record (de)serialization."""

    def test_serialized_keys(self):
        """Records serialize with the timestamp key."""
        record = SessionCacheRecord("abc", 77, "/w", 123)
        assert record.to_dict() == {
            "session_id": "abc",
            "pid": 77,
            "cwd": "/w",
            "timestamp": 123,
        }

    def test_accepts_legacy_timestamp_key(self):
        """Older records used 'ts' for the timestamp."""
        record = SessionCacheRecord.from_dict({"session_id": "abc", "pid": 77, "ts": 5})
        assert record.timestamp_ms == 5
        assert record.cwd == ""

    def test_rejects_bad_required_fields(self):
        """Missing or mistyped session_id/pid give None."""
        assert SessionCacheRecord.from_dict({"pid": 1}) is None
        assert SessionCacheRecord.from_dict({"session_id": "", "pid": 1}) is None
        assert SessionCacheRecord.from_dict({"session_id": "a", "pid": "1"}) is None
        assert SessionCacheRecord.from_dict({"session_id": "a", "pid": True}) is None


class TestSessionCache:
    """Reading, writing and sweeping cache files."""

    def test_write_then_read(self, tmp_path):
        """A written record reads back unchanged."""
        cache = SessionCache(tmp_path / "ccr-sessions")
        path = cache.write(SessionCacheRecord("abc", 77, "/w", 123))
        assert path == tmp_path / "ccr-sessions" / "77.json"
        assert json.loads(path.read_text())["session_id"] == "abc"
        assert cache.read(77) == SessionCacheRecord("abc", 77, "/w", 123)

    def test_read_missing_or_malformed(self, tmp_path):
        """Missing, non-object and broken files read as None."""
        cache = SessionCache(tmp_path)
        assert cache.read(1) is None
        (tmp_path / "2.json").write_text("[1, 2]", encoding="utf-8")
        (tmp_path / "3.json").write_text("{oops", encoding="utf-8")
        (tmp_path / "4.json").write_bytes(b'{"session_id": "\xff", "pid": 4}')
        assert cache.read(2) is None
        assert cache.read(3) is None
        assert cache.read(4) is None

    def test_delete(self, tmp_path):
        """delete() reports whether a file was removed."""
        cache = SessionCache(tmp_path)
        cache.write(SessionCacheRecord("abc", 77))
        assert cache.delete(77) is True
        assert cache.delete(77) is False

    def test_find_in_ancestry_returns_first_live_record(self, tmp_path):
        """The nearest ancestor with a live record wins."""
        cache = SessionCache(tmp_path)
        cache.write(SessionCacheRecord("outer", 30))
        cache.write(SessionCacheRecord("inner", 20))
        parents = {10: 20, 20: 30, 30: 1}
        record = cache.find_in_ancestry(10, parents.get, lambda pid: True, 5)
        assert record.session_id == "inner"

    def test_find_in_ancestry_missing_dir(self, tmp_path):
        """No cache directory means no record."""
        cache = SessionCache(tmp_path / "missing")
        assert cache.find_in_ancestry(10, {10: 20}.get, lambda pid: True, 5) is None

    def test_prune_stale(self, tmp_path):
        """Dead owners and unreadable records are removed."""
        cache = SessionCache(tmp_path)
        cache.write(SessionCacheRecord("live", 20))
        cache.write(SessionCacheRecord("dead", 30))
        (tmp_path / "40.json").write_text("garbage", encoding="utf-8")
        (tmp_path / "notes.json").write_text("{}", encoding="utf-8")

        removed = cache.prune_stale(lambda pid: pid == 20)

        assert removed == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == ["20.json", "notes.json"]

    def test_prune_stale_with_out_of_range_owner(self, tmp_path):
        """A record whose owner pid cannot exist is pruned, not raised."""
        cache = SessionCache(tmp_path)
        cache.write(SessionCacheRecord("bogus", 2 ** 40))
        assert cache.prune_stale(is_pid_alive) == 1

    def test_prune_stale_missing_dir(self, tmp_path):
        """Pruning a missing directory removes nothing."""
        assert SessionCache(tmp_path / "missing").prune_stale(lambda pid: False) == 0


class TestRecordSessionStart:
    """Caching the session announced by the session-start hook."""

    def test_keyed_by_parent_pid(self, tmp_path):
        """The record is stored under the hook's parent pid."""
        ctx = _ctx(tmp_path, parents={4242: 555})
        record = record_session_start(ctx, {"session_id": "s-1", "cwd": "/repo"})
        assert record.pid == 555
        assert record.cwd == "/repo"
        assert record.timestamp_ms > 0
        stored = SessionCache(ctx.session_cache_dir).read(555)
        assert stored.session_id == "s-1"

    def test_cwd_defaults_to_context(self, tmp_path):
        """Without a cwd in the payload the context cwd is used."""
        ctx = _ctx(tmp_path, parents={4242: 555})
        record = record_session_start(ctx, {"session_id": "s-1"})
        assert record.cwd == str(Path("/work/app"))

    def test_ignores_payload_without_session(self, tmp_path):
        """Payloads without a session id write nothing."""
        ctx = _ctx(tmp_path, parents={4242: 555})
        assert record_session_start(ctx, None) is None
        assert record_session_start(ctx, {"cwd": "/repo"}) is None
        assert record_session_start(ctx, {"session_id": ""}) is None
        assert not ctx.session_cache_dir.exists()

    def test_ignores_unknown_or_init_parent(self, tmp_path):
        """No usable owner pid means no record."""
        assert record_session_start(_ctx(tmp_path), {"session_id": "s"}) is None
        ctx = _ctx(tmp_path, parents={4242: 1})
        assert record_session_start(ctx, {"session_id": "s"}) is None
