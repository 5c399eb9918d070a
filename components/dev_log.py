"""components.dev_log — Structured engine event log.

A ring-buffer shared by the three engines.  It records timestamped
transitions (activity paused, observer spotted the player, threshold
crossed) and not-found warnings, so a debug overlay or a test can see
what the loop did and why.

Usage:
    log = DevLog()
    log.record("obs_boss", "detection", "spotted player",
               details={"severity": 0.9})

Each entry is a dict:
    {"t": float, "eid": str, "name": str, "cat": str,
     "msg": str, "details": dict | None}
"""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class DevLog:
    """Ring-buffer of engine events."""

    entries: list[dict] = field(default_factory=list)
    max_entries: int = 500
    echo_warnings: bool = True
    _paused: bool = False

    # If non-empty, only entries whose ``cat`` is in the set are kept.
    cat_filter: set[str] = field(default_factory=set)
    # If non-empty, only entries whose ``eid`` is in the set are kept.
    eid_filter: set[str] = field(default_factory=set)

    def record(self, eid: str, cat: str, msg: str, *,
               name: str = "", t: float = 0.0,
               details: dict | None = None) -> None:
        if self._paused:
            return
        if self.cat_filter and cat not in self.cat_filter:
            return
        if self.eid_filter and eid not in self.eid_filter:
            return
        self.entries.append({
            "t": t,
            "eid": eid,
            "name": name,
            "cat": cat,
            "msg": msg,
            "details": details,
        })
        if len(self.entries) > self.max_entries:
            self.entries = self.entries[-self.max_entries:]

    def warn(self, tag: str, eid: str, msg: str, *, t: float = 0.0) -> None:
        """Not-found and rejected-input notices: logged, never raised."""
        if self.echo_warnings:
            print(f"[{tag}] {msg}")
        self.record(eid, "warning", msg, name=tag, t=t)

    def clear(self):
        self.entries.clear()

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def recent(self, n: int = 50) -> list[dict]:
        """Return the *n* most recent entries (newest last)."""
        return self.entries[-n:]

    def for_eid(self, eid: str, n: int = 30) -> list[dict]:
        """Return last *n* entries for a specific activity/observer/actor."""
        return [e for e in self.entries if e["eid"] == eid][-n:]

    def for_cat(self, cat: str, n: int = 50) -> list[dict]:
        """Return last *n* entries in a category."""
        return [e for e in self.entries if e["cat"] == cat][-n:]

    def warnings(self) -> list[dict]:
        return self.for_cat("warning", self.max_entries)
