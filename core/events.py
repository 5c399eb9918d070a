"""core/events.py — Lightweight event bus.

Decouples engines that need to *signal* something from collaborators
that *react* to it (UI banners, economy, skills)::

    bus = EventBus()
    bus.subscribe("HeatThresholdCrossed", show_banner)
    heat.add_heat(35, "drug_dealing")   # emits, does not call
    bus.drain()                         # show_banner runs here

Design rules:
  - Events are plain dataclasses — no behaviour.
  - ``emit()`` is O(1) (just appends).
  - ``drain()`` processes all queued events in FIFO order.
  - Handlers may emit new events; those are processed in the same drain.
  - Engines never call handlers directly, so listeners only ever see
    state *after* the mutation that produced the event.
"""

from __future__ import annotations
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable
from collections import defaultdict


# ═══════════════════════════════════════════════════════════════════
#  Activity events
# ═══════════════════════════════════════════════════════════════════

@dataclass
class ActivityStarted:
    activity_id: str
    owner_id: str = "player"
    risk_tag: str = ""


@dataclass
class ActivityPaused:
    activity_id: str


@dataclass
class ActivityResumed:
    activity_id: str


@dataclass
class ActivityEnded:
    """Carries the ``ActivityResult`` so economy/skill code can pay out."""
    result: Any = None


@dataclass
class MultitaskAttempt:
    new_id: str
    existing_id: str
    compatible: bool = True


@dataclass
class ActivityCaught:
    """A risk-bearing activity was spotted mid-run."""
    activity_id: str
    owner_id: str = "player"
    risk_tag: str = ""
    detection: Any = None


# ═══════════════════════════════════════════════════════════════════
#  Detection events
# ═══════════════════════════════════════════════════════════════════

@dataclass
class PlayerDetected:
    actor_id: str
    result: Any = None


@dataclass
class DetectionRisk:
    actor_id: str
    risk: float = 0.0


# ═══════════════════════════════════════════════════════════════════
#  Heat events
# ═══════════════════════════════════════════════════════════════════

@dataclass
class HeatIncreased:
    amount: float
    cause: str = ""
    level: float = 0.0


@dataclass
class HeatDecreased:
    amount: float
    level: float = 0.0


@dataclass
class HeatCleared:
    pass


@dataclass
class HeatThresholdCrossed:
    threshold: float
    level: float = 0.0


@dataclass
class InvestigationTriggered:
    kind: Any = None
    details: dict = field(default_factory=dict)


@dataclass
class AuditResolved:
    clean: bool
    fine: float = 0.0
    unfrozen: float = 0.0


@dataclass
class WarrantResolved:
    pass


# ═══════════════════════════════════════════════════════════════════
#  Event Bus
# ═══════════════════════════════════════════════════════════════════

class EventBus:
    """Fire-and-forget event bus shared by the three engines."""

    def __init__(self):
        self._queue: list[Any] = []
        self._subs: dict[str, list[Callable]] = defaultdict(list)
        self._stats: dict[str, int] = defaultdict(int)

    # ── Public API ───────────────────────────────────────────────────

    def emit(self, event) -> None:
        """Queue an event for processing on next ``drain()``."""
        self._queue.append(event)

    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Register *handler* to receive events of *event_type*.

        *event_type* is the class name, e.g. ``"ActivityEnded"``.
        """
        self._subs[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        handlers = self._subs.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def has_subscribers(self, event_type: str) -> bool:
        """True if anything would receive *event_type* on ``drain()``."""
        return bool(self._subs.get(event_type))

    def drain(self) -> int:
        """Process all queued events.  Returns number processed.

        Handlers may emit new events — those are processed in the
        same drain pass (breadth-first).
        """
        processed = 0
        safety = 1000  # prevent infinite loops
        while self._queue and safety > 0:
            batch = self._queue[:]
            self._queue.clear()
            for event in batch:
                name = type(event).__name__
                self._stats[name] += 1
                for handler in list(self._subs.get(name, [])):
                    try:
                        handler(event)
                    except Exception as exc:
                        print(f"[EVENT] handler error for {name}: {exc}")
                        traceback.print_exc()
            processed += len(batch)
            safety -= 1
        return processed

    def clear(self) -> None:
        """Discard all pending events."""
        self._queue.clear()

    def pending(self, event_type: str | None = None) -> list[Any]:
        """Return queued (undrained) events, optionally filtered by name."""
        if event_type is None:
            return list(self._queue)
        return [e for e in self._queue if type(e).__name__ == event_type]

    def stats(self) -> dict[str, int]:
        """Return cumulative event counts by type."""
        return dict(self._stats)

    def pending_count(self) -> int:
        """Number of events waiting to be drained."""
        return len(self._queue)

    def __repr__(self) -> str:
        return f"EventBus(pending={len(self._queue)}, subs={len(self._subs)})"
