"""logic/tick.py — Simulation step orchestration.

Builds the three engines in dependency order (Detection → Activity →
Heat) around one shared event bus, dev log, game clock and set of
detection dials, and runs them in the order the loop requires:

    1. advance the game clock
    2. ActivityEngine.tick   (polls detection for risky activities)
    3. DetectionEngine.tick  (patrol stepping)
    4. drain the bus         (a caught illegal activity becomes heat)
    5. HeatEngine.tick       (decay, modifier expiry, audit deadline)
    6. drain the bus again

so a detection this step contributes heat this step.

Usage::

    from logic.tick import HeatLoop
    loop = HeatLoop(economy=Ledger(), seed=7)
    loop.step(1.0)
"""

from __future__ import annotations
import random

from core import tuning
from core.collision import RaycastFn
from core.constants import (
    DEFAULT_ACTOR, MINUTES_PER_DAY, SECONDS_PER_MINUTE, SECONDS_PER_HOUR,
)
from core.events import EventBus, ActivityCaught
from components.dev_log import DevLog
from components.resources import GameClock, DetectionDials
from components.activity import ActivityResult
from logic.collaborators import Economy
from logic.detection import DetectionEngine
from logic.activity import ActivityEngine
from logic.heat import HeatEngine


class HeatLoop:
    """One actor's Activity–Detection–Heat loop, wired and ready to step."""

    def __init__(self, economy: Economy | None = None,
                 raycast_blocked: RaycastFn | None = None,
                 seed: int | None = None,
                 actor_id: str = DEFAULT_ACTOR,
                 bus: EventBus | None = None,
                 log: DevLog | None = None):
        self.actor_id = actor_id
        self.bus = bus if bus is not None else EventBus()
        self.log = log if log is not None else DevLog()
        self.clock = GameClock(tuning.get("clock", "start_day", 0) * MINUTES_PER_DAY)
        self.dials = DetectionDials(floor=tuning.get("detection", "min_multiplier", 0.01))
        self.economy = economy if economy is not None else Economy()

        self.detection = DetectionEngine(
            dials=self.dials, bus=self.bus, log=self.log,
            raycast_blocked=raycast_blocked, rng=random.Random(seed))
        self.activity = ActivityEngine(
            self.detection, bus=self.bus, log=self.log, clock=self.clock)
        self.heat = HeatEngine(
            self.detection, clock=self.clock, bus=self.bus, log=self.log,
            economy=self.economy,
            rng=random.Random(None if seed is None else seed + 1),
            actor_id=actor_id)

        self.bus.subscribe("ActivityCaught", self._on_activity_caught)
        self.steps: int = 0

    # ── Wiring ───────────────────────────────────────────────────────

    def _on_activity_caught(self, event: ActivityCaught) -> None:
        """Being seen doing something illegal raises heat by severity."""
        if event.owner_id != self.actor_id:
            return
        if self.detection.profile_for(event.risk_tag).is_legal:
            return
        severity = event.detection.severity if event.detection is not None else 0.0
        amount = severity * tuning.get("heat", "detection_heat", 10.0)
        if amount > 0:
            self.heat.add_heat(amount, cause=event.risk_tag)

    # ── Step ─────────────────────────────────────────────────────────

    def step(self, dt_seconds: float) -> list[ActivityResult]:
        """Run one simulation step of *dt_seconds* game time.

        Returns the results of activities that finished this step.
        """
        dt = max(0.0, dt_seconds)
        self.clock.advance(dt / SECONDS_PER_MINUTE)
        finished = self.activity.tick(dt)
        self.detection.tick(dt)
        self.bus.drain()
        self.heat.tick(dt / SECONDS_PER_HOUR)
        self.bus.drain()
        self.steps += 1
        return finished

    def run(self, seconds: float, dt: float = 1.0) -> list[ActivityResult]:
        """Step repeatedly until *seconds* of game time have passed."""
        finished: list[ActivityResult] = []
        if dt <= 0:
            return finished
        remaining = seconds
        while remaining > 1e-9:
            chunk = min(dt, remaining)
            finished.extend(self.step(chunk))
            remaining -= chunk
        return finished

    # ── State ────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "clock": self.clock.now(),
            "steps": self.steps,
            "detection": self.detection.snapshot(),
            "activity": self.activity.snapshot(),
            "heat": self.heat.snapshot(),
        }

    def restore(self, data: dict) -> None:
        self.clock.minutes = float(data.get("clock", 0.0))
        self.steps = int(data.get("steps", 0))
        self.detection.restore(data.get("detection", {}))
        self.activity.restore(data.get("activity", {}))
        self.heat.restore(data.get("heat", {}))
