"""components.activity — Activities the actor is engaged in.

An ``Activity`` is owned by the ActivityEngine: created by
``ActivityEngine.create``, mutated only by its tick and public
mutators, and dropped from the live map when it ends.  Everything here
is plain data.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class ActivityKind(Enum):
    PHYSICAL = "physical"
    SCREEN = "screen"
    PASSIVE = "passive"


class MultitaskingLevel(Enum):
    FULL = "full"
    PARTIAL = "partial"
    BREAKS = "breaks"
    NONE = "none"


class ActivityState(Enum):
    ACTIVE = "active"
    RUNNING = "running"
    PAUSED = "paused"
    FAILED = "failed"
    COMPLETED = "completed"


LIVE_STATES = (ActivityState.ACTIVE, ActivityState.RUNNING)


@dataclass
class ActivityPhase:
    """One leg of a timed activity (e.g. a shift's rush hour vs. lull)."""
    name: str
    duration_seconds: float
    multitasking_allowed: bool = True
    attention: float = 0.5


@dataclass
class Activity:
    """A timed, possibly risk-bearing task.

    ``required_attention`` is 0–1; two activities may run side by side
    only while their attention sums to ≤ 1.0 (checked at creation).
    ``performance_score`` is 0–100, blended toward the minigame sample
    every tick.  ``was_detected`` latches once an observer spots a
    risk-bearing activity, so it is only ever penalised once per run.
    """
    id: str
    owner_id: str = "player"
    kind: ActivityKind = ActivityKind.PASSIVE
    risk_tag: str = ""
    multitasking: MultitaskingLevel = MultitaskingLevel.PARTIAL
    required_attention: float = 0.5
    duration_seconds: float = 0.0
    state: ActivityState = ActivityState.ACTIVE
    elapsed_seconds: float = 0.0
    performance_score: float = 50.0
    was_detected: bool = False
    concurrent_with: set[str] = field(default_factory=set)
    phases: list[ActivityPhase] = field(default_factory=list)
    current_phase_index: int = 0
    phase_started_at: float = 0.0   # elapsed_seconds when the current phase began
    created_seq: int = 0
    started_at: float = 0.0         # game-minutes

    @property
    def is_live(self) -> bool:
        return self.state in LIVE_STATES

    @property
    def current_phase(self) -> ActivityPhase | None:
        if not self.phases:
            return None
        return self.phases[self.current_phase_index]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "kind": self.kind.value,
            "risk_tag": self.risk_tag,
            "multitasking": self.multitasking.value,
            "required_attention": self.required_attention,
            "duration_seconds": self.duration_seconds,
            "state": self.state.value,
            "elapsed_seconds": self.elapsed_seconds,
            "performance_score": self.performance_score,
            "was_detected": self.was_detected,
            "concurrent_with": sorted(self.concurrent_with),
            "phases": [
                {"name": p.name, "duration_seconds": p.duration_seconds,
                 "multitasking_allowed": p.multitasking_allowed,
                 "attention": p.attention}
                for p in self.phases
            ],
            "current_phase_index": self.current_phase_index,
            "phase_started_at": self.phase_started_at,
            "created_seq": self.created_seq,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Activity":
        return cls(
            id=d["id"],
            owner_id=d.get("owner_id", "player"),
            kind=ActivityKind(d.get("kind", "passive")),
            risk_tag=d.get("risk_tag", ""),
            multitasking=MultitaskingLevel(d.get("multitasking", "partial")),
            required_attention=float(d.get("required_attention", 0.5)),
            duration_seconds=float(d.get("duration_seconds", 0.0)),
            state=ActivityState(d.get("state", "active")),
            elapsed_seconds=float(d.get("elapsed_seconds", 0.0)),
            performance_score=float(d.get("performance_score", 50.0)),
            was_detected=bool(d.get("was_detected", False)),
            concurrent_with=set(d.get("concurrent_with", [])),
            phases=[ActivityPhase(**p) for p in d.get("phases", [])],
            current_phase_index=int(d.get("current_phase_index", 0)),
            phase_started_at=float(d.get("phase_started_at", 0.0)),
            created_seq=int(d.get("created_seq", 0)),
            started_at=float(d.get("started_at", 0.0)),
        )


@dataclass
class ActivityResult:
    """Terminal result handed out exactly once per activity.

    ``rewards`` are reward *inputs* (money, skill_xp) for the economy
    and skill collaborators; nothing here pays them out.
    """
    activity_id: str
    performance_score: float = 0.0
    elapsed_seconds: float = 0.0
    completed: bool = False
    was_detected: bool = False
    rewards: dict[str, float] = field(default_factory=dict)

    @property
    def time_spent_hours(self) -> float:
        return self.elapsed_seconds / 3600.0
