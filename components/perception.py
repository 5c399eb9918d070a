"""components.perception — Observers, activity risk profiles, detection results."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

Vec3 = tuple[float, float, float]


class ObserverRole(Enum):
    BOSS = "boss"
    COP = "cop"
    COWORKER = "coworker"
    SECURITY = "security"
    CIVILIAN = "civilian"


# Roles that add severity when they catch something they care about.
LAW_ENFORCEMENT = (ObserverRole.COP,)
AUTHORITY = (ObserverRole.BOSS,)


# Rejection stages, in pipeline order.  ``check_detection`` reports the
# furthest stage any co-located observer reached.
REASON_UNKNOWN_ACTOR = "unknown_actor"
REASON_NO_OBSERVERS = "no_observers"
REASON_OUT_OF_RANGE = "out_of_range"
REASON_BLOCKED = "blocked"
REASON_OUTSIDE_CONE = "outside_cone"
REASON_INDIFFERENT = "indifferent"
REASON_INCONSPICUOUS = "inconspicuous"
REASON_UNAWARE = "unaware"
REASON_LINE_OF_SIGHT = "line_of_sight"

REJECTION_STAGES: tuple[str, ...] = (
    REASON_NO_OBSERVERS,
    REASON_OUT_OF_RANGE,
    REASON_BLOCKED,
    REASON_OUTSIDE_CONE,
    REASON_INDIFFERENT,
    REASON_INCONSPICUOUS,
    REASON_UNAWARE,
)


@dataclass
class Observer:
    """An NPC sensor.

    ``facing`` is a unit vector.  ``vision_cone`` is the full cone
    angle in degrees (360 = omni-directional).  An observer with
    ``patrol_waypoints`` is patrolling; without, it is static.
    ``next_patrol_time`` is on the detection engine's own clock
    (seconds since the engine started ticking).
    """
    id: str
    role: ObserverRole = ObserverRole.CIVILIAN
    position: Vec3 = (0.0, 0.0, 0.0)
    facing: Vec3 = (0.0, 0.0, 1.0)
    vision_range: float = 10.0
    vision_cone: float = 90.0
    audio_sensitivity: float = 0.5
    cares_about_legality: bool = False
    cares_about_job_performance: bool = False
    location: str = "default_location"
    patrol_waypoints: list[Vec3] = field(default_factory=list)
    current_waypoint_index: int = 0
    next_patrol_time: float = 0.0
    patrol_interval: float = 0.0

    @property
    def is_patrolling(self) -> bool:
        return bool(self.patrol_waypoints)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "position": list(self.position),
            "facing": list(self.facing),
            "vision_range": self.vision_range,
            "vision_cone": self.vision_cone,
            "audio_sensitivity": self.audio_sensitivity,
            "cares_about_legality": self.cares_about_legality,
            "cares_about_job_performance": self.cares_about_job_performance,
            "location": self.location,
            "patrol_waypoints": [list(w) for w in self.patrol_waypoints],
            "current_waypoint_index": self.current_waypoint_index,
            "next_patrol_time": self.next_patrol_time,
            "patrol_interval": self.patrol_interval,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Observer":
        return cls(
            id=d["id"],
            role=ObserverRole(d.get("role", "civilian")),
            position=tuple(d.get("position", (0.0, 0.0, 0.0))),
            facing=tuple(d.get("facing", (0.0, 0.0, 1.0))),
            vision_range=float(d.get("vision_range", 10.0)),
            vision_cone=float(d.get("vision_cone", 90.0)),
            audio_sensitivity=float(d.get("audio_sensitivity", 0.5)),
            cares_about_legality=bool(d.get("cares_about_legality", False)),
            cares_about_job_performance=bool(d.get("cares_about_job_performance", False)),
            location=d.get("location", "default_location"),
            patrol_waypoints=[tuple(w) for w in d.get("patrol_waypoints", [])],
            current_waypoint_index=int(d.get("current_waypoint_index", 0)),
            next_patrol_time=float(d.get("next_patrol_time", 0.0)),
            patrol_interval=float(d.get("patrol_interval", 0.0)),
        )


@dataclass
class RiskProfile:
    """How an activity looks to an observer.

    ``visual_profile`` is the awareness an observer needs before it
    notices; 0 means the activity cannot be seen at all.
    """
    is_legal: bool = True
    visual_profile: float = 0.5


@dataclass
class ActorPose:
    position: Vec3 = (0.0, 0.0, 0.0)
    location: str = "default_location"


@dataclass
class DetectionResult:
    detected: bool = False
    observer_id: str | None = None
    severity: float = 0.0
    reason: str = REASON_NO_OBSERVERS
    risk_tag: str = ""
