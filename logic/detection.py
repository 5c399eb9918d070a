"""logic/detection.py — Observer registry and sensor model.

Answers two questions about an actor doing something at a location:

``check_detection``     — is anyone watching right now?  (binary, full
                          range → line-of-sight → cone → interest →
                          profile → awareness pipeline)
``get_detection_risk``  — how risky is it here?  (continuous 0–1, range
                          and interest only; cheap enough for a HUD)

Detection is stateless: every query is computed fresh from the
registry.  The only thing that evolves over time is the patrol
stepper driven by ``tick``.

Global dials (``DetectionDials``) are shared with the HeatEngine, which
turns them up through ``set_patrol_frequency`` /
``set_detection_sensitivity``.  Both multiply, never replace.
"""

from __future__ import annotations
import dataclasses
import random
from typing import Iterable

from core import tuning
from core.collision import open_space, RaycastFn
from core.events import EventBus, PlayerDetected, DetectionRisk
from components.dev_log import DevLog
from components.resources import DetectionDials
from components.perception import (
    Observer, RiskProfile, ActorPose, DetectionResult, Vec3,
    REJECTION_STAGES, REASON_UNKNOWN_ACTOR, REASON_NO_OBSERVERS,
    REASON_OUT_OF_RANGE, REASON_BLOCKED, REASON_OUTSIDE_CONE,
    REASON_INDIFFERENT, REASON_INCONSPICUOUS, REASON_UNAWARE,
    REASON_LINE_OF_SIGHT,
)
from logic import perception


class DetectionEngine:
    """Registry of observers plus the vision model that queries them."""

    def __init__(self, dials: DetectionDials | None = None,
                 bus: EventBus | None = None,
                 log: DevLog | None = None,
                 raycast_blocked: RaycastFn | None = None,
                 rng: random.Random | None = None):
        self.dials = dials if dials is not None else DetectionDials(
            floor=tuning.get("detection", "min_multiplier", 0.01))
        self.bus = bus if bus is not None else EventBus()
        self.log = log if log is not None else DevLog()
        self.raycast_blocked: RaycastFn = raycast_blocked or open_space
        self.rng = rng if rng is not None else random.Random()
        self.time: float = 0.0          # s, advanced by tick()
        self._observers: dict[str, Observer] = {}
        self._actors: dict[str, ActorPose] = {}
        self._profiles: dict[str, RiskProfile] = {}

    # ── Registry ─────────────────────────────────────────────────────

    def register_observer(self, observer_id: str, data: Observer) -> Observer | None:
        """Add or replace an observer.  Re-registering an id overwrites it.

        Out-of-range parameters are clamped: vision range to a small
        positive minimum, cone to (0, 360], audio sensitivity to 0–1,
        and a zero facing to +Z.
        """
        if not observer_id:
            self.log.warn("DETECTION", "", "register_observer: empty observer id",
                          t=self.time)
            return None

        eps = tuning.get("detection", "min_distance", 0.001)
        facing = perception.normalized(tuple(data.facing))
        if facing == (0.0, 0.0, 0.0):
            facing = (0.0, 0.0, 1.0)
        observer = dataclasses.replace(
            data,
            id=observer_id,
            position=tuple(data.position),
            facing=facing,
            vision_range=max(eps, float(data.vision_range)),
            vision_cone=min(360.0, max(eps, float(data.vision_cone))),
            audio_sensitivity=min(1.0, max(0.0, float(data.audio_sensitivity))),
            patrol_waypoints=[tuple(w) for w in data.patrol_waypoints],
        )
        self._observers[observer_id] = observer
        self.log.record(observer_id, "detection",
                        f"registered {observer.role.value} at {observer.location}",
                        t=self.time)
        return observer

    def unregister_observer(self, observer_id: str) -> None:
        if self._observers.pop(observer_id, None) is None:
            self.log.warn("DETECTION", observer_id or "",
                          f"unregister_observer: {observer_id!r} not found",
                          t=self.time)

    def update_observer_pose(self, observer_id: str, position: Vec3,
                             facing: Vec3) -> None:
        """Move/turn an observer.  Unknown ids are logged and ignored."""
        observer = self._observers.get(observer_id)
        if observer is None:
            self.log.warn("DETECTION", observer_id or "",
                          f"update_observer_pose: {observer_id!r} not found",
                          t=self.time)
            return
        observer.position = tuple(position)
        unit = perception.normalized(tuple(facing))
        if unit != (0.0, 0.0, 0.0):
            observer.facing = unit

    def get_observer(self, observer_id: str) -> Observer | None:
        return self._observers.get(observer_id)

    def observers(self) -> list[Observer]:
        return list(self._observers.values())

    def set_patrol_pattern(self, observer_id: str, waypoints: Iterable[Vec3],
                           interval_seconds: float) -> None:
        observer = self._observers.get(observer_id)
        if observer is None:
            self.log.warn("DETECTION", observer_id or "",
                          f"set_patrol_pattern: {observer_id!r} not found",
                          t=self.time)
            return
        observer.patrol_waypoints = [tuple(w) for w in (waypoints or [])]
        observer.current_waypoint_index = 0
        observer.patrol_interval = max(0.0, float(interval_seconds))
        observer.next_patrol_time = self.time + observer.patrol_interval

    # ── Actors and activity profiles ────────────────────────────────

    def set_actor_pose(self, actor_id: str, position: Vec3,
                       location: str | None = None) -> None:
        """Place an actor.  The driver (or a test) owns actor movement."""
        pose = self._actors.get(actor_id)
        if pose is None:
            pose = ActorPose(location=tuning.get(
                "detection", "default_location", "default_location"))
            self._actors[actor_id] = pose
        pose.position = tuple(position)
        if location is not None:
            pose.location = location

    def get_actor_pose(self, actor_id: str) -> ActorPose | None:
        return self._actors.get(actor_id)

    def set_activity_profile(self, risk_tag: str, is_legal: bool,
                             visual_profile: float) -> None:
        self._profiles[risk_tag] = RiskProfile(
            is_legal=is_legal, visual_profile=max(0.0, float(visual_profile)))

    def profile_for(self, risk_tag: str) -> RiskProfile:
        """Registered profile, else ``[detection.profiles.<tag>]``, else legal/0.5."""
        profile = self._profiles.get(risk_tag)
        if profile is not None:
            return profile
        tuned = tuning.section(f"detection.profiles.{risk_tag}") if risk_tag else {}
        if tuned:
            return RiskProfile(
                is_legal=bool(tuned.get("is_legal", True)),
                visual_profile=float(tuned.get("visual_profile", 0.5)))
        return RiskProfile(
            is_legal=True,
            visual_profile=tuning.get("detection", "default_visual_profile", 0.5))

    # ── Global dials ─────────────────────────────────────────────────

    def set_patrol_frequency(self, multiplier: float) -> float:
        """Multiply patrol frequency (> 1 means patrols step more often)."""
        value = self.dials.scale_patrol(multiplier)
        self.log.record("", "detection", f"patrol frequency ×{multiplier:g} → {value:.3f}",
                        t=self.time)
        return value

    def set_detection_sensitivity(self, multiplier: float) -> float:
        value = self.dials.scale_sensitivity(multiplier)
        self.log.record("", "detection", f"sensitivity ×{multiplier:g} → {value:.3f}",
                        t=self.time)
        return value

    @property
    def patrol_frequency(self) -> float:
        return self.dials.patrol_frequency

    @property
    def sensitivity(self) -> float:
        return self.dials.sensitivity

    # ── Queries ──────────────────────────────────────────────────────

    def check_detection(self, actor_id: str, risk_tag: str) -> DetectionResult:
        """Is *actor_id* seen doing *risk_tag* right now?

        Observers sharing the actor's location are tried in registry
        order; the first one that passes every stage is reported.  On a
        miss, ``reason`` names the furthest stage any observer reached.
        """
        pose = self._actors.get(actor_id)
        if pose is None:
            self.log.warn("DETECTION", actor_id or "",
                          f"check_detection: actor {actor_id!r} has no pose",
                          t=self.time)
            return DetectionResult(reason=REASON_UNKNOWN_ACTOR, risk_tag=risk_tag)

        profile = self.profile_for(risk_tag)
        furthest = 0
        for observer in self._observers.values():
            if observer.location != pose.location:
                continue
            rejection = self._evaluate(observer, pose.position, profile)
            if rejection is None:
                result = DetectionResult(
                    detected=True,
                    observer_id=observer.id,
                    severity=perception.severity(observer, profile),
                    reason=REASON_LINE_OF_SIGHT,
                    risk_tag=risk_tag,
                )
                self.log.record(observer.id, "detection",
                                f"spotted {actor_id} doing {risk_tag!r}",
                                t=self.time,
                                details={"severity": result.severity})
                print(f"[DETECTION] {observer.id} ({observer.role.value}) spotted "
                      f"{actor_id} doing {risk_tag!r} (severity {result.severity:.2f})")
                self.bus.emit(PlayerDetected(actor_id=actor_id, result=result))
                return result
            furthest = max(furthest, REJECTION_STAGES.index(rejection))

        return DetectionResult(reason=REJECTION_STAGES[furthest], risk_tag=risk_tag)

    def _evaluate(self, observer: Observer, target: Vec3,
                  profile: RiskProfile) -> str | None:
        """Run one observer through the pipeline.  Returns the rejection
        reason, or ``None`` if the observer detects the actor."""
        if not perception.in_range(observer, target):
            return REASON_OUT_OF_RANGE
        dist = perception.distance(observer.position, target)
        if self.raycast_blocked(observer.position, target):
            return REASON_BLOCKED
        if not perception.in_vision_cone(observer, target):
            return REASON_OUTSIDE_CONE
        if not perception.cares_about(observer, profile):
            return REASON_INDIFFERENT
        if profile.visual_profile <= 0.0:
            return REASON_INCONSPICUOUS
        if perception.awareness(observer, dist) * self.dials.sensitivity < profile.visual_profile:
            return REASON_UNAWARE
        return None

    def get_detection_risk(self, actor_id: str, risk_tag: str,
                           location_id: str | None = None) -> float:
        """Continuous 0–1 risk for HUD feedback.

        Max over observers at *location_id* (default: the actor's own
        location) who care about the activity and have the actor in
        range, of ``(1 − d/range) · visual_profile · sensitivity``.
        No line-of-sight or cone test.
        """
        pose = self._actors.get(actor_id)
        if pose is None:
            self.log.warn("DETECTION", actor_id or "",
                          f"get_detection_risk: actor {actor_id!r} has no pose",
                          t=self.time)
            return 0.0
        location = location_id if location_id is not None else pose.location
        profile = self.profile_for(risk_tag)

        max_risk = 0.0
        for observer in self._observers.values():
            if observer.location != location:
                continue
            if not perception.in_range(observer, pose.position):
                continue
            dist = perception.distance(observer.position, pose.position)
            if not perception.cares_about(observer, profile):
                continue
            risk = (perception.proximity_risk(observer, dist)
                    * profile.visual_profile * self.dials.sensitivity)
            max_risk = max(max_risk, risk)

        risk = max(0.0, min(1.0, max_risk))
        # Polled every frame by HUDs; only queue when someone listens.
        if self.bus.has_subscribers("DetectionRisk"):
            self.bus.emit(DetectionRisk(actor_id=actor_id, risk=risk))
        return risk

    # ── Patrol stepper ───────────────────────────────────────────────

    def tick(self, dt: float) -> None:
        """Advance the patrol clock by *dt* seconds and step due patrols.

        Each due observer jumps to its next waypoint and faces along
        the move.  The next deadline is ``interval / patrol_frequency``
        with ±jitter drawn fresh every step, so changing the frequency
        only affects future steps.
        """
        if dt > 0:
            self.time += dt
        jitter = tuning.get("detection", "jitter", 0.1)
        for observer in self._observers.values():
            if not observer.patrol_waypoints:
                continue
            if self.time < observer.next_patrol_time:
                continue

            n = len(observer.patrol_waypoints)
            observer.current_waypoint_index = (observer.current_waypoint_index + 1) % n
            waypoint = observer.patrol_waypoints[observer.current_waypoint_index]
            direction = perception.normalized(perception.sub(waypoint, observer.position))
            observer.position = waypoint
            if direction != (0.0, 0.0, 0.0):
                observer.facing = direction

            interval = observer.patrol_interval / max(self.dials.patrol_frequency,
                                                      self.dials.floor)
            variance = interval * jitter
            observer.next_patrol_time = (self.time + interval
                                         + self.rng.uniform(-variance, variance))

    # ── State ────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "time": self.time,
            "patrol_frequency": self.dials.patrol_frequency,
            "sensitivity": self.dials.sensitivity,
            "observers": [o.to_dict() for o in self._observers.values()],
            "actors": {
                aid: {"position": list(p.position), "location": p.location}
                for aid, p in self._actors.items()
            },
            "profiles": {
                tag: {"is_legal": p.is_legal, "visual_profile": p.visual_profile}
                for tag, p in self._profiles.items()
            },
        }

    def restore(self, data: dict) -> None:
        self.time = float(data.get("time", 0.0))
        self.dials.patrol_frequency = float(data.get("patrol_frequency", 1.0))
        self.dials.sensitivity = float(data.get("sensitivity", 1.0))
        self._observers = {}
        for od in data.get("observers", []):
            obs = Observer.from_dict(od)
            self._observers[obs.id] = obs
        self._actors = {
            aid: ActorPose(position=tuple(p["position"]), location=p["location"])
            for aid, p in data.get("actors", {}).items()
        }
        self._profiles = {
            tag: RiskProfile(is_legal=p["is_legal"], visual_profile=p["visual_profile"])
            for tag, p in data.get("profiles", {}).items()
        }
