"""logic/activity.py — Lifecycle of concurrently running activities.

The ActivityEngine owns every ``Activity``.  It decides which
activities may run side by side, ages them, blends in minigame
performance, and asks the DetectionEngine once per tick whether a
risk-bearing activity has been spotted.

Multitasking
------------
Two activities are compatible unless:

* both are Physical, or both are Screen;
* their ``required_attention`` sums to more than 1.0;
* either has ``multitasking = NONE``.

The check is pairwise and only runs when an activity is created or
resumed.  A new activity always proceeds; an incompatible existing one
is paused.  Phase changes that make a running pair incompatible do not
pause anything.

Risk
----
An activity is polled against the DetectionEngine each tick when its
tag contains one of ``[activity] risk_keywords`` (``"work"`` by
default) or its detection profile is illegal.

Every operation on an unknown id is a logged no-op returning a default.
"""

from __future__ import annotations
import uuid
from typing import Iterable

from core import tuning
from core.constants import (
    DEFAULT_ACTOR, PERFORMANCE_MIN, PERFORMANCE_MAX, SECONDS_PER_HOUR,
)
from core.events import (
    EventBus, ActivityStarted, ActivityPaused, ActivityResumed,
    ActivityEnded, MultitaskAttempt, ActivityCaught,
)
from components.dev_log import DevLog
from components.resources import GameClock
from components.activity import (
    Activity, ActivityPhase, ActivityResult, ActivityKind,
    MultitaskingLevel, ActivityState,
)
from components.perception import DetectionResult, REASON_LINE_OF_SIGHT
from logic.detection import DetectionEngine

_ATTENTION_EPS = 1e-9


def attention_for(risk_tag: str) -> float:
    """Default attention an activity demands, from its tag."""
    if not risk_tag:
        return tuning.get("activity.attention", "empty", 0.4)
    if "stream" in risk_tag:
        return tuning.get("activity.attention", "stream", 0.8)
    if "work" in risk_tag:
        return tuning.get("activity.attention", "work", 0.6)
    return tuning.get("activity.attention", "default", 0.5)


def is_risk_bearing(risk_tag: str) -> bool:
    keywords = tuning.get("activity", "risk_keywords", ["work"])
    return bool(risk_tag) and any(k in risk_tag for k in keywords)


def is_work(risk_tag: str) -> bool:
    return bool(risk_tag) and "work" in risk_tag


def compatible(a: Activity, b: Activity) -> bool:
    """Pairwise multitasking predicate (see module docstring)."""
    if a.kind == b.kind and a.kind in (ActivityKind.PHYSICAL, ActivityKind.SCREEN):
        return False
    if a.required_attention + b.required_attention > 1.0 + _ATTENTION_EPS:
        return False
    if MultitaskingLevel.NONE in (a.multitasking, b.multitasking):
        return False
    return True


class ActivityEngine:
    """Creates, ticks and ends activities for any number of owners."""

    def __init__(self, detection: DetectionEngine,
                 bus: EventBus | None = None,
                 log: DevLog | None = None,
                 clock: GameClock | None = None):
        self.detection = detection
        self.bus = bus if bus is not None else detection.bus
        self.log = log if log is not None else detection.log
        self.clock = clock if clock is not None else GameClock()
        self._activities: dict[str, Activity] = {}
        self._by_owner: dict[str, list[str]] = {}
        self._seq: int = 0
        # Test / minigame hooks
        self._samples: dict[str, float] = {}
        self._forced_detection: dict[str, bool] = {}

    # ── Lifecycle ────────────────────────────────────────────────────

    def create(self, kind: ActivityKind, risk_tag: str, duration_seconds: float,
               owner_id: str = DEFAULT_ACTOR,
               multitasking: MultitaskingLevel = MultitaskingLevel.PARTIAL,
               attention: float | None = None) -> str:
        """Start an activity and return its id.

        Existing live activities of the same owner that cannot run
        alongside the new one are paused; the new one always starts.
        A non-positive duration is accepted and completes on the next
        tick.
        """
        self._seq += 1
        activity_id = uuid.uuid4().hex
        if attention is None:
            attention = attention_for(risk_tag)
        activity = Activity(
            id=activity_id,
            owner_id=owner_id,
            kind=kind,
            risk_tag=risk_tag or "",
            multitasking=multitasking,
            required_attention=min(1.0, max(0.0, float(attention))),
            duration_seconds=max(0.0, float(duration_seconds)),
            performance_score=tuning.get("activity", "initial_performance", 50.0),
            created_seq=self._seq,
            started_at=self.clock.now(),
        )
        if duration_seconds <= 0:
            self.log.warn("ACTIVITY", activity_id,
                          f"create: non-positive duration {duration_seconds!r} "
                          f"for {risk_tag!r}; it will end on the next tick",
                          t=self.clock.now())

        for existing in self.get_active_activities(owner_id):
            ok = compatible(activity, existing)
            self.bus.emit(MultitaskAttempt(new_id=activity_id,
                                           existing_id=existing.id,
                                           compatible=ok))
            if ok:
                activity.concurrent_with.add(existing.id)
                existing.concurrent_with.add(activity_id)
            else:
                self.pause(existing.id)

        self._activities[activity_id] = activity
        self._by_owner.setdefault(owner_id, []).append(activity_id)
        self.log.record(activity_id, "activity",
                        f"started {kind.value} {risk_tag!r}",
                        name=owner_id, t=self.clock.now())
        self.bus.emit(ActivityStarted(activity_id=activity_id, owner_id=owner_id,
                                      risk_tag=activity.risk_tag))
        return activity_id

    def pause(self, activity_id: str) -> None:
        activity = self._activities.get(activity_id)
        if activity is None:
            self.log.warn("ACTIVITY", activity_id or "",
                          f"pause: {activity_id!r} not found", t=self.clock.now())
            return
        if activity.state == ActivityState.PAUSED:
            return
        activity.state = ActivityState.PAUSED
        self._unlink(activity)
        self.log.record(activity_id, "activity", "paused",
                        name=activity.owner_id, t=self.clock.now())
        self.bus.emit(ActivityPaused(activity_id=activity_id))

    def resume(self, activity_id: str) -> bool:
        """Resume a paused activity.  Returns True if it is running afterwards.

        Live activities created *before* this one that cannot share
        the owner's attention with it are paused.  If one created
        *after* it is incompatible, the newer one wins and the resume
        is declined.
        """
        activity = self._activities.get(activity_id)
        if activity is None:
            self.log.warn("ACTIVITY", activity_id or "",
                          f"resume: {activity_id!r} not found", t=self.clock.now())
            return False
        if activity.is_live:
            return True

        clashes = [other for other in self.get_active_activities(activity.owner_id)
                   if not compatible(activity, other)]
        newer = [o for o in clashes if o.created_seq > activity.created_seq]
        if newer:
            self.log.record(activity_id, "activity",
                            f"resume declined: newer {newer[0].id} holds attention",
                            name=activity.owner_id, t=self.clock.now())
            return False

        for other in clashes:
            self.pause(other.id)
        for other in self.get_active_activities(activity.owner_id):
            activity.concurrent_with.add(other.id)
            other.concurrent_with.add(activity_id)

        activity.state = ActivityState.RUNNING
        self.log.record(activity_id, "activity", "resumed",
                        name=activity.owner_id, t=self.clock.now())
        self.bus.emit(ActivityResumed(activity_id=activity_id))
        return True

    def end(self, activity_id: str) -> ActivityResult:
        """Finish an activity and hand out its result exactly once.

        A second call on the same id (or any unknown id) returns an
        empty, not-completed result and emits nothing.
        """
        activity = self._activities.get(activity_id)
        if activity is None:
            self.log.warn("ACTIVITY", activity_id or "",
                          f"end: {activity_id!r} not found", t=self.clock.now())
            return ActivityResult(activity_id=activity_id)

        activity.state = ActivityState.COMPLETED
        result = ActivityResult(
            activity_id=activity_id,
            performance_score=activity.performance_score,
            elapsed_seconds=activity.elapsed_seconds,
            completed=True,
            was_detected=activity.was_detected,
            rewards=self._reward_inputs(activity),
        )
        self._remove(activity)
        self.log.record(activity_id, "activity",
                        f"ended {activity.risk_tag!r} after {result.time_spent_hours:.2f} h "
                        f"perf={result.performance_score:.1f}",
                        name=activity.owner_id, t=self.clock.now(),
                        details=dict(result.rewards))
        self.bus.emit(ActivityEnded(result=result))
        return result

    def _reward_inputs(self, activity: Activity) -> dict[str, float]:
        rewards: dict[str, float] = {}
        if is_work(activity.risk_tag):
            hours = activity.duration_seconds / SECONDS_PER_HOUR
            rewards["money"] = hours * tuning.get("activity", "hourly_wage", 20.0)
        rewards["skill_xp"] = (activity.performance_score
                               * tuning.get("activity", "skill_xp_rate", 0.1))
        return rewards

    def _unlink(self, activity: Activity) -> None:
        for other_id in activity.concurrent_with:
            other = self._activities.get(other_id)
            if other is not None:
                other.concurrent_with.discard(activity.id)
        activity.concurrent_with.clear()

    def _remove(self, activity: Activity) -> None:
        self._unlink(activity)
        ids = self._by_owner.get(activity.owner_id)
        if ids and activity.id in ids:
            ids.remove(activity.id)
        self._activities.pop(activity.id, None)
        self._forced_detection.pop(activity.id, None)
        self._samples.pop(activity.id, None)

    # ── Queries ──────────────────────────────────────────────────────

    def get_activity(self, activity_id: str) -> Activity | None:
        if not activity_id:
            return None
        return self._activities.get(activity_id)

    def get_active_activities(self, owner_id: str) -> list[Activity]:
        """Live (Active/Running) activities of *owner_id*, oldest first."""
        ids = self._by_owner.get(owner_id or "", [])
        return [self._activities[i] for i in ids
                if i in self._activities and self._activities[i].is_live]

    def get_performance(self, activity_id: str) -> float:
        activity = self._activities.get(activity_id)
        return activity.performance_score if activity else 0.0

    def can_multitask(self, activity_id_a: str, activity_id_b: str) -> bool:
        a = self._activities.get(activity_id_a)
        b = self._activities.get(activity_id_b)
        if a is None or b is None:
            return False
        return compatible(a, b)

    def __len__(self) -> int:
        return len(self._activities)

    # ── Tick ─────────────────────────────────────────────────────────

    def tick(self, dt: float) -> list[ActivityResult]:
        """Advance every live activity by *dt* seconds.

        Returns the results of activities that ran out of time.
        """
        finished: list[ActivityResult] = []
        weight = tuning.get("activity", "sample_weight", 0.1)

        for activity in list(self._activities.values()):
            if not activity.is_live:
                continue

            activity.elapsed_seconds += max(0.0, dt)
            if (activity.duration_seconds <= 0
                    or activity.elapsed_seconds >= activity.duration_seconds):
                finished.append(self.end(activity.id))
                continue

            sample = self._sample_for(activity)
            activity.performance_score = (activity.performance_score * (1.0 - weight)
                                          + sample * weight)

            if self._risk_bearing(activity) and not activity.was_detected:
                self._poll_detection(activity)

            if activity.phases:
                self._advance_phases(activity)

        return finished

    def _risk_bearing(self, activity: Activity) -> bool:
        """Work-tagged activities, plus anything registered as illegal."""
        if is_risk_bearing(activity.risk_tag):
            return True
        return bool(activity.risk_tag) and not self.detection.profile_for(activity.risk_tag).is_legal

    def _sample_for(self, activity: Activity) -> float:
        if activity.id in self._samples:
            return self._samples[activity.id]
        if activity.risk_tag in self._samples:
            return self._samples[activity.risk_tag]
        return tuning.get("activity", "default_sample", 50.0)

    def _poll_detection(self, activity: Activity) -> None:
        forced = self._forced_detection.get(activity.id)
        if forced is not None:
            if not forced:
                return
            profile = self.detection.profile_for(activity.risk_tag)
            severity = tuning.get("detection.severity", "base", 0.5)
            if not profile.is_legal:
                severity += tuning.get("detection.severity", "illegal", 0.3)
            result = DetectionResult(
                detected=True, observer_id=None, severity=min(1.0, severity),
                reason=REASON_LINE_OF_SIGHT, risk_tag=activity.risk_tag)
        else:
            if self.detection.get_actor_pose(activity.owner_id) is None:
                return
            result = self.detection.check_detection(activity.owner_id, activity.risk_tag)
            if not result.detected:
                return

        activity.was_detected = True
        penalty = tuning.get("activity", "detection_penalty", 0.2)
        activity.performance_score = max(PERFORMANCE_MIN,
                                         activity.performance_score - penalty)
        self.log.record(activity.id, "activity",
                        f"caught doing {activity.risk_tag!r}",
                        name=activity.owner_id, t=self.clock.now(),
                        details={"observer": result.observer_id,
                                 "severity": result.severity})
        print(f"[ACTIVITY] {activity.owner_id} caught doing {activity.risk_tag!r}")
        self.bus.emit(ActivityCaught(activity_id=activity.id,
                                     owner_id=activity.owner_id,
                                     risk_tag=activity.risk_tag,
                                     detection=result))

    def _advance_phases(self, activity: Activity) -> None:
        """Step through timed phases, wrapping after the last one."""
        for _ in range(len(activity.phases)):
            phase = activity.current_phase
            if phase.duration_seconds <= 0:
                break
            if activity.elapsed_seconds - activity.phase_started_at < phase.duration_seconds:
                break
            activity.phase_started_at += phase.duration_seconds
            activity.current_phase_index = (activity.current_phase_index + 1) % len(activity.phases)
            nxt = activity.current_phase
            activity.multitasking = (MultitaskingLevel.BREAKS if nxt.multitasking_allowed
                                     else MultitaskingLevel.NONE)
            activity.required_attention = min(1.0, max(0.0, nxt.attention))
            self.log.record(activity.id, "activity", f"phase → {nxt.name}",
                            name=activity.owner_id, t=self.clock.now())

    # ── Test / minigame hooks ────────────────────────────────────────

    def set_performance_sample(self, key: str, performance: float) -> None:
        """Pin the minigame sample for an activity id or a risk tag."""
        self._samples[key] = min(PERFORMANCE_MAX, max(PERFORMANCE_MIN, float(performance)))

    def force_detection(self, activity_id: str, detected: bool | None) -> None:
        """Override the detection outcome for *activity_id* (``None`` clears)."""
        if detected is None:
            self._forced_detection.pop(activity_id, None)
        else:
            self._forced_detection[activity_id] = detected

    def set_phases(self, activity_id: str,
                   phases: Iterable[ActivityPhase] | None) -> None:
        activity = self._activities.get(activity_id)
        if activity is None:
            self.log.warn("ACTIVITY", activity_id or "",
                          f"set_phases: {activity_id!r} not found", t=self.clock.now())
            return
        activity.phases = list(phases or [])
        activity.current_phase_index = 0
        activity.phase_started_at = activity.elapsed_seconds

    # ── State ────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "seq": self._seq,
            "activities": [a.to_dict() for a in self._activities.values()],
            "samples": dict(self._samples),
        }

    def restore(self, data: dict) -> None:
        self._seq = int(data.get("seq", 0))
        self._activities = {}
        self._by_owner = {}
        for ad in sorted(data.get("activities", []), key=lambda d: d.get("created_seq", 0)):
            activity = Activity.from_dict(ad)
            self._activities[activity.id] = activity
            self._by_owner.setdefault(activity.owner_id, []).append(activity.id)
        self._samples = dict(data.get("samples", {}))
        self._forced_detection = {}
