"""logic/perception.py — Vision geometry and severity helpers.

Pure functions used by the DetectionEngine.  Positions and facings are
``(x, y, z)`` tuples; nothing here touches engine state.
"""

from __future__ import annotations
import math

from core import tuning
from components.perception import (
    Observer, RiskProfile, LAW_ENFORCEMENT, AUTHORITY, Vec3,
)


# ── Vector utilities ─────────────────────────────────────────────────

def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def length(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(a, b))


def normalized(v: Vec3) -> Vec3:
    """Unit vector along *v*, or the zero vector if *v* is degenerate."""
    n = length(v)
    if n < 1e-9:
        return (0.0, 0.0, 0.0)
    return (v[0] / n, v[1] / n, v[2] / n)


def angle_between(a: Vec3, b: Vec3) -> float:
    """Unsigned angle between *a* and *b* in degrees (0 if either is zero)."""
    na, nb = length(a), length(b)
    if na < 1e-9 or nb < 1e-9:
        return 0.0
    cos = (a[0] * b[0] + a[1] * b[1] + a[2] * b[2]) / (na * nb)
    cos = max(-1.0, min(1.0, cos))
    return math.degrees(math.acos(cos))


# ── Vision ───────────────────────────────────────────────────────────

def in_range(observer: Observer, target: Vec3) -> bool:
    """True if *target* is at most ``vision_range`` away (boundary counts)."""
    return distance(observer.position, target) <= observer.vision_range


def in_vision_cone(observer: Observer, target: Vec3) -> bool:
    """Return True if *target* lies within the observer's cone.

    The cone is centred on ``facing`` and spans ``vision_cone`` degrees
    in total (±half either side).  A target on top of the observer is
    always inside.
    """
    if observer.vision_cone >= 360.0:
        return True
    to_target = sub(target, observer.position)
    if length(to_target) < 1e-9:
        return True
    return angle_between(observer.facing, to_target) <= observer.vision_cone / 2.0


def cares_about(observer: Observer, profile: RiskProfile) -> bool:
    """Legal slacking only matters to people who care about job
    performance; crimes only to people who care about the law."""
    if profile.is_legal:
        return observer.cares_about_job_performance
    return observer.cares_about_legality


def awareness(observer: Observer, dist: float) -> float:
    """Closer means more aware: range over distance, with a floor on distance."""
    eps = tuning.get("detection", "min_distance", 0.001)
    return observer.vision_range / max(dist, eps)


def severity(observer: Observer, profile: RiskProfile) -> float:
    """Heuristic 0–1 severity of being caught by *observer*."""
    sev = tuning.get("detection.severity", "base", 0.5)
    if not profile.is_legal:
        sev += tuning.get("detection.severity", "illegal", 0.3)
        if observer.role in LAW_ENFORCEMENT:
            sev += tuning.get("detection.severity", "law_enforcement", 0.2)
    if observer.role in AUTHORITY and observer.cares_about_job_performance:
        sev += tuning.get("detection.severity", "authority", 0.2)
    return max(0.0, min(1.0, sev))


def proximity_risk(observer: Observer, dist: float) -> float:
    """1 at the observer's feet, 0 at the edge of its vision range."""
    if observer.vision_range <= 0:
        return 0.0
    return max(0.0, 1.0 - dist / observer.vision_range)
