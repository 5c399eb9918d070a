"""components — Plain dataclasses and enums for the heat loop, organised by domain.

Submodules
----------
activity     Activity, ActivityPhase, ActivityResult, ActivityKind, ...
perception   Observer, ObserverRole, RiskProfile, ActorPose, DetectionResult
heat         HeatState, HeatModifier, InvestigationType, InvestigationFlags, HeatSources
resources    GameClock, DetectionDials
dev_log      DevLog

All public names are re-exported here so callers can write
``from components import Observer``.
"""

# ── Activities ───────────────────────────────────────────────────────
from components.activity import (
    Activity, ActivityPhase, ActivityResult,
    ActivityKind, MultitaskingLevel, ActivityState,
)

# ── Perception ───────────────────────────────────────────────────────
from components.perception import (
    Observer, ObserverRole, RiskProfile, ActorPose, DetectionResult,
)

# ── Heat ─────────────────────────────────────────────────────────────
from components.heat import (
    HeatState, HeatModifier, InvestigationType, InvestigationFlags, HeatSources,
)

# ── Loop resources ───────────────────────────────────────────────────
from components.resources import GameClock, DetectionDials
from components.dev_log import DevLog

__all__ = [
    # activity
    "Activity", "ActivityPhase", "ActivityResult",
    "ActivityKind", "MultitaskingLevel", "ActivityState",
    # perception
    "Observer", "ObserverRole", "RiskProfile", "ActorPose", "DetectionResult",
    # heat
    "HeatState", "HeatModifier", "InvestigationType", "InvestigationFlags",
    "HeatSources",
    # resources
    "GameClock", "DetectionDials", "DevLog",
]
