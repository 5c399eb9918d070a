"""components.heat — Suspicion level with provenance, modifiers, investigations."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class InvestigationType(Enum):
    SURVEILLANCE = "surveillance"
    AUDIT = "audit"
    RAID = "raid"
    ARREST_WARRANT = "arrest_warrant"


class HeatSources:
    """Well-known causes.  Any string is a valid cause; these are the
    ones the loop itself raises."""
    DRUG_DEALING = "drug_dealing"
    FLASHY_PURCHASE = "flashy_purchase"
    ARREST = "recent_arrest"
    CASH_DEPOSIT = "cash_deposit"
    SUSPICIOUS_INCOME = "suspicious_income"
    REPEAT_OFFENDER = "repeat_offender"


@dataclass
class HeatModifier:
    """A timed or permanent heat contribution.

    ``expires_at`` is an absolute game-minute; ignored when
    ``permanent``.
    """
    source: str
    amount: float
    expires_at: float = 0.0
    permanent: bool = False


@dataclass
class HeatState:
    """Suspicion for one actor.  Never destroyed, only reset.

    ``sources`` maps cause → accumulated amount; it records what put
    the heat there, so its total may drift from ``level`` once decay
    has run (decay lowers the level, not the attribution).
    """
    level: float = 0.0
    sources: dict[str, float] = field(default_factory=dict)
    last_increase: float = 0.0     # game-minutes
    active_modifiers: list[HeatModifier] = field(default_factory=list)

    def largest_source(self) -> str | None:
        """Cause with the biggest bucket; on a tie the first-seen cause wins."""
        best_key = None
        best_val = 0.0
        for key, val in self.sources.items():
            if val > best_val:
                best_key, best_val = key, val
        return best_key

    def reset(self, now: float = 0.0) -> None:
        self.level = 0.0
        self.sources.clear()
        self.active_modifiers.clear()
        self.last_increase = now


@dataclass
class InvestigationFlags:
    """Per-cause investigation flags, not a full state machine.

    Audit and warrant clear only through their resolution paths
    (``tick`` past the audit deadline, ``resolve_warrant``).
    """
    audit_active: bool = False
    audit_frozen: float = 0.0
    audit_deadline: float = 0.0    # game-minutes
    warrant_active: bool = False
    surveillance_count: int = 0
    raid_count: int = 0
