"""logic/heat.py — Suspicion accumulator with provenance and escalation.

Heat is a 0–100 score.  Every increase is attributed to a cause
bucket; decay lowers the level over game time, slowly while the heat
is fresh and faster as it ages.  Crossing a threshold on the way up
escalates:

    30  patrols step 1.2× more often
    50  Surveillance: patrols ×1.5, sensitivity ×1.3
    70  Audit, if the actor's income is mostly illegitimate (< 0.6)
    90  Raid if there is evidence (heat halves), else Arrest Warrant
        (patrols ×2 until the warrant is resolved)

Escalation writes straight into the DetectionEngine's dials, which is
what closes the loop: more heat → more patrols and sharper eyes → more
detections → more heat.

Thresholds only fire upward, once per crossing.  Falling back below a
threshold and climbing over it again fires it again.
"""

from __future__ import annotations
import random

from core import tuning
from core.constants import (
    DEFAULT_ACTOR, UNKNOWN_CAUSE, HEAT_MIN, HEAT_MAX, MINUTES_PER_HOUR, MINUTES_PER_DAY,
)
from core.events import (
    EventBus, HeatIncreased, HeatDecreased, HeatCleared, HeatThresholdCrossed,
    InvestigationTriggered, AuditResolved, WarrantResolved,
)
from components.dev_log import DevLog
from components.resources import GameClock
from components.heat import (
    HeatState, HeatModifier, InvestigationType, InvestigationFlags, HeatSources,
)
from logic.collaborators import Economy
from logic.detection import DetectionEngine


DEFAULT_THRESHOLDS = (30.0, 50.0, 70.0, 90.0)


def decay_multiplier(days_since_increase: float) -> float:
    """Fresh heat resists decay; old heat fades fast."""
    if days_since_increase < tuning.get("heat", "fresh_days", 1.0):
        return tuning.get("heat", "fresh_multiplier", 0.5)
    if days_since_increase > tuning.get("heat", "cold_days", 30.0):
        return tuning.get("heat", "cold_multiplier", 3.0)
    if days_since_increase > tuning.get("heat", "stale_days", 7.0):
        return tuning.get("heat", "stale_multiplier", 2.0)
    return 1.0


class HeatEngine:
    """Heat for one actor, wired to the DetectionEngine it escalates."""

    def __init__(self, detection: DetectionEngine,
                 clock: GameClock | None = None,
                 bus: EventBus | None = None,
                 log: DevLog | None = None,
                 economy: Economy | None = None,
                 rng: random.Random | None = None,
                 actor_id: str = DEFAULT_ACTOR):
        self.detection = detection
        # Without a shared clock the engine keeps its own and tick() advances it.
        self._owns_clock = clock is None
        self.clock = clock if clock is not None else GameClock()
        self.bus = bus if bus is not None else detection.bus
        self.log = log if log is not None else detection.log
        self.economy = economy if economy is not None else Economy()
        self.rng = rng if rng is not None else random.Random()
        self.actor_id = actor_id
        self.state = HeatState(last_increase=self.clock.now())
        self.flags = InvestigationFlags()
        self._evidence_override: bool | None = None

    # ── Queries ──────────────────────────────────────────────────────

    def get_level(self) -> float:
        return self.state.level

    def get_sources(self) -> dict[str, float]:
        return dict(self.state.sources)

    @property
    def thresholds(self) -> tuple[float, ...]:
        return tuple(sorted(tuning.get("heat", "thresholds", DEFAULT_THRESHOLDS)))

    # ── Increase / decrease ─────────────────────────────────────────

    def add_heat(self, amount: float, cause: str | None = None) -> float:
        """Raise heat by *amount* (clamped to 100) and attribute it to *cause*.

        Resets the decay clock and fires every threshold crossed on the
        way up.  Non-positive amounts are ignored.  Returns the new level.
        """
        if amount <= 0:
            self.log.warn("HEAT", self.actor_id,
                          f"add_heat: ignoring non-positive amount {amount!r}",
                          t=self.clock.now())
            return self.state.level

        cause = cause or UNKNOWN_CAUSE
        old = self.state.level
        new = min(tuning.get("heat", "max_level", HEAT_MAX), old + amount)
        self.state.level = new
        self.state.sources[cause] = self.state.sources.get(cause, 0.0) + (new - old)
        self.state.last_increase = self.clock.now()

        self.log.record(self.actor_id, "heat", f"+{amount:g} from {cause} → {new:.1f}",
                        t=self.clock.now())
        self.bus.emit(HeatIncreased(amount=amount, cause=cause, level=new))
        self._check_thresholds(old, new)
        return self.state.level

    def reduce_heat(self, amount: float, cause: str | None = None) -> float:
        """Lower heat by *amount*.

        If *cause* names an existing bucket, that bucket is drained;
        otherwise the largest bucket is (first-seen cause wins a tie).
        """
        if amount <= 0:
            self.log.warn("HEAT", self.actor_id,
                          f"reduce_heat: ignoring non-positive amount {amount!r}",
                          t=self.clock.now())
            return self.state.level

        old = self.state.level
        self.state.level = max(HEAT_MIN, old - amount)
        self._drain_source(amount, cause)
        self._after_decrease(old, old - self.state.level)
        return self.state.level

    def _drain_source(self, amount: float, cause: str | None) -> None:
        sources = self.state.sources
        if not sources:
            return
        key = cause if cause and cause in sources else self.state.largest_source()
        if key is not None:
            sources[key] = max(0.0, sources[key] - amount)

    def _after_decrease(self, old: float, delta: float) -> None:
        if delta <= 0:
            return
        level = self.state.level
        self.bus.emit(HeatDecreased(amount=delta, level=level))
        if level <= HEAT_MIN < old:
            self.log.record(self.actor_id, "heat", "heat cleared", t=self.clock.now())
            self.bus.emit(HeatCleared())

    # ── Thresholds and investigations ───────────────────────────────

    def _check_thresholds(self, old: float, new: float) -> None:
        for threshold in self.thresholds:
            if old < threshold <= new:
                print(f"[HEAT] {self.actor_id} crossed {threshold:g} (heat {new:.1f})")
                self.log.record(self.actor_id, "heat", f"crossed {threshold:g}",
                                t=self.clock.now())
                self.bus.emit(HeatThresholdCrossed(threshold=threshold, level=new))
                self._threshold_effect(threshold)

    def _threshold_effect(self, threshold: float) -> None:
        tiers = self.thresholds
        tier = tiers.index(threshold) if threshold in tiers else -1
        if tier == 0:
            self.detection.set_patrol_frequency(tuning.get("heat", "patrol_step", 1.2))
        elif tier == 1:
            self.trigger_investigation(InvestigationType.SURVEILLANCE)
        elif tier == 2:
            legit = self.economy.legitimacy(self.actor_id)
            if legit < tuning.get("heat", "audit_legitimacy", 0.6) and not self.flags.audit_active:
                self.trigger_investigation(InvestigationType.AUDIT)
        elif tier == 3:
            if self.has_evidence():
                self.trigger_investigation(InvestigationType.RAID, evidence=True)
            elif not self.flags.warrant_active:
                self.trigger_investigation(InvestigationType.ARREST_WARRANT)

    def trigger_investigation(self, kind: InvestigationType,
                              evidence: bool | None = None) -> None:
        """Start an investigation and apply its side effects immediately."""
        details: dict = {}
        now = self.clock.now()

        if kind == InvestigationType.SURVEILLANCE:
            self.detection.set_patrol_frequency(tuning.get("heat", "surveillance_patrol", 1.5))
            self.detection.set_detection_sensitivity(
                tuning.get("heat", "surveillance_sensitivity", 1.3))
            self.flags.surveillance_count += 1

        elif kind == InvestigationType.AUDIT:
            frozen = (self.economy.balance(self.actor_id)
                      * tuning.get("heat.audit", "freeze_fraction", 0.3))
            window = tuning.get("heat.audit", "window_days", 30.0) * MINUTES_PER_DAY
            self.flags.audit_active = True
            self.flags.audit_frozen = frozen
            self.flags.audit_deadline = now + window
            self.economy.freeze(self.actor_id, frozen)
            details = {"frozen": frozen, "deadline": self.flags.audit_deadline}

        elif kind == InvestigationType.RAID:
            if evidence is None:
                evidence = self.has_evidence()
            factor = tuning.get("heat", "raid_factor", 0.5)
            old = self.state.level
            self.state.level = old * factor
            for key in self.state.sources:
                self.state.sources[key] *= factor
            self.flags.raid_count += 1
            details = {"evidence": evidence}
            self._after_decrease(old, old - self.state.level)

        elif kind == InvestigationType.ARREST_WARRANT:
            self.flags.warrant_active = True
            self.detection.set_patrol_frequency(tuning.get("heat", "warrant_patrol", 2.0))

        print(f"[HEAT] investigation: {kind.value} {details or ''}".rstrip())
        self.log.record(self.actor_id, "investigation", kind.value, t=now, details=details)
        self.bus.emit(InvestigationTriggered(kind=kind, details=details))

    def has_evidence(self) -> bool:
        if self._evidence_override is not None:
            return self._evidence_override
        return self.rng.random() < tuning.get("heat", "evidence_chance", 0.5)

    def resolve_audit(self) -> bool:
        """Close an active audit now.  Returns True if the record was clean."""
        if not self.flags.audit_active:
            return False
        legit = self.economy.legitimacy(self.actor_id)
        frozen = self.flags.audit_frozen
        clean = legit > tuning.get("heat.audit", "clean_legitimacy", 0.7)
        fine = 0.0
        self.economy.unfreeze(self.actor_id, frozen)
        if not clean:
            fine = (self.economy.balance(self.actor_id)
                    * tuning.get("heat.audit", "fine_fraction", 0.2))
            self.economy.fine(self.actor_id, fine, "tax evasion penalty")

        self.flags.audit_active = False
        self.flags.audit_frozen = 0.0
        self.flags.audit_deadline = 0.0
        self.log.record(self.actor_id, "investigation",
                        "audit cleared" if clean else f"audit fined {fine:.2f}",
                        t=self.clock.now())
        self.bus.emit(AuditResolved(clean=clean, fine=fine, unfrozen=frozen))
        return clean

    def resolve_warrant(self) -> bool:
        """External resolution of an arrest warrant (arrest, lawyer, bribe)."""
        if not self.flags.warrant_active:
            self.log.warn("HEAT", self.actor_id, "resolve_warrant: no active warrant",
                          t=self.clock.now())
            return False
        self.flags.warrant_active = False
        self.detection.set_patrol_frequency(1.0 / tuning.get("heat", "warrant_patrol", 2.0))
        self.log.record(self.actor_id, "investigation", "warrant resolved",
                        t=self.clock.now())
        self.bus.emit(WarrantResolved())
        return True

    # ── Modifiers and economic signals ──────────────────────────────

    def add_modifier(self, source: str, amount: float,
                     duration_hours: float | None = None) -> HeatModifier | None:
        """Add heat that lapses after *duration_hours* (permanent if None)."""
        if amount <= 0:
            return None
        now = self.clock.now()
        permanent = duration_hours is None
        modifier = HeatModifier(
            source=source,
            amount=amount,
            expires_at=0.0 if permanent else now + duration_hours * MINUTES_PER_HOUR,
            permanent=permanent,
        )
        self.state.active_modifiers.append(modifier)
        self.add_heat(amount, source)
        return modifier

    def _expire_modifiers(self) -> None:
        now = self.clock.now()
        keep: list[HeatModifier] = []
        expired: list[HeatModifier] = []
        for m in self.state.active_modifiers:
            (keep if m.permanent or now < m.expires_at else expired).append(m)
        self.state.active_modifiers = keep
        for m in expired:
            self.reduce_heat(m.amount, m.source)

    def on_suspicious_transaction(self, amount: float, source: str = "") -> None:
        """Large deposits and illicit income sources draw attention."""
        if amount > tuning.get("heat.transactions", "large_deposit", 5000.0):
            scale = tuning.get("heat.transactions", "deposit_scale", 10000.0)
            heat = amount / scale * tuning.get("heat.transactions", "deposit_heat", 5.0)
            self.add_heat(heat, HeatSources.CASH_DEPOSIT)
        illicit = {s.lower() for s in tuning.get(
            "heat.transactions", "illicit_sources", ["DrugSale", "SexWork"])}
        if source and source.lower() in illicit:
            self.add_heat(tuning.get("heat.transactions", "illicit_income_heat", 2.0),
                          HeatSources.SUSPICIOUS_INCOME)

    def on_flashy_purchase(self, vanity: float) -> None:
        if vanity > tuning.get("heat.transactions", "flashy_vanity", 70.0):
            heat = vanity / 100.0 * tuning.get("heat.transactions", "flashy_heat", 10.0)
            self.add_heat(heat, HeatSources.FLASHY_PURCHASE)

    # ── Tick ─────────────────────────────────────────────────────────

    def tick(self, game_hours: float) -> None:
        """Decay heat over *game_hours*, lapse modifiers, settle a due audit.

        Decay per call is ``(1/24) · multiplier · game_hours`` where the
        multiplier depends on how many game days have passed since the
        last increase.  The audit deadline is compared against the
        clock, so it resolves on the first tick at or past it.

        A shared clock is advanced by its owner; an engine built without
        one moves its private clock forward by *game_hours* first.
        """
        if self._owns_clock and game_hours > 0:
            self.clock.advance(game_hours * MINUTES_PER_HOUR)
        self._expire_modifiers()

        if self.state.level > HEAT_MIN and game_hours > 0:
            days = self.clock.days_since(self.state.last_increase)
            base = tuning.get("heat", "base_decay_per_hour", 1.0 / 24.0)
            decay = base * decay_multiplier(days) * game_hours
            old = self.state.level
            self.state.level = max(HEAT_MIN, old - decay)
            self._after_decrease(old, old - self.state.level)

        if self.flags.audit_active and self.clock.now() >= self.flags.audit_deadline:
            self.resolve_audit()

    # ── Test hooks ───────────────────────────────────────────────────

    def set_evidence_override(self, evidence: bool | None) -> None:
        """Force the evidence check (``None`` restores the random draw)."""
        self._evidence_override = evidence

    def set_level(self, level: float) -> None:
        self.state.level = max(HEAT_MIN, min(HEAT_MAX, float(level)))

    def set_last_increase(self, timestamp: float) -> None:
        self.state.last_increase = timestamp

    def reset(self) -> None:
        """Zero the heat and clear attribution; dials and flags stay."""
        self.state.reset(self.clock.now())

    # ── State ────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "level": self.state.level,
            "sources": dict(self.state.sources),
            "last_increase": self.state.last_increase,
            "modifiers": [
                {"source": m.source, "amount": m.amount,
                 "expires_at": m.expires_at, "permanent": m.permanent}
                for m in self.state.active_modifiers
            ],
            "flags": {
                "audit_active": self.flags.audit_active,
                "audit_frozen": self.flags.audit_frozen,
                "audit_deadline": self.flags.audit_deadline,
                "warrant_active": self.flags.warrant_active,
                "surveillance_count": self.flags.surveillance_count,
                "raid_count": self.flags.raid_count,
            },
        }

    def restore(self, data: dict) -> None:
        self.actor_id = data.get("actor_id", self.actor_id)
        self.state = HeatState(
            level=float(data.get("level", 0.0)),
            sources={k: float(v) for k, v in data.get("sources", {}).items()},
            last_increase=float(data.get("last_increase", self.clock.now())),
            active_modifiers=[HeatModifier(**m) for m in data.get("modifiers", [])],
        )
        self.flags = InvestigationFlags(**data.get("flags", {}))
