"""test_support.py — Plumbing the engines stand on.

Tuning loader, event bus, line-of-sight geometry, dev log, game clock
and dials, the in-memory ledger, and JSON save snapshots.

Run:  python test_support.py
"""
from __future__ import annotations
import sys, json, tempfile, traceback
from pathlib import Path

# ── Bootstrap ────────────────────────────────────────────────────────
import core.tuning as tuning
tuning.load()

from core.collision import Box, ObstacleField, open_space, segment_hits_box
from core.events import EventBus, HeatIncreased, HeatCleared, ActivityPaused
from core.save import save_snapshot, load_snapshot, restore_snapshot
from components import DevLog, GameClock, DetectionDials, ActivityKind, Observer, ObserverRole
from logic import perception
from logic.collaborators import Economy, Ledger
from logic.tick import HeatLoop


# ── Test harness ─────────────────────────────────────────────────────

passed = 0
failed = 0


def ok(label: str):
    global passed
    passed += 1
    print(f"  [PASS] {label}")


def fail(label: str, detail: str = ""):
    global failed
    failed += 1
    msg = f"  [FAIL] {label}"
    if detail:
        msg += f" — {detail}"
    print(msg)


def check(cond: bool, label: str, detail: str = ""):
    if cond:
        ok(label)
    else:
        fail(label, detail)
        raise AssertionError(f"{label} {detail}".strip())


def close(a: float, b: float, tol: float = 1e-6) -> bool:
    return abs(a - b) <= tol


# ═══════════════════════════════════════════════════════════════════
#  1 — Tuning
# ═══════════════════════════════════════════════════════════════════

def test_tuning():
    print("\n=== 1: Tuning ===")
    try:
        check(tuning.get("activity", "detection_penalty") == 0.2, "Reads a shipped value")
        check(tuning.get("heat.audit", "freeze_fraction") == 0.3, "Dot-notation reaches nested tables")
        check(tuning.get("heat", "no_such_key", 42) == 42, "Missing key → default")
        check(tuning.get("no.such.section", "x", "d") == "d", "Missing section → default")
        check(tuning.section("detection.profiles.drug_deal")["is_legal"] is False,
              "section() returns a whole table")
        check(tuning.section("nope") == {}, "Missing section → {}")
        check(list(tuning.get("heat", "thresholds")) == [30.0, 50.0, 70.0, 90.0],
              "Thresholds shipped in order")

        tuning.override("heat", "detection_heat", 25.0)
        tuning.override("brand.new", "knob", 1)
        check(tuning.get("heat", "detection_heat") == 25.0, "override() pins a value")
        check(tuning.get("brand.new", "knob") == 1, "override() creates sections")

        tuning.reload()
        check(tuning.get("heat", "detection_heat") == 10.0, "reload() drops overrides")

        with tempfile.TemporaryDirectory() as tmp:
            tuning.load(Path(tmp) / "missing.toml")
            check(tuning.get("activity", "detection_penalty", 0.2) == 0.2,
                  "Missing file → code defaults still apply")
            custom = Path(tmp) / "custom.toml"
            custom.write_text("[activity]\ndetection_penalty = 1.5\n")
            tuning.load(custom)
            check(tuning.get("activity", "detection_penalty") == 1.5, "Loads an explicit file")
    finally:
        tuning.load()


# ═══════════════════════════════════════════════════════════════════
#  2 — Event bus
# ═══════════════════════════════════════════════════════════════════

def test_event_bus():
    print("\n=== 2: Event bus ===")
    bus = EventBus()
    seen: list = []
    bus.subscribe("HeatIncreased", lambda ev: seen.append(ev.amount))
    bus.emit(HeatIncreased(amount=1.0))
    bus.emit(HeatIncreased(amount=2.0))
    check(seen == [], "emit() does not call handlers")
    check(bus.pending_count() == 2 and len(bus.pending("HeatIncreased")) == 2, "Events queue up")
    check(bus.drain() == 2 and seen == [1.0, 2.0], "drain() delivers in FIFO order")

    def boom(ev):
        raise RuntimeError("handler blew up")

    bus.subscribe("HeatCleared", boom)
    bus.subscribe("HeatCleared", lambda ev: seen.append("cleared"))
    bus.emit(HeatCleared())
    bus.drain()
    check(seen[-1] == "cleared", "A failing handler does not stop the others")

    bus.subscribe("ActivityPaused", lambda ev: bus.emit(HeatIncreased(amount=9.0)))
    bus.emit(ActivityPaused(activity_id="a"))
    check(bus.drain() == 2 and seen[-1] == 9.0, "Events emitted by handlers drain in the same pass")
    check(bus.stats()["HeatIncreased"] == 3, "stats() counts by type")

    bus.unsubscribe("HeatCleared", boom)
    check(bus.has_subscribers("HeatCleared") and not bus.has_subscribers("DetectionRisk"),
          "has_subscribers() reports who is listening")
    bus.emit(HeatCleared())
    bus.clear()
    check(bus.pending_count() == 0 and bus.drain() == 0, "clear() discards pending events")


# ═══════════════════════════════════════════════════════════════════
#  3 — Line of sight
# ═══════════════════════════════════════════════════════════════════

def test_collision():
    print("\n=== 3: Line of sight ===")
    crate = Box(lo=(-1.0, -1.0, 4.0), hi=(1.0, 1.0, 5.0), name="crate")
    check(segment_hits_box((0.0, 0.0, 0.0), (0.0, 0.0, 10.0), crate), "Ray through the box is blocked")
    check(not segment_hits_box((0.0, 0.0, 0.0), (0.0, 0.0, 3.0), crate), "Ray stopping short is clear")
    check(not segment_hits_box((3.0, 0.0, 0.0), (3.0, 0.0, 10.0), crate), "Parallel ray beside the box is clear")
    check(segment_hits_box((-5.0, 0.0, 4.5), (5.0, 0.0, 4.5), crate), "Sideways ray through the box")
    check(crate.contains((0.0, 0.0, 4.5)) and not crate.contains((0.0, 0.0, 6.0)), "contains()")

    field = ObstacleField()
    check(not field((0.0, 0.0, 0.0), (0.0, 0.0, 10.0)), "Empty field never blocks")
    field.add((-1.0, -1.0, 4.0), (1.0, 1.0, 5.0), name="crate")
    check(field((0.0, 0.0, 0.0), (0.0, 0.0, 10.0)), "Field is a raycast_blocked callable")
    check(field.blocker((0.0, 0.0, 0.0), (0.0, 0.0, 10.0)).name == "crate", "blocker() names the box")
    field.clear()
    check(not field((0.0, 0.0, 0.0), (0.0, 0.0, 10.0)), "clear() empties the field")
    check(open_space((0.0, 0.0, 0.0), (9.0, 9.0, 9.0)) is False, "open_space never blocks")


# ═══════════════════════════════════════════════════════════════════
#  4 — Geometry helpers
# ═══════════════════════════════════════════════════════════════════

def test_perception_helpers():
    print("\n=== 4: Perception helpers ===")
    check(close(perception.angle_between((0.0, 0.0, 1.0), (1.0, 0.0, 0.0)), 90.0), "Right angle")
    check(perception.angle_between((0.0, 0.0, 0.0), (1.0, 0.0, 0.0)) == 0.0, "Zero vector → 0°")
    check(perception.normalized((0.0, 0.0, 0.0)) == (0.0, 0.0, 0.0), "Degenerate normalise → zero")

    eye = Observer(id="eye", vision_cone=360.0, vision_range=5.0)
    check(perception.in_vision_cone(eye, (0.0, 0.0, -3.0)), "360° sees behind")
    check(perception.in_range(eye, (0.0, 0.0, 5.0)) and not perception.in_range(eye, (0.0, 0.0, 5.1)),
          "Range boundary is inclusive")
    narrow = Observer(id="narrow", vision_cone=60.0)
    check(perception.in_vision_cone(narrow, (0.0, 0.0, 0.0)), "Target on top of the observer is seen")
    check(not perception.in_vision_cone(narrow, (1.0, 0.0, 1.0)), "45° off axis is outside a 60° cone")
    check(close(perception.awareness(eye, 0.0), 5000.0), "Distance floor keeps awareness finite")
    check(close(perception.proximity_risk(eye, 2.5), 0.5), "Proximity risk is linear in distance")


# ═══════════════════════════════════════════════════════════════════
#  5 — Dev log, clock, dials
# ═══════════════════════════════════════════════════════════════════

def test_dev_log():
    print("\n=== 5: Dev log ===")
    log = DevLog(max_entries=3, echo_warnings=False)
    for i in range(5):
        log.record(f"a{i}", "activity", f"event {i}", t=float(i))
    check(len(log.entries) == 3 and log.entries[0]["msg"] == "event 2", "Ring buffer keeps the newest")
    check(log.recent(1)[0]["eid"] == "a4", "recent()")

    log.warn("HEAT", "player", "reduce_heat: nothing to reduce")
    check(log.warnings()[-1]["name"] == "HEAT", "warn() records category 'warning' with its tag")

    log = DevLog(cat_filter={"heat"})
    log.record("x", "activity", "dropped")
    log.record("x", "heat", "kept")
    check([e["msg"] for e in log.for_eid("x")] == ["kept"], "Category filter")
    log.pause()
    log.record("x", "heat", "paused")
    log.resume()
    check(len(log.for_cat("heat")) == 1, "Paused log records nothing")


def test_clock_and_dials():
    print("\n=== 6: Clock and dials ===")
    clock = GameClock()
    clock.advance(90.0)
    clock.advance(-30.0)
    check(clock.now() == 90.0, "Clock never runs backwards")
    check(clock.hours == 1.5, "hours")
    clock.advance(3 * 1440.0)
    check(close(clock.days_since(90.0), 3.0), "days_since")

    dials = DetectionDials()
    dials.scale_patrol(2.0)
    dials.scale_sensitivity(0.0)
    check(dials.patrol_frequency == 2.0 and dials.sensitivity == dials.floor, "Dials multiply with a floor")


def test_ledger():
    print("\n=== 7: Ledger ===")
    inert = Economy()
    check(inert.legitimacy("p") == 1.0 and inert.balance("p") == 0.0, "Inert economy defaults")

    led = Ledger()
    check(led.legitimacy("p") == 1.0, "No income → fully legitimate")
    led.add_income("p", 300.0, "Salary")
    led.add_income("p", 100.0, "DrugSale")
    led.add_income("p", -50.0, "Salary")
    check(close(led.legitimacy("p"), 0.75) and led.balance("p") == 400.0, "Legitimacy split")
    led.freeze("p", 1000.0)
    check(led.available("p") == 0.0, "Cannot freeze more than the balance")
    led.unfreeze("p", 1000.0)
    led.fine("p", 40.0, "parking")
    check(led.balance("p") == 360.0 and led.wallet("p").fines == [(40.0, "parking")], "Fines recorded")


# ═══════════════════════════════════════════════════════════════════
#  8 — Save snapshots
# ═══════════════════════════════════════════════════════════════════

def _busy_loop() -> HeatLoop:
    loop = HeatLoop(economy=Ledger(), seed=3)
    loop.log.echo_warnings = False
    loop.detection.register_observer("cop", Observer(
        id="cop", role=ObserverRole.COP, vision_range=10.0, vision_cone=120.0,
        cares_about_legality=True, location="street"))
    loop.detection.set_patrol_pattern("cop", [(0.0, 0.0, 0.0), (4.0, 0.0, 0.0)], 15.0)
    loop.detection.set_actor_pose("player", (0.0, 0.0, 3.0), "street")
    loop.activity.create(ActivityKind.PHYSICAL, "drug_deal", 600.0)
    loop.heat.add_modifier("tip_off", 6.0, duration_hours=12.0)
    loop.run(40.0, 1.0)
    return loop


def test_save():
    print("\n=== 8: Save snapshots ===")
    loop = _busy_loop()
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "saves" / "slot1.json"
        written = save_snapshot(loop, path)
        check(written == path and path.exists(), "Save file written (parent dirs created)")
        check(json.loads(path.read_text())["format_version"] == 1, "File is tagged with its format")

        data = load_snapshot(path)
        fresh = HeatLoop(economy=Ledger(), seed=3)
        restore_snapshot(fresh, data)
        check(fresh.clock.now() == loop.clock.now(), "Clock restored")
        check(fresh.heat.get_level() == loop.heat.get_level(), "Heat level restored")
        check(fresh.heat.get_sources() == loop.heat.get_sources(), "Heat sources restored")
        check(close(fresh.detection.patrol_frequency, loop.detection.patrol_frequency), "Dials restored")
        cop, cop2 = loop.detection.get_observer("cop"), fresh.detection.get_observer("cop")
        check(cop2.position == cop.position and cop2.patrol_waypoints == cop.patrol_waypoints,
              "Observer pose and route restored as tuples")
        a, = loop.activity.get_active_activities("player")
        b, = fresh.activity.get_active_activities("player")
        check(a.id == b.id and b.was_detected and close(a.performance_score, b.performance_score),
              "Activity restored")

        check(load_snapshot(Path(tmp) / "nope.json") is None, "Missing save → None")
        bad = Path(tmp) / "bad.json"
        bad.write_text("{ not json")
        try:
            load_snapshot(bad)
            raised = False
        except ValueError:
            raised = True
        check(raised, "Malformed save → ValueError")
        bad.write_text('{"format_version": 1}')
        try:
            load_snapshot(bad)
            raised = False
        except ValueError:
            raised = True
        check(raised, "JSON that is not a loop save → ValueError")


# ═══════════════════════════════════════════════════════════════════
#  MAIN
# ═══════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    sections = [
        ("Tuning", test_tuning),
        ("Event bus", test_event_bus),
        ("Line of sight", test_collision),
        ("Perception helpers", test_perception_helpers),
        ("Dev log", test_dev_log),
        ("Clock and dials", test_clock_and_dials),
        ("Ledger", test_ledger),
        ("Save snapshots", test_save),
    ]

    for name, fn in sections:
        try:
            fn()
        except AssertionError:
            print(f"  [ABORT] {name} stopped at its first failure")
        except Exception:
            failed += 1
            print(f"\n  [CRASH] {name} — unhandled exception:")
            traceback.print_exc()

    total = passed + failed
    print(f"\n{'=' * 60}")
    print(f"  Support Tests: {passed} passed, {failed} failed  (total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if failed else 0)
