"""
main.py — Headless scripted scenario

1. Load tuning
2. Build the heat loop around an in-memory ledger
3. Place a boss in the office and a patrolling cop on the street
4. Slack off at work, then deal on the street until the heat escalates
5. Let a few game days pass
6. Print a summary (and optionally write a save file)

Usage::

    python main.py [save_path]
"""

import sys
from pathlib import Path

from core import tuning
from core.save import save_snapshot
from components import ActivityKind, MultitaskingLevel, Observer, ObserverRole, HeatSources
from logic.collaborators import Ledger
from logic.tick import HeatLoop

PLAYER = "player"
STEP = 60.0        # game seconds per step
DEALS = 6


def _build_world(loop: HeatLoop) -> None:
    det = loop.detection
    det.register_observer("boss", Observer(
        id="boss", role=ObserverRole.BOSS,
        position=(0.0, 0.0, 0.0), facing=(0.0, 0.0, 1.0),
        vision_range=8.0, vision_cone=120.0,
        cares_about_job_performance=True, location="office",
    ))
    det.register_observer("officer_reyes", Observer(
        id="officer_reyes", role=ObserverRole.COP,
        position=(0.0, 0.0, 0.0), facing=(1.0, 0.0, 0.0),
        vision_range=12.0, vision_cone=140.0,
        cares_about_legality=True, location="street",
    ))
    det.set_patrol_pattern("officer_reyes",
                           [(0.0, 0.0, 0.0), (6.0, 0.0, 0.0), (6.0, 0.0, 6.0)],
                           interval_seconds=300.0)


def _print_heat(loop: HeatLoop, label: str) -> None:
    heat = loop.heat
    sources = ", ".join(f"{k}={v:.1f}" for k, v in heat.get_sources().items()) or "none"
    print(f"[MAIN] {label}: heat {heat.get_level():.1f} ({sources}) "
          f"patrol ×{loop.detection.patrol_frequency:.2f} "
          f"sensitivity ×{loop.detection.sensitivity:.2f}")


def main(save_path: str | None = None) -> HeatLoop:
    tuning.load()
    ledger = Ledger()
    ledger.add_income(PLAYER, 1200.0, "Salary")
    loop = HeatLoop(economy=ledger, seed=7, actor_id=PLAYER)
    _build_world(loop)

    # -- A shift at the office, half of it spent slacking --
    loop.detection.set_actor_pose(PLAYER, (0.0, 0.0, 3.0), "office")
    shift = loop.activity.create(ActivityKind.SCREEN, "office_work", 4 * 3600.0)
    slack = loop.activity.create(ActivityKind.PASSIVE, "slack_at_work", 1800.0,
                                 multitasking=MultitaskingLevel.BREAKS, attention=0.3)
    loop.activity.set_performance_sample(shift, 70.0)
    for result in loop.run(1800.0, STEP):
        print(f"[MAIN] ended {result.activity_id[:8]} perf={result.performance_score:.1f} "
              f"detected={result.was_detected}")
    shift_result = loop.activity.end(shift)
    ledger.add_income(PLAYER, shift_result.rewards.get("money", 0.0), "Salary")
    _print_heat(loop, "after the shift")

    # -- Evenings on the street --
    loop.detection.set_actor_pose(PLAYER, (4.0, 0.0, 1.0), "street")
    for n in range(DEALS):
        deal = loop.activity.create(ActivityKind.PHYSICAL, "drug_deal", 600.0)
        loop.run(600.0 + STEP, STEP)
        ledger.add_income(PLAYER, 1500.0, "DrugSale")
        loop.heat.on_suspicious_transaction(1500.0, "DrugSale")
        loop.bus.drain()
        _print_heat(loop, f"deal {n + 1} ({deal[:8]})")

    loop.heat.on_suspicious_transaction(9000.0)
    loop.heat.on_flashy_purchase(85.0)
    loop.heat.add_modifier(HeatSources.ARREST, 5.0, duration_hours=48.0)
    loop.bus.drain()
    _print_heat(loop, "after the shopping spree")

    # -- Lie low for three game days --
    loop.run(3 * 24 * 3600.0, 3600.0)
    _print_heat(loop, "three days later")

    flags = loop.heat.flags
    print(f"[MAIN] investigations: surveillance={flags.surveillance_count} "
          f"audit={flags.audit_active} warrant={flags.warrant_active} raids={flags.raid_count}")
    print(f"[MAIN] balance {ledger.balance(PLAYER):.2f} "
          f"(available {ledger.available(PLAYER):.2f}, legitimacy {ledger.legitimacy(PLAYER):.2f})")
    print(f"[MAIN] events: {loop.bus.stats()}")

    if save_path:
        save_snapshot(loop, Path(save_path))
    return loop


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
