"""logic — Heat-loop engines package.

Top-level modules
-----------------
detection       — observer registry, vision pipeline, patrol stepper
activity        — concurrent activity lifecycle, multitasking, performance
heat            — suspicion accumulator, decay, thresholds, investigations
perception      — vision geometry and severity helpers
collaborators   — economy contract consumed by the heat engine (+ Ledger)
tick            — per-step orchestrator (HeatLoop)
"""
