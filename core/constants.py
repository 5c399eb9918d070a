"""core/constants.py — Shared constants used across the codebase.

Centralises magic numbers so there's exactly one place to change them.

Unit System
-----------
    Distance / position     m       (metres, ``(x, y, z)`` tuples)
    Activity time           s       (game seconds)
    Heat decay              h       (game hours)
    Calendar                min     (game minutes, see GameClock)
    Heat                    pts     (0–100)
    Performance             pts     (0–100)
    Angles                  °       (degrees)

Game Time Scale
~~~~~~~~~~~~~~~
The engines never look at the wall clock.  The driver decides how many
game seconds pass per step; everything below converts between the
game-time units.
"""

# ── Game-time conversion ────────────────────────────────────────────
SECONDS_PER_MINUTE: float = 60.0
MINUTES_PER_HOUR: float = 60.0
HOURS_PER_DAY: float = 24.0
MINUTES_PER_DAY: float = MINUTES_PER_HOUR * HOURS_PER_DAY
SECONDS_PER_HOUR: float = SECONDS_PER_MINUTE * MINUTES_PER_HOUR

# ── Identities ──────────────────────────────────────────────────────
DEFAULT_ACTOR = "player"
UNKNOWN_CAUSE = "unknown"

# ── Scales ──────────────────────────────────────────────────────────
PERFORMANCE_MIN = 0.0
PERFORMANCE_MAX = 100.0
HEAT_MIN = 0.0
HEAT_MAX = 100.0
