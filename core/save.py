"""core/save.py — Heat-loop state persistence.

Save files (JSON) hold the snapshot dicts the engines already expose:

- game clock and step counter
- observers, actor poses, risk profiles and detection dials
- live activities, their phases and pinned performance samples
- heat level, cause buckets, modifiers and investigation flags

The engines do not depend on this format; it is a thin convenience
over their ``snapshot()`` / ``restore()`` methods.
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from logic.tick import HeatLoop


SAVES_DIR = Path("saves")
FORMAT_VERSION = 1


def get_save_file(slot: int = 0) -> Path:
    """Get the path for a save slot."""
    SAVES_DIR.mkdir(parents=True, exist_ok=True)
    return SAVES_DIR / f"slot{slot}.json"


def save_snapshot(loop: "HeatLoop", path: str | Path | None = None) -> Path:
    """Write the loop's state to *path* (default: save slot 0).

    Returns the path written.
    """
    save_path = Path(path) if path is not None else get_save_file()
    save_path.parent.mkdir(parents=True, exist_ok=True)

    save_data = {
        "format_version": FORMAT_VERSION,
        "loop": loop.snapshot(),
    }
    with open(save_path, "w") as f:
        json.dump(save_data, f, indent=2)

    print(f"[SAVE] Wrote {save_path}")
    return save_path


def load_snapshot(path: str | Path | None = None) -> dict[str, Any] | None:
    """Read a save file.

    Returns ``None`` if the file does not exist.  Raises ``ValueError``
    if it exists but is not a heat-loop save.
    """
    save_path = Path(path) if path is not None else get_save_file()
    if not save_path.exists():
        return None

    try:
        with open(save_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as ex:
        print(f"[SAVE] Error loading save file: {ex}")
        raise ValueError(f"malformed save file {save_path}: {ex}") from ex

    if not isinstance(data, dict) or not isinstance(data.get("loop"), dict):
        raise ValueError(f"{save_path} is not a heat-loop save")
    return data


def restore_snapshot(loop: "HeatLoop", data: dict[str, Any]) -> None:
    """Overlay a loaded save onto an already-constructed loop."""
    version = data.get("format_version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        print(f"[SAVE] format_version {version} (expected {FORMAT_VERSION}), loading anyway")
    loop.restore(data["loop"])
