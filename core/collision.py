"""core/collision.py — Line-of-sight primitives.

The detection engine only ever asks one question of the spatial
backend::

    raycast_blocked(origin, target) -> bool

Anything callable with that signature works (a physics engine, a tile
walker, a test double).  This module ships two stock answers:

``open_space``     — nothing ever blocks (default).
``ObstacleField``  — a set of axis-aligned boxes; the ray is blocked if
                     it passes through any of them before reaching the
                     target.

Positions are ``(x, y, z)`` tuples in metres.  The actor is never part
of the obstacle set, so "only the actor is in the way" reads as clear.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable

Vec3 = tuple[float, float, float]
RaycastFn = Callable[[Vec3, Vec3], bool]

_EPS = 1e-9


def open_space(origin: Vec3, target: Vec3) -> bool:
    """Line-of-sight backend for empty rooms: never blocked."""
    return False


@dataclass
class Box:
    """Axis-aligned obstacle from ``lo`` (min corner) to ``hi`` (max corner)."""
    lo: Vec3
    hi: Vec3
    name: str = ""

    def contains(self, p: Vec3) -> bool:
        return all(self.lo[i] <= p[i] <= self.hi[i] for i in range(3))


def segment_hits_box(origin: Vec3, target: Vec3, box: Box) -> bool:
    """Slab test: does the segment origin→target pass through *box*?

    A segment that merely starts or ends inside the box counts as a
    hit only if some interior part of it lies inside.
    """
    t_min, t_max = 0.0, 1.0
    for i in range(3):
        d = target[i] - origin[i]
        if abs(d) < _EPS:
            if origin[i] < box.lo[i] or origin[i] > box.hi[i]:
                return False
            continue
        t1 = (box.lo[i] - origin[i]) / d
        t2 = (box.hi[i] - origin[i]) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_min = max(t_min, t1)
        t_max = min(t_max, t2)
        if t_min > t_max:
            return False
    return t_max - t_min > _EPS


@dataclass
class ObstacleField:
    """Static geometry made of boxes.  Instances are ``RaycastFn``s."""
    boxes: list[Box] = field(default_factory=list)

    def add(self, lo: Vec3, hi: Vec3, name: str = "") -> Box:
        box = Box(lo=tuple(lo), hi=tuple(hi), name=name)
        self.boxes.append(box)
        return box

    def clear(self) -> None:
        self.boxes.clear()

    def blocker(self, origin: Vec3, target: Vec3) -> Box | None:
        """Return the first box between *origin* and *target*, if any."""
        for box in self.boxes:
            if segment_hits_box(origin, target, box):
                return box
        return None

    def __call__(self, origin: Vec3, target: Vec3) -> bool:
        return self.blocker(origin, target) is not None
