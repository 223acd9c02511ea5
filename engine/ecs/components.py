"""
Raidfloor — engine/ecs/components.py
ECS Component Definitions for python-tcod-ecs.
==============================================
Version:     0.2  (Phase 2 — raid entities)
Stack:       Python 3.12 | python-tcod-ecs
Status:      Production-ready.

Enemies are plain owned structs attached to registry entities; nothing
rides on rendering or physics objects. TacticalState is the only data the
tactical planner mutates.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from engine.combat import WeaponState

Point = Tuple[float, float]

ROLE_SUPPRESS = "suppress"
ROLE_FLANK = "flank"

NEVER_DAMAGED_AT: float = -99999.0


@dataclass
class EntityIdentity:
    entity_id: int
    name: str
    archetype: str                          # "Player" | "Enemy"
    is_player: bool = False


@dataclass
class WorldPosition:
    """World units, written each tick by the movement collaborator."""
    x: float
    y: float

    @property
    def point(self) -> Point:
        return (self.x, self.y)


@dataclass
class CombatVitals:
    hp: int
    max_hp: int
    is_dead: bool = False


@dataclass
class Armament:
    weapon: WeaponState


@dataclass
class TacticalState:
    role: str                               # ROLE_SUPPRESS | ROLE_FLANK
    goal: Optional[Point] = None
    path: List[Point] = field(default_factory=list)
    path_index: int = 0
    last_damage_at: float = NEVER_DAMAGED_AT
    goal_replan_at: float = 0.0             # sim ms; role goal is re-evaluated once passed
    path_replan_at: float = 0.0             # sim ms; path is re-derived once passed


@dataclass
class Pickup:
    kind: str                               # "loot" | "ammo"
    name: str
    ammo_type: Optional[str] = None
    amount: int = 0
