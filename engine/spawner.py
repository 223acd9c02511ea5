"""
Raidfloor — engine/spawner.py
Data-Driven Spawner: places enemies and pickups on a generated floor.
=====================================================================
Version:     0.2  (Phase 2 — raid population)
Stack:       Python 3.12 | python-tcod-ecs
Status:      Production-ready.

Every floor draws from its own xorshift streams derived from the level
seed, so a floor always populates identically.
"""

from __future__ import annotations
from typing import List, Optional, Tuple
import math
import numpy as np
import tcod.ecs

from engine.combat import make_weapon_state
from engine.data_loader import get_enemy_weapon_defs, get_loot_table
from engine.ecs.components import (
    EntityIdentity, WorldPosition, CombatVitals, Armament, TacticalState, Pickup,
    ROLE_SUPPRESS, ROLE_FLANK,
)
from engine.nav_grid import NavigationGrid, UNREACHABLE, distance
from world.generator import LevelMap
from world.rng import Rng, make_rng, pick_weighted

ENEMY_STREAM_SALT: int = 0x0A53A9E3
PICKUP_STREAM_SALT: int = 0x51C0FFEE
SPAWN_SAMPLES: int = 9000
SPAWN_MIN_START_DISTANCE: float = 160.0
ENEMY_CAP: int = 22
ENEMY_BASE_COUNT: int = 6
ENEMY_PER_FLOOR: float = 1.15
ENEMY_BASE_HP: int = 50
ENEMY_HP_PER_FLOOR: int = 4
ENEMY_HP_BONUS_CAP: int = 55
FIRST_SHOT_MIN_MS: int = 300
FIRST_SHOT_SPAN_MS: int = 900

Point = Tuple[float, float]


def enemy_count_for_floor(floor: int) -> int:
    return min(ENEMY_CAP, ENEMY_BASE_COUNT + math.floor(floor * ENEMY_PER_FLOOR))


def random_walkable_point(nav: NavigationGrid, level: LevelMap, rng: Rng,
                          reach: Optional[np.ndarray] = None) -> Point:
    """A random floor tile centre reachable from start and not too close to it."""
    start = nav.to_world_center(*level.start)
    if reach is None:
        reach = nav.distance_field(*level.start)
    for _ in range(SPAWN_SAMPLES):
        tx = math.floor(rng() * level.width)
        ty = math.floor(rng() * level.height)
        if not nav.is_walkable(tx, ty):
            continue
        if reach[ty, tx] == UNREACHABLE:
            continue
        p = nav.to_world_center(tx, ty)
        if distance(p, start) < SPAWN_MIN_START_DISTANCE:
            continue
        return p
    return start


def spawn_enemies(registry: tcod.ecs.Registry, level: LevelMap, nav: NavigationGrid,
                  floor: int, now: float = 0.0) -> List[tcod.ecs.Entity]:
    """Populates the floor with armed enemies. Every third enemy suppresses, the rest flank."""
    rng = make_rng(level.seed ^ ENEMY_STREAM_SALT)
    reach = nav.distance_field(*level.start)
    weapons = get_enemy_weapon_defs()
    options = [(w, w.spawn_weight) for w in weapons]
    enemies = []

    for i in range(enemy_count_for_floor(floor)):
        x, y = random_walkable_point(nav, level, rng, reach)
        weapon_def = pick_weighted(rng, options)

        weapon = make_weapon_state(weapon_def, weapon_def.enemy_reserve)
        partial = math.floor(weapon_def.mag_size * (0.6 + rng() * 0.4))
        weapon.mag = min(weapon_def.mag_size, max(1, partial))
        weapon.next_shot_at = now + math.floor(FIRST_SHOT_MIN_MS + rng() * FIRST_SHOT_SPAN_MS)

        hp = ENEMY_BASE_HP + min(ENEMY_HP_BONUS_CAP, floor * ENEMY_HP_PER_FLOOR)
        role = ROLE_SUPPRESS if i % 3 == 0 else ROLE_FLANK

        entity = registry.new_entity()
        entity.components[EntityIdentity] = EntityIdentity(
            entity_id=i + 1, name=f"enemy_{i + 1}", archetype="Enemy"
        )
        entity.components[WorldPosition] = WorldPosition(x=x, y=y)
        entity.components[CombatVitals] = CombatVitals(hp=hp, max_hp=hp)
        entity.components[Armament] = Armament(weapon=weapon)
        entity.components[TacticalState] = TacticalState(role=role)
        enemies.append(entity)

    return enemies


def spawn_pickups(registry: tcod.ecs.Registry, level: LevelMap,
                  nav: NavigationGrid) -> List[tcod.ecs.Entity]:
    """Scatters loot objectives and ammo. Loot must all be collected to unlock the exit."""
    rng = make_rng(level.seed ^ PICKUP_STREAM_SALT)
    table = get_loot_table()
    reach = nav.distance_field(*level.start)
    pickups = []

    loot_count = table.loot_base + math.floor(rng() * table.loot_span)
    for _ in range(loot_count):
        x, y = random_walkable_point(nav, level, rng, reach)
        name = table.loot_names[math.floor(rng() * len(table.loot_names))]
        item = registry.new_entity()
        item.components[WorldPosition] = WorldPosition(x=x, y=y)
        item.components[Pickup] = Pickup(kind="loot", name=name)
        pickups.append(item)

    if not table.ammo:
        return pickups

    ammo_count = table.ammo_base + math.floor(rng() * table.ammo_span)
    options = [(a, a.weight) for a in table.ammo]
    for _ in range(ammo_count):
        x, y = random_walkable_point(nav, level, rng, reach)
        ammo = pick_weighted(rng, options)
        amount = math.floor(ammo.min_amount + rng() * ammo.span)
        item = registry.new_entity()
        item.components[WorldPosition] = WorldPosition(x=x, y=y)
        item.components[Pickup] = Pickup(
            kind="ammo", name=f"{ammo.ammo_type} Ammo", ammo_type=ammo.ammo_type, amount=amount
        )
        pickups.append(item)

    return pickups
