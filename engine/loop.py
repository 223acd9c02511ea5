"""
Raidfloor — engine/loop.py
Raid Simulation: wires level generation, planner, ECS, EventBus and journal.
===========================================================================
Version:     0.2  (Phase 2 — raid loop)
Stack:       Python 3.12 | python-tcod-ecs
Status:      Integration entry point.

Architecture notes
------------------
- The simulation is headless. Physics, bullets and input live in the
  caller (the movement collaborator); it reports positions through
  set_position() and hits through damage_enemy() / damage_player().
- tick() returns one EnemyIntent per living enemy: desired steering and,
  when the enemy fired this tick, the shot angle.
- Enemies are iterated in spawn order, never in registry query order, so
  the engagement stream draws identically for a given seed.
- Every level gets a fresh tcod.ecs.Registry. The stash is the only state
  carried between floors and between runs.

Design Variables
----------------
  PLAYER_HP_MAX          100
  PLAYER_WEAPON_ID       "pistol", with 60 reserve rounds
  EXIT_REQUIRED_MS       900   standing time in the unlocked exit zone
  EXIT_DECAY_RATE        2     progress lost per ms spent outside the zone
  EXIT_ZONE_RADIUS       1     tiles around the exit (3x3 zone)
  PICKUP_RADIUS          24    world units
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import tcod.ecs

from engine.combat import (
    EventBus,
    RaidEvent,
    EVT_LEVEL_ENTERED,
    EVT_LEVEL_EXIT_LOCKED,
    EVT_LEVEL_EXIT_PROGRESS,
    EVT_LEVEL_ADVANCED,
    EVT_PLAYER_DAMAGED,
    EVT_PLAYER_DIED,
    EVT_ENEMY_GOAL_CHANGED,
    EVT_ENEMY_FIRED,
    EVT_ENEMY_RELOADING,
    EVT_ENEMY_DAMAGED,
    EVT_ENEMY_KILLED,
    EVT_ITEM_PICKED_UP,
    fire,
    finish_reload_if_due,
    make_weapon_state,
    start_reload,
)
from engine.data_loader import get_weapon_def
from engine.ecs.components import (
    Armament,
    CombatVitals,
    EntityIdentity,
    Pickup,
    TacticalState,
    WorldPosition,
)
from engine.journal import RaidJournal
from engine.nav_grid import NavigationGrid, distance
from engine.persistence import InMemoryStashStore, StashStore
from engine.spawner import spawn_enemies, spawn_pickups
from engine.tactics import Steering, TacticalPlanner, engagement_ready
from world.generator import LevelMap, generate_level
from world.rng import XorShift32, make_rng

Point = Tuple[float, float]

PLAYER_HP_MAX: int = 100
PLAYER_WEAPON_ID: str = "pistol"
PLAYER_START_RESERVE: int = 60
EXIT_REQUIRED_MS: float = 900.0
EXIT_DECAY_RATE: float = 2.0
EXIT_ZONE_RADIUS: int = 1
PICKUP_RADIUS: float = 24.0
ENGAGEMENT_STREAM_SALT: int = 0x3C6EF372
DEFAULT_VIEWPORT: Tuple[int, int] = (800, 600)


@dataclass(frozen=True)
class EnemyIntent:
    entity: tcod.ecs.Entity
    steering: Steering
    shot_angle: Optional[float] = None     # radians, spread already applied


class RaidSimulation:
    """
    One raid run: the current floor, its entities, the player's inventory
    and the persistent stash.
    """
    def __init__(
        self,
        base_seed: int,
        viewport: Tuple[int, int] = DEFAULT_VIEWPORT,
        bus: Optional[EventBus] = None,
        stash_store: Optional[StashStore] = None,
        journal_path: Optional[Path] = None,
        floor: int = 1,
    ):
        self.base_seed = base_seed
        self.viewport = viewport
        self.bus = bus or EventBus()
        self.stash_store: StashStore = stash_store or InMemoryStashStore()
        self.now_ms: float = 0.0
        self.floor = floor

        self.journal: Optional[RaidJournal] = None
        if journal_path is not None:
            self.journal = RaidJournal(self.bus, journal_path, clock=self.clock)

        self.inventory: List[str] = []
        self.stash: List[str] = self.stash_store.load()
        self.exit_progress_ms: float = 0.0
        self._exit_locked_reported = False

        self.enter_level(floor)

    def clock(self) -> Tuple[float, int]:
        return (self.now_ms, self.floor)

    # --------------------------------------------------------
    # Level lifecycle
    # --------------------------------------------------------

    def enter_level(self, floor: int) -> None:
        self.floor = floor
        self.level: LevelMap = generate_level(floor, self.base_seed, *self.viewport)
        self.nav = NavigationGrid(self.level)
        self.planner = TacticalPlanner(self.nav)
        self.rng: XorShift32 = make_rng(self.level.seed ^ ENGAGEMENT_STREAM_SALT)

        self.registry = tcod.ecs.Registry()
        self.player = self._spawn_player()
        self.enemies: List[tcod.ecs.Entity] = spawn_enemies(
            self.registry, self.level, self.nav, floor, self.now_ms
        )
        self.pickups: List[tcod.ecs.Entity] = spawn_pickups(self.registry, self.level, self.nav)
        self.exit_progress_ms = 0.0
        self._exit_locked_reported = False

        self.bus.emit(RaidEvent(
            event_key=EVT_LEVEL_ENTERED,
            source="system",
            data={
                "floor": floor,
                "seed": self.level.seed,
                "width": self.level.width,
                "height": self.level.height,
                "enemies": len(self.enemies),
                "loot": self.loot_remaining,
                "cover_points": len(self.planner.cover_points),
            },
        ))

    def _spawn_player(self) -> tcod.ecs.Entity:
        x, y = self.nav.to_world_center(*self.level.start)
        player = self.registry.new_entity()
        player.components[EntityIdentity] = EntityIdentity(
            entity_id=0, name="player", archetype="Player", is_player=True
        )
        player.components[WorldPosition] = WorldPosition(x=x, y=y)
        player.components[CombatVitals] = CombatVitals(hp=PLAYER_HP_MAX, max_hp=PLAYER_HP_MAX)
        player.components[Armament] = Armament(
            weapon=make_weapon_state(get_weapon_def(PLAYER_WEAPON_ID), PLAYER_START_RESERVE)
        )
        return player

    def advance_floor(self) -> None:
        """Banks the inventory into the stash, persists it and enters the next floor."""
        self.stash = self.stash + self.inventory
        self.stash_store.save(self.stash)
        banked = len(self.inventory)
        self.inventory = []

        previous = self.floor
        self.bus.emit(RaidEvent(
            event_key=EVT_LEVEL_ADVANCED,
            source="player",
            data={"from_floor": previous, "to_floor": previous + 1,
                  "banked": banked, "stash_size": len(self.stash)},
        ))
        self.enter_level(previous + 1)

    def _on_player_death(self) -> None:
        lost = len(self.inventory)
        self.inventory = []
        self.bus.emit(RaidEvent(
            event_key=EVT_PLAYER_DIED,
            source="player",
            data={"floor": self.floor, "items_lost": lost},
        ))
        self.enter_level(1)

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    @property
    def player_position(self) -> Point:
        return self.player.components[WorldPosition].point

    @property
    def player_vitals(self) -> CombatVitals:
        return self.player.components[CombatVitals]

    @property
    def loot_remaining(self) -> int:
        return sum(1 for p in self.pickups if p.components[Pickup].kind == "loot")

    @property
    def enemies_remaining(self) -> int:
        return len(self.enemies)

    @property
    def exit_progress(self) -> float:
        return max(0.0, min(1.0, self.exit_progress_ms / EXIT_REQUIRED_MS))

    def in_exit_zone(self) -> bool:
        tx, ty = self.nav.to_tile(*self.player_position)
        ex, ey = self.level.exit
        return abs(tx - ex) <= EXIT_ZONE_RADIUS and abs(ty - ey) <= EXIT_ZONE_RADIUS

    # --------------------------------------------------------
    # Movement collaborator inputs
    # --------------------------------------------------------

    def set_position(self, entity: tcod.ecs.Entity, x: float, y: float) -> None:
        entity.components[WorldPosition] = WorldPosition(x=x, y=y)

    def damage_enemy(self, entity: tcod.ecs.Entity, amount: int) -> bool:
        """Applies a hit. Returns True when the enemy died from it."""
        if entity not in self.enemies:
            return False
        vitals = entity.components[CombatVitals]
        ident = entity.components[EntityIdentity]
        vitals.hp -= amount
        entity.components[TacticalState].last_damage_at = self.now_ms

        self.bus.emit(RaidEvent(
            event_key=EVT_ENEMY_DAMAGED,
            source="player",
            target=ident.name,
            data={"amount": amount, "hp_remaining": max(0, vitals.hp)},
        ))
        if vitals.hp > 0:
            return False

        vitals.is_dead = True
        self.enemies.remove(entity)
        self.bus.emit(RaidEvent(
            event_key=EVT_ENEMY_KILLED,
            source="player",
            target=ident.name,
            data={"enemies_remaining": len(self.enemies)},
        ))
        entity.clear()
        return True

    def damage_player(self, amount: int) -> bool:
        """Applies a hit to the player. Returns True when it killed them."""
        vitals = self.player_vitals
        vitals.hp = max(0, vitals.hp - amount)
        self.bus.emit(RaidEvent(
            event_key=EVT_PLAYER_DAMAGED,
            source="enemy",
            target="player",
            data={"amount": amount, "hp_remaining": vitals.hp},
        ))
        if vitals.hp > 0:
            return False
        vitals.is_dead = True
        self._on_player_death()
        return True

    def pick_up(self) -> Optional[Pickup]:
        """Takes the closest pickup within reach of the player, if any."""
        here = self.player_position
        in_reach = [
            p for p in self.pickups
            if distance(here, p.components[WorldPosition].point) <= PICKUP_RADIUS
        ]
        if not in_reach:
            return None
        item = min(in_reach, key=lambda p: distance(here, p.components[WorldPosition].point))
        pickup = item.components[Pickup]

        if pickup.kind == "ammo":
            self.player.components[Armament].weapon.reserve += pickup.amount
        else:
            self.inventory.append(pickup.name)

        self.pickups.remove(item)
        item.clear()
        self.bus.emit(RaidEvent(
            event_key=EVT_ITEM_PICKED_UP,
            source="player",
            target=pickup.name,
            data={"kind": pickup.kind, "amount": pickup.amount,
                  "loot_remaining": self.loot_remaining},
        ))
        return pickup

    # --------------------------------------------------------
    # Tick
    # --------------------------------------------------------

    def tick(self, dt_ms: float) -> List[EnemyIntent]:
        """Advance the simulation by dt_ms of game time."""
        self.now_ms += dt_ms
        now = self.now_ms
        finish_reload_if_due(self.player.components[Armament].weapon, now)

        threat = self.player_position
        intents = [self._update_enemy(enemy, threat, now) for enemy in list(self.enemies)]

        self._update_exit(dt_ms)
        return intents

    def _update_enemy(self, entity: tcod.ecs.Entity, threat: Point, now: float) -> EnemyIntent:
        cfg = self.planner.config
        ident = entity.components[EntityIdentity]
        state = entity.components[TacticalState]
        weapon = entity.components[Armament].weapon
        here = entity.components[WorldPosition].point

        finish_reload_if_due(weapon, now)
        decision = self.planner.tick(state, here, threat, now)
        if decision.goal_changed:
            self.bus.emit(RaidEvent(
                event_key=EVT_ENEMY_GOAL_CHANGED,
                source=ident.name,
                data={"goal": list(decision.goal), "took_cover": decision.took_cover,
                      "role": state.role},
            ))

        shot_angle = None
        if not weapon.out_of_ammo:
            if weapon.mag <= 0 and start_reload(weapon, now):
                self.bus.emit(RaidEvent(
                    event_key=EVT_ENEMY_RELOADING,
                    source=ident.name,
                    data={"until": weapon.reloading_until},
                ))
            if engagement_ready(decision.perception, weapon, now):
                jitter = math.floor(self.rng() * (cfg.fire_jitter_ms + 1))
                fire(weapon, now, jitter)
                spread = weapon.definition.spread_rad * cfg.spread_multiplier.get(state.role, 1.0)
                shot_angle = (math.atan2(threat[1] - here[1], threat[0] - here[0])
                              + (self.rng() * 2 - 1) * spread)
                self.bus.emit(RaidEvent(
                    event_key=EVT_ENEMY_FIRED,
                    source=ident.name,
                    target="player",
                    data={"angle": shot_angle, "damage": weapon.definition.enemy_damage,
                          "mag": weapon.mag},
                ))

        return EnemyIntent(entity=entity, steering=decision.steering, shot_angle=shot_angle)

    def _update_exit(self, dt_ms: float) -> None:
        if not self.in_exit_zone():
            self.exit_progress_ms = max(0.0, self.exit_progress_ms - dt_ms * EXIT_DECAY_RATE)
            self._exit_locked_reported = False
            return

        loot, enemies = self.loot_remaining, self.enemies_remaining
        if loot > 0 or enemies > 0:
            self.exit_progress_ms = 0.0
            if not self._exit_locked_reported:
                self._exit_locked_reported = True
                self.bus.emit(RaidEvent(
                    event_key=EVT_LEVEL_EXIT_LOCKED,
                    source="player",
                    data={"loot_remaining": loot, "enemies_remaining": enemies},
                ))
            return

        self.exit_progress_ms += dt_ms
        self.bus.emit(RaidEvent(
            event_key=EVT_LEVEL_EXIT_PROGRESS,
            source="player",
            data={"progress": self.exit_progress},
        ))
        if self.exit_progress_ms >= EXIT_REQUIRED_MS:
            self.advance_floor()
