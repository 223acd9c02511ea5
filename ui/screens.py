"""
Raidfloor — ui/screens.py
Raid viewer screen plus a naive movement collaborator.
"""
from __future__ import annotations

import math
from typing import List, Optional, Tuple

import tcod

from engine.combat import can_shoot, fire, start_reload
from engine.ecs.components import Armament, TacticalState, WorldPosition
from engine.loop import EnemyIntent, RaidSimulation
from engine.nav_grid import distance
from ui.renderer import Renderer
from ui.states import BaseState, Engine

Point = Tuple[float, float]

STEP_MS: float = 100.0
PLAYER_SPEED: float = 245.0             # world units per second
HIT_RADIUS: float = 12.0
HUD_ROWS: int = 2

MOVE_KEYS = {
    tcod.event.KeySym.UP: (0, -1), tcod.event.KeySym.W: (0, -1),
    tcod.event.KeySym.DOWN: (0, 1), tcod.event.KeySym.S: (0, 1),
    tcod.event.KeySym.LEFT: (-1, 0), tcod.event.KeySym.A: (-1, 0),
    tcod.event.KeySym.RIGHT: (1, 0), tcod.event.KeySym.D: (1, 0),
}


# ============================================================
# MOVEMENT COLLABORATOR
# Integrates steering straight into positions. Walls stop movement
# outright; there is no sliding or separation.
# ============================================================

def try_move(sim: RaidSimulation, origin: Point, target: Point) -> Point:
    """Returns target when it lies on a walkable tile, origin otherwise."""
    if sim.nav.is_walkable(*sim.nav.to_tile(*target)):
        return target
    return origin


def integrate_steering(sim: RaidSimulation, intents: List[EnemyIntent], dt_ms: float) -> None:
    dt = dt_ms / 1000.0
    for intent in intents:
        if intent.steering.is_stopped or WorldPosition not in intent.entity.components:
            continue
        here = intent.entity.components[WorldPosition].point
        vx, vy = intent.steering.velocity
        x, y = try_move(sim, here, (here[0] + vx * dt, here[1] + vy * dt))
        sim.set_position(intent.entity, x, y)


def shot_hits(origin: Point, angle: float, target: Point, radius: float = HIT_RADIUS) -> bool:
    """Hitscan: the ray from origin at angle passes within radius of target."""
    d = distance(origin, target)
    if d <= radius:
        return True
    true_angle = math.atan2(target[1] - origin[1], target[0] - origin[0])
    return d * abs(math.sin(angle - true_angle)) <= radius


def resolve_enemy_shots(sim: RaidSimulation, intents: List[EnemyIntent]) -> int:
    """Applies every enemy shot that connects. Returns total damage dealt."""
    dealt = 0
    for intent in intents:
        if intent.shot_angle is None or Armament not in intent.entity.components:
            continue
        origin = intent.entity.components[WorldPosition].point
        if not shot_hits(origin, intent.shot_angle, sim.player_position):
            continue
        amount = intent.entity.components[Armament].weapon.definition.enemy_damage
        dealt += amount
        if sim.damage_player(amount):
            break
    return dealt


def nearest_visible_enemy(sim: RaidSimulation) -> Optional[tcod.ecs.Entity]:
    here = sim.player_position
    weapon = sim.player.components[Armament].weapon
    best, best_d = None, math.inf
    for enemy in sim.enemies:
        p = enemy.components[WorldPosition].point
        d = distance(here, p)
        if d <= weapon.definition.range and d < best_d and sim.nav.line_of_sight_world(here, p):
            best, best_d = enemy, d
    return best


def player_shoot(sim: RaidSimulation) -> bool:
    weapon = sim.player.components[Armament].weapon
    if not can_shoot(weapon, sim.now_ms):
        return False
    target = nearest_visible_enemy(sim)
    if target is None:
        return False
    fire(weapon, sim.now_ms)
    sim.damage_enemy(target, weapon.definition.damage)
    return True


# ============================================================
# SCREEN
# ============================================================

class RaidScreen(BaseState):
    """
    Top-down view of the current floor. Moving, waiting, shooting and
    reloading each cost STEP_MS; picking up and toggling the overlay are free.
    """

    def __init__(self, engine: Engine, sim: RaidSimulation):
        super().__init__(engine)
        self.sim = sim
        self.show_cover = False
        self.message = "Collect the loot, clear the floor, stand on '>'."

    def move_player(self, move: Tuple[int, int]) -> None:
        sim = self.sim
        px, py = sim.player_position
        reach = PLAYER_SPEED * STEP_MS / 1000.0
        x, y = try_move(sim, (px, py), (px + move[0] * reach, py + move[1] * reach))
        sim.set_position(sim.player, x, y)

    def advance(self, dt_ms: float) -> None:
        sim = self.sim
        floor = sim.floor
        intents = sim.tick(dt_ms)
        if sim.floor != floor:
            self.message = f"Floor {sim.floor}. Stash: {len(sim.stash)} items."
            return
        integrate_steering(sim, intents, dt_ms)
        dealt = resolve_enemy_shots(sim, intents)
        if dealt:
            self.message = f"Hit! -{dealt} HP"

    def on_exit(self) -> None:
        if self.sim.journal is not None:
            self.sim.journal.close_session()

    def ev_keydown(self, event: tcod.event.KeyDown) -> Optional[float]:
        sim = self.sim
        if event.sym in (tcod.event.KeySym.ESCAPE, tcod.event.KeySym.Q):
            self.engine.quit()
        elif event.sym in MOVE_KEYS:
            self.move_player(MOVE_KEYS[event.sym])
            return STEP_MS
        elif event.sym == tcod.event.KeySym.PERIOD:
            return STEP_MS
        elif event.sym == tcod.event.KeySym.SPACE:
            if not player_shoot(sim):
                self.message = "No target."
            return STEP_MS
        elif event.sym == tcod.event.KeySym.R:
            if start_reload(sim.player.components[Armament].weapon, sim.now_ms):
                self.message = "Reloading..."
            return STEP_MS
        elif event.sym == tcod.event.KeySym.F:
            item = sim.pick_up()
            self.message = f"Picked up {item.name}." if item else "Nothing to pick up."
        elif event.sym == tcod.event.KeySym.C:
            self.show_cover = not self.show_cover
        return None

    def camera_origin(self, renderer: Renderer) -> Tuple[int, int]:
        level = self.sim.level
        view_w, view_h = renderer.width, renderer.height - HUD_ROWS
        px, py = self.sim.nav.to_tile(*self.sim.player_position)
        ox = max(0, min(level.width - view_w, px - view_w // 2))
        oy = max(0, min(level.height - view_h, py - view_h // 2))
        return (ox, oy)

    def on_render(self, renderer: Renderer) -> None:
        sim = self.sim
        nav = sim.nav
        origin = self.camera_origin(renderer)
        dest = (0, HUD_ROWS)

        cover = [nav.to_tile(*p) for p in sim.planner.cover_points] if self.show_cover else []
        renderer.draw_level(sim.level, cover, origin=origin, dest=dest)

        for item in sim.pickups:
            renderer.draw_actor(nav.to_tile(*item.components[WorldPosition].point), "$",
                                (255, 215, 0), origin, dest)
        for enemy in sim.enemies:
            glyph = "f" if enemy.components[TacticalState].role == "flank" else "s"
            renderer.draw_actor(nav.to_tile(*enemy.components[WorldPosition].point), glyph,
                                (230, 80, 80), origin, dest)
        renderer.draw_actor(nav.to_tile(*sim.player_position), "@", (255, 255, 255), origin, dest)

        vitals = sim.player_vitals
        weapon = sim.player.components[Armament].weapon
        renderer.draw_text(0, 0, (
            f"Floor {sim.floor}  HP {vitals.hp}/{vitals.max_hp}  "
            f"{weapon.definition.name} {weapon.mag}/{weapon.reserve}  "
            f"Loot {sim.loot_remaining}  Enemies {sim.enemies_remaining}  "
            f"Exit {round(sim.exit_progress * 100)}%  Stash {len(sim.stash)}"
        ))
        renderer.draw_text(0, 1, self.message, fg=(150, 150, 150))
