"""
Raidfloor — engine/tactics.py
Tactical Planner: cover, flank and stand-off goal selection per enemy.
======================================================================
Version:     0.1  (Phase 1 — level core)
Stack:       Python 3.12 | NumPy (via NavigationGrid)
Status:      Production-ready.

Architecture notes
------------------
- The planner reads the NavigationGrid and the level's cover points and
  mutates nothing but the TacticalState it is handed.
- Evaluation order per tick: perception, threat response, role goal, path
  following. Engagement is a separate gate (engagement_ready) so movement
  never blocks firing.
- Threat response has priority: while recently damaged and in sight of the
  threat, a found cover point is the goal and role selection is skipped.
- Re-planning uses per-entity deadlines (goal_replan_at, path_replan_at)
  instead of a modulo on the clock.
- Nothing here raises on empty cover sets or unreachable goals. The planner
  degrades to holding position or advancing directly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from engine.combat import WeaponState, can_shoot
from engine.data_loader import TacticsDef, get_tactics_def
from engine.ecs.components import ROLE_FLANK, TacticalState
from engine.nav_grid import NavigationGrid, distance

Point = Tuple[float, float]

MIN_STEER_DISTANCE: float = 0.001


@dataclass(frozen=True)
class Perception:
    sees: bool
    distance: float


@dataclass(frozen=True)
class Steering:
    """Desired unit direction and speed. The movement collaborator applies it."""
    direction: Point
    speed: float

    @property
    def velocity(self) -> Point:
        return (self.direction[0] * self.speed, self.direction[1] * self.speed)

    @property
    def is_stopped(self) -> bool:
        return self.speed == 0 or self.direction == (0.0, 0.0)


STOPPED = Steering(direction=(0.0, 0.0), speed=0.0)


@dataclass(frozen=True)
class TacticalDecision:
    goal: Point
    steering: Steering
    perception: Perception
    took_cover: bool
    goal_changed: bool


def engagement_ready(perception: Perception, weapon: WeaponState, now: float) -> bool:
    """Fire gate: threat visible, inside weapon range, weapon ready."""
    return (
        perception.sees
        and perception.distance <= weapon.definition.range
        and can_shoot(weapon, now)
    )


class TacticalPlanner:
    """
    Per-level goal selection and path following for every enemy.
    One instance is shared by all enemies of a level; it holds no per-enemy state.
    """
    def __init__(self, nav: NavigationGrid, cover_points: Optional[Sequence[Point]] = None,
                 config: Optional[TacticsDef] = None):
        self.nav = nav
        self.cover_points: Tuple[Point, ...] = (
            tuple(cover_points) if cover_points is not None else nav.cover_points
        )
        self.config = config or get_tactics_def()
        self.flank_min_angle = math.radians(self.config.flank_min_angle_deg)

    def perceive(self, enemy: Point, threat: Point) -> Perception:
        d = distance(enemy, threat)
        sees = d <= self.config.sight_range and self.nav.line_of_sight_world(enemy, threat)
        return Perception(sees=sees, distance=d)

    # --------------------------------------------------------
    # Point selection
    # --------------------------------------------------------

    def pick_cover_point(self, enemy: Point, threat: Point,
                         radius: Optional[float] = None) -> Optional[Point]:
        """
        Closest-ish cover hidden from the threat. Minimizes
        w_enemy * d(enemy, p) - w_threat * d(p, threat) over points within radius.
        """
        cfg = self.config
        radius = cfg.cover_radius if radius is None else radius
        best: Optional[Point] = None
        best_score = math.inf

        for p in self.cover_points:
            d = distance(enemy, p)
            if d > radius:
                continue
            if self.nav.line_of_sight_world(p, threat):
                continue
            score = d * cfg.cover_enemy_weight - distance(p, threat) * cfg.cover_threat_weight
            if score < best_score:
                best, best_score = p, score
        return best

    def pick_flank_point(self, enemy: Point, threat: Point,
                         radius: Optional[float] = None) -> Optional[Point]:
        """
        Hidden cover outside the frontal arc around the enemy's current bearing
        from the threat. Maximizes
        d(enemy, p) + w_threat * d(p, threat) - w_angle * angle_delta.
        """
        cfg = self.config
        radius = cfg.flank_radius if radius is None else radius
        to_enemy = math.atan2(enemy[1] - threat[1], enemy[0] - threat[0])
        best: Optional[Point] = None
        best_score = -math.inf

        for p in self.cover_points:
            d = distance(enemy, p)
            if d > radius:
                continue
            if self.nav.line_of_sight_world(p, threat):
                continue

            bearing = math.atan2(p[1] - threat[1], p[0] - threat[0])
            delta = abs(bearing - to_enemy)
            while delta > math.pi:
                delta = abs(delta - math.pi * 2)
            if delta < self.flank_min_angle:
                continue

            score = d + distance(p, threat) * cfg.flank_threat_weight - delta * cfg.flank_angle_weight
            if score > best_score:
                best, best_score = p, score
        return best

    def role_goal(self, state: TacticalState, enemy: Point, threat: Point,
                  perception: Perception) -> Point:
        cfg = self.config
        if state.role == ROLE_FLANK:
            flank = self.pick_flank_point(enemy, threat)
            return flank if flank is not None else threat

        # Suppress: keep a stand-off distance from the threat.
        if perception.sees and perception.distance < cfg.suppress_retreat_within:
            if perception.distance <= 0:
                return enemy
            ux = (enemy[0] - threat[0]) / perception.distance
            uy = (enemy[1] - threat[1]) / perception.distance
            offset = cfg.suppress_retreat_offset
            return (enemy[0] + ux * offset, enemy[1] + uy * offset)
        if perception.sees and perception.distance > cfg.suppress_advance_beyond:
            return threat
        return enemy

    # --------------------------------------------------------
    # Per-tick update
    # --------------------------------------------------------

    def _role_goal_due(self, state: TacticalState, enemy: Point, now: float) -> bool:
        if state.goal is None:
            return True
        if distance(enemy, state.goal) < self.config.goal_reached_radius:
            return True
        return now >= state.goal_replan_at

    def follow_path(self, state: TacticalState, enemy: Point, goal: Point, now: float) -> Steering:
        """Advances along the cached path, re-deriving it when empty, exhausted or stale."""
        cfg = self.config
        if (not state.path or state.path_index >= len(state.path)
                or now >= state.path_replan_at):
            state.path = self.nav.find_path_world(enemy, goal)
            state.path_index = 0
            state.path_replan_at = now + cfg.path_replan_ms

        target = state.path[state.path_index] if state.path_index < len(state.path) else goal
        if distance(enemy, target) < cfg.waypoint_radius:
            state.path_index += 1
            if state.path_index >= len(state.path):
                return STOPPED
            target = state.path[state.path_index]

        dx = target[0] - enemy[0]
        dy = target[1] - enemy[1]
        d = max(MIN_STEER_DISTANCE, math.hypot(dx, dy))
        return Steering(direction=(dx / d, dy / d), speed=cfg.move_speed)

    def tick(self, state: TacticalState, enemy: Point, threat: Point, now: float) -> TacticalDecision:
        cfg = self.config
        perception = self.perceive(enemy, threat)
        previous_goal = state.goal
        took_cover = False

        if now - state.last_damage_at < cfg.threat_window_ms and perception.sees:
            cover = self.pick_cover_point(enemy, threat)
            if cover is not None:
                state.goal = cover
                took_cover = True

        if not took_cover and self._role_goal_due(state, enemy, now):
            state.goal = self.role_goal(state, enemy, threat, perception)
            state.goal_replan_at = now + cfg.goal_replan_ms

        goal = state.goal if state.goal is not None else enemy
        goal_changed = state.goal != previous_goal
        if goal_changed:
            state.path = []
            state.path_index = 0

        steering = self.follow_path(state, enemy, goal, now)
        return TacticalDecision(
            goal=goal,
            steering=steering,
            perception=perception,
            took_cover=took_cover,
            goal_changed=goal_changed,
        )
