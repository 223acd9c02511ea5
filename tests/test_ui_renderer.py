"""
Raidfloor — tests/test_ui_renderer.py
Tests for the console renderer, the turn clock and the naive movement collaborator.
"""

import math
import tempfile
from pathlib import Path

import tcod

from engine.ecs.components import WorldPosition
from engine.journal import JournalReader
from engine.loop import EnemyIntent, RaidSimulation
from engine.nav_grid import distance
from engine.tactics import Steering
from ui.renderer import Renderer
from ui.screens import PLAYER_SPEED, STEP_MS, RaidScreen, integrate_steering, shot_hits, try_move
from ui.states import Engine
from world.generator import LevelMap

ROWS = [
    "######",
    "#....#",
    "#.#..#",
    "#....#",
    "######",
]


def test_renderer_initialization():
    r = Renderer(width=80, height=50, title="Test Window")
    assert r.width == 80
    assert r.height == 50
    assert r.title == "Test Window"
    assert r.root_console.width == 80
    assert r.root_console.height == 50


def test_renderer_clear():
    r = Renderer(width=80, height=50)
    r.root_console.print(0, 0, "@")
    assert chr(r.root_console.ch[0, 0]) == "@"
    r.clear()
    assert chr(r.root_console.ch[0, 0]) == " "


def test_draw_level_glyphs():
    level = LevelMap.from_rows(ROWS, start=(1, 1), exit=(4, 3))
    r = Renderer(width=20, height=10)
    r.draw_level(level, cover_tiles=[(3, 2)])

    ch = r.root_console.ch
    assert chr(ch[0, 0]) == "#"
    assert chr(ch[2, 2]) == "#"
    assert chr(ch[1, 2]) == "."
    assert chr(ch[1, 1]) == "<"
    assert chr(ch[3, 4]) == ">"
    assert chr(ch[2, 3]) == "+"
    assert chr(ch[0, 10]) == " "


def test_draw_level_origin_and_clip():
    level = LevelMap.from_rows(ROWS, start=(1, 1), exit=(4, 3))
    r = Renderer(width=3, height=3)
    r.draw_level(level, origin=(1, 1), dest=(0, 1))

    ch = r.root_console.ch
    assert chr(ch[0, 0]) == " "
    assert chr(ch[1, 0]) == "<"
    assert chr(ch[2, 1]) == "#"


def test_draw_actor_clips():
    r = Renderer(width=10, height=5)
    r.draw_actor((2, 3), "@", (255, 255, 255))
    assert chr(r.root_console.ch[3, 2]) == "@"
    r.draw_actor((50, 50), "x", (255, 0, 0))
    r.draw_actor((4, 4), "s", (255, 0, 0), origin=(2, 2), dest=(0, 0))
    assert chr(r.root_console.ch[2, 2]) == "s"


def test_shot_hits():
    assert shot_hits((0.0, 0.0), 0.0, (100.0, 5.0))
    assert not shot_hits((0.0, 0.0), 0.0, (100.0, 40.0))
    assert shot_hits((0.0, 0.0), math.pi, (5.0, 0.0))


def test_try_move_blocks_walls():
    sim = RaidSimulation(base_seed=1337)
    origin = sim.player_position
    assert try_move(sim, origin, (1.0, 1.0)) == origin
    assert try_move(sim, origin, origin) == origin


def test_integrate_steering_moves_enemy():
    sim = RaidSimulation(base_seed=1337)
    enemy = sim.enemies[0]
    here = enemy.components[WorldPosition].point

    integrate_steering(sim, [EnemyIntent(entity=enemy, steering=Steering((0.0, 0.0), 0.0))], 100.0)
    assert enemy.components[WorldPosition].point == here

    intents = [EnemyIntent(entity=enemy, steering=Steering((1.0, 0.0), 100.0))]
    integrate_steering(sim, intents, 100.0)
    moved = enemy.components[WorldPosition].point
    target = (here[0] + 10.0, here[1])
    assert moved == (target if sim.nav.is_walkable(*sim.nav.to_tile(*target)) else here)


def _key(sym):
    return tcod.event.KeyDown(0, sym, tcod.event.Modifier.NONE)


def _engine(sim):
    return Engine(Renderer(width=40, height=20), initial_state=lambda e: RaidScreen(e, sim))


def test_engine_advances_sim_by_key_cost():
    sim = RaidSimulation(base_seed=1337)
    engine = _engine(sim)

    assert engine.handle_event(_key(tcod.event.KeySym.PERIOD)) == STEP_MS
    assert sim.now_ms == STEP_MS
    assert engine.handle_event(_key(tcod.event.KeySym.C)) == 0.0
    assert engine.active_state.show_cover
    assert sim.now_ms == STEP_MS
    assert (engine.turns, engine.elapsed_ms) == (1, STEP_MS)


def test_engine_move_key_moves_then_ticks():
    sim = RaidSimulation(base_seed=1337)
    engine = _engine(sim)
    screen = engine.active_state
    start = sim.player_position

    for sym in (tcod.event.KeySym.RIGHT, tcod.event.KeySym.LEFT,
                tcod.event.KeySym.DOWN, tcod.event.KeySym.UP):
        engine.handle_event(_key(sym))

    assert sim.now_ms == 4 * STEP_MS
    assert engine.turns == 4
    assert screen.sim.nav.is_walkable(*sim.nav.to_tile(*sim.player_position))
    assert distance(start, sim.player_position) <= 2 * PLAYER_SPEED * STEP_MS / 1000.0


def test_engine_quit_closes_journal_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "raid.jsonl"
        sim = RaidSimulation(base_seed=1337, journal_path=path)
        sim.journal.open_session()
        engine = _engine(sim)

        engine.handle_event(tcod.event.Quit())
        assert not engine.running
        assert engine.handle_event(_key(tcod.event.KeySym.PERIOD)) == 0.0
        assert sim.now_ms == 0.0
        engine.quit()

        keys = [e["event_key"] for e in JournalReader(path).session_markers()]
        assert keys == ["journal.session_opened", "journal.session_closed"]


def test_escape_key_quits():
    sim = RaidSimulation(base_seed=1337)
    engine = _engine(sim)
    engine.handle_event(_key(tcod.event.KeySym.ESCAPE))
    assert not engine.running
