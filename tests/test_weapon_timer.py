"""
Raidfloor — tests/test_weapon_timer.py
Tests for the weapon fire/reload timer state machine.
"""

from engine.combat import (
    can_shoot,
    finish_reload_if_due,
    fire,
    make_weapon_state,
    start_reload,
)
from engine.data_loader import get_weapon_def


def _pistol(reserve=36):
    return make_weapon_state(get_weapon_def("pistol"), reserve)


def test_fresh_weapon_is_full_and_ready():
    ws = _pistol()
    assert ws.mag == 12
    assert ws.reserve == 36
    assert not ws.is_reloading
    assert can_shoot(ws, 0.0)


def test_fire_consumes_round_and_sets_delay():
    ws = _pistol()
    assert fire(ws, 0.0)
    assert ws.mag == 11
    assert ws.next_shot_at == 150
    assert not can_shoot(ws, 100.0)
    assert not fire(ws, 100.0)
    assert ws.mag == 11
    assert can_shoot(ws, 150.0)


def test_fire_extra_delay():
    ws = _pistol()
    fire(ws, 1000.0, extra_delay_ms=30)
    assert ws.next_shot_at == 1180.0


def test_reload_refusals():
    ws = _pistol()
    assert not start_reload(ws, 0.0)          # full

    fire(ws, 0.0)
    assert start_reload(ws, 200.0)
    assert not start_reload(ws, 300.0)        # already reloading

    empty = _pistol(reserve=0)
    fire(empty, 0.0)
    assert not start_reload(empty, 200.0)     # no reserve


def test_reload_completes_when_due():
    ws = _pistol()
    fire(ws, 0.0)
    start_reload(ws, 200.0)
    assert ws.reloading_until == 1100.0
    assert not can_shoot(ws, 500.0)

    assert not finish_reload_if_due(ws, 1000.0)
    assert ws.is_reloading

    assert finish_reload_if_due(ws, 1100.0)
    assert ws.mag == 12
    assert ws.reserve == 35
    assert not ws.is_reloading
    assert not finish_reload_if_due(ws, 1200.0)


def test_reload_moves_only_what_reserve_holds():
    ws = _pistol(reserve=5)
    ws.mag = 0
    assert ws.out_of_ammo is False
    assert not can_shoot(ws, 0.0)

    start_reload(ws, 0.0)
    finish_reload_if_due(ws, 900.0)
    assert ws.mag == 5
    assert ws.reserve == 0

    ws.mag = 0
    assert ws.out_of_ammo
