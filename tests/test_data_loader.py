"""
Raidfloor — tests/test_data_loader.py
Tests for the TOML-backed tuning loaders.
"""

import pytest
from pydantic import ValidationError

from engine.data_loader import (
    TacticsDef,
    get_enemy_weapon_defs,
    get_loot_table,
    get_tactics_def,
    get_weapon_def,
)


def test_tactics_file_matches_schema_defaults():
    loaded = get_tactics_def()
    assert loaded == TacticsDef()
    assert loaded.spread_multiplier == {"suppress": 1.25, "flank": 1.9}
    assert loaded.threat_window_ms == 850.0
    assert loaded.path_replan_ms == 520.0


def test_tactics_is_cached_and_frozen():
    assert get_tactics_def() is get_tactics_def()
    with pytest.raises(ValidationError):
        get_tactics_def().sight_range = 10.0


def test_load_weapons():
    ar = get_weapon_def("ar")
    assert ar.name == "Assault Rifle"
    assert ar.ammo_type == "5.56"
    assert ar.mag_size == 30
    assert ar.enemy_damage == 7

    sniper = get_weapon_def("sniper")
    assert sniper.range == 980
    assert sniper.enemy_reserve == 20


def test_missing_weapon_raises():
    with pytest.raises(FileNotFoundError):
        get_weapon_def("railgun")


def test_enemy_weapon_pool():
    pool = get_enemy_weapon_defs()
    assert [w.id for w in pool] == ["pistol", "ar", "sniper"]
    assert [w.spawn_weight for w in pool] == [0.55, 0.33, 0.12]
    assert [w.enemy_reserve for w in pool] == [36, 90, 20]


def test_loot_table():
    table = get_loot_table()
    assert table.loot_names == ["Scrap", "Medkit", "Artifact", "Food", "Battery", "Document"]
    assert (table.loot_base, table.loot_span) == (6, 4)
    assert (table.ammo_base, table.ammo_span) == (6, 6)
    assert [(a.ammo_type, a.min_amount, a.span) for a in table.ammo] == [
        ("9mm", 10, 20), ("5.56", 18, 36), ("7.62", 5, 10),
    ]
