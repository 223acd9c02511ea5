"""
Raidfloor — engine/data_loader.py
JIT Data Loaders for TOML tuning data powered by Pydantic.
==========================================================
Version:     0.3  (Phase 2 — raid tuning)
Stack:       Python 3.12 | Pydantic v2 | tomllib
Status:      Core data validation and loading layer.

Optional tables (tactics, loot) fall back to their schema defaults when the
file is missing. Named definitions (weapons) raise FileNotFoundError.
"""

import tomllib
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# ================================================================================
# SCHEMAS
# ================================================================================

class TacticsDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Perception
    sight_range: float = 1200.0

    # Threat response
    threat_window_ms: float = 850.0
    cover_radius: float = 520.0
    cover_enemy_weight: float = 0.8
    cover_threat_weight: float = 0.15

    # Flanking
    flank_radius: float = 600.0
    flank_min_angle_deg: float = 60.0
    flank_threat_weight: float = 0.25
    flank_angle_weight: float = 30.0

    # Suppression
    suppress_retreat_within: float = 260.0
    suppress_advance_beyond: float = 520.0
    suppress_retreat_offset: float = 200.0

    # Re-planning and movement
    goal_reached_radius: float = 20.0
    goal_replan_ms: float = 800.0
    path_replan_ms: float = 520.0
    waypoint_radius: float = 10.0
    move_speed: float = 175.0

    # Engagement
    fire_jitter_ms: int = 60
    spread_multiplier: Dict[str, float] = Field(
        default_factory=lambda: {"suppress": 1.25, "flank": 1.9}
    )


class WeaponDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    ammo_type: str
    mag_size: int
    fire_delay_ms: int
    reload_ms: int
    bullet_speed: float
    bullet_life_ms: int
    damage: int
    enemy_damage: int
    spread_rad: float
    range: float
    enemy_reserve: int = 0
    spawn_weight: float = 0.0


class AmmoPickupDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    ammo_type: str
    weight: float
    min_amount: int
    span: int


class LootTableDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    loot_names: List[str] = Field(
        default_factory=lambda: ["Scrap", "Medkit", "Artifact", "Food", "Battery", "Document"]
    )
    loot_base: int = 6
    loot_span: int = 4
    ammo_base: int = 6
    ammo_span: int = 6
    ammo: List[AmmoPickupDef] = Field(default_factory=list)


# ================================================================================
# LOADERS & CACHE (JIT)
# ================================================================================

_TACTICS_CACHE: Optional[TacticsDef] = None
_WEAPON_CACHE: Dict[str, WeaponDef] = {}
_LOOT_CACHE: Optional[LootTableDef] = None

DATA_DIR = Path(__file__).parent.parent / "data"

ENEMY_WEAPON_IDS: Tuple[str, ...] = ("pistol", "ar", "sniper")


def get_tactics_def() -> TacticsDef:
    """Loads planner tuning. Cached globally."""
    global _TACTICS_CACHE
    if _TACTICS_CACHE is not None:
        return _TACTICS_CACHE

    path = DATA_DIR / "tactics.toml"
    if not path.exists():
        _TACTICS_CACHE = TacticsDef()
        return _TACTICS_CACHE

    with open(path, "rb") as f:
        data = tomllib.load(f)

    _TACTICS_CACHE = TacticsDef(**data.get("tactics", {}))
    return _TACTICS_CACHE


def get_weapon_def(weapon_id: str) -> WeaponDef:
    """JIT loads a weapon definition from TOML."""
    if weapon_id in _WEAPON_CACHE:
        return _WEAPON_CACHE[weapon_id]

    path = DATA_DIR / "weapons" / f"{weapon_id}.toml"
    if not path.exists():
        raise FileNotFoundError(f"Weapon definition not found: {path}")

    with open(path, "rb") as f:
        data = tomllib.load(f)

    weapon = WeaponDef(**data)
    _WEAPON_CACHE[weapon_id] = weapon
    return weapon


def get_enemy_weapon_defs() -> List[WeaponDef]:
    """Weapons enemies may spawn with, in draw order."""
    return [get_weapon_def(wid) for wid in ENEMY_WEAPON_IDS]


def get_loot_table() -> LootTableDef:
    """Loads pickup tables. Cached globally."""
    global _LOOT_CACHE
    if _LOOT_CACHE is not None:
        return _LOOT_CACHE

    path = DATA_DIR / "loot.toml"
    if not path.exists():
        _LOOT_CACHE = LootTableDef()
        return _LOOT_CACHE

    with open(path, "rb") as f:
        data = tomllib.load(f)

    _LOOT_CACHE = LootTableDef(**data)
    return _LOOT_CACHE
