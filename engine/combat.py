"""
Raidfloor — engine/combat.py
Combat System: event bus, raid event keys, weapon timer state machine.
======================================================================
Version:     0.2  (Phase 2 — raid loop)
Stack:       Python 3.12 | Pydantic v2 | bespoke pub-sub
Status:      Production-ready.

Architecture notes
------------------
- EventBus is Pydantic v2–typed. All events are RaidEvent envelopes.
- The journal receives every event via wildcard subscription ("*").
- Level transitions are announced on the bus (EVT_LEVEL_ENTERED,
  EVT_LEVEL_ADVANCED); listeners are injected by subscribing, never
  through globals.
- WeaponState is a plain timer state machine. The tactical core treats
  can_shoot() as an opaque gate.

Weapon timing
-------------
  reloading_until == 0  — not reloading
  next_shot_at          — earliest sim time (ms) for the next round
  A reload refuses when already reloading, when the magazine is full, or
  when there is no reserve. Finishing moves min(need, reserve) rounds.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from engine.data_loader import WeaponDef

# ============================================================
# CANONICAL EVENT KEYS
# Never use raw strings. Add new keys here only.
# ============================================================

EVT_LEVEL_ENTERED        = "level.entered"
EVT_LEVEL_EXIT_LOCKED    = "level.exit_locked"
EVT_LEVEL_EXIT_PROGRESS  = "level.exit_progress"
EVT_LEVEL_ADVANCED       = "level.advanced"
EVT_PLAYER_DAMAGED       = "player.damaged"
EVT_PLAYER_DIED          = "player.died"
EVT_ENEMY_GOAL_CHANGED   = "enemy.goal_changed"
EVT_ENEMY_FIRED          = "enemy.fired"
EVT_ENEMY_RELOADING      = "enemy.reloading"
EVT_ENEMY_DAMAGED        = "enemy.damaged"
EVT_ENEMY_KILLED         = "enemy.killed"
EVT_ITEM_PICKED_UP       = "item.picked_up"


# ============================================================
# EVENT MODEL  (Pydantic v2)
# data dict must remain flat + JSON-serializable.
# ============================================================

class RaidEvent(BaseModel):
    """Base envelope. The journal receives these directly."""
    event_key: str
    source: str
    target: Optional[str] = None
    data: Dict[str, Any] = {}


# ============================================================
# EVENT BUS
# ============================================================

HandlerFn = Callable[[RaidEvent], None]


class EventBus:
    """
    Bespoke pub-sub, injected at construction. There is no global instance.

    Wildcard key "*" receives every emitted event (used by the journal).
    Per-handler errors are swallowed and logged to stderr so emission
    always continues and a faulty listener never fails a simulation tick.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[HandlerFn]] = {}

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        self._subscribers.setdefault(event_key, []).append(handler)

    def unsubscribe(self, event_key: str, handler: HandlerFn) -> None:
        """
        Drop every registration of handler under event_key. Bound methods
        are compared by equality: each attribute access builds a new one.
        """
        handlers = self._subscribers.get(event_key)
        if not handlers:
            return
        remaining = [h for h in handlers if h != handler]
        if remaining:
            self._subscribers[event_key] = remaining
        else:
            del self._subscribers[event_key]

    def emit(self, event: RaidEvent) -> None:
        # Snapshot so handlers may (un)subscribe while the event is delivered.
        targets = [
            *self._subscribers.get(event.event_key, ()),
            *self._subscribers.get("*", ()),
        ]
        for handler in targets:
            try:
                handler(event)
            except Exception as exc:  # noqa: BLE001
                print(
                    f"[EventBus] {type(exc).__name__} in handler for "
                    f"'{event.event_key}' from '{event.source}': {exc}",
                    file=sys.stderr,
                )

    def handler_count(self, event_key: str) -> int:
        return len(self._subscribers.get(event_key, ()))


# ============================================================
# WEAPON STATE
# ============================================================

@dataclass
class WeaponState:
    definition: WeaponDef
    mag: int
    reserve: int
    next_shot_at: float = 0.0
    reloading_until: float = 0.0

    @property
    def is_reloading(self) -> bool:
        return self.reloading_until != 0

    @property
    def out_of_ammo(self) -> bool:
        return self.mag <= 0 and self.reserve <= 0


def make_weapon_state(definition: WeaponDef, reserve: int) -> WeaponState:
    return WeaponState(definition=definition, mag=definition.mag_size, reserve=reserve)


def can_shoot(ws: WeaponState, now: float) -> bool:
    return ws.reloading_until == 0 and ws.mag > 0 and now >= ws.next_shot_at


def fire(ws: WeaponState, now: float, extra_delay_ms: float = 0.0) -> bool:
    """Consumes one round if the weapon is ready. Returns False otherwise."""
    if not can_shoot(ws, now):
        return False
    ws.mag -= 1
    ws.next_shot_at = now + ws.definition.fire_delay_ms + extra_delay_ms
    return True


def start_reload(ws: WeaponState, now: float) -> bool:
    if ws.reloading_until != 0:
        return False
    if ws.mag >= ws.definition.mag_size:
        return False
    if ws.reserve <= 0:
        return False
    ws.reloading_until = now + ws.definition.reload_ms
    return True


def finish_reload_if_due(ws: WeaponState, now: float) -> bool:
    if ws.reloading_until == 0:
        return False
    if now < ws.reloading_until:
        return False
    ws.reloading_until = 0

    need = ws.definition.mag_size - ws.mag
    take = min(need, ws.reserve)
    ws.mag += take
    ws.reserve -= take
    return True
