"""
Raidfloor — engine/journal.py
Raid Journal: append-only JSONL record of what happened on each floor.
======================================================================
Version:     0.2  (Phase 2 — raid loop)
Stack:       Python 3.12 | stdlib json | bespoke EventBus
Status:      Production-ready. No gameplay logic here.

Architecture notes
------------------
- RaidJournal is a PASSIVE wildcard subscriber. It never emits events.
- Append-only JSONL. Written entries are never rewritten.
- Significance gate (int 1–5): events below JOURNAL_SIGNIFICANCE_MIN are
  discarded silently.
- Simulation time and floor are injected through a clock callable. The
  journal never reads the wall clock.

Significance Scoring Reference (JOURNAL_SIGNIFICANCE_MIN = 2)
-------------------------------------------------------------
  1 — per-tick noise (exit progress, goal changes, enemy shots, reloads)
  2 — standard combat (damage taken or dealt, pickups)
  3 — notable (locked exit, level entered)
  4 — significant (enemy killed, player died, floor advanced)

Session Markers
---------------
  "journal.session_opened" and "journal.session_closed" are written
  unconditionally via open_session() / close_session().
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from engine.combat import (
    RaidEvent,
    EventBus,
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
)

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

JOURNAL_SIGNIFICANCE_MIN: int = 2
SESSION_MARKER_SIGNIFICANCE: int = 5

EVT_SESSION_OPENED = "journal.session_opened"
EVT_SESSION_CLOSED = "journal.session_closed"

_SIGNIFICANCE_TABLE: Dict[str, int] = {
    EVT_LEVEL_EXIT_PROGRESS: 1,
    EVT_ENEMY_GOAL_CHANGED:  1,
    EVT_ENEMY_FIRED:         1,
    EVT_ENEMY_RELOADING:     1,

    EVT_PLAYER_DAMAGED:      2,
    EVT_ENEMY_DAMAGED:       2,
    EVT_ITEM_PICKED_UP:      2,

    EVT_LEVEL_EXIT_LOCKED:   3,
    EVT_LEVEL_ENTERED:       3,

    EVT_ENEMY_KILLED:        4,
    EVT_PLAYER_DIED:         4,
    EVT_LEVEL_ADVANCED:      4,
}

# (sim_time_ms, floor)
ClockFn = Callable[[], Tuple[float, int]]


def _zero_clock() -> Tuple[float, int]:
    return (0.0, 1)


def score_significance(event: RaidEvent) -> int:
    """Table lookup. Unknown keys score 1 and fall below the default gate."""
    return _SIGNIFICANCE_TABLE.get(event.event_key, 1)


@dataclass(frozen=True)
class JournalEntry:
    event_id: str                       # UUID4 string
    sim_time_ms: float
    floor: int
    event_key: str
    source: str
    target: Optional[str]
    data: Dict[str, Any]
    significance: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id":     self.event_id,
            "sim_time_ms":  self.sim_time_ms,
            "floor":        self.floor,
            "event_key":    self.event_key,
            "source":       self.source,
            "target":       self.target,
            "data":         self.data,
            "significance": self.significance,
        }


class RaidJournal:
    """
    Wildcard subscriber that writes qualifying events to an append-only
    JSONL file.

    Usage:
        bus = EventBus()
        journal = RaidJournal(bus, Path("sessions/raid.jsonl"), clock=sim.clock)
        journal.open_session()
        # ... ticks ...
        journal.close_session()
    """

    def __init__(
        self,
        bus: EventBus,
        journal_path: Path,
        clock: ClockFn = _zero_clock,
        significance_min: int = JOURNAL_SIGNIFICANCE_MIN,
    ) -> None:
        self.bus = bus
        self.journal_path = journal_path
        self.clock = clock
        self.significance_min = significance_min

        self.journal_path.parent.mkdir(parents=True, exist_ok=True)
        bus.subscribe("*", self._on_event)

    def open_session(self) -> None:
        self._write(RaidEvent(event_key=EVT_SESSION_OPENED, source="system"),
                    SESSION_MARKER_SIGNIFICANCE)

    def close_session(self) -> None:
        self._write(RaidEvent(event_key=EVT_SESSION_CLOSED, source="system"),
                    SESSION_MARKER_SIGNIFICANCE)

    def detach(self) -> None:
        self.bus.unsubscribe("*", self._on_event)

    def _on_event(self, event: RaidEvent) -> None:
        significance = score_significance(event)
        if significance < self.significance_min:
            return
        self._write(event, significance)

    def _write(self, event: RaidEvent, significance: int) -> JournalEntry:
        sim_time_ms, floor = self.clock()
        entry = JournalEntry(
            event_id=str(uuid.uuid4()),
            sim_time_ms=sim_time_ms,
            floor=floor,
            event_key=event.event_key,
            source=event.source,
            target=event.target,
            data=dict(event.data),
            significance=significance,
        )
        with open(self.journal_path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
        return entry


class JournalReader:
    """Read-only query interface for a journal JSONL file."""

    def __init__(self, journal_path: Path) -> None:
        self.journal_path = journal_path

    def all_entries(self) -> List[Dict[str, Any]]:
        if not self.journal_path.exists():
            return []
        entries = []
        with open(self.journal_path, "r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries

    def by_event_key(self, event_key: str) -> List[Dict[str, Any]]:
        return [e for e in self.all_entries() if e.get("event_key") == event_key]

    def by_floor(self, floor: int) -> List[Dict[str, Any]]:
        return [e for e in self.all_entries() if e.get("floor") == floor]

    def session_markers(self) -> List[Dict[str, Any]]:
        return [
            e for e in self.all_entries()
            if e.get("event_key", "").startswith("journal.session")
        ]
