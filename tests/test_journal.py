"""
Raidfloor — tests/test_journal.py
Tests for the append-only raid journal.
"""

import tempfile
from pathlib import Path

from engine.combat import (
    EventBus,
    RaidEvent,
    EVT_ENEMY_FIRED,
    EVT_ENEMY_KILLED,
    EVT_ITEM_PICKED_UP,
)
from engine.journal import JournalReader, RaidJournal, score_significance


def test_significance_table():
    assert score_significance(RaidEvent(event_key=EVT_ENEMY_KILLED, source="player")) == 4
    assert score_significance(RaidEvent(event_key=EVT_ENEMY_FIRED, source="enemy_1")) == 1
    assert score_significance(RaidEvent(event_key="unknown.key", source="x")) == 1


def test_writes_significant_events_with_injected_clock():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "sessions" / "raid.jsonl"
        bus = EventBus()
        RaidJournal(bus, path, clock=lambda: (1234.0, 3))

        bus.emit(RaidEvent(event_key=EVT_ENEMY_KILLED, source="player", target="enemy_2",
                           data={"enemies_remaining": 4}))
        bus.emit(RaidEvent(event_key=EVT_ENEMY_FIRED, source="enemy_1"))
        bus.emit(RaidEvent(event_key="unknown.key", source="x"))

        entries = JournalReader(path).all_entries()
        assert len(entries) == 1
        entry = entries[0]
        assert entry["event_key"] == EVT_ENEMY_KILLED
        assert entry["sim_time_ms"] == 1234.0
        assert entry["floor"] == 3
        assert entry["target"] == "enemy_2"
        assert entry["data"] == {"enemies_remaining": 4}
        assert entry["significance"] == 4


def test_session_markers_bypass_gate():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "raid.jsonl"
        journal = RaidJournal(EventBus(), path, significance_min=5)
        journal.open_session()
        journal.close_session()

        reader = JournalReader(path)
        keys = [e["event_key"] for e in reader.session_markers()]
        assert keys == ["journal.session_opened", "journal.session_closed"]


def test_append_only_and_unique_ids():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "raid.jsonl"
        bus = EventBus()
        RaidJournal(bus, path, significance_min=1)
        for _ in range(3):
            bus.emit(RaidEvent(event_key=EVT_ENEMY_FIRED, source="enemy_1"))
        RaidJournal(EventBus(), path).open_session()

        entries = JournalReader(path).all_entries()
        assert len(entries) == 4
        assert len({e["event_id"] for e in entries}) == 4
        assert len(JournalReader(path).by_event_key(EVT_ENEMY_FIRED)) == 3


def test_detach_stops_writing():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "raid.jsonl"
        bus = EventBus()
        journal = RaidJournal(bus, path)
        bus.emit(RaidEvent(event_key=EVT_ITEM_PICKED_UP, source="player"))
        journal.detach()
        bus.emit(RaidEvent(event_key=EVT_ITEM_PICKED_UP, source="player"))

        reader = JournalReader(path)
        assert len(reader.all_entries()) == 1
        assert len(reader.by_floor(1)) == 1
        assert bus.handler_count("*") == 0


def test_detach_leaves_other_journals_subscribed():
    with tempfile.TemporaryDirectory() as tmpdir:
        first = Path(tmpdir) / "first.jsonl"
        second = Path(tmpdir) / "second.jsonl"
        bus = EventBus()
        kept = RaidJournal(bus, first)
        RaidJournal(bus, second).detach()

        bus.emit(RaidEvent(event_key=EVT_ENEMY_KILLED, source="player"))

        assert len(JournalReader(first).all_entries()) == 1
        assert JournalReader(second).all_entries() == []
        kept.detach()


def test_reader_on_missing_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert JournalReader(Path(tmpdir) / "none.jsonl").all_entries() == []
