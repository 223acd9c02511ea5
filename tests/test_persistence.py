"""
Raidfloor — tests/test_persistence.py
Tests for stash stores.
"""

import tempfile
from pathlib import Path

import pytest

from engine.persistence import InMemoryStashStore, TomlStashStore


def test_in_memory_store_copies():
    store = InMemoryStashStore(["Scrap"])
    loaded = store.load()
    loaded.append("Food")
    assert store.load() == ["Scrap"]

    stash = ["Medkit"]
    store.save(stash)
    stash.append("Battery")
    assert store.load() == ["Medkit"]


def test_toml_store_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "saves" / "stash.toml"
        store = TomlStashStore(path)
        items = ["Scrap", 'Odd "quoted" name', "Café", "back\\slash"]
        store.save(items)
        assert path.read_text(encoding="utf-8").startswith("stash = [")
        assert TomlStashStore(path).load() == items


def test_toml_store_missing_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert TomlStashStore(Path(tmpdir) / "nope.toml").load() == []


def test_toml_store_corrupt_file(capsys):
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        path.write_text("stash = [", encoding="utf-8")
        assert TomlStashStore(path).load() == []
        assert "[TomlStashStore]" in capsys.readouterr().err


def test_toml_store_drops_non_strings():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        path.write_text('stash = ["Scrap", 3, "Food", true]\n', encoding="utf-8")
        assert TomlStashStore(path).load() == ["Scrap", "Food"]

        path.write_text('stash = "Scrap"\n', encoding="utf-8")
        assert TomlStashStore(path).load() == []


def test_toml_store_empty_stash():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        TomlStashStore(path).save([])
        assert TomlStashStore(path).load() == []


def test_toml_store_control_characters_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        items = ["Rub\x7fber", "Tab\tbed", "Bell\x07", "Null\x00"]
        TomlStashStore(path).save(items)
        assert path.read_text(encoding="utf-8").isascii()
        assert TomlStashStore(path).load() == items


def test_toml_store_failed_save_keeps_previous_stash():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        store = TomlStashStore(path)
        store.save(["Scrap", "Food"])

        with pytest.raises(ValueError):
            store.save(["Scrap", "Broken\ud800"])

        assert store.load() == ["Scrap", "Food"]
        assert not (Path(tmpdir) / "stash.toml.tmp").exists()


def test_toml_store_overwrites_existing_save():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "stash.toml"
        store = TomlStashStore(path)
        store.save(["Scrap", "Food", "Medkit"])
        store.save(["Battery"])
        assert store.load() == ["Battery"]
        assert [p.name for p in Path(tmpdir).iterdir()] == ["stash.toml"]
