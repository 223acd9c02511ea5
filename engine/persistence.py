"""
Raidfloor — engine/persistence.py
Stash Persistence: the only state that survives between runs.
=============================================================
Version:     0.2  (Phase 2 — raid loop)
Stack:       Python 3.12 | tomllib
Status:      Production-ready.

The stash is a flat list of loot names. It is written as a single TOML
array (stash = ["Scrap", ...]) and read back with tomllib. A missing or
unreadable save is an empty stash, never an error.
"""

from __future__ import annotations

import json
import sys
import tomllib
from pathlib import Path
from typing import List, Protocol


class StashStore(Protocol):
    def load(self) -> List[str]: ...
    def save(self, stash: List[str]) -> None: ...


class InMemoryStashStore:
    """Process-local store. Used by tests and the headless simulation."""

    def __init__(self, stash: List[str] | None = None) -> None:
        self._stash: List[str] = list(stash or [])

    def load(self) -> List[str]:
        return list(self._stash)

    def save(self, stash: List[str]) -> None:
        self._stash = list(stash)


class TomlStashStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> List[str]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError, OSError) as exc:
            print(f"[TomlStashStore] Unreadable save '{self.path}': {exc}", file=sys.stderr)
            return []

        stash = data.get("stash", [])
        if not isinstance(stash, list):
            return []
        return [item for item in stash if isinstance(item, str)]

    def save(self, stash: List[str]) -> None:
        """
        Replace the save atomically. The payload is rendered and re-parsed
        before anything on disk is touched, so an unencodable name raises
        ValueError and the previous stash survives.
        """
        text = self._render(stash)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        scratch = self.path.with_name(self.path.name + ".tmp")
        scratch.write_text(text, encoding="utf-8")
        scratch.replace(self.path)

    @staticmethod
    def _render(stash: List[str]) -> str:
        # ASCII-only JSON escapes are valid TOML basic strings, control
        # characters and DEL included.
        items = ", ".join(json.dumps(item, ensure_ascii=True) for item in stash)
        text = f"stash = [{items}]\n"
        try:
            parsed = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Stash is not representable as TOML: {exc}") from exc
        if parsed.get("stash") != list(stash):
            raise ValueError("Stash did not survive a TOML round trip.")
        return text
