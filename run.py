"""
Raidfloor — run.py
Debug viewer entry point: python run.py [seed]
"""

import sys
from pathlib import Path

from engine.loop import RaidSimulation
from engine.persistence import TomlStashStore
from ui.renderer import Renderer
from ui.screens import RaidScreen
from ui.states import Engine

DEFAULT_SEED = 1337
SESSION_DIR = Path("sessions")


def main():
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SEED
    sim = RaidSimulation(
        base_seed=seed,
        stash_store=TomlStashStore(SESSION_DIR / "stash.toml"),
        journal_path=SESSION_DIR / "raid.jsonl",
    )
    sim.journal.open_session()

    renderer = Renderer(width=96, height=68, title="Raidfloor")
    engine = Engine(renderer=renderer, initial_state=lambda e: RaidScreen(e, sim))
    engine.run()


if __name__ == "__main__":
    main()
