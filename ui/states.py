"""
Raidfloor — ui/states.py
Screen states and the turn clock that drives them.
==================================================
The viewer is turn-based: nothing moves until a key is pressed. A state's
key handlers return the simulated milliseconds that key costs (None or 0
for free actions such as toggling an overlay). The Engine then advances
the active state by that cost, so states never tick themselves.

Shutdown goes through Engine.quit() whether it comes from a key, the
window close button or an exception escaping the loop; the active state's
on_exit runs exactly once.
"""

from __future__ import annotations
from typing import Callable, Optional
import tcod

from ui.renderer import Renderer


class BaseState(tcod.event.EventDispatch[Optional[float]]):
    def __init__(self, engine: "Engine"):
        super().__init__()
        self.engine = engine

    def advance(self, dt_ms: float) -> None:
        """Run dt_ms of simulation. Called by the Engine after a costed event."""

    def on_render(self, renderer: Renderer) -> None:
        pass

    def on_exit(self) -> None:
        """Release whatever the state holds open. Called once, on leave or quit."""


class Engine:
    def __init__(self, renderer: Renderer, initial_state: Callable[["Engine"], BaseState]):
        self.renderer = renderer
        self.active_state: BaseState = initial_state(self)
        self.running = True
        self.turns = 0
        self.elapsed_ms = 0.0

    def change_state(self, new_state: BaseState) -> None:
        self.active_state.on_exit()
        self.active_state = new_state

    def quit(self) -> None:
        if not self.running:
            return
        self.running = False
        self.active_state.on_exit()

    def handle_event(self, event: tcod.event.Event) -> float:
        """Route one event to the active state; returns the sim time it consumed."""
        if isinstance(event, tcod.event.Quit):
            self.quit()
            return 0.0

        cost = self.active_state.dispatch(event)
        if not cost or not self.running:
            return 0.0
        self.active_state.advance(cost)
        self.turns += 1
        self.elapsed_ms += cost
        return cost

    def render(self) -> None:
        self.renderer.clear()
        self.active_state.on_render(self.renderer)

    def run(self) -> None:
        with tcod.context.new_terminal(
            self.renderer.width,
            self.renderer.height,
            title=self.renderer.title,
            vsync=True,
        ) as context:
            self.renderer.context = context
            try:
                while self.running:
                    self.render()
                    self.renderer.present(context)
                    for event in tcod.event.wait():
                        self.handle_event(context.convert_event(event))
                        if not self.running:
                            break
            finally:
                self.quit()
