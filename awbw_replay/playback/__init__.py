"""
Playback of decoded matches against a game state.

Playback is cooperative: actions run as sequences of wait points and the
driver suspends at each one until resumed.
"""

from .driver import DriverState, PlaybackDriver
from .performers import PERFORMERS, WaitPoint, defender_strikes_first, perform, undo
from .state import GameState, InMemoryGameState, UnitState

__all__ = [
    "DriverState",
    "PlaybackDriver",
    "PERFORMERS",
    "WaitPoint",
    "defender_strikes_first",
    "perform",
    "undo",
    "GameState",
    "InMemoryGameState",
    "UnitState",
]
