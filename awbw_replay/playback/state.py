"""
Game state consumed by the playback driver.

The driver only mutates state through the GameState interface; the
presentation layer owns the real implementation. InMemoryGameState is a
plain reference implementation used by the CLI and tests.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..core.actions import PowerAction, ReplayUnit, UnitPosition
from ..core.errors import PlaybackError


@dataclass
class UnitState:
    """Mutable unit on the board."""
    unit_id: int
    owner_id: Optional[int] = None
    name: Optional[str] = None
    hit_points: int = 10
    fuel: int = 0
    ammo: int = 0
    can_move: bool = True
    dived: bool = False
    being_carried: bool = False
    position: Optional[Tuple[int, int]] = None
    cargo: Set[int] = field(default_factory=set)

    def apply(self, unit: ReplayUnit) -> None:
        """
        Overwrite fields present in the snapshot; absent (None) fields keep
        their current value. Hit points round up to whole display points.
        """
        if unit.id != self.unit_id:
            raise PlaybackError(f"Snapshot for unit {unit.id} applied to unit {self.unit_id}")
        if unit.player_id is not None:
            self.owner_id = unit.player_id
        if unit.name is not None:
            self.name = unit.name
        if unit.hit_points is not None:
            self.hit_points = math.ceil(unit.hit_points)
        if unit.fuel is not None:
            self.fuel = unit.fuel
        if unit.ammo is not None:
            self.ammo = unit.ammo
        if unit.times_moved is not None:
            self.can_move = unit.times_moved == 0
        if unit.sub_has_dived is not None:
            self.dived = unit.sub_has_dived
        if unit.being_carried is not None:
            self.being_carried = unit.being_carried
        if unit.position is not None:
            self.position = unit.position
        self.cargo = set(unit.cargo_units)

    @classmethod
    def from_replay_unit(cls, unit: ReplayUnit) -> "UnitState":
        state = cls(unit_id=unit.id)
        state.apply(unit)
        return state


class GameState(ABC):
    """Mutable board, unit and player state driven by playback."""

    @abstractmethod
    def get_unit(self, unit_id: int) -> Optional[UnitState]:
        ...

    def require_unit(self, unit_id: int) -> UnitState:
        unit = self.get_unit(unit_id)
        if unit is None:
            raise PlaybackError(f"Unit {unit_id} not found in game state")
        return unit

    @abstractmethod
    def add_unit(self, unit: ReplayUnit) -> UnitState:
        ...

    @abstractmethod
    def delete_unit(self, unit_id: int) -> None:
        ...

    @abstractmethod
    def move_unit(self, unit_id: int, path: Tuple[UnitPosition, ...]) -> None:
        ...

    @abstractmethod
    def activate_power(self, power: PowerAction) -> None:
        ...

    @abstractmethod
    def active_power(self, player_id: int) -> Optional[PowerAction]:
        ...

    @abstractmethod
    def clear_powers(self, player_id: int) -> None:
        ...

    @abstractmethod
    def set_power_meter(self, player_id: int, power: int, tag_power: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def start_turn(self, player_id: int, day: int, funds: Optional[int]) -> None:
        ...

    @abstractmethod
    def eliminate_player(self, player_id: int) -> None:
        ...

    @abstractmethod
    def end_game(self, winners: Tuple[int, ...], losers: Tuple[int, ...]) -> None:
        ...


class InMemoryGameState(GameState):
    def __init__(self, units: Optional[List[ReplayUnit]] = None) -> None:
        self.units: Dict[int, UnitState] = {}
        self.powers: Dict[int, PowerAction] = {}
        self.power_meters: Dict[int, Tuple[int, Optional[int]]] = {}
        self.funds: Dict[int, int] = {}
        self.eliminated: Set[int] = set()
        self.active_player_id: Optional[int] = None
        self.day = 0
        self.game_over = False
        self.winners: Tuple[int, ...] = ()
        self.losers: Tuple[int, ...] = ()
        for unit in units or []:
            self.add_unit(unit)

    def get_unit(self, unit_id: int) -> Optional[UnitState]:
        return self.units.get(unit_id)

    def add_unit(self, unit: ReplayUnit) -> UnitState:
        if unit.id in self.units:
            raise PlaybackError(f"Unit {unit.id} already exists")
        state = UnitState.from_replay_unit(unit)
        self.units[unit.id] = state
        return state

    def delete_unit(self, unit_id: int) -> None:
        unit = self.require_unit(unit_id)
        for cargo_id in unit.cargo:
            self.units.pop(cargo_id, None)
        del self.units[unit_id]

    def move_unit(self, unit_id: int, path: Tuple[UnitPosition, ...]) -> None:
        unit = self.require_unit(unit_id)
        if path:
            unit.position = (path[-1].x, path[-1].y)

    def activate_power(self, power: PowerAction) -> None:
        self.powers[power.player_id] = power

    def active_power(self, player_id: int) -> Optional[PowerAction]:
        return self.powers.get(player_id)

    def clear_powers(self, player_id: int) -> None:
        self.powers.pop(player_id, None)

    def set_power_meter(self, player_id: int, power: int, tag_power: Optional[int] = None) -> None:
        self.power_meters[player_id] = (power, tag_power)

    def start_turn(self, player_id: int, day: int, funds: Optional[int]) -> None:
        self.active_player_id = player_id
        self.day = day
        if funds is not None:
            self.funds[player_id] = funds
        for unit in self.units.values():
            if unit.owner_id == player_id:
                unit.can_move = True

    def eliminate_player(self, player_id: int) -> None:
        self.eliminated.add(player_id)
        for unit_id in [u.unit_id for u in self.units.values() if u.owner_id == player_id]:
            self.units.pop(unit_id, None)

    def end_game(self, winners: Tuple[int, ...], losers: Tuple[int, ...]) -> None:
        self.game_over = True
        self.winners = winners
        self.losers = losers
