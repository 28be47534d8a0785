"""
Typed action records decoded from replay logs.

Actions are immutable. Each variant carries only the fields relevant to its
action code. Nested actions (the move inside an attack, the game over inside an
elimination) are owned by their parent action.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class UnitPosition:
    """One node of a movement path."""
    x: int
    y: int
    unit_visible: bool = True


@dataclass(frozen=True)
class ReplayUnit:
    """
    Snapshot of a unit as reported by the game server.

    Fields left as None were not present in the log and must not overwrite
    the current game state when applied.
    """
    id: int
    player_id: Optional[int] = None
    name: Optional[str] = None
    hit_points: Optional[float] = None
    fuel: Optional[int] = None
    ammo: Optional[int] = None
    times_moved: Optional[int] = None
    sub_has_dived: Optional[bool] = None
    being_carried: Optional[bool] = None
    position: Optional[Tuple[int, int]] = None
    cargo_units: Tuple[int, ...] = field(default_factory=tuple)

    def with_hit_points(self, hit_points: float) -> "ReplayUnit":
        return replace(self, hit_points=hit_points)


@dataclass(frozen=True)
class COPChange:
    """Power meter values for one player after combat."""
    player_id: int
    power: int
    tag_power: Optional[int] = None


@dataclass(frozen=True)
class AttackCOPChanges:
    attacker: COPChange
    defender: COPChange


@dataclass(frozen=True)
class MoveUnitAction:
    unit: ReplayUnit
    path: Tuple[UnitPosition, ...]
    distance: int
    trapped: bool = False
    code: str = field(default="Move", init=False)


@dataclass(frozen=True)
class AttackUnitAction:
    attacker: ReplayUnit
    defender: ReplayUnit
    cop_changes: AttackCOPChanges
    move: Optional[MoveUnitAction] = None
    gained_funds: Optional[int] = None
    code: str = field(default="Fire", init=False)


@dataclass(frozen=True)
class GameOverAction:
    day: int
    end_date: str
    message: str
    winners: Tuple[int, ...] = field(default_factory=tuple)
    losers: Tuple[int, ...] = field(default_factory=tuple)
    code: str = field(default="GameOver", init=False)


@dataclass(frozen=True)
class EliminatedAction:
    caused_by_player_id: int
    eliminated_player_id: int
    message: str
    game_over: Optional[GameOverAction] = None
    code: str = field(default="Eliminated", init=False)


@dataclass(frozen=True)
class PowerAction:
    player_id: int
    co_name: str
    power_type: str
    power_name: str
    attack_first: bool = False
    code: str = field(default="Power", init=False)

    @property
    def is_super_power(self) -> bool:
        return self.power_type == "S"


@dataclass(frozen=True)
class BuildUnitAction:
    unit: ReplayUnit
    code: str = field(default="Build", init=False)


@dataclass(frozen=True)
class EndTurnAction:
    next_player_id: int
    next_funds: Optional[int]
    next_day: int
    next_weather: Optional[str] = None
    code: str = field(default="End", init=False)


Action = Union[
    MoveUnitAction,
    AttackUnitAction,
    EliminatedAction,
    GameOverAction,
    PowerAction,
    BuildUnitAction,
    EndTurnAction,
]

ACTION_TYPES = (
    MoveUnitAction,
    AttackUnitAction,
    EliminatedAction,
    GameOverAction,
    PowerAction,
    BuildUnitAction,
    EndTurnAction,
)
