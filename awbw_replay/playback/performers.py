"""
Per-action execution.

Each performer is a generator: it mutates the game state step by step and
yields a WaitPoint wherever the presentation layer has something to show
(a path to animate, a strike to play). Mutations made before a wait point are
complete and valid to display.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional

from ..core.actions import (
    Action,
    AttackUnitAction,
    BuildUnitAction,
    EliminatedAction,
    EndTurnAction,
    GameOverAction,
    MoveUnitAction,
    PowerAction,
)
from ..core.errors import PlaybackError, UnsupportedOperationError
from .state import GameState


@dataclass(frozen=True)
class WaitPoint:
    """
    Suspension boundary inside an action.

    Fields:
        kind: What the caller should wait for ("move", "strike", ...)
        action_index: Position of the action in the flattened sequence
        code: Action code of the action being performed
        detail: Kind-specific data (unit ids, path, power name)
    """
    kind: str
    action_index: int
    code: str
    detail: Dict[str, Any] = field(default_factory=dict)


Performer = Callable[[Any, GameState, int], Iterator[WaitPoint]]


def defender_strikes_first(
    attacker_power: Optional[PowerAction], defender_power: Optional[PowerAction]
) -> bool:
    """
    Combat order: the defender strikes first only when its owner has an
    attack-first power active and the attacker's owner does not.
    """
    defender_first = defender_power is not None and defender_power.attack_first
    attacker_first = attacker_power is not None and attacker_power.attack_first
    return defender_first and not attacker_first


def perform_move(action: MoveUnitAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    unit = state.require_unit(action.unit.id)
    state.move_unit(unit.unit_id, action.path)
    unit.apply(action.unit)
    yield WaitPoint(
        kind="move",
        action_index=index,
        code=action.code,
        detail={"unit_id": unit.unit_id, "path": [(p.x, p.y) for p in action.path]},
    )


def perform_attack(action: AttackUnitAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    attacker = state.require_unit(action.attacker.id)
    defender = state.require_unit(action.defender.id)

    if defender.owner_id is None:
        raise PlaybackError(f"Defending unit {defender.unit_id} has no owner")

    attacker_power = state.active_power(attacker.owner_id) if attacker.owner_id is not None else None
    defender_power = state.active_power(defender.owner_id)

    first, second = attacker, defender
    first_stats, second_stats = action.attacker, action.defender
    if defender_strikes_first(attacker_power, defender_power):
        first, second = second, first
        first_stats, second_stats = second_stats, first_stats

    if action.move is not None:
        yield from perform_move(action.move, state, index)

    yield WaitPoint(
        kind="strike",
        action_index=index,
        code=action.code,
        detail={"from": first.unit_id, "to": second.unit_id},
    )

    attacker.can_move = False
    second.apply(second_stats)

    changes = action.cop_changes
    for change in (changes.attacker, changes.defender):
        state.set_power_meter(change.player_id, change.power, change.tag_power)

    if second.hit_points <= 0:
        first.apply(first_stats)
        state.delete_unit(second.unit_id)
        return

    yield WaitPoint(
        kind="counter_strike",
        action_index=index,
        code=action.code,
        detail={"from": second.unit_id, "to": first.unit_id},
    )

    first.apply(first_stats)
    if first.hit_points <= 0:
        state.delete_unit(first.unit_id)


def perform_game_over(action: GameOverAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    state.end_game(action.winners, action.losers)
    yield WaitPoint(kind="game_over", action_index=index, code=action.code, detail={"message": action.message})


def perform_eliminated(action: EliminatedAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    state.eliminate_player(action.eliminated_player_id)
    yield WaitPoint(
        kind="elimination",
        action_index=index,
        code=action.code,
        detail={"player_id": action.eliminated_player_id, "message": action.message},
    )

    if action.game_over is not None:
        yield from perform_game_over(action.game_over, state, index)


def perform_power(action: PowerAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    state.activate_power(action)
    yield WaitPoint(
        kind="power",
        action_index=index,
        code=action.code,
        detail={"player_id": action.player_id, "power_name": action.power_name},
    )


def perform_build(action: BuildUnitAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    unit = state.add_unit(action.unit)
    unit.can_move = False
    yield WaitPoint(kind="build", action_index=index, code=action.code, detail={"unit_id": unit.unit_id})


def perform_end_turn(action: EndTurnAction, state: GameState, index: int) -> Iterator[WaitPoint]:
    # Powers last until their owner's next turn starts
    state.clear_powers(action.next_player_id)
    state.start_turn(action.next_player_id, action.next_day, action.next_funds)
    yield WaitPoint(
        kind="turn_start",
        action_index=index,
        code=action.code,
        detail={"player_id": action.next_player_id, "day": action.next_day},
    )


PERFORMERS: Dict[type, Performer] = {
    MoveUnitAction: perform_move,
    AttackUnitAction: perform_attack,
    GameOverAction: perform_game_over,
    EliminatedAction: perform_eliminated,
    PowerAction: perform_power,
    BuildUnitAction: perform_build,
    EndTurnAction: perform_end_turn,
}


def perform(action: Action, state: GameState, index: int) -> Iterator[WaitPoint]:
    performer = PERFORMERS.get(type(action))
    if performer is None:
        raise PlaybackError(f"No performer for action {type(action).__name__}")
    return performer(action, state, index)


def undo(action: Action, state: GameState) -> None:
    """
    Reverse an action's effect on state.

    No action kind defines an undo yet.

    Raises:
        UnsupportedOperationError: Always
    """
    raise UnsupportedOperationError(f"Undo is not supported for {action.code} actions")
