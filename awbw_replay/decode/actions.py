"""
Built-in action decoders.

One pure function per action code. Each checks the fragment's key set,
resolves per-viewer branches against the turn context and dispatches embedded
actions back through the registry.
"""

from typing import Any, Dict

from ..core.actions import (
    AttackCOPChanges,
    AttackUnitAction,
    BuildUnitAction,
    EliminatedAction,
    EndTurnAction,
    GameOverAction,
    MoveUnitAction,
    PowerAction,
)
from ..core.errors import DecodeError, VisionError
from ..core.models import ReplayContext, TurnContext
from ..core.registry import ActionRegistry
from .helpers import (
    as_int,
    check_keys,
    optional_int,
    parse_cop_change,
    parse_path,
    parse_unit,
    player_specific,
)

ACTION_KEY = "action"
UNKNOWN_ATTACKER = "?"

# (CO name, power type) pairs whose power lets the owner strike first in combat.
ATTACK_FIRST_POWERS = {
    ("Sonja", "S"),
}

POWER_TYPES = ("Y", "S")


def decode_move(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> MoveUnitAction:
    check_keys(fragment, {"unit", "paths", "dist", "trapped"}, {ACTION_KEY, "discovered"}, "Move")

    unit = parse_unit(player_specific(fragment["unit"], turn_ctx, "Move.unit"), "Move.unit")
    path = parse_path(player_specific(fragment["paths"], turn_ctx, "Move.paths"), "Move.paths")

    return MoveUnitAction(
        unit=unit,
        path=path,
        distance=as_int(fragment["dist"], "Move.dist"),
        trapped=bool(fragment["trapped"]),
    )


def decode_fire(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> AttackUnitAction:
    check_keys(fragment, {"Fire"}, {ACTION_KEY, "Move"}, "Fire")

    move = None
    move_data = fragment.get("Move")
    if isinstance(move_data, dict):
        move = registry.decode_nested(MoveUnitAction, move_data, replay_ctx, turn_ctx)
    elif move_data not in (None, []):
        raise DecodeError(f"Fire.Move must be an object or empty, got {move_data!r}")

    attack_data = fragment["Fire"]
    check_keys(attack_data, {"combatInfoVision", "copValues"}, {ACTION_KEY}, "Fire.Fire")

    vision = player_specific(attack_data["combatInfoVision"], turn_ctx, "Fire.combatInfoVision")
    check_keys(vision, {"hasVision"}, {"combatInfo"}, "Fire.combatInfoVision")
    if not vision["hasVision"]:
        raise VisionError(
            f"Replay {replay_ctx.replay_id} contains a fight player "
            f"{turn_ctx.active_player_id} has no vision on"
        )

    combat = vision.get("combatInfo")
    check_keys(combat, {"attacker", "defender"}, {"gainedFunds"}, "Fire.combatInfo")

    if combat["attacker"] == UNKNOWN_ATTACKER:
        if move is None:
            raise DecodeError("Fire has an unknown attacker and no movement to infer it from")
        attacker = move.unit.with_hit_points(0)
    else:
        attacker = parse_unit(combat["attacker"], "Fire.attacker")
    defender = parse_unit(combat["defender"], "Fire.defender")

    cop_values = attack_data["copValues"]
    check_keys(cop_values, {"attacker", "defender"}, (), "Fire.copValues")

    return AttackUnitAction(
        attacker=attacker,
        defender=defender,
        cop_changes=AttackCOPChanges(
            attacker=parse_cop_change(cop_values["attacker"], "Fire.copValues.attacker"),
            defender=parse_cop_change(cop_values["defender"], "Fire.copValues.defender"),
        ),
        move=move,
        gained_funds=optional_int(combat.get("gainedFunds"), "Fire.gainedFunds"),
    )


def decode_game_over(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> GameOverAction:
    check_keys(fragment, {"day", "gameEndDate", "message"}, {ACTION_KEY, "winners", "losers"}, "GameOver")

    return GameOverAction(
        day=as_int(fragment["day"], "GameOver.day"),
        end_date=str(fragment["gameEndDate"]),
        message=str(fragment["message"]),
        winners=tuple(as_int(p, "GameOver.winners") for p in fragment.get("winners") or ()),
        losers=tuple(as_int(p, "GameOver.losers") for p in fragment.get("losers") or ()),
    )


def decode_eliminated(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> EliminatedAction:
    check_keys(fragment, {"eliminatedByPId", "playerId", "message"}, {ACTION_KEY, "GameOver"}, "Eliminated")

    game_over = None
    if "GameOver" in fragment:
        game_over = registry.decode_nested(
            GameOverAction, fragment["GameOver"], replay_ctx, turn_ctx, code="GameOver"
        )

    return EliminatedAction(
        caused_by_player_id=as_int(fragment["eliminatedByPId"], "Eliminated.eliminatedByPId"),
        eliminated_player_id=as_int(fragment["playerId"], "Eliminated.playerId"),
        message=str(fragment["message"]),
        game_over=game_over,
    )


def decode_power(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> PowerAction:
    check_keys(
        fragment,
        {"playerID", "coName", "coPower", "powerName"},
        {ACTION_KEY, "playersCOP", "weather", "global", "coValue", "unitReplace", "unitAdd", "tagged"},
        "Power",
    )

    power_type = fragment["coPower"]
    if power_type not in POWER_TYPES:
        raise DecodeError(f"Power.coPower must be one of {POWER_TYPES}, got {power_type!r}")
    co_name = str(fragment["coName"])

    return PowerAction(
        player_id=as_int(fragment["playerID"], "Power.playerID"),
        co_name=co_name,
        power_type=power_type,
        power_name=str(fragment["powerName"]),
        attack_first=(co_name, power_type) in ATTACK_FIRST_POWERS,
    )


def decode_build(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> BuildUnitAction:
    check_keys(fragment, {"newUnit"}, {ACTION_KEY, "discovered"}, "Build")
    unit = parse_unit(player_specific(fragment["newUnit"], turn_ctx, "Build.newUnit"), "Build.newUnit")
    return BuildUnitAction(unit=unit)


def decode_end_turn(
    fragment: Dict[str, Any], replay_ctx: ReplayContext, turn_ctx: TurnContext, registry: ActionRegistry
) -> EndTurnAction:
    check_keys(fragment, {"updatedInfo"}, {ACTION_KEY}, "End")

    info = fragment["updatedInfo"]
    check_keys(
        info,
        {"event", "nextPId", "nextFunds", "day"},
        {"nextTurn", "nextWeather", "supplied", "repaired", "nextTimer"},
        "End.updatedInfo",
    )

    weather = info.get("nextWeather")
    return EndTurnAction(
        next_player_id=as_int(info["nextPId"], "End.nextPId"),
        next_funds=optional_int(player_specific(info["nextFunds"], turn_ctx, "End.nextFunds"), "End.nextFunds"),
        next_day=as_int(info["day"], "End.day"),
        next_weather=str(weather) if weather is not None else None,
    )


DECODERS = {
    "Move": decode_move,
    "Fire": decode_fire,
    "GameOver": decode_game_over,
    "Eliminated": decode_eliminated,
    "Power": decode_power,
    "Build": decode_build,
    "End": decode_end_turn,
}


def register_decoders(registry: ActionRegistry) -> None:
    """Register every built-in decoder."""
    for code, decoder in DECODERS.items():
        registry.register(code, decoder)
