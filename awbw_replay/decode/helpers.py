"""
Shared fragment helpers for action decoders.

Every fragment is checked against its known keys: a key that is neither
required nor allow-listed is a decode error so new server fields are never
silently dropped.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from ..core.actions import COPChange, ReplayUnit, UnitPosition
from ..core.errors import DecodeError
from ..core.models import TurnContext

GLOBAL_VIEWER = "global"

UNIT_FIELDS = {
    "units_id",
    "units_players_id",
    "units_name",
    "units_hit_points",
    "units_fuel",
    "units_ammo",
    "units_moved",
    "units_sub_dive",
    "units_carried",
    "units_x",
    "units_y",
    "units_cargo1_units_id",
    "units_cargo2_units_id",
}

# Present in server unit records but not needed for playback.
UNIT_IGNORED_FIELDS = {
    "units_games_id",
    "units_symbol",
    "units_movement_points",
    "units_vision",
    "units_fire",
    "units_short_range",
    "units_long_range",
    "units_cost",
    "units_movement_type",
    "units_capture",
    "units_fuel_per_turn",
    "countries_code",
    "generic_id",
}


def check_keys(
    fragment: Dict[str, Any],
    required: Iterable[str],
    optional: Iterable[str] = (),
    where: str = "fragment",
) -> None:
    """
    Enforce the key set of a fragment.

    Raises:
        DecodeError: If a required key is missing or an unknown key is present
    """
    if not isinstance(fragment, dict):
        raise DecodeError(f"{where} must be a JSON object, got {type(fragment).__name__}")
    required = set(required)
    allowed = required | set(optional)

    missing = sorted(required - fragment.keys())
    if missing:
        raise DecodeError(f"{where} is missing keys: {', '.join(missing)}")

    unknown = sorted(k for k in fragment.keys() if k not in allowed)
    if unknown:
        raise DecodeError(f"{where} has unknown keys: {', '.join(unknown)}")


def player_specific(data: Any, turn_ctx: TurnContext, where: str = "fragment") -> Any:
    """
    Select the branch of a per-viewer object visible to the active player.

    Lookup order: active player id, active team, then the global branch.
    """
    if not isinstance(data, dict):
        raise DecodeError(f"{where} must be keyed by viewer, got {type(data).__name__}")

    for key in (str(turn_ctx.active_player_id), turn_ctx.active_team, GLOBAL_VIEWER):
        if key is not None and key in data:
            return data[key]
    raise DecodeError(f"{where} has no data visible to player {turn_ctx.active_player_id}")


def as_int(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise DecodeError(f"{where} must be an integer, got bool")
    try:
        return int(value)
    except (TypeError, ValueError) as ex:
        raise DecodeError(f"{where} must be an integer, got {value!r}") from ex


def optional_int(value: Any, where: str) -> Optional[int]:
    if value is None or value == "?":
        return None
    return as_int(value, where)


def optional_float(value: Any, where: str) -> Optional[float]:
    if value is None or value == "?":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as ex:
        raise DecodeError(f"{where} must be a number, got {value!r}") from ex


def yes_no(value: Any, where: str) -> Optional[bool]:
    """Server flags arrive as "Y"/"N" strings or as booleans."""
    if value is None or value == "?":
        return None
    if isinstance(value, bool):
        return value
    if value in ("Y", "D"):
        return True
    if value in ("N", "R"):
        return False
    raise DecodeError(f"{where} must be a Y/N flag, got {value!r}")


def parse_unit(data: Any, where: str = "unit") -> ReplayUnit:
    check_keys(data, {"units_id"}, (UNIT_FIELDS | UNIT_IGNORED_FIELDS) - {"units_id"}, where)

    position = None
    x = optional_int(data.get("units_x"), f"{where}.units_x")
    y = optional_int(data.get("units_y"), f"{where}.units_y")
    if x is not None and y is not None:
        position = (x, y)

    cargo = []
    for key in ("units_cargo1_units_id", "units_cargo2_units_id"):
        cargo_id = optional_int(data.get(key), f"{where}.{key}")
        if cargo_id:
            cargo.append(cargo_id)

    name = data.get("units_name")
    return ReplayUnit(
        id=as_int(data["units_id"], f"{where}.units_id"),
        player_id=optional_int(data.get("units_players_id"), f"{where}.units_players_id"),
        name=str(name) if name is not None else None,
        hit_points=optional_float(data.get("units_hit_points"), f"{where}.units_hit_points"),
        fuel=optional_int(data.get("units_fuel"), f"{where}.units_fuel"),
        ammo=optional_int(data.get("units_ammo"), f"{where}.units_ammo"),
        times_moved=optional_int(data.get("units_moved"), f"{where}.units_moved"),
        sub_has_dived=yes_no(data.get("units_sub_dive"), f"{where}.units_sub_dive"),
        being_carried=yes_no(data.get("units_carried"), f"{where}.units_carried"),
        position=position,
        cargo_units=tuple(cargo),
    )


def parse_path(data: Any, where: str = "path") -> Tuple[UnitPosition, ...]:
    if not isinstance(data, list):
        raise DecodeError(f"{where} must be a list, got {type(data).__name__}")

    nodes = []
    for i, node in enumerate(data):
        node_where = f"{where}[{i}]"
        check_keys(node, {"x", "y"}, {"unit_visible"}, node_where)
        nodes.append(
            UnitPosition(
                x=as_int(node["x"], f"{node_where}.x"),
                y=as_int(node["y"], f"{node_where}.y"),
                unit_visible=bool(node.get("unit_visible", True)),
            )
        )
    return tuple(nodes)


def parse_cop_change(data: Any, where: str) -> COPChange:
    check_keys(data, {"playerId", "copValue"}, {"tagValue"}, where)
    return COPChange(
        player_id=as_int(data["playerId"], f"{where}.playerId"),
        power=as_int(data["copValue"], f"{where}.copValue"),
        tag_power=optional_int(data.get("tagValue"), f"{where}.tagValue"),
    )
