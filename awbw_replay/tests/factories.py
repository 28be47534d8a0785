"""
Builders for raw replay fragments and documents used across the test suite.
"""

import gzip
import io
import json
import struct
import zipfile
from typing import Any, Dict, List, Optional, Sequence, Tuple

from awbw_replay.core.models import ReplayContext, TurnContext


def unit(unit_id: int, player_id: int, hp: float = 10, x: int = 0, y: int = 0, **extra) -> Dict[str, Any]:
    data = {
        "units_id": unit_id,
        "units_players_id": player_id,
        "units_name": "Infantry",
        "units_hit_points": hp,
        "units_fuel": 99,
        "units_ammo": 0,
        "units_moved": 0,
        "units_sub_dive": "N",
        "units_carried": "N",
        "units_x": x,
        "units_y": y,
    }
    data.update(extra)
    return data


def move(unit_data: Dict[str, Any], path: Sequence[Tuple[int, int]], viewer: str = "global") -> Dict[str, Any]:
    return {
        "action": "Move",
        "unit": {viewer: unit_data},
        "paths": {viewer: [{"unit_visible": True, "x": x, "y": y} for x, y in path]},
        "dist": max(len(path) - 1, 0),
        "trapped": False,
    }


def fire(
    attacker: Any,
    defender: Dict[str, Any],
    move_data: Any = None,
    has_vision: bool = True,
    viewer: str = "global",
    attacker_pid: int = 1,
    defender_pid: int = 2,
) -> Dict[str, Any]:
    vision: Dict[str, Any] = {"hasVision": has_vision}
    if has_vision:
        vision["combatInfo"] = {"attacker": attacker, "defender": defender}
    return {
        "action": "Fire",
        "Move": move_data if move_data is not None else [],
        "Fire": {
            "action": "Fire",
            "combatInfoVision": {viewer: vision},
            "copValues": {
                "attacker": {"playerId": attacker_pid, "copValue": 1200, "tagValue": None},
                "defender": {"playerId": defender_pid, "copValue": 800, "tagValue": None},
            },
        },
    }


def power(player_id: int, co_name: str = "Sonja", co_power: str = "S", power_name: str = "Counter Break") -> Dict[str, Any]:
    return {
        "action": "Power",
        "playerID": player_id,
        "coName": co_name,
        "coPower": co_power,
        "powerName": power_name,
    }


def build(unit_data: Dict[str, Any], viewer: str = "global") -> Dict[str, Any]:
    return {"action": "Build", "newUnit": {viewer: unit_data}}


def end_turn(next_player_id: int, day: int, funds: int = 1000) -> Dict[str, Any]:
    return {
        "action": "End",
        "updatedInfo": {
            "event": "NextTurn",
            "nextPId": next_player_id,
            "nextFunds": {"global": funds},
            "day": day,
        },
    }


def game_over(day: int = 5, winners: Sequence[int] = (1,), losers: Sequence[int] = (2,)) -> Dict[str, Any]:
    return {
        "action": "GameOver",
        "day": day,
        "gameEndDate": "2021-04-02 10:00:00",
        "message": "The game is over!",
        "winners": list(winners),
        "losers": list(losers),
    }


def eliminated(player_id: int, by_player_id: int, game_over_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    data = {
        "action": "Eliminated",
        "eliminatedByPId": by_player_id,
        "playerId": player_id,
        "message": f"Player {player_id} was eliminated",
    }
    if game_over_data is not None:
        data["GameOver"] = game_over_data
    return data


def players(*entries: Tuple[int, int, Optional[str]]) -> List[Dict[str, Any]]:
    teams = "ABCDEFGH"
    return [
        {"id": pid, "usersId": uid, "username": name, "team": teams[i]}
        for i, (pid, uid, name) in enumerate(entries)
    ]


def document(
    replay_id: int = 42,
    player_list: Optional[List[Dict[str, Any]]] = None,
    turns: Optional[List[Tuple[int, int, List[Dict[str, Any]]]]] = None,
) -> Dict[str, Any]:
    player_list = player_list if player_list is not None else players((1, 501, "alice"), (2, 502, "bob"))
    turns = turns if turns is not None else [(1, 1, [end_turn(2, 1)])]
    return {
        "version": 1,
        "game": {
            "id": replay_id,
            "name": f"Match {replay_id}",
            "startDate": "2021-03-01T10:00:00",
            "endDate": "2021-04-02T10:00:00",
            "leagueMatch": False,
            "players": player_list,
        },
        "turns": [{"playerId": pid, "day": day, "actions": actions} for pid, day, actions in turns],
    }


def zip_bytes(doc: Dict[str, Any], member: str = "replay") -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(member, gzip.compress(json.dumps(doc).encode("utf-8")))
    return buf.getvalue()


def gzip_bytes(doc: Dict[str, Any]) -> bytes:
    return gzip.compress(json.dumps(doc).encode("utf-8"))


def contexts(player_id: int = 1, team: str = "A", replay_id: int = 42) -> Tuple[ReplayContext, TurnContext]:
    return (
        ReplayContext(replay_id=replay_id, teams={1: "A", 2: "B"}),
        TurnContext(active_player_id=player_id, active_team=team, day=1),
    )


def corrupt_zip_bytes(doc: Dict[str, Any]) -> bytes:
    """Valid zip structure whose deflate payload is garbage."""
    data = bytearray(zip_bytes(doc))
    name_len, extra_len = struct.unpack("<HH", data[26:30])
    start = 30 + name_len + extra_len
    data[start:start + 8] = b"\xff" * 8
    return bytes(data)
