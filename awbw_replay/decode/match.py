"""
Match model builder.

Turns a raw match document into a MatchModel. Decoding is all-or-nothing: the
first malformed action aborts the whole match so playback never starts from a
partial model.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..core.errors import DecodeError
from ..core.models import MatchModel, MatchSummary, ReplayContext, ReplayUser, TurnContext, TurnData
from ..core.registry import ActionRegistry, default_registry
from .container import read_document
from .helpers import as_int, check_keys

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (1,)


def build_summary(game: Dict[str, Any]) -> MatchSummary:
    """Build the catalog summary from the document's game block."""
    if not isinstance(game, dict):
        raise DecodeError("Match document 'game' must be a JSON object")

    league = game.get("leagueMatch")
    try:
        players = {}
        for i, player in enumerate(game.get("players") or []):
            check_keys(player, {"id", "usersId"}, {"team", "username", "order", "countryId", "coId"}, f"game.players[{i}]")
            player_id = as_int(player["id"], f"game.players[{i}].id")
            players[player_id] = ReplayUser(
                id=player_id,
                user_id=as_int(player["usersId"], f"game.players[{i}].usersId"),
                username=player.get("username"),
                team=player.get("team"),
            )

        return MatchSummary(
            id=as_int(game.get("id"), "game.id"),
            name=str(game.get("name") or ""),
            start_date=game.get("startDate"),
            end_date=game.get("endDate"),
            league_match=bool(league) if league is not None else None,
            players=players,
        )
    except ValidationError as ex:
        raise DecodeError(f"Invalid game block: {ex}") from ex


def build_match(document: Dict[str, Any], registry: Optional[ActionRegistry] = None) -> MatchModel:
    """
    Decode a match document into a MatchModel.

    Args:
        document: Parsed JSON document
        registry: Action registry (default: all built-in decoders)

    Returns:
        MatchModel with every turn decoded in order

    Raises:
        DecodeError: On unsupported version or the first malformed action
    """
    registry = registry or default_registry()

    version = document.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise DecodeError(f"Unsupported replay document version: {version!r}")

    summary = build_summary(document.get("game"))
    replay_ctx = ReplayContext(
        replay_id=summary.id,
        teams={pid: p.team for pid, p in summary.players.items() if p.team is not None},
    )

    turns_data = document.get("turns")
    if not isinstance(turns_data, list):
        raise DecodeError("Match document 'turns' must be a list")

    turns = []
    for t, raw_turn in enumerate(turns_data):
        where = f"turns[{t}]"
        check_keys(raw_turn, {"playerId", "day", "actions"}, {"team"}, where)
        player_id = as_int(raw_turn["playerId"], f"{where}.playerId")
        team = raw_turn.get("team") or replay_ctx.teams.get(player_id)
        turn_ctx = TurnContext(active_player_id=player_id, active_team=team, day=as_int(raw_turn["day"], f"{where}.day"))

        if not isinstance(raw_turn["actions"], list):
            raise DecodeError(f"{where}.actions must be a list")

        actions = []
        for a, fragment in enumerate(raw_turn["actions"]):
            try:
                actions.append(registry.decode_fragment(fragment, replay_ctx, turn_ctx))
            except DecodeError as ex:
                raise type(ex)(f"Replay {summary.id} {where}.actions[{a}]: {ex}") from ex

        turns.append(
            TurnData(
                active_player_id=turn_ctx.active_player_id,
                active_team=turn_ctx.active_team,
                day=turn_ctx.day,
                actions=tuple(actions),
            )
        )

    logger.debug(f"Decoded replay {summary.id}: {len(turns)} turns")
    return MatchModel(summary=summary, turns=tuple(turns))


def decode_replay(data: bytes, name_hint: str = "", registry: Optional[ActionRegistry] = None) -> MatchModel:
    """Container detection plus match decode in one step."""
    return build_match(read_document(data, name_hint), registry)
