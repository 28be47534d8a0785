"""
Match model: summaries, turns and decode contexts.

MatchSummary and ReplayUser are pydantic models because they are persisted in
the catalog index. Turn data is a plain immutable record built once per decode.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .actions import Action


class ReplayUser(BaseModel):
    """A player slot in a match, linked to an external user account."""

    model_config = ConfigDict(validate_assignment=True)

    id: int
    user_id: int
    username: Optional[str] = None
    team: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.username is not None


class MatchSummary(BaseModel):
    """Catalog entry describing one replay."""

    model_config = ConfigDict(validate_assignment=True)

    id: int
    name: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    league_match: Optional[bool] = None
    players: Dict[int, ReplayUser] = Field(default_factory=dict)

    def unresolved_users(self) -> List[ReplayUser]:
        return [p for p in self.players.values() if not p.resolved]

    def to_record(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: dict) -> "MatchSummary":
        return cls.model_validate(record)


@dataclass(frozen=True)
class ReplayContext:
    """
    Replay-wide data available to decoders.

    Fields:
        replay_id: Replay identifier
        teams: player id -> team code
    """
    replay_id: int
    teams: Dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TurnContext:
    """Active viewer for a turn. Per-player data is resolved against it."""
    active_player_id: int
    active_team: Optional[str] = None
    day: int = 0


@dataclass(frozen=True)
class TurnData:
    active_player_id: int
    active_team: Optional[str]
    day: int
    actions: Tuple[Action, ...] = field(default_factory=tuple)

    def context(self) -> TurnContext:
        return TurnContext(
            active_player_id=self.active_player_id,
            active_team=self.active_team,
            day=self.day,
        )


@dataclass(frozen=True)
class MatchModel:
    """A fully decoded replay: summary plus ordered turns."""
    summary: MatchSummary
    turns: Tuple[TurnData, ...] = field(default_factory=tuple)

    def actions(self) -> Iterator[Action]:
        """Iterate every action of every turn in log order."""
        for turn in self.turns:
            yield from turn.actions

    def action_count(self) -> int:
        return sum(len(t.actions) for t in self.turns)
