"""
Core replay primitives.

- Actions: Immutable typed records, one variant per action code
- Models: Match summaries, turns and decode contexts
- ActionRegistry: Code -> decoder table with nested dispatch
- Canonical: Deterministic serialization for persisted snapshots
"""

from .actions import (
    ACTION_TYPES,
    Action,
    AttackCOPChanges,
    AttackUnitAction,
    BuildUnitAction,
    COPChange,
    EliminatedAction,
    EndTurnAction,
    GameOverAction,
    MoveUnitAction,
    PowerAction,
    ReplayUnit,
    UnitPosition,
)
from .models import MatchModel, MatchSummary, ReplayContext, ReplayUser, TurnContext, TurnData
from .registry import ActionRegistry, default_registry
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .errors import (
    DecodeError,
    EnrichmentError,
    NestedActionTypeError,
    PlaybackError,
    RegistrationError,
    ReplayError,
    StorageError,
    UnsupportedOperationError,
    VisionError,
)

__all__ = [
    "ACTION_TYPES",
    "Action",
    "AttackCOPChanges",
    "AttackUnitAction",
    "BuildUnitAction",
    "COPChange",
    "EliminatedAction",
    "EndTurnAction",
    "GameOverAction",
    "MoveUnitAction",
    "PowerAction",
    "ReplayUnit",
    "UnitPosition",
    "MatchModel",
    "MatchSummary",
    "ReplayContext",
    "ReplayUser",
    "TurnContext",
    "TurnData",
    "ActionRegistry",
    "default_registry",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "DecodeError",
    "EnrichmentError",
    "NestedActionTypeError",
    "PlaybackError",
    "RegistrationError",
    "ReplayError",
    "StorageError",
    "UnsupportedOperationError",
    "VisionError",
]
