"""
ActionRegistry: maps action codes to pure decode functions.

Decoders are fixed at process start. A decoder receives the raw JSON fragment,
the replay and turn contexts, and the registry itself so it can dispatch
embedded actions through the same table.
"""

from typing import Any, Callable, Dict, Iterable, Optional, Type, TypeVar

from .actions import Action
from .errors import DecodeError, NestedActionTypeError, RegistrationError
from .models import ReplayContext, TurnContext

# Decoder signature: (fragment, replay_ctx, turn_ctx, registry) -> Action
Decoder = Callable[[Dict[str, Any], ReplayContext, TurnContext, "ActionRegistry"], Action]

T = TypeVar("T")


class ActionRegistry:
    """
    Registry of action decoders.

    Usage:
        registry = ActionRegistry()
        registry.register("Move", decode_move)
        action = registry.decode("Move", fragment, replay_ctx, turn_ctx)
    """

    def __init__(self) -> None:
        self._decoders: Dict[str, Decoder] = {}

    def register(self, code: str, decoder: Decoder) -> None:
        """
        Register a decoder for an action code.

        Raises:
            RegistrationError: If a decoder is already registered for code
        """
        if code in self._decoders:
            raise RegistrationError(f"Decoder already registered for action code: {code}")
        self._decoders[code] = decoder

    def codes(self) -> Iterable[str]:
        return sorted(self._decoders.keys())

    def __contains__(self, code: object) -> bool:
        return code in self._decoders

    def decode(
        self,
        code: str,
        fragment: Dict[str, Any],
        replay_ctx: ReplayContext,
        turn_ctx: TurnContext,
    ) -> Action:
        """
        Decode a fragment with the decoder registered for code.

        Raises:
            DecodeError: If no decoder is registered or the fragment is malformed
        """
        if not isinstance(code, str):
            raise DecodeError(f"Action code must be a string, got {code!r}")
        decoder = self._decoders.get(code)
        if decoder is None:
            raise DecodeError(f"No decoder for action code: {code}")
        if not isinstance(fragment, dict):
            raise DecodeError(f"{code} action must be a JSON object, got {type(fragment).__name__}")
        try:
            return decoder(fragment, replay_ctx, turn_ctx, self)
        except DecodeError:
            raise
        except (KeyError, TypeError, ValueError) as ex:
            raise DecodeError(f"Malformed {code} action: {ex!r}") from ex

    def decode_fragment(
        self,
        fragment: Dict[str, Any],
        replay_ctx: ReplayContext,
        turn_ctx: TurnContext,
    ) -> Action:
        """Decode a fragment whose code is stored under its "action" key."""
        if not isinstance(fragment, dict) or "action" not in fragment:
            raise DecodeError("Action fragment has no 'action' code")
        return self.decode(fragment["action"], fragment, replay_ctx, turn_ctx)

    def decode_nested(
        self,
        expected: Type[T],
        fragment: Dict[str, Any],
        replay_ctx: ReplayContext,
        turn_ctx: TurnContext,
        code: Optional[str] = None,
    ) -> T:
        """
        Decode an embedded action and check its variant.

        Args:
            expected: Action class the parent requires
            fragment: Embedded fragment
            code: Decoder to use; defaults to the fragment's own "action" code

        Raises:
            NestedActionTypeError: If the result is not an instance of expected
        """
        if code is None:
            action = self.decode_fragment(fragment, replay_ctx, turn_ctx)
        else:
            action = self.decode(code, fragment, replay_ctx, turn_ctx)
        if not isinstance(action, expected):
            raise NestedActionTypeError(
                f"Expected nested {expected.__name__}, got {type(action).__name__}"
            )
        return action


def default_registry() -> ActionRegistry:
    """Registry with every built-in action decoder registered."""
    from ..decode.actions import register_decoders

    registry = ActionRegistry()
    register_decoders(registry)
    return registry
