"""
Playback driver: cooperative execution of a decoded match.

The driver walks every action of every turn in log order against a game
state. Instead of running to completion it stops at each wait point and
resumes only when the caller reports the wait satisfied (for example when an
animation has finished). Cancelling simply discards the driver's progress.
"""

import logging
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple

from ..core.actions import Action
from ..core.errors import PlaybackError, UnsupportedOperationError
from ..core.models import MatchModel
from .. import metrics
from .performers import WaitPoint, perform, undo
from .state import GameState

logger = logging.getLogger(__name__)


class DriverState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


WaitListener = Callable[[WaitPoint], None]
StateListener = Callable[[DriverState, DriverState], None]


class PlaybackDriver:
    """
    State machine over a flattened action sequence.

    States: IDLE -> RUNNING -> (SUSPENDED <-> RUNNING)* -> COMPLETED | FAILED

    Usage:
        driver = PlaybackDriver()
        driver.subscribe_wait(on_wait)
        wait = driver.start(match, state)
        while wait is not None:
            wait = driver.resume_from_wait()
    """

    def __init__(self) -> None:
        self._wait_listeners: List[WaitListener] = []
        self._state_listeners: List[StateListener] = []
        self._reset()

    def _reset(self) -> None:
        self.state = DriverState.IDLE
        self.game_state: Optional[GameState] = None
        self.current_wait: Optional[WaitPoint] = None
        self.error: Optional[PlaybackError] = None
        self._actions: Tuple[Action, ...] = ()
        self._index = 0
        self._steps: Optional[Iterator[WaitPoint]] = None

    @property
    def action_index(self) -> int:
        """Index of the action in progress (or next to start)."""
        return self._index

    @property
    def completed_actions(self) -> int:
        """Number of actions that have fully executed."""
        return self._index

    @property
    def total_actions(self) -> int:
        return len(self._actions)

    def subscribe_wait(self, callback: WaitListener) -> None:
        self._wait_listeners.append(callback)

    def subscribe_state(self, callback: StateListener) -> None:
        self._state_listeners.append(callback)

    def start(self, match: MatchModel, game_state: GameState) -> Optional[WaitPoint]:
        """
        Begin playback and run until the first wait point.

        Returns:
            The wait point reached, or None if playback completed

        Raises:
            PlaybackError: If the driver is not idle, or an action fails
        """
        if self.state != DriverState.IDLE:
            raise PlaybackError(f"Cannot start playback while {self.state.value}")

        self.game_state = game_state
        self._actions = tuple(match.actions())
        self._index = 0
        self._steps = None
        logger.info(f"Starting playback of replay {match.summary.id}: {len(self._actions)} actions")

        self._transition(DriverState.RUNNING)
        return self._advance()

    def resume_from_wait(self) -> Optional[WaitPoint]:
        """
        Signal that the current wait is satisfied and run to the next one.

        Raises:
            PlaybackError: If the driver is not suspended, or an action fails
        """
        if self.state != DriverState.SUSPENDED:
            raise PlaybackError(f"Cannot resume playback while {self.state.value}")

        self.current_wait = None
        self._transition(DriverState.RUNNING)
        return self._advance()

    def run_until(self, action_count: int) -> Optional[WaitPoint]:
        """
        Resume through wait points until action_count actions have executed
        (or playback completes). Returns the wait point playback stopped at.
        """
        while (
            self.state == DriverState.SUSPENDED
            and self.completed_actions < action_count
        ):
            self.resume_from_wait()
        return self.current_wait

    def run_to_completion(self) -> None:
        while self.state == DriverState.SUSPENDED:
            self.resume_from_wait()

    def cancel(self) -> None:
        """Discard all progress. Game state mutations already made are kept."""
        if self.state != DriverState.IDLE:
            logger.info(f"Playback cancelled at action {self._index}/{len(self._actions)}")
            previous = self.state
            self._reset()
            self._notify_state(previous, DriverState.IDLE)

    def undo(self) -> None:
        """
        Raises:
            UnsupportedOperationError: No action kind defines an undo
        """
        if self._index == 0 or self.game_state is None:
            raise UnsupportedOperationError("Nothing to undo")
        undo(self._actions[self._index - 1], self.game_state)

    def _advance(self) -> Optional[WaitPoint]:
        while True:
            if self._steps is None:
                if self._index >= len(self._actions):
                    self._transition(DriverState.COMPLETED)
                    logger.info(f"Playback completed: {self._index} actions")
                    return None
                action = self._actions[self._index]
                self._steps = self._call(lambda: perform(action, self.game_state, self._index))

            wait = self._call(lambda: next(self._steps, None))
            if wait is None:
                metrics.track_action(self._actions[self._index].code)
                self._steps = None
                self._index += 1
                continue

            self.current_wait = wait
            self._transition(DriverState.SUSPENDED)
            for callback in list(self._wait_listeners):
                callback(wait)
            return wait

    def _call(self, fn):
        try:
            return fn()
        except PlaybackError as ex:
            self._fail(ex)
            raise
        except Exception as ex:
            # Game state implementations may raise anything
            error = PlaybackError(f"Action {self._index} failed: {ex!r}")
            self._fail(error)
            raise error from ex

    def _fail(self, error: PlaybackError) -> None:
        logger.error(f"Playback failed at action {self._index}: {error}")
        self.error = error
        self._steps = None
        self._transition(DriverState.FAILED)

    def _transition(self, new: DriverState) -> None:
        previous = self.state
        self.state = new
        self._notify_state(previous, new)

    def _notify_state(self, previous: DriverState, new: DriverState) -> None:
        for callback in list(self._state_listeners):
            callback(previous, new)
