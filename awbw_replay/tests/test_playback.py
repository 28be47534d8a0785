"""
Tests for the playback driver.

Critical tests:
1. Combat tie-break: attack-first only reorders when one side has it
2. Undetermined defender owner halts the driver in FAILED
3. Wait points arrive in action order and suspend the driver
4. Undo is reported unsupported
5. Replaying the same match twice yields the same state
"""

import pytest

from awbw_replay.core import ACTION_TYPES, PlaybackError, PowerAction, ReplayUnit, UnsupportedOperationError
from awbw_replay.decode import build_match
from awbw_replay.playback import (
    PERFORMERS,
    DriverState,
    InMemoryGameState,
    PlaybackDriver,
    defender_strikes_first,
)

from .factories import build, document, eliminated, end_turn, fire, game_over, move, power, unit


def _units():
    return [
        ReplayUnit(id=10, player_id=1, name="Tank", hit_points=10, position=(0, 0)),
        ReplayUnit(id=20, player_id=2, name="Infantry", hit_points=10, position=(0, 2)),
    ]


def _match(*turns):
    return build_match(document(turns=list(turns)))


def _attack(attacker_hp=8, defender_hp=3.5):
    return fire(
        unit(10, 1, hp=attacker_hp, x=0, y=1, units_moved=1),
        unit(20, 2, hp=defender_hp, x=0, y=2),
    )


def _play(match, state=None):
    """Run to completion, returning the game state and every wait point."""
    state = state if state is not None else InMemoryGameState(_units())
    waits = []
    driver = PlaybackDriver()
    driver.subscribe_wait(waits.append)
    driver.start(match, state)
    driver.run_to_completion()
    return driver, state, waits


def _sonja(player_id):
    return PowerAction(player_id=player_id, co_name="Sonja", power_type="S", power_name="Counter Break", attack_first=True)


def test_tie_break_rules():
    andy = PowerAction(player_id=1, co_name="Andy", power_type="S", power_name="Hyper Upgrade")

    assert defender_strikes_first(None, None) is False
    assert defender_strikes_first(None, _sonja(2)) is True
    assert defender_strikes_first(andy, _sonja(2)) is True
    # Attacker with attack-first keeps its strike first
    assert defender_strikes_first(_sonja(1), None) is False
    # Both sides with attack-first keep the original order
    assert defender_strikes_first(_sonja(1), _sonja(2)) is False


def test_attacker_strikes_first_by_default():
    match = _match((1, 1, [_attack()]))

    _, state, waits = _play(match)

    strikes = [w for w in waits if w.kind in ("strike", "counter_strike")]
    assert [(w.kind, w.detail["from"], w.detail["to"]) for w in strikes] == [
        ("strike", 10, 20),
        ("counter_strike", 20, 10),
    ]
    assert state.units[20].hit_points == 4
    assert state.units[10].hit_points == 8
    assert state.units[10].can_move is False


def test_defender_with_attack_first_strikes_first():
    match = _match(
        (2, 1, [power(2, "Sonja", "S"), end_turn(1, 2)]),
        (1, 2, [_attack()]),
    )

    _, _, waits = _play(match)

    strikes = [w for w in waits if w.kind in ("strike", "counter_strike")]
    assert [(w.detail["from"], w.detail["to"]) for w in strikes] == [(20, 10), (10, 20)]


def test_both_attack_first_keeps_original_order():
    match = _match(
        (2, 1, [power(2, "Sonja", "S"), end_turn(1, 2)]),
        (1, 2, [power(1, "Sonja", "S"), _attack()]),
    )

    _, _, waits = _play(match)

    strike = next(w for w in waits if w.kind == "strike")
    assert (strike.detail["from"], strike.detail["to"]) == (10, 20)


def test_power_expires_at_owner_turn_start():
    match = _match(
        (2, 1, [power(2, "Sonja", "S"), end_turn(1, 2)]),
        (1, 2, [end_turn(2, 2)]),
        (2, 2, [end_turn(1, 3)]),
        (1, 3, [_attack()]),
    )

    _, state, waits = _play(match)

    strike = next(w for w in waits if w.kind == "strike")
    assert strike.detail["from"] == 10
    assert state.active_power(2) is None


def test_destroyed_defender_has_no_counter():
    match = _match((1, 1, [_attack(defender_hp=0)]))

    _, state, waits = _play(match)

    assert [w.kind for w in waits] == ["strike"]
    assert 20 not in state.units
    assert state.power_meters[1] == (1200, None)


def test_attacker_destroyed_by_counter():
    match = _match((1, 1, [_attack(attacker_hp=0, defender_hp=6)]))

    _, state, waits = _play(match)

    assert [w.kind for w in waits] == ["strike", "counter_strike"]
    assert 10 not in state.units
    assert state.units[20].hit_points == 6


def test_attack_with_move_waits_for_move_first():
    attack = fire(
        unit(10, 1, hp=9, x=0, y=1, units_moved=1),
        unit(20, 2, hp=5, x=0, y=2),
        move_data=move(unit(10, 1, x=0, y=1), [(0, 0), (0, 1)]),
    )

    _, state, waits = _play(_match((1, 1, [attack])))

    assert [w.kind for w in waits] == ["move", "strike", "counter_strike"]
    assert waits[0].detail["path"] == [(0, 0), (0, 1)]
    assert state.units[10].position == (0, 1)


def test_undetermined_defender_owner_fails():
    """Data integrity violation: playback halts, no recovery."""
    state = InMemoryGameState([ReplayUnit(id=10, player_id=1), ReplayUnit(id=20)])
    states = []
    driver = PlaybackDriver()
    driver.subscribe_state(lambda old, new: states.append(new))

    with pytest.raises(PlaybackError, match="no owner"):
        driver.start(_match((1, 1, [_attack()])), state)

    assert driver.state == DriverState.FAILED
    assert isinstance(driver.error, PlaybackError)
    assert states[-1] == DriverState.FAILED
    with pytest.raises(PlaybackError):
        driver.resume_from_wait()


def test_missing_unit_fails():
    driver = PlaybackDriver()

    with pytest.raises(PlaybackError, match="Unit 99 not found"):
        driver.start(_match((1, 1, [move(unit(99, 1), [(1, 1)])])), InMemoryGameState(_units()))

    assert driver.state == DriverState.FAILED


class FailingGameState(InMemoryGameState):
    def move_unit(self, unit_id, path):
        raise RuntimeError("board out of sync")


def test_game_state_error_fails_driver():
    """Any error raised by the game state moves the driver to FAILED."""
    states = []
    driver = PlaybackDriver()
    driver.subscribe_state(lambda old, new: states.append(new))

    with pytest.raises(PlaybackError, match="board out of sync"):
        driver.start(_match((1, 1, [move(unit(10, 1, x=0, y=1), [(0, 0), (0, 1)])])), FailingGameState(_units()))

    assert driver.state == DriverState.FAILED
    assert states[-1] == DriverState.FAILED
    assert isinstance(driver.error.__cause__, RuntimeError)
    with pytest.raises(PlaybackError):
        driver.resume_from_wait()


def test_wait_points_suspend_in_order():
    match = _match(
        (1, 1, [move(unit(10, 1, x=0, y=1, units_moved=1), [(0, 0), (0, 1)]), build(unit(30, 1, x=5, y=5)), end_turn(2, 1, funds=4000)]),
    )
    driver = PlaybackDriver()

    wait = driver.start(match, InMemoryGameState(_units()))
    assert driver.state == DriverState.SUSPENDED
    assert (wait.kind, wait.action_index, wait.code) == ("move", 0, "Move")
    assert driver.completed_actions == 0

    wait = driver.resume_from_wait()
    assert (wait.kind, wait.action_index) == ("build", 1)
    assert driver.completed_actions == 1

    wait = driver.resume_from_wait()
    assert (wait.kind, wait.action_index) == ("turn_start", 2)
    assert wait.detail == {"player_id": 2, "day": 1}

    assert driver.resume_from_wait() is None
    assert driver.state == DriverState.COMPLETED
    assert driver.completed_actions == driver.total_actions == 3


def test_state_transitions():
    transitions = []
    driver = PlaybackDriver()
    driver.subscribe_state(lambda old, new: transitions.append((old, new)))

    driver.start(_match((1, 1, [end_turn(2, 1)])), InMemoryGameState(_units()))
    driver.run_to_completion()

    assert transitions == [
        (DriverState.IDLE, DriverState.RUNNING),
        (DriverState.RUNNING, DriverState.SUSPENDED),
        (DriverState.SUSPENDED, DriverState.RUNNING),
        (DriverState.RUNNING, DriverState.COMPLETED),
    ]


def test_empty_match_completes_immediately():
    driver = PlaybackDriver()

    assert driver.start(_match((1, 1, [])), InMemoryGameState()) is None
    assert driver.state == DriverState.COMPLETED


def test_start_twice_rejected():
    driver = PlaybackDriver()
    driver.start(_match((1, 1, [end_turn(2, 1)])), InMemoryGameState())

    with pytest.raises(PlaybackError, match="Cannot start"):
        driver.start(_match((1, 1, [end_turn(2, 1)])), InMemoryGameState())


def test_resume_requires_suspension():
    with pytest.raises(PlaybackError, match="Cannot resume"):
        PlaybackDriver().resume_from_wait()


def test_cancel_discards_progress():
    driver = PlaybackDriver()
    match = _match((1, 1, [end_turn(2, 1), end_turn(1, 2)]))
    driver.start(match, InMemoryGameState())

    driver.cancel()

    assert driver.state == DriverState.IDLE
    assert driver.current_wait is None
    assert driver.total_actions == 0
    # A cancelled driver can be started again
    assert driver.start(match, InMemoryGameState()) is not None


def test_run_until_stops_at_action_count():
    match = _match((1, 1, [end_turn(2, 1), end_turn(1, 2), end_turn(2, 2), end_turn(1, 3)]))
    driver = PlaybackDriver()
    state = InMemoryGameState()
    driver.start(match, state)

    wait = driver.run_until(2)

    assert driver.completed_actions == 2
    assert wait.action_index == 2
    # The waiting action has already applied its changes
    assert state.day == 2
    assert state.active_player_id == 2


def test_elimination_ends_game():
    match = _match(
        (1, 1, [_attack(defender_hp=0), eliminated(2, 1, game_over_data=game_over(day=1, winners=(1,), losers=(2,)))]),
    )
    state = InMemoryGameState(_units() + [ReplayUnit(id=21, player_id=2, hit_points=10, position=(4, 4))])

    driver, state, waits = _play(match, state)

    assert driver.state == DriverState.COMPLETED
    assert [w.kind for w in waits][-2:] == ["elimination", "game_over"]
    assert 2 in state.eliminated
    assert 21 not in state.units
    assert state.game_over is True
    assert state.winners == (1,)


def test_end_turn_updates_funds_and_units():
    match = _match((1, 1, [_attack(), end_turn(2, 1, funds=7000), end_turn(1, 2, funds=12000)]))

    _, state, _ = _play(match)

    assert state.funds == {2: 7000, 1: 12000}
    assert state.units[10].can_move is True
    assert state.day == 2


def test_build_adds_unit():
    _, state, _ = _play(_match((1, 1, [build(unit(30, 1, x=5, y=5))])))

    assert state.units[30].position == (5, 5)
    assert state.units[30].owner_id == 1
    assert state.units[30].can_move is False


def test_build_duplicate_unit_fails():
    driver = PlaybackDriver()

    with pytest.raises(PlaybackError, match="already exists"):
        driver.start(_match((1, 1, [build(unit(10, 1))])), InMemoryGameState(_units()))


def test_playback_deterministic():
    """Same match on fresh states must end in identical states."""
    match = _match(
        (1, 1, [move(unit(10, 1, x=0, y=1, units_moved=1), [(0, 0), (0, 1)]), _attack(), end_turn(2, 1)]),
        (2, 1, [power(2), build(unit(31, 2, x=3, y=3)), end_turn(1, 2)]),
    )

    _, first, first_waits = _play(match)
    _, second, second_waits = _play(match)

    assert first.units == second.units
    assert first_waits == second_waits


def test_undo_unsupported():
    driver = PlaybackDriver()
    match = _match((1, 1, [end_turn(2, 1)]))

    with pytest.raises(UnsupportedOperationError, match="Nothing to undo"):
        driver.undo()

    driver.start(match, InMemoryGameState())
    driver.run_to_completion()

    with pytest.raises(UnsupportedOperationError, match="not supported for End"):
        driver.undo()


def test_every_action_type_has_performer():
    assert set(PERFORMERS) == set(ACTION_TYPES)
