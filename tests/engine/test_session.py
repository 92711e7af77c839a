"""Unit tests for /src/engine/session.py"""

import random
from unittest.mock import Mock

import pytest

from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.core.config import Settings
from src.core.exceptions import (
    GenerationFailureError,
    InvalidConfigError,
    InvalidTransitionError,
)
from src.core.models import LeaderboardEntry
from src.core.shared_types import Color, Difficulty, Phase, PieceType
from src.engine.generator import PositionGenerator
from src.engine.rating import RatingState
from src.engine.session import Session, SessionConfig, SessionStateMachine

from tests.conftest import FakeClock

ORIGINAL = "4k3/8/8/3q4/4P3/2N5/8/4K3"


def sq(notation: str) -> Square:
    return Square.from_algebraic(notation)


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(piece_count=5, memorize_time_seconds=10, difficulty=Difficulty.MEDIUM)


@pytest.fixture
def fixed_generator() -> Mock:
    """Always hands out the same position, so the tests know what to rebuild."""
    generator = Mock(spec=PositionGenerator)
    generator.generate.side_effect = lambda piece_count: Position.from_fen(ORIGINAL)
    return generator


@pytest.fixture
def machine(fixed_generator: Mock, fake_clock: FakeClock) -> SessionStateMachine:
    return SessionStateMachine(
        rating_state=RatingState(rating=2000, streak=0),
        generator=fixed_generator,
        clock=fake_clock,
    )


def rebuild_original(machine: SessionStateMachine) -> None:
    for square, piece in Position.from_fen(ORIGINAL):
        machine.place_piece(square, Piece(piece.type, piece.color))


# -- CONFIG --
@pytest.mark.parametrize(
    "piece_count, memorize_time",
    [(1, 10), (33, 10), (5, 0), (5, 61), (5, 0.5)],
)
def test_config_out_of_range(piece_count: int, memorize_time: float) -> None:
    with pytest.raises(InvalidConfigError):
        SessionConfig(piece_count=piece_count, memorize_time_seconds=memorize_time)


def test_config_is_immutable(config: SessionConfig) -> None:
    with pytest.raises(AttributeError):
        config.piece_count = 8  # type: ignore[misc]


# -- START --
def test_new_machine_is_in_configuration() -> None:
    machine = SessionStateMachine()
    assert machine.current_phase() == Phase.CONFIGURATION
    assert machine.current_rating() == RatingState(rating=Settings().initial_rating, streak=0)


def test_start_game(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    session = machine.start_game(config)
    assert session.phase == Phase.MEMORIZATION
    assert session.config == config
    assert session.original_position.to_fen() == ORIGINAL
    assert len(session.solution_position) == 0
    assert session.memorize_started_at == fake_clock()


def test_start_with_real_generator(fake_clock: FakeClock) -> None:
    machine = SessionStateMachine(
        generator=PositionGenerator(random_source=random.Random(5).random), clock=fake_clock
    )
    session = machine.start_game(SessionConfig(piece_count=12, memorize_time_seconds=5))
    assert len(session.original_position) == 12
    assert session.original_position.is_valid_target()


def test_generation_failure_keeps_configuration(
    machine: SessionStateMachine, fixed_generator: Mock, config: SessionConfig
) -> None:
    fixed_generator.generate.side_effect = GenerationFailureError("no room")
    with pytest.raises(GenerationFailureError):
        machine.start_game(config)
    assert machine.current_phase() == Phase.CONFIGURATION
    assert machine.current_session().config is None
    assert len(machine.current_session().original_position) == 0


def test_start_twice_is_invalid(machine: SessionStateMachine, config: SessionConfig) -> None:
    machine.start_game(config)
    with pytest.raises(InvalidTransitionError) as exc_info:
        machine.start_game(config)
    assert exc_info.value.phase == Phase.MEMORIZATION
    assert machine.current_phase() == Phase.MEMORIZATION


# -- MEMORIZATION --
def test_end_memorization(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    fake_clock.advance(4.25)
    session = machine.end_memorization()

    assert session.phase == Phase.SOLUTION
    assert session.solution_started_at == fake_clock()
    assert session.actual_memorize_seconds == pytest.approx(4.25)
    assert len(session.solution_position) == 0


def test_end_memorization_twice(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    """Second call (ex. timer and button racing) is rejected and does not restart the solution timer."""
    machine.start_game(config)
    fake_clock.advance(3)
    machine.end_memorization()
    solution_started_at = machine.current_session().solution_started_at

    fake_clock.advance(2)
    with pytest.raises(InvalidTransitionError):
        machine.end_memorization()
    assert machine.current_phase() == Phase.SOLUTION
    assert machine.current_session().solution_started_at == solution_started_at


def test_timeout_before_deadline(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    fake_clock.advance(9.9)
    assert not machine.check_memorization_timeout()
    assert machine.current_phase() == Phase.MEMORIZATION


def test_timeout_after_deadline(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    assert machine.memorization_deadline() == fake_clock() + 10_000
    fake_clock.advance(10)
    assert machine.check_memorization_timeout()

    session = machine.current_session()
    assert session.phase == Phase.SOLUTION
    assert session.actual_memorize_seconds == pytest.approx(10)
    assert session.solution_started_at == fake_clock()


def test_timer_and_manual_end_give_same_state(
    fixed_generator: Mock, config: SessionConfig
) -> None:
    """Who triggers the transition does not matter."""
    manual_clock, timed_clock = FakeClock(), FakeClock()
    manual = SessionStateMachine(generator=fixed_generator, clock=manual_clock)
    timed = SessionStateMachine(generator=fixed_generator, clock=timed_clock)
    manual.start_game(config)
    timed.start_game(config)
    manual_clock.advance(10)
    timed_clock.advance(10)

    manual.end_memorization()
    timed.check_memorization_timeout()

    for attribute in ("phase", "memorize_ended_at", "solution_started_at", "solution_position"):
        assert getattr(manual.current_session(), attribute) == getattr(timed.current_session(), attribute)


def test_timer_after_manual_end_is_harmless(
    machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock
) -> None:
    machine.start_game(config)
    fake_clock.advance(2)
    machine.end_memorization()
    solution_started_at = machine.current_session().solution_started_at

    fake_clock.advance(20)
    assert not machine.check_memorization_timeout()
    assert machine.current_session().solution_started_at == solution_started_at


def test_timeout_outside_memorization(machine: SessionStateMachine) -> None:
    assert not machine.check_memorization_timeout()
    assert machine.memorization_deadline() is None


# -- SOLUTION --
@pytest.mark.parametrize("phase_setup", ["configuration", "memorization"])
def test_piece_edits_only_in_solution(
    machine: SessionStateMachine, config: SessionConfig, phase_setup: str
) -> None:
    if phase_setup == "memorization":
        machine.start_game(config)
    phase = machine.current_phase()

    with pytest.raises(InvalidTransitionError):
        machine.place_piece(sq("e4"), Piece(PieceType.PAWN, Color.WHITE))
    with pytest.raises(InvalidTransitionError):
        machine.remove_piece(sq("e4"))
    assert machine.current_phase() == phase
    assert len(machine.current_session().solution_position) == 0


def test_place_and_remove(machine: SessionStateMachine, config: SessionConfig) -> None:
    machine.start_game(config)
    machine.end_memorization()

    machine.place_piece(sq("e4"), Piece(PieceType.PAWN, Color.WHITE))
    machine.place_piece(sq("e4"), Piece(PieceType.PAWN, Color.BLACK))  # replaces
    machine.place_piece(sq("a1"), Piece(PieceType.ROOK, Color.WHITE))
    assert len(machine.current_session().solution_position) == 2
    assert machine.current_session().solution_position.piece(sq("e4")) == Piece(PieceType.PAWN, Color.BLACK)

    removed = machine.remove_piece(sq("a1"))
    assert removed == Piece(PieceType.ROOK, Color.WHITE)
    assert machine.remove_piece(sq("a1")) is None
    assert len(machine.current_session().solution_position) == 1


# -- SUBMIT --
@pytest.mark.parametrize("phase_setup", ["configuration", "memorization"])
def test_submit_only_from_solution(
    machine: SessionStateMachine, config: SessionConfig, phase_setup: str
) -> None:
    if phase_setup == "memorization":
        machine.start_game(config)
    phase = machine.current_phase()

    with pytest.raises(InvalidTransitionError):
        machine.submit_solution()
    assert machine.current_phase() == phase
    assert machine.current_rating() == RatingState(rating=2000, streak=0)


def test_perfect_submission(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    """
    Memorized for 8s, rebuilt in 4s, 100%:
    +50 accuracy, +2 pieces (5 // 2), +20 time (8 / 4 * 10), scale 1.0 at a rating of 2000
    """
    machine.start_game(config)
    fake_clock.advance(8)
    machine.end_memorization()
    rebuild_original(machine)
    fake_clock.advance(4)

    session = machine.submit_solution()

    assert session.phase == Phase.RESULT
    assert session.completion_seconds == pytest.approx(4)
    assert session.accuracy_result is not None
    assert session.accuracy_result.accuracy_percent == 100
    assert session.rating_before == 2000
    assert session.rating_delta == 72
    assert session.rating_after == 2072
    assert session.streak == 1
    assert machine.current_rating() == RatingState(rating=2072, streak=1)


def test_sub_second_completion_time(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    machine.end_memorization()
    fake_clock.advance(1.234)
    session = machine.submit_solution()
    assert session.completion_seconds == pytest.approx(1.234)


def test_empty_solution_resets_streak(fixed_generator: Mock, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine = SessionStateMachine(
        rating_state=RatingState(rating=2000, streak=4), generator=fixed_generator, clock=fake_clock
    )
    machine.start_game(config)
    fake_clock.advance(10)
    machine.end_memorization()
    fake_clock.advance(30)

    session = machine.submit_solution()
    assert session.accuracy_result is not None
    assert session.accuracy_result.accuracy_percent == 0
    # -10 accuracy, +2 pieces, no time bonus
    assert session.rating_delta == -8
    assert machine.current_rating() == RatingState(rating=1992, streak=0)


def test_extra_piece_penalty_from_settings(fixed_generator: Mock, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine = SessionStateMachine(
        generator=fixed_generator, clock=fake_clock, settings=Settings(extra_piece_penalty=30)
    )
    machine.start_game(config)
    machine.end_memorization()
    rebuild_original(machine)
    machine.place_piece(sq("h5"), Piece(PieceType.ROOK, Color.BLACK))
    fake_clock.advance(1)

    session = machine.submit_solution()
    assert session.accuracy_result is not None
    assert session.accuracy_result.accuracy_percent == 70


def test_result_is_final(machine: SessionStateMachine, config: SessionConfig) -> None:
    """No more edits or submissions after the result."""
    machine.start_game(config)
    machine.end_memorization()
    machine.submit_solution()
    solution_fen = machine.current_session().solution_position.to_fen()

    with pytest.raises(InvalidTransitionError):
        machine.place_piece(sq("e4"), Piece(PieceType.PAWN, Color.WHITE))
    with pytest.raises(InvalidTransitionError):
        machine.submit_solution()
    with pytest.raises(InvalidTransitionError):
        machine.end_memorization()
    with pytest.raises(InvalidTransitionError):
        machine.start_game(SessionConfig(piece_count=5, memorize_time_seconds=10))

    assert machine.current_phase() == Phase.RESULT
    assert machine.current_session().solution_position.to_fen() == solution_fen
    assert machine.current_session().original_position.to_fen() == ORIGINAL


# -- RESET --
@pytest.mark.parametrize("steps", [0, 1, 2, 3])
def test_reset_from_any_phase(machine: SessionStateMachine, config: SessionConfig, steps: int) -> None:
    transitions = [
        lambda: machine.start_game(config),
        machine.end_memorization,
        machine.submit_solution,
    ]
    for transition in transitions[:steps]:
        transition()
    old_session = machine.current_session()

    new_session = machine.reset_game()

    assert new_session is not old_session
    assert new_session.id != old_session.id
    assert machine.current_phase() == Phase.CONFIGURATION
    assert machine.current_session().config is None


def test_reset_keeps_rating(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    fake_clock.advance(5)
    machine.end_memorization()
    rebuild_original(machine)
    fake_clock.advance(5)
    machine.submit_solution()
    rating = machine.current_rating()
    assert rating != RatingState(rating=2000, streak=0)

    old_session = machine.current_session()
    machine.reset_game()

    assert machine.current_rating() == rating
    assert machine.current_session() == Session(id=machine.current_session().id)
    # the finished session is left as it was
    assert old_session.phase == Phase.RESULT

    # and the next game starts from the new rating
    machine.start_game(config)
    machine.end_memorization()
    assert machine.submit_solution().rating_before == rating.rating


# -- LEADERBOARD HELPERS --
def test_to_leaderboard_entry(machine: SessionStateMachine, config: SessionConfig, fake_clock: FakeClock) -> None:
    machine.start_game(config)
    fake_clock.advance(6)
    machine.end_memorization()
    rebuild_original(machine)
    machine.remove_piece(sq("c3"))
    machine.place_piece(sq("c4"), Piece(PieceType.KNIGHT, Color.WHITE))
    fake_clock.advance(7.5)
    session = machine.submit_solution()

    entry = session.to_leaderboard_entry("magnus")
    assert entry.player_name == "magnus"
    assert entry.difficulty == Difficulty.MEDIUM
    assert entry.piece_count == 5
    assert entry.correct_pieces == 4
    assert entry.total_wrong_pieces == 1
    assert entry.memorize_time_seconds == pytest.approx(6)
    assert entry.solution_time_seconds == pytest.approx(7.5)
    # one entry per session
    assert entry.id == session.id
    assert session.to_leaderboard_entry("magnus").id == entry.id


def test_leaderboard_entry_needs_result(machine: SessionStateMachine) -> None:
    with pytest.raises(InvalidTransitionError):
        machine.current_session().to_leaderboard_entry("magnus")


def test_rank_of_in_any_phase(machine: SessionStateMachine) -> None:
    entries = [
        LeaderboardEntry("a", "medium", 8, 6, 10, 20, total_wrong_pieces=0),
        LeaderboardEntry("b", "medium", 8, 6, 5, 5, total_wrong_pieces=1),
    ]
    candidate = LeaderboardEntry("c", "medium", 8, 6, 8, 8, total_wrong_pieces=0)
    assert machine.rank_of(candidate, entries) == 1
    assert machine.current_phase() == Phase.CONFIGURATION
