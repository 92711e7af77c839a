"""
The SessionStateMachine is the entrypoint into the engine for the service layer.
It orchestrates one training session: generate a position, let the player memorize it, collect the reconstruction and score it.

Phases:  CONFIGURATION -> MEMORIZATION -> SOLUTION -> RESULT, and back to CONFIGURATION only through reset_game().
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID, uuid4

from src.chess.pieces import Piece
from src.chess.position import Position
from src.chess.square import Square
from src.core.config import Settings
from src.core.exceptions import InvalidConfigError, InvalidTransitionError
from src.core.models import LeaderboardEntry
from src.core.shared_types import Difficulty, Phase
from src.engine.comparator import AccuracyResult, compare
from src.engine.generator import MAX_PIECES, MIN_PIECES, PositionGenerator
from src.engine.leaderboard import rank_of
from src.engine.rating import RatingState, next_rating

log = logging.getLogger(__name__)

# Milliseconds since some fixed point in time
Clock = Callable[[], float]

MIN_MEMORIZE_SECONDS = 1
MAX_MEMORIZE_SECONDS = 60


def wall_clock() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class SessionConfig:
    piece_count: int
    memorize_time_seconds: float
    difficulty: Difficulty = Difficulty.MEDIUM

    def __post_init__(self) -> None:
        if not MIN_PIECES <= self.piece_count <= MAX_PIECES:
            raise InvalidConfigError(
                f"Piece count must be between {MIN_PIECES} and {MAX_PIECES}, got {self.piece_count}."
            )
        if not MIN_MEMORIZE_SECONDS <= self.memorize_time_seconds <= MAX_MEMORIZE_SECONDS:
            raise InvalidConfigError(
                f"Memorize time must be between {MIN_MEMORIZE_SECONDS} and {MAX_MEMORIZE_SECONDS} seconds, got {self.memorize_time_seconds}."
            )


@dataclass
class Session:
    """Aggregate root of one training session. Timestamps are clock milliseconds."""

    phase: Phase = Phase.CONFIGURATION
    config: Optional[SessionConfig] = None
    original_position: Position = field(default_factory=Position.empty)
    solution_position: Position = field(default_factory=Position.empty)
    memorize_started_at: Optional[float] = None
    memorize_ended_at: Optional[float] = None
    solution_started_at: Optional[float] = None
    completion_seconds: Optional[float] = None
    accuracy_result: Optional[AccuracyResult] = None
    rating_before: Optional[int] = None
    rating_after: Optional[int] = None
    rating_delta: Optional[int] = None
    streak: Optional[int] = None
    id: UUID = field(default_factory=uuid4)

    @property
    def actual_memorize_seconds(self) -> Optional[float]:
        """How long the position was actually shown. The player may end memorization early."""
        if self.memorize_started_at is None or self.memorize_ended_at is None:
            return None
        return (self.memorize_ended_at - self.memorize_started_at) / 1000

    @property
    def memorize_seconds(self) -> Optional[float]:
        """Actual memorize time where available, the configured one otherwise."""
        if self.actual_memorize_seconds is not None:
            return self.actual_memorize_seconds
        return self.config.memorize_time_seconds if self.config else None

    def to_leaderboard_entry(self, player_name: str) -> LeaderboardEntry:
        """Leaderboard record of a finished session."""
        if self.phase != Phase.RESULT:
            raise InvalidTransitionError("create a leaderboard entry", self.phase)

        # for the typechecker: a session in RESULT has all of these
        assert self.config is not None
        assert self.accuracy_result is not None
        assert self.completion_seconds is not None
        assert self.memorize_seconds is not None

        return LeaderboardEntry(
            player_name=player_name,
            difficulty=self.config.difficulty,
            piece_count=self.config.piece_count,
            correct_pieces=self.accuracy_result.correct_placements,
            total_wrong_pieces=self.accuracy_result.incorrect_placements,
            memorize_time_seconds=self.memorize_seconds,
            solution_time_seconds=self.completion_seconds,
            # One entry per session, so a resubmission replaces it
            id=self.id,
        )


class SessionStateMachine:
    """
    Owns the current Session and the player's RatingState.
    ---

    * Single writer: callers serialize the calls, the engine does no locking.
    * An operation requested from the wrong phase raises InvalidTransitionError and leaves everything as it was.
    * No persistence happens here. The service layer stores results after a transition has completed.
    """

    def __init__(
        self,
        rating_state: Optional[RatingState] = None,
        generator: Optional[PositionGenerator] = None,
        clock: Clock = wall_clock,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.rating_state = rating_state or RatingState(rating=self.settings.initial_rating)
        self.generator = generator or PositionGenerator(
            max_attempts=self.settings.max_generation_attempts
        )
        self.clock = clock
        self.session = Session()

    # --- ENGINE API CALLED BY SERVICE ---
    def start_game(self, config: SessionConfig) -> Session:
        """
        Generate the position to memorize and start showing it.

        A GenerationFailureError propagates to the caller. The session then stays in CONFIGURATION.
        """
        self._assert_phase("start a game", Phase.CONFIGURATION)

        original = self.generator.generate(config.piece_count)

        self.session.config = config
        self.session.original_position = original
        self.session.solution_position = Position.empty()
        self.session.memorize_started_at = self.clock()
        self._change_phase(Phase.MEMORIZATION)
        return self.session

    def end_memorization(self) -> Session:
        """The player is done memorizing (or the timer ran out). Hide the position and hand over an empty board."""
        self._assert_phase("end memorization", Phase.MEMORIZATION)
        self._enter_solution()
        return self.session

    def check_memorization_timeout(self) -> bool:
        """
        Timer hook: ends memorization once the configured time has passed.
        ---

        Returns False (and does nothing) before the deadline, or when memorization already ended.
        Firing after a manual end_memorization() is therefore harmless.
        """
        if self.session.phase != Phase.MEMORIZATION:
            return False

        deadline = self.memorization_deadline()
        if deadline is None or self.clock() < deadline:
            return False

        log.info("Memorization time is up for session %s", self.session.id)
        self._enter_solution()
        return True

    def memorization_deadline(self) -> Optional[float]:
        """Clock time (ms) at which memorization ends automatically."""
        if self.session.config is None or self.session.memorize_started_at is None:
            return None
        return self.session.memorize_started_at + self.session.config.memorize_time_seconds * 1000

    def place_piece(self, square: Square, piece: Piece) -> None:
        """Put a piece on the solution board. Replaces whatever stood on the square."""
        self._assert_phase("place a piece", Phase.SOLUTION)
        self.session.solution_position.place(square, piece)

    def remove_piece(self, square: Square) -> Optional[Piece]:
        self._assert_phase("remove a piece", Phase.SOLUTION)
        return self.session.solution_position.remove(square)

    def submit_solution(self) -> Session:
        """
        Score the reconstruction
        ----

        1. completion time (float seconds, sub-second precision)
        2. compare the solution against the original
        3. compute the new rating and streak
        4. enter RESULT (positions are frozen from here on)
        """
        self._assert_phase("submit a solution", Phase.SOLUTION)

        # for the typechecker: a session in SOLUTION has all of these
        assert self.session.config is not None
        assert self.session.solution_started_at is not None
        assert self.session.memorize_seconds is not None

        completion_seconds = (self.clock() - self.session.solution_started_at) / 1000
        result = compare(
            self.session.original_position,
            self.session.solution_position,
            extra_piece_penalty=self.settings.extra_piece_penalty,
        )
        rating_before = self.rating_state.rating
        change = next_rating(
            accuracy=result.accuracy_percent,
            piece_count=self.session.config.piece_count,
            completion_seconds=completion_seconds,
            memorize_seconds=self.session.memorize_seconds,
            current_rating=rating_before,
        )
        self.rating_state = self.rating_state.apply(result.accuracy_percent, change)

        self.session.completion_seconds = completion_seconds
        self.session.accuracy_result = result
        self.session.rating_before = rating_before
        self.session.rating_after = change.new_rating
        self.session.rating_delta = change.delta
        self.session.streak = self.rating_state.streak
        self._change_phase(Phase.RESULT)
        log.info(
            "Session %s scored %d%% (%d/%d correct, %d extra), rating %d -> %d",
            self.session.id,
            result.accuracy_percent,
            result.correct_placements,
            result.total_original_pieces,
            result.extra_pieces,
            rating_before,
            change.new_rating,
        )
        return self.session

    def reset_game(self) -> Session:
        """Allowed from every phase. Throws away the current session; only the rating state survives."""
        log.info("Resetting session %s (phase %s)", self.session.id, self.session.phase)
        self.session = Session()
        return self.session

    # --- READ-ONLY ACCESSORS ---
    def current_phase(self) -> Phase:
        return self.session.phase

    def current_session(self) -> Session:
        return self.session

    def current_rating(self) -> RatingState:
        return self.rating_state

    def rank_of(self, candidate: LeaderboardEntry, entries: Iterable[LeaderboardEntry]) -> int:
        """Convenience wrapper, usable in any phase (ex. 'what would my rank be' previews)."""
        return rank_of(candidate, entries)

    # -- PRIVATE HELPERS ---
    def _assert_phase(self, operation: str, expected: Phase) -> None:
        if self.session.phase != expected:
            log.debug(
                "Rejected %r in phase %s (session %s)",
                operation,
                self.session.phase,
                self.session.id,
            )
            raise InvalidTransitionError(operation, self.session.phase)

    def _enter_solution(self) -> None:
        """Shared by the manual and the timed transition, so both end in the same state."""
        now = self.clock()
        self.session.memorize_ended_at = now
        self.session.solution_position = Position.empty()
        self.session.solution_started_at = now
        self._change_phase(Phase.SOLUTION)

    def _change_phase(self, new_phase: Phase) -> None:
        log.info("Session %s: %s -> %s", self.session.id, self.session.phase, new_phase)
        self.session.phase = new_phase
