"""Orchestration of communication from API router to the engine and persistence layers (and the reverse direction)."""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from src.chess.pieces import Piece
from src.chess.square import Square
from src.core.config import Settings
from src.core.exceptions import (
    InvalidRequestError,
    PersistenceError,
    SessionNotFoundError,
)
from src.core.models import GameMetric, LeaderboardEntry
from src.core.shared_types import Difficulty, Phase
from src.db.repository import LeaderboardRepository, MetricsRepository, RatingRepository
from src.db.store import RowStore
from src.engine.difficulty import classify_config, is_ranked
from src.engine.generator import RandomSource
from src.engine.leaderboard import rank_of
from src.engine.rating import RatingState
from src.engine.session import Clock, Session, SessionConfig, SessionStateMachine, wall_clock
from src.services.player_sessions import PlayerSessions

log = logging.getLogger(__name__)

TOTAL_PLAYS_METRIC = "total_plays"
TOTAL_PIECES_METRIC = "total_pieces_memorized"


@dataclass
class SubmissionOutcome:
    """
    What the player gets back after submitting.
    ---

    The session result is final as soon as it exists. Persistence problems only show up as warnings.
    """

    session: Session
    rating: RatingState
    rank: Optional[int] = None
    warnings: list[str] = field(default_factory=list)


class TrainingService:
    """
    The player state machines live in PlayerSessions (shared), the store is per request.
    The store is only touched after a transition has completed.
    """

    def __init__(
        self,
        store: RowStore,
        sessions: Optional[PlayerSessions] = None,
        settings: Optional[Settings] = None,
        clock: Clock = wall_clock,
        random_source: RandomSource = random.random,
    ) -> None:
        self.sessions = sessions or PlayerSessions(
            settings=settings, clock=clock, random_source=random_source
        )
        self.settings = self.sessions.settings
        self.random_source = self.sessions.random_source
        self.leaderboard_repo = LeaderboardRepository(store)
        self.rating_repo = RatingRepository(store, initial_rating=self.settings.initial_rating)
        self.metrics_repo = MetricsRepository(store)

    # -- Game flow --
    def start_game(self, player_name: str, config: SessionConfig) -> Session:
        """Configs outside the preset of their difficulty are played as custom (unranked) games."""
        with self.sessions.lock:
            machine = self.sessions.get(player_name) or self._create_machine(player_name)
            return machine.start_game(classify_config(config))

    def end_memorization(self, player_name: str) -> Session:
        with self.sessions.lock:
            return self._machine(player_name).end_memorization()

    def check_timeout(self, player_name: str) -> Session:
        """Timer poll. Ends memorization if the time is up, otherwise returns the session unchanged."""
        with self.sessions.lock:
            machine = self._machine(player_name)
            machine.check_memorization_timeout()
            return machine.current_session()

    def place_piece(self, player_name: str, square: Square, piece: Piece) -> Session:
        with self.sessions.lock:
            machine = self._machine(player_name)
            machine.place_piece(square, piece)
            return machine.current_session()

    def remove_piece(self, player_name: str, square: Square) -> Session:
        with self.sessions.lock:
            machine = self._machine(player_name)
            machine.remove_piece(square)
            return machine.current_session()

    def submit_solution(
        self, player_name: str, submit_to_leaderboard: bool = False
    ) -> SubmissionOutcome:
        """
        Score the solution, then run the persistence follow-ups.
        ---

        1. the engine moves to RESULT (in memory, cannot fail on the network)
        2. save the new rating
        3. bump the global play counters
        4. (optional) compute the rank and submit the leaderboard entry. Custom games are skipped with a warning.

        Each follow-up that fails adds a warning. None of them can undo step 1.
        """
        with self.sessions.lock:
            machine = self._machine(player_name)
            session = machine.submit_solution()
            outcome = SubmissionOutcome(session=session, rating=machine.current_rating())

            follow_ups: list[tuple[str, Callable[[], None]]] = [
                ("save rating", lambda: self.save_rating(player_name)),
                ("update game stats", lambda: self._count_play(session)),
            ]
            if submit_to_leaderboard:
                if self._is_ranked_session(session):

                    def _submit() -> None:
                        outcome.rank = self.submit_leaderboard_entry(player_name)

                    follow_ups.append(("submit leaderboard entry", _submit))
                else:
                    outcome.warnings.append("Custom games are not ranked on the leaderboard.")

            for description, follow_up in follow_ups:
                try:
                    follow_up()
                except PersistenceError as exc:
                    log.warning("Could not %s for %s: %s", description, player_name, exc)
                    outcome.warnings.append(f"Could not {description}: {exc}")
            return outcome

    def reset_game(self, player_name: str) -> Session:
        with self.sessions.lock:
            return self._machine(player_name).reset_game()

    def get_session(self, player_name: str) -> Session:
        with self.sessions.lock:
            return self._machine(player_name).current_session()

    def get_rating(self, player_name: str) -> RatingState:
        with self.sessions.lock:
            machine = self.sessions.get(player_name)
            if machine is not None:
                return machine.current_rating()
        return self.rating_repo.load(player_name)

    # -- Persistence calls, can be retried on their own --
    def save_rating(self, player_name: str) -> RatingState:
        return self.rating_repo.save(player_name, self._machine(player_name).current_rating())

    def submit_leaderboard_entry(self, player_name: str) -> int:
        """Store the finished session on the leaderboard. Returns the rank it got. Submitting the same session again keeps a single entry."""
        session = self._machine(player_name).current_session()
        if not self._is_ranked_session(session):
            raise InvalidRequestError("Custom games are not ranked on the leaderboard.")

        entry = session.to_leaderboard_entry(player_name)
        entries = self.leaderboard_repo.all_entries(entry.difficulty)
        # A resubmission keeps the original submission time (tie breaker in the ranking)
        entry = next((stored for stored in entries if stored.id == entry.id), entry)
        rank = rank_of(entry, entries)
        self.leaderboard_repo.submit(entry)
        log.info("Leaderboard entry for %s (%s) ranked %d", player_name, entry.difficulty, rank)
        return rank

    def preview_rank(self, candidate: LeaderboardEntry) -> int:
        """'What would my rank be': counted over the whole difficulty, not just the displayed top."""
        difficulty = Difficulty(candidate.difficulty)
        self._require_ranked(difficulty)
        return rank_of(candidate, self.leaderboard_repo.all_entries(difficulty))

    def leaderboard(self, difficulty: Difficulty) -> list[LeaderboardEntry]:
        self._require_ranked(difficulty)
        return self.leaderboard_repo.top_entries(difficulty, limit=self.settings.leaderboard_limit)

    def metrics(self) -> list[GameMetric]:
        return self.metrics_repo.all_metrics()

    def metric(self, name: str) -> Optional[GameMetric]:
        return self.metrics_repo.get(name)

    def increment_metric(self, name: str, delta: int = 1) -> int:
        return self.metrics_repo.increment(name, delta)

    # -- Internal helpers --
    def _machine(self, player_name: str) -> SessionStateMachine:
        machine = self.sessions.get(player_name)
        if machine is None:
            raise SessionNotFoundError(f"No training session for player {player_name!r}.")
        return machine

    def _create_machine(self, player_name: str) -> SessionStateMachine:
        """A failing store must not keep the player from training: fall back to a fresh rating."""
        try:
            rating_state = self.rating_repo.load(player_name)
        except PersistenceError as exc:
            log.warning("Could not load rating for %s, starting fresh: %s", player_name, exc)
            rating_state = RatingState(rating=self.settings.initial_rating)
        return self.sessions.add(player_name, rating_state)

    def _count_play(self, session: Session) -> None:
        if session.phase != Phase.RESULT or session.config is None:
            return
        self.metrics_repo.increment(TOTAL_PLAYS_METRIC)
        self.metrics_repo.increment(TOTAL_PIECES_METRIC, session.config.piece_count)

    def _is_ranked_session(self, session: Session) -> bool:
        return session.config is not None and is_ranked(session.config.difficulty)

    def _require_ranked(self, difficulty: Difficulty) -> None:
        if not is_ranked(difficulty):
            raise InvalidRequestError(f"There is no leaderboard for {difficulty!s} games.")
