"""
HTTP routes. Thin layer: validate the request, call the TrainingService, convert the result into a response model.

NOTE: the handlers are plain `def`, so FastAPI runs them in its threadpool. Each request gets its own database session,
the player state machines are shared through the app's PlayerSessions (which serializes access to them).
"""

from typing import Generator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session as DBSession

from src.api.models import (
    AccuracyResponse,
    IncrementMetricRequest,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    MetricResponse,
    PlacePieceRequest,
    RankRequest,
    RatingResponse,
    RankResponse,
    SessionResponse,
    StartGameRequest,
    SubmissionResponse,
    SubmitSolutionRequest,
    parse_square,
)
from src.chess.pieces import Piece
from src.core.models import GameMetric, LeaderboardEntry
from src.core.shared_types import Difficulty, Phase
from src.engine.difficulty import build_config, recommend_difficulty
from src.engine.leaderboard import rank_of
from src.engine.rating import RatingState
from src.db.database import get_db
from src.db.sql_store import SQLRowStore
from src.engine.session import Session
from src.services.training_service import TrainingService

router = APIRouter()


def get_db_session(request: Request) -> Generator[DBSession, None, None]:
    """Opened for one request and closed once the response is sent."""
    yield from get_db(request.app.state.session_factory)


def get_service(
    request: Request, db: DBSession = Depends(get_db_session)
) -> TrainingService:
    return TrainingService(SQLRowStore(db), sessions=request.app.state.player_sessions)


# --- GAME ROUTES ---
@router.post("/games", status_code=status.HTTP_201_CREATED)
def start_game(
    body: StartGameRequest, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    config = build_config(
        body.difficulty,
        piece_count=body.piece_count,
        memorize_time_seconds=body.memorize_time_seconds,
        random_source=service.random_source,
    )
    session = service.start_game(body.player_name, config)
    return _session_response(body.player_name, session, service.get_rating(body.player_name))


@router.get("/games/{player_name}")
def get_game(
    player_name: str, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    session = service.get_session(player_name)
    return _session_response(player_name, session, service.get_rating(player_name))


@router.post("/games/{player_name}/end-memorization")
def end_memorization(
    player_name: str, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    session = service.end_memorization(player_name)
    return _session_response(player_name, session, service.get_rating(player_name))


@router.post("/games/{player_name}/timeout")
def check_timeout(
    player_name: str, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    session = service.check_timeout(player_name)
    return _session_response(player_name, session, service.get_rating(player_name))


@router.put("/games/{player_name}/pieces")
def place_piece(
    player_name: str,
    body: PlacePieceRequest,
    service: TrainingService = Depends(get_service),
) -> SessionResponse:
    piece = (
        Piece(body.piece_type, body.color, id=body.piece_id)
        if body.piece_id
        else Piece(body.piece_type, body.color)
    )
    session = service.place_piece(player_name, parse_square(body.square), piece)
    return _session_response(player_name, session, service.get_rating(player_name))


@router.delete("/games/{player_name}/pieces/{square}")
def remove_piece(
    player_name: str, square: str, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    session = service.remove_piece(player_name, parse_square(square))
    return _session_response(player_name, session, service.get_rating(player_name))


@router.post("/games/{player_name}/submit")
def submit_solution(
    player_name: str,
    body: Optional[SubmitSolutionRequest] = None,
    service: TrainingService = Depends(get_service),
) -> SubmissionResponse:
    submit = body.submit_to_leaderboard if body else False
    outcome = service.submit_solution(player_name, submit_to_leaderboard=submit)
    return SubmissionResponse(
        session=_session_response(player_name, outcome.session, outcome.rating),
        rank=outcome.rank,
        warnings=outcome.warnings,
    )


@router.post("/games/{player_name}/reset")
def reset_game(
    player_name: str, service: TrainingService = Depends(get_service)
) -> SessionResponse:
    session = service.reset_game(player_name)
    return _session_response(player_name, session, service.get_rating(player_name))


# --- PLAYER ROUTES ---
@router.get("/players/{player_name}/rating")
def get_rating(
    player_name: str, service: TrainingService = Depends(get_service)
) -> RatingResponse:
    rating = service.get_rating(player_name)
    return RatingResponse(
        player_name=player_name,
        rating=rating.rating,
        streak=rating.streak,
        recommended_difficulty=recommend_difficulty(rating),
    )


# --- LEADERBOARD ROUTES ---
@router.get("/leaderboard")
def get_leaderboard(
    difficulty: Difficulty = Query(default=Difficulty.MEDIUM),
    service: TrainingService = Depends(get_service),
) -> LeaderboardResponse:
    entries = service.leaderboard(difficulty)
    return LeaderboardResponse(
        difficulty=difficulty,
        entries=[
            _leaderboard_entry_response(entry, rank_of(entry, entries))
            for entry in entries
        ],
    )


@router.post("/leaderboard/rank")
def preview_rank(
    body: RankRequest, service: TrainingService = Depends(get_service)
) -> RankResponse:
    candidate = LeaderboardEntry(
        player_name="",
        difficulty=body.difficulty,
        piece_count=body.piece_count,
        correct_pieces=body.correct_pieces,
        total_wrong_pieces=body.total_wrong_pieces,
        memorize_time_seconds=body.memorize_time_seconds,
        solution_time_seconds=body.solution_time_seconds,
    )
    return RankResponse(difficulty=body.difficulty, rank=service.preview_rank(candidate))


# --- GAME STATS ROUTES ---
@router.get("/game-stats")
def get_metrics(service: TrainingService = Depends(get_service)) -> list[MetricResponse]:
    return [_metric_response(metric) for metric in service.metrics()]


@router.get("/game-stats/{metric_name}")
def get_metric(
    metric_name: str, service: TrainingService = Depends(get_service)
) -> MetricResponse:
    metric = service.metric(metric_name)
    if metric is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Metric {metric_name!r} not found.",
        )
    return _metric_response(metric)


@router.post("/game-stats")
def increment_metric(
    body: IncrementMetricRequest, service: TrainingService = Depends(get_service)
) -> MetricResponse:
    service.increment_metric(body.metric, body.increment)
    metric = service.metric(body.metric)
    # for the typechecker: the increment just created the metric
    assert metric is not None
    return _metric_response(metric)


# -- Internal helpers --
def _session_response(player_name: str, session: Session, rating: RatingState) -> SessionResponse:
    config = session.config
    result = session.accuracy_result
    show_original = session.phase in (Phase.MEMORIZATION, Phase.RESULT)
    return SessionResponse(
        session_id=session.id,
        player_name=player_name,
        phase=session.phase,
        difficulty=config.difficulty if config else None,
        piece_count=config.piece_count if config else None,
        memorize_time_seconds=config.memorize_time_seconds if config else None,
        original_fen=session.original_position.to_fen() if show_original else None,
        solution_fen=session.solution_position.to_fen(),
        actual_memorize_seconds=session.actual_memorize_seconds,
        completion_seconds=session.completion_seconds,
        accuracy=AccuracyResponse(
            accuracy_percent=result.accuracy_percent,
            correct_placements=result.correct_placements,
            total_original_pieces=result.total_original_pieces,
            extra_pieces=result.extra_pieces,
            incorrect_placements=result.incorrect_placements,
        )
        if result
        else None,
        rating_before=session.rating_before,
        rating_after=session.rating_after,
        rating_delta=session.rating_delta,
        rating=rating.rating,
        streak=rating.streak,
    )


def _leaderboard_entry_response(entry: LeaderboardEntry, rank: int) -> LeaderboardEntryResponse:
    return LeaderboardEntryResponse(
        rank=rank,
        player_name=entry.player_name,
        difficulty=entry.difficulty,
        piece_count=entry.piece_count,
        correct_pieces=entry.correct_pieces,
        total_wrong_pieces=entry.total_wrong_pieces,
        memorize_time_seconds=entry.memorize_time_seconds,
        solution_time_seconds=entry.solution_time_seconds,
        created_at=entry.created_at,
    )


def _metric_response(metric: GameMetric) -> MetricResponse:
    return MetricResponse(
        metric_name=metric.metric_name,
        metric_value=metric.metric_value,
        last_updated=metric.last_updated,
    )
