"""Application factory: wires settings, database sessions, player sessions and routes together."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from src.api.routes import router
from src.core.config import Settings, configure_logging
from src.core.exceptions import (
    GameError,
    GenerationFailureError,
    InvalidConfigError,
    InvalidPositionError,
    InvalidRequestError,
    InvalidTransitionError,
    PersistenceError,
    SessionNotFoundError,
)
from src.db.database import create_db_engine, create_session_factory
from src.services.player_sessions import PlayerSessions

log = logging.getLogger(__name__)

UNPROCESSABLE = 422

# Most specific first: the first matching class decides the status code
ERROR_STATUS_CODES: list[tuple[type[GameError], int]] = [
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidConfigError, UNPROCESSABLE),
    (InvalidRequestError, UNPROCESSABLE),
    (InvalidPositionError, UNPROCESSABLE),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GenerationFailureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


async def handle_game_error(request: Request, exc: Exception) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    if status_code >= 500:
        log.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker[Session]] = None,
    player_sessions: Optional[PlayerSessions] = None,
) -> FastAPI:
    """
    Every request opens its own database session from `session_factory`. The player state machines outlive the
    requests, so they live in the app-owned PlayerSessions.
    Pass a session factory (ex. bound to a test database) to skip creating the engine.
    """
    settings = settings or Settings.from_env()
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(settings))

    app = FastAPI(title="Memory Chess Trainer", version="0.1.0")
    app.state.session_factory = session_factory
    app.state.player_sessions = player_sessions or PlayerSessions(settings=settings)
    app.include_router(router)
    app.add_exception_handler(GameError, handle_game_error)
    return app


def main() -> FastAPI:
    """Entrypoint for `uvicorn --factory src.api.app:main`."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)
