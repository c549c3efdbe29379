"""
Exception handlers for the Music Jeopardy API.
"""
import logging
from fastapi import Request, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jeopardy.core.config import settings
from jeopardy.core.exceptions import (
    GameException, GameNotFound, PlayerNotFound, TeamNotFound, GameConflict,
    GameFull, GameNotAccepting, PlayerNameTaken, ResultsAlreadyRecorded,
    TeamMembershipConflict, InvalidTransition, InvalidInput,
    Unauthorized, UpstreamError
)

logger = logging.getLogger(__name__)

# Most specific first; lookup walks the MRO of the raised exception.
ERROR_MAP = {
    GameNotFound: (404, "GAME_NOT_FOUND"),
    PlayerNotFound: (404, "PLAYER_NOT_FOUND"),
    TeamNotFound: (404, "TEAM_NOT_FOUND"),
    GameFull: (400, "GAME_FULL"),
    GameNotAccepting: (400, "GAME_NOT_ACCEPTING"),
    PlayerNameTaken: (400, "PLAYER_NAME_TAKEN"),
    ResultsAlreadyRecorded: (400, "RESULTS_ALREADY_RECORDED"),
    TeamMembershipConflict: (400, "TEAM_MEMBERSHIP_CONFLICT"),
    InvalidTransition: (400, "INVALID_TRANSITION"),
    InvalidInput: (400, "INVALID_INPUT"),
    Unauthorized: (401, "UNAUTHORIZED"),
    UpstreamError: (502, "UPSTREAM_ERROR"),
    GameConflict: (400, "GAME_CONFLICT"),
    GameException: (400, "GAME_ERROR"),
}


def create_error_response(status_code: int, detail: str, error_code: str, request: Request,
                          **extra) -> JSONResponse:
    """Every error body carries detail, error_code and request_id."""
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "error_code": error_code,
            "request_id": getattr(request.state, 'request_id', None),
            **extra
        }
    )


def status_for(exc: GameException):
    """Return (status_code, error_code) for a game exception."""
    for cls in type(exc).__mro__:
        if cls in ERROR_MAP:
            return ERROR_MAP[cls]
    return 400, "GAME_ERROR"


async def game_exception_handler(request: Request, exc: GameException) -> JSONResponse:
    status_code, error_code = status_for(exc)
    if status_code >= 500:
        logger.warning(f"{error_code} on {request.method} {request.url.path}: {exc}")
    else:
        logger.info(f"{error_code} on {request.method} {request.url.path}: {exc}")
    return create_error_response(status_code, str(exc), error_code, request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are invalid input, reported as 400 with per-field errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]
    return create_error_response(400, "Validation error", "VALIDATION_ERROR", request, errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return create_error_response(exc.status_code, exc.detail, f"HTTP_{exc.status_code}", request)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return create_error_response(500, detail, "INTERNAL_ERROR", request)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GameException, game_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
