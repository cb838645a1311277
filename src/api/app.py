"""
Thin FastAPI adapter: the push channel over a websocket, and the request/response calls (moves, chat, lifecycle) over HTTP.

Start with (needs the `server` extra): uvicorn --factory src.api.app:create_app
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from src.api.models import (
    ChatMessageResponse,
    ChatRequest,
    CreateGameRequest,
    GameListingResponse,
    GameResponse,
    LegalMovesResponse,
    MoveRecordResponse,
    MoveRequest,
    MoveResponse,
    OnlineUserResponse,
)
from src.core.config import Settings, get_settings
from src.core.exceptions import (
    AuthorizationError,
    GameError,
    GameNotFoundError,
    GameStateError,
    InvalidTokenError,
    RateLimitedError,
    StorageError,
    UnauthenticatedError,
)
from src.core.logging import configure_logging
from src.core.models import GameSnapshot
from src.db.database import create_session_factory
from src.db.repository import GameRepository
from src.db.sql_repository import SQLGameRepository
from src.realtime.auth import TokenVerifier
from src.realtime.gateway import Gateway
from src.realtime.presence import PresenceRegistry
from src.realtime.rate_limiter import SlidingWindowRateLimiter
from src.realtime.rooms import RoomRegistry
from src.services.checkers_service import CheckersService
from src.services.game_store import GameStore

# Most specific first: the first matching class decides the status code
STATUS_CODES: list[tuple[type[GameError], int]] = [
    (GameNotFoundError, 404),
    (StorageError, 500),
    (UnauthenticatedError, 401),
    (InvalidTokenError, 401),
    (RateLimitedError, 429),
    (AuthorizationError, 403),
    (GameStateError, 409),
]


def status_code_for(exc: GameError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[GameRepository] = None,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> FastAPI:
    """Wire every component explicitly. Nothing is a module level singleton, so tests get isolated instances."""
    settings = settings or get_settings()
    configure_logging(settings)

    if repository is None:
        repository = SQLGameRepository(session_factory or create_session_factory(settings))

    presence = PresenceRegistry()
    rooms = RoomRegistry(presence)
    service = CheckersService(GameStore(repository), rooms, presence, settings)
    verifier = TokenVerifier(settings.secret_key, settings.token_max_age_sec)
    gateway = Gateway(
        service,
        rooms,
        presence,
        verifier,
        SlidingWindowRateLimiter(settings.max_messages_per_minute, settings.rate_limit_window_sec),
        settings,
    )

    app = FastAPI(title="checkers-live", version="1.0.0")
    app.state.service = service
    app.state.gateway = gateway
    app.state.verifier = verifier

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=status_code, content={"reason": exc.reason, "message": str(exc)}
        )

    def current_identity(authorization: Annotated[Optional[str], Header()] = None) -> str:
        if not authorization or not authorization.lower().startswith("bearer "):
            raise UnauthenticatedError("Missing bearer token.")
        return verifier.verify(authorization.split(" ", 1)[1].strip())

    Identity = Annotated[str, Depends(current_identity)]

    def game_response(snapshot: GameSnapshot) -> GameResponse:
        return GameResponse.from_snapshot(snapshot)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/games", status_code=201)
    async def create_game(request: CreateGameRequest, identity: Identity) -> GameResponse:
        return game_response(await service.create_game(identity, request.invitee))

    @app.get("/games")
    async def list_active_games() -> list[GameListingResponse]:
        return [
            GameListingResponse.from_listing(listing)
            for listing in await service.list_active_games()
        ]

    @app.get("/games/{game_id}")
    async def get_game(game_id: UUID) -> GameResponse:
        return game_response(await service.get_snapshot(game_id))

    @app.post("/games/{game_id}/accept")
    async def accept_invitation(game_id: UUID, identity: Identity) -> GameResponse:
        return game_response(await service.accept_invitation(game_id, identity))

    @app.post("/games/{game_id}/move")
    async def submit_move(game_id: UUID, request: MoveRequest, identity: Identity) -> GameResponse:
        snapshot = await service.submit_move(
            game_id, identity, request.from_square, request.to_square, request.expected_version
        )
        return game_response(snapshot)

    @app.get("/games/{game_id}/legal-moves")
    async def legal_moves(game_id: UUID, identity: Identity) -> LegalMovesResponse:
        moves = await service.legal_moves(game_id, identity)
        return LegalMovesResponse(
            game_id=game_id,
            player_name=identity,
            legal_moves=[MoveResponse.from_move(move) for move in moves],
        )

    @app.get("/games/{game_id}/moves")
    async def move_history(game_id: UUID) -> list[MoveRecordResponse]:
        return [
            MoveRecordResponse.from_record(record)
            for record in await service.move_history(game_id)
        ]

    @app.post("/games/{game_id}/abandon")
    async def abandon(game_id: UUID, identity: Identity) -> GameResponse:
        return game_response(await service.abandon(game_id, identity))

    @app.post("/games/{game_id}/chat", status_code=201)
    async def submit_chat(
        game_id: UUID, request: ChatRequest, identity: Identity
    ) -> ChatMessageResponse:
        return ChatMessageResponse.from_message(
            await service.submit_chat(game_id, identity, request.text)
        )

    @app.get("/games/{game_id}/chat")
    async def chat_history(game_id: UUID) -> list[ChatMessageResponse]:
        return [
            ChatMessageResponse.from_message(message)
            for message in await service.chat_history(game_id)
        ]

    @app.get("/users/online")
    async def online_users() -> list[OnlineUserResponse]:
        return [OnlineUserResponse.from_status(user) for user in service.online_users()]

    @app.get("/users/{identity}/games")
    async def games_of_user(identity: str) -> list[GameListingResponse]:
        return [
            GameListingResponse.from_listing(listing)
            for listing in await service.list_games_for(identity)
        ]

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        await websocket.accept()

        async def receive() -> Optional[str | bytes]:
            try:
                message = await websocket.receive()
            except WebSocketDisconnect:
                return None
            if message["type"] == "websocket.disconnect":
                return None
            text = message.get("text")
            return text if text is not None else message.get("bytes", b"")

        await gateway.serve(receive, websocket.send_text)

    return app
