"""WebSocket endpoint handler."""

import json
from typing import Optional, Union

import structlog
from fastapi import WebSocket
from pydantic import ValidationError

from ..game import GameSession, GameSessionManager
from ..game.broadcast import broadcast_update
from ..game.errors import InvalidInput, NotFound, NotJoined, PermissionDenied
from ..models.events import (
    ChangeNameMessage,
    ClientMessage,
    CreateGameMessage,
    ErrorCode,
    ErrorEvent,
    GameCreatedEvent,
    GameCreatedPayload,
    JoinGameMessage,
    ResetGameMessage,
    RevealCardsMessage,
    SetTimerDurationMessage,
    StartTimerMessage,
    VoteMessage,
    parse_client_message,
)
from ..websocket_manager import ConnectionManager

logger = structlog.get_logger()


class ConnectionHandler:
    """Binds one connection to at most one (game, player) pair.

    Errors are reported only to this connection. Permission failures are
    logged and dropped: clients treat any ERROR as fatal for their session.
    """

    def __init__(
        self,
        connection_id: str,
        games: GameSessionManager,
        connections: ConnectionManager,
    ):
        self.connection_id = connection_id
        self.games = games
        self.connections = connections
        self.game_id: Optional[str] = None
        self.player_id: Optional[str] = None
        self.log = logger.bind(connection_id=connection_id)

    async def handle_frame(self, data: Union[str, bytes]) -> None:
        """Decode, validate and dispatch one inbound frame."""
        try:
            message = parse_client_message(json.loads(data))
        except (ValueError, RecursionError, ValidationError) as e:
            self.log.warning("invalid message", error=str(e))
            await self._send_error(ErrorCode.INVALID_MESSAGE, "Invalid message")
            return

        try:
            await self.dispatch(message)
        except NotFound as e:
            self.log.info("game not found", game_id=e.game_id)
            await self._send_error(ErrorCode.GAME_NOT_FOUND, "Game not found")
        except NotJoined:
            await self._send_error(ErrorCode.NOT_JOINED, "Join a game first")
        except InvalidInput as e:
            await self._send_error(ErrorCode.INVALID_MESSAGE, str(e))
        except PermissionDenied as e:
            self.log.info("permission denied", game_id=self.game_id, player_id=e.player_id, action=e.action)
        except Exception:
            self.log.exception("error handling message", message_type=message.type)
            await self._send_error(ErrorCode.INTERNAL_ERROR, "Internal server error")

    async def dispatch(self, message: ClientMessage) -> None:
        if isinstance(message, CreateGameMessage):
            await self._create_game(message)
        elif isinstance(message, JoinGameMessage):
            await self._join_game(message)
        elif isinstance(message, VoteMessage):
            session, player_id = self._bound_session()
            await self._broadcast_if(session, session.vote(player_id, message.payload.vote))
        elif isinstance(message, RevealCardsMessage):
            session, player_id = self._bound_session()
            if session.reveal(player_id):
                self.log.info("cards revealed", game_id=session.game_id, player_id=player_id)
                await self.games.disarm_timer(session.game_id)
                await broadcast_update(session, self.connections)
        elif isinstance(message, ResetGameMessage):
            session, player_id = self._bound_session()
            if session.reset(player_id):
                self.log.info("game reset", game_id=session.game_id, player_id=player_id)
                await self.games.disarm_timer(session.game_id)
                await broadcast_update(session, self.connections)
        elif isinstance(message, StartTimerMessage):
            session, player_id = self._bound_session()
            if session.start_timer(player_id, message.payload.duration):
                self.log.info("timer started", game_id=session.game_id, duration=session.timer_duration)
                await self.games.arm_timer(session)
                await broadcast_update(session, self.connections)
            else:
                self.log.info("timer start rejected", game_id=session.game_id)
        elif isinstance(message, SetTimerDurationMessage):
            session, player_id = self._bound_session()
            await self._broadcast_if(
                session, session.set_timer_duration(player_id, message.payload.duration)
            )
        elif isinstance(message, ChangeNameMessage):
            session, player_id = self._bound_session()
            await self._broadcast_if(session, session.rename(player_id, message.payload.new_name))

    async def _create_game(self, message: CreateGameMessage) -> None:
        payload = message.payload
        session = self.games.create_game(
            name=payload.game_name,
            voting_system=payload.voting_system,
            reveal_policy=payload.reveal_policy,
            creator_id=payload.player_id,
            timer_duration=payload.duration,
        )
        await self.connections.send_event(
            self.connection_id,
            GameCreatedEvent(payload=GameCreatedPayload(game_id=session.game_id)),
        )

    async def _join_game(self, message: JoinGameMessage) -> None:
        payload = message.payload
        try:
            session = self.games.get_game(payload.game_id)
        except NotFound:
            await self.on_disconnect()
            raise

        if self.game_id is not None and (self.game_id, self.player_id) != (
            payload.game_id,
            payload.player_id,
        ):
            await self.on_disconnect()

        session.join(payload.player_id, payload.player_name, self.connection_id)
        self.game_id = payload.game_id
        self.player_id = payload.player_id
        self.log.info("player joined", game_id=self.game_id, player_id=self.player_id)
        await broadcast_update(session, self.connections)

    def _bound_session(self) -> tuple[GameSession, str]:
        """Resolve this connection's binding or raise NotJoined."""
        if self.game_id is None or self.player_id is None:
            raise NotJoined()
        session = self.games.find_game(self.game_id)
        if session is None or self.player_id not in session.players:
            self.game_id = None
            self.player_id = None
            raise NotJoined()
        return session, self.player_id

    async def _broadcast_if(self, session: GameSession, changed: bool) -> None:
        if changed:
            await broadcast_update(session, self.connections)

    async def _send_error(self, code: ErrorCode, message: str) -> None:
        await self.connections.send_event(self.connection_id, ErrorEvent.build(code, message))

    async def on_disconnect(self) -> None:
        """Remove the bound player from its game and notify the others."""
        game_id, player_id = self.game_id, self.player_id
        self.game_id = None
        self.player_id = None
        if game_id is None or player_id is None:
            return

        session = self.games.find_game(game_id)
        if session is not None and session.leave(player_id, self.connection_id):
            self.log.info("player left", game_id=game_id, player_id=player_id)
            await broadcast_update(session, self.connections)


async def websocket_endpoint(
    websocket: WebSocket,
    games: GameSessionManager,
    connections: ConnectionManager,
):
    """Handle one client connection until it closes."""
    connection_id = await connections.connect(websocket)
    handler = ConnectionHandler(connection_id, games, connections)
    handler.log.info("websocket connected")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            await handler.handle_frame(data)
    finally:
        await handler.on_disconnect()
        await connections.disconnect(connection_id)
        handler.log.info("websocket disconnected")
