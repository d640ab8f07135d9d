"""Pydantic models for game state and events."""

from .game import (
    BREAK_CARD,
    UNKNOWN_CARD,
    VOTING_SYSTEMS,
    GameSnapshot,
    PlayerView,
    RevealPolicy,
    VotingSystem,
)
from .events import (
    # Server to client
    ErrorCode,
    ErrorEvent,
    GameCreatedEvent,
    GameUpdateEvent,
    # Client to server
    ChangeNameMessage,
    ClientMessage,
    CreateGameMessage,
    JoinGameMessage,
    ResetGameMessage,
    RevealCardsMessage,
    SetTimerDurationMessage,
    StartTimerMessage,
    VoteMessage,
    parse_client_message,
)
from .api import HealthResponse, VotingSystemsResponse

__all__ = [
    # Game models
    "BREAK_CARD",
    "UNKNOWN_CARD",
    "VOTING_SYSTEMS",
    "GameSnapshot",
    "PlayerView",
    "RevealPolicy",
    "VotingSystem",
    # Events
    "ErrorCode",
    "ErrorEvent",
    "GameCreatedEvent",
    "GameUpdateEvent",
    "ChangeNameMessage",
    "ClientMessage",
    "CreateGameMessage",
    "JoinGameMessage",
    "ResetGameMessage",
    "RevealCardsMessage",
    "SetTimerDurationMessage",
    "StartTimerMessage",
    "VoteMessage",
    "parse_client_message",
    # API
    "HealthResponse",
    "VotingSystemsResponse",
]
