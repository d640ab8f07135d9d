"""WebSocket event models.

Every frame is a ``{"type": ..., "payload": {...}}`` envelope with camelCase
payload keys.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter, field_validator

from .game import GameSnapshot, RevealPolicy, VotingSystem, WireModel


DEFAULT_GAME_NAME = "New Planning Session"
MAX_NAME_LENGTH = 64
MAX_ID_LENGTH = 64


class ErrorCode(str, Enum):
    """Machine-readable error codes sent alongside error messages."""

    INVALID_MESSAGE = "invalid_message"
    GAME_NOT_FOUND = "game_not_found"
    NOT_JOINED = "not_joined"
    INTERNAL_ERROR = "internal_error"


# =============================================================================
# Server to Client Events
# =============================================================================


class GameCreatedPayload(WireModel):
    game_id: str


class GameCreatedEvent(WireModel):
    """New game id, sent only to the creator."""

    type: Literal["GAME_CREATED"] = "GAME_CREATED"
    payload: GameCreatedPayload


class GameUpdateEvent(WireModel):
    """Full game snapshot, broadcast to every member."""

    type: Literal["GAME_UPDATE"] = "GAME_UPDATE"
    payload: GameSnapshot


class ErrorPayload(WireModel):
    message: str
    code: ErrorCode


class ErrorEvent(WireModel):
    """Error notification for the originating connection only."""

    type: Literal["ERROR"] = "ERROR"
    payload: ErrorPayload

    @classmethod
    def build(cls, code: ErrorCode, message: str) -> "ErrorEvent":
        return cls(payload=ErrorPayload(code=code, message=message))


# =============================================================================
# Client to Server Messages
# =============================================================================


class InboundPayload(WireModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class EmptyPayload(InboundPayload):
    pass


class CreateGamePayload(InboundPayload):
    player_id: str = Field(min_length=1, max_length=MAX_ID_LENGTH)
    player_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    game_name: str = Field(default=DEFAULT_GAME_NAME, max_length=MAX_NAME_LENGTH)
    voting_system: VotingSystem = VotingSystem.FIBONACCI
    reveal_policy: RevealPolicy = RevealPolicy.CREATOR_ONLY
    duration: Optional[int] = Field(default=None, gt=0)

    @field_validator("game_name")
    @classmethod
    def _default_blank_name(cls, value: str) -> str:
        return value or DEFAULT_GAME_NAME


class JoinGamePayload(InboundPayload):
    game_id: str = Field(min_length=1, max_length=MAX_ID_LENGTH)
    player_id: str = Field(min_length=1, max_length=MAX_ID_LENGTH)
    player_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class VotePayload(InboundPayload):
    vote: str = Field(max_length=MAX_NAME_LENGTH)


class StartTimerPayload(InboundPayload):
    duration: Optional[int] = Field(default=None, gt=0)


class SetTimerDurationPayload(InboundPayload):
    duration: int = Field(gt=0)


class ChangeNamePayload(InboundPayload):
    new_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class CreateGameMessage(WireModel):
    type: Literal["CREATE_GAME"]
    payload: CreateGamePayload


class JoinGameMessage(WireModel):
    type: Literal["JOIN_GAME"]
    payload: JoinGamePayload


class VoteMessage(WireModel):
    type: Literal["VOTE"]
    payload: VotePayload


class RevealCardsMessage(WireModel):
    type: Literal["REVEAL_CARDS"]
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class ResetGameMessage(WireModel):
    type: Literal["RESET_GAME"]
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class StartTimerMessage(WireModel):
    type: Literal["START_TIMER"]
    payload: StartTimerPayload = Field(default_factory=StartTimerPayload)


class SetTimerDurationMessage(WireModel):
    type: Literal["SET_TIMER_DURATION"]
    payload: SetTimerDurationPayload


class ChangeNameMessage(WireModel):
    type: Literal["CHANGE_NAME"]
    payload: ChangeNamePayload


ClientMessage = Annotated[
    Union[
        CreateGameMessage,
        JoinGameMessage,
        VoteMessage,
        RevealCardsMessage,
        ResetGameMessage,
        StartTimerMessage,
        SetTimerDurationMessage,
        ChangeNameMessage,
    ],
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: Any) -> ClientMessage:
    """Validate a decoded JSON frame into a typed client message.

    Raises pydantic.ValidationError for unknown types or bad payloads.
    """
    return _client_message_adapter.validate_python(data)
