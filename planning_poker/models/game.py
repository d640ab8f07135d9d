"""Game state models."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


UNKNOWN_CARD = "?"
BREAK_CARD = "☕"


class VotingSystem(str, Enum):
    """Predefined card sets."""

    FIBONACCI = "fibonacci"
    NATURAL = "natural"
    TSHIRT = "tshirt"


class RevealPolicy(str, Enum):
    """Who may reveal, reset and control the timer."""

    CREATOR_ONLY = "creator"
    ALL_MEMBERS = "all"


VOTING_SYSTEMS: dict[VotingSystem, list[str]] = {
    VotingSystem.FIBONACCI: [
        "0", "1", "2", "3", "5", "8", "13", "21", "34", "55", "89",
        UNKNOWN_CARD, BREAK_CARD,
    ],
    VotingSystem.NATURAL: ["1", "2", "4", "8", "16", "20", "24", UNKNOWN_CARD, BREAK_CARD],
    VotingSystem.TSHIRT: ["XS", "S", "M", "L", "XL", "XXL", UNKNOWN_CARD, BREAK_CARD],
}


class WireModel(BaseModel):
    """Base for models exchanged with clients (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlayerView(WireModel):
    """One player as seen by every member of a game.

    ``vote`` is a bool ("has voted") until the game is revealed, then the
    literal card value, or None when the player never voted.
    """

    id: str
    name: str
    vote: Union[bool, str, None]
    is_creator: bool


class GameSnapshot(WireModel):
    """Complete, redacted view of a game."""

    id: str
    name: str
    voting_system: VotingSystem
    reveal_policy: RevealPolicy
    revealed: bool
    creator_id: str
    timer_started_at: Optional[int]  # epoch ms
    timer_duration: int  # seconds
    server_time: int  # epoch ms
    players: list[PlayerView]
