"""Game state machine, store and timers."""

from .errors import InvalidInput, NotFound, NotJoined, PermissionDenied, PlanningPokerError
from .session import GameSession, GameSessionManager, Player
from .timer import RoundTimer

__all__ = [
    "GameSession",
    "GameSessionManager",
    "Player",
    "RoundTimer",
    "PlanningPokerError",
    "NotFound",
    "NotJoined",
    "PermissionDenied",
    "InvalidInput",
]
