"""Errors raised by game state transitions."""


class PlanningPokerError(Exception):
    """Base class for game errors."""


class NotFound(PlanningPokerError):
    """Unknown game id."""

    def __init__(self, game_id: str):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


class PermissionDenied(PlanningPokerError):
    """Player may not perform an admin-only transition."""

    def __init__(self, player_id: str, action: str):
        super().__init__(f"Player {player_id} may not {action}")
        self.player_id = player_id
        self.action = action


class InvalidInput(PlanningPokerError):
    """Input rejected by a transition."""


class NotJoined(PlanningPokerError):
    """Connection is not bound to a player in a live game."""
