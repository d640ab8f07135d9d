"""API request/response models."""

from .game import VotingSystem, WireModel


class HealthResponse(WireModel):
    """Health check response."""

    status: str
    active_games: int
    active_connections: int


class VotingSystemsResponse(WireModel):
    """Card values per voting system."""

    systems: dict[VotingSystem, list[str]]
