"""REST API routes."""

from fastapi import APIRouter, HTTPException

from ..game import GameSessionManager
from ..models.api import HealthResponse, VotingSystemsResponse
from ..models.game import VOTING_SYSTEMS, GameSnapshot
from ..websocket_manager import ConnectionManager

router = APIRouter()

# Global managers (will be initialized in main.py)
game_manager: GameSessionManager = None
connection_manager: ConnectionManager = None


def init_dependencies(gm: GameSessionManager, cm: ConnectionManager):
    """Initialize route dependencies."""
    global game_manager, connection_manager
    game_manager = gm
    connection_manager = cm


@router.get("/games/{game_id}", response_model=GameSnapshot)
async def get_game(game_id: str):
    """Get the current (redacted) snapshot of a game."""
    if game_manager is None:
        raise HTTPException(status_code=500, detail="Server not initialized")

    session = game_manager.find_game(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Game not found")

    return session.snapshot()


@router.get("/voting-systems", response_model=VotingSystemsResponse)
async def list_voting_systems():
    """List the card values of every voting system."""
    return VotingSystemsResponse(systems=VOTING_SYSTEMS)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        active_games=game_manager.active_game_count if game_manager else 0,
        active_connections=connection_manager.connection_count if connection_manager else 0,
    )
