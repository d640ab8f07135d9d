"""Push game snapshots to every member of a game."""

from typing import TYPE_CHECKING

from ..models.events import GameUpdateEvent

if TYPE_CHECKING:
    from ..websocket_manager import ConnectionManager
    from .session import GameSession


async def broadcast_update(session: "GameSession", connections: "ConnectionManager") -> None:
    """Send the same redacted snapshot to every connected player.

    The snapshot is built once, so all recipients see an identical view.
    """
    event = GameUpdateEvent(payload=session.snapshot())
    await connections.broadcast(session.connection_ids(), event)
