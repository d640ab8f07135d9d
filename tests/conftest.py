"""Root conftest for path setup and shared fixtures.

This file is loaded first by pytest and ensures the project root
is on sys.path before any test modules are imported.
"""

import sys
from pathlib import Path

# Add project root to path IMMEDIATELY
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import json
from typing import Any, Optional

import pytest

from planning_poker.api.websocket import ConnectionHandler
from planning_poker.game.session import GameSession, GameSessionManager
from planning_poker.models.game import RevealPolicy, VotingSystem
from planning_poker.websocket_manager import ConnectionManager


FIXED_TIME = 1_700_000_000.0


# =============================================================================
# Game Fixtures
# =============================================================================


def make_session(
    reveal_policy: RevealPolicy = RevealPolicy.CREATOR_ONLY,
    creator_id: str = "alice",
    timer_duration: int = 60,
    clock=lambda: FIXED_TIME,
) -> GameSession:
    """Build a standalone game with a fixed clock."""
    return GameSession(
        game_id="g1",
        name="Sprint 42",
        voting_system=VotingSystem.FIBONACCI,
        reveal_policy=reveal_policy,
        creator_id=creator_id,
        timer_duration=timer_duration,
        clock=clock,
    )


@pytest.fixture
def session_factory():
    """Factory for standalone games with a fixed clock."""
    return make_session


@pytest.fixture
def creator_only_game() -> GameSession:
    """Creator-only game with alice (creator) and bob joined."""
    session = make_session(RevealPolicy.CREATOR_ONLY)
    session.join("alice", "Alice", "c-alice")
    session.join("bob", "Bob", "c-bob")
    return session


@pytest.fixture
def all_members_game() -> GameSession:
    """All-members game with alice (creator) and bob joined."""
    session = make_session(RevealPolicy.ALL_MEMBERS)
    session.join("alice", "Alice", "c-alice")
    session.join("bob", "Bob", "c-bob")
    return session


# =============================================================================
# Mock WebSocket Fixture
# =============================================================================


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self):
        self.accepted = False
        self.closed = False
        self.sent_messages: list[str] = []
        self._should_fail = False

    async def accept(self) -> None:
        """Accept the connection."""
        self.accepted = True

    async def close(self) -> None:
        """Close the connection."""
        self.closed = True

    async def send_text(self, message: str) -> None:
        """Send a text message."""
        if self._should_fail:
            raise ConnectionError("Connection closed")
        self.sent_messages.append(message)

    def set_should_fail(self, should_fail: bool) -> None:
        """Set whether send should fail."""
        self._should_fail = should_fail

    def get_sent_events(self) -> list[dict]:
        """Parse sent messages as JSON events."""
        return [json.loads(msg) for msg in self.sent_messages]

    def events_of_type(self, event_type: str) -> list[dict]:
        return [e for e in self.get_sent_events() if e["type"] == event_type]

    def last_snapshot(self) -> Optional[dict]:
        """Payload of the most recent GAME_UPDATE, if any."""
        updates = self.events_of_type("GAME_UPDATE")
        return updates[-1]["payload"] if updates else None

    def clear(self) -> None:
        self.sent_messages.clear()


@pytest.fixture
def mock_websocket() -> MockWebSocket:
    """Create a mock WebSocket."""
    return MockWebSocket()


@pytest.fixture
def mock_websocket_factory():
    """Factory to create multiple mock WebSockets."""

    def factory() -> MockWebSocket:
        return MockWebSocket()

    return factory


# =============================================================================
# Connection Fixtures
# =============================================================================


class FakeClient:
    """A mock socket plus the handler serving it."""

    def __init__(self, websocket: MockWebSocket, handler: ConnectionHandler):
        self.ws = websocket
        self.handler = handler

    async def send(self, msg_type: str, payload: Optional[dict[str, Any]] = None) -> None:
        frame: dict[str, Any] = {"type": msg_type}
        if payload is not None:
            frame["payload"] = payload
        await self.handler.handle_frame(json.dumps(frame))

    async def send_raw(self, data: str) -> None:
        await self.handler.handle_frame(data)


@pytest.fixture
def connection_manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def game_manager(connection_manager) -> GameSessionManager:
    """Store with server-side expiry off; timer tests enable it explicitly."""
    return GameSessionManager(
        connection_manager,
        auto_reveal_on_expiry=False,
        idle_ttl_seconds=60,
        reaper_interval_seconds=1,
    )


@pytest.fixture
def client_factory(connection_manager, game_manager, mock_websocket_factory):
    """Factory to connect mock clients to the shared managers."""

    async def factory() -> FakeClient:
        websocket = mock_websocket_factory()
        connection_id = await connection_manager.connect(websocket)
        return FakeClient(websocket, ConnectionHandler(connection_id, game_manager, connection_manager))

    return factory
