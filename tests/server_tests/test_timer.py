"""Tests for RoundTimer and server-side timer expiry."""

import asyncio

import pytest

from planning_poker.game.session import GameSessionManager
from planning_poker.game.timer import RoundTimer
from planning_poker.models.game import RevealPolicy, VotingSystem


# =============================================================================
# RoundTimer Tests
# =============================================================================


class TestRoundTimer:
    """Tests for RoundTimer class."""

    @pytest.fixture
    def timer(self):
        """Create a timer with short timeout for testing."""
        return RoundTimer(duration_seconds=0.05)

    @pytest.fixture
    def callback_tracker(self):
        """Track callback invocations."""

        class Tracker:
            def __init__(self):
                self.calls = 0

            async def on_timeout(self):
                self.calls += 1

        return Tracker()

    @pytest.mark.asyncio
    async def test_fires_after_duration(self, timer, callback_tracker):
        timer.start(on_timeout=callback_tracker.on_timeout)
        assert callback_tracker.calls == 0

        await asyncio.sleep(0.15)

        assert callback_tracker.calls == 1

    @pytest.mark.asyncio
    async def test_cancel_prevents_timeout(self, timer, callback_tracker):
        timer.start(on_timeout=callback_tracker.on_timeout)
        await timer.cancel()
        await asyncio.sleep(0.15)

        assert callback_tracker.calls == 0

    @pytest.mark.asyncio
    async def test_cancel_without_start(self, timer):
        # Should not raise
        await timer.cancel()

    @pytest.mark.asyncio
    async def test_cancel_after_fire(self, timer, callback_tracker):
        timer.start(on_timeout=callback_tracker.on_timeout)
        await asyncio.sleep(0.15)

        await timer.cancel()

        assert callback_tracker.calls == 1

    @pytest.mark.asyncio
    async def test_zero_duration_fires_immediately(self, callback_tracker):
        timer = RoundTimer(duration_seconds=0)
        timer.start(on_timeout=callback_tracker.on_timeout)
        await asyncio.sleep(0.01)

        assert callback_tracker.calls == 1


# =============================================================================
# Server-side expiry
# =============================================================================


class TestTimerExpiry:
    """Tests for the manager's auto-reveal on timer expiry."""

    @pytest.fixture
    def clock(self):
        return {"now": 1_700_000_000.0}

    @pytest.fixture
    def manager(self, connection_manager, clock):
        return GameSessionManager(
            connection_manager,
            auto_reveal_on_expiry=True,
            idle_ttl_seconds=0,
            clock=lambda: clock["now"],
        )

    @pytest.mark.asyncio
    async def test_expiry_reveals_and_broadcasts(self, manager, connection_manager, mock_websocket, clock):
        session = manager.create_game(
            name="Sprint",
            voting_system=VotingSystem.FIBONACCI,
            reveal_policy=RevealPolicy.CREATOR_ONLY,
            creator_id="alice",
            timer_duration=1,
        )
        connection_id = await connection_manager.connect(mock_websocket)
        session.join("alice", "Alice", connection_id)
        session.vote("alice", "8")

        session.start_timer("alice")
        # Pretend almost all of the duration has already elapsed.
        clock["now"] += 0.95
        await manager.arm_timer(session)
        await asyncio.sleep(0.2)

        assert session.revealed is True
        assert session.timer_started_at is None
        snapshot = mock_websocket.last_snapshot()
        assert snapshot["revealed"] is True
        assert snapshot["players"][0]["vote"] == "8"
        assert session.game_id not in manager._timers

    @pytest.mark.asyncio
    async def test_disarm_cancels_expiry(self, manager, clock):
        session = manager.create_game(
            name="Sprint",
            voting_system=VotingSystem.FIBONACCI,
            reveal_policy=RevealPolicy.CREATOR_ONLY,
            creator_id="alice",
            timer_duration=1,
        )
        session.join("alice", "Alice")
        session.start_timer("alice")
        clock["now"] += 0.95
        await manager.arm_timer(session)

        session.reset("alice")
        await manager.disarm_timer(session.game_id)
        await asyncio.sleep(0.2)

        assert session.revealed is False
        assert session.game_id not in manager._timers

    @pytest.mark.asyncio
    async def test_restarted_timer_ignores_stale_expiry(self, manager, clock):
        session = manager.create_game(
            name="Sprint",
            voting_system=VotingSystem.FIBONACCI,
            reveal_policy=RevealPolicy.CREATOR_ONLY,
            creator_id="alice",
            timer_duration=1,
        )
        session.join("alice", "Alice")
        session.start_timer("alice")
        stale_started_at = session.timer_started_at

        session.reset("alice")
        clock["now"] += 5
        session.start_timer("alice")

        await manager._on_timer_expired(session.game_id, stale_started_at)
        assert session.revealed is False

    @pytest.mark.asyncio
    async def test_no_timer_when_auto_reveal_disabled(self, game_manager):
        session = game_manager.create_game(
            name="Sprint",
            voting_system=VotingSystem.FIBONACCI,
            reveal_policy=RevealPolicy.CREATOR_ONLY,
            creator_id="alice",
        )
        session.join("alice", "Alice")
        session.start_timer("alice")

        await game_manager.arm_timer(session)
        assert session.game_id not in game_manager._timers

    @pytest.mark.asyncio
    async def test_cleanup_cancels_timers(self, manager):
        session = manager.create_game(
            name="Sprint",
            voting_system=VotingSystem.FIBONACCI,
            reveal_policy=RevealPolicy.CREATOR_ONLY,
            creator_id="alice",
            timer_duration=60,
        )
        session.join("alice", "Alice")
        session.start_timer("alice")
        await manager.arm_timer(session)

        await manager.cleanup_all()
        assert manager._timers == {}
