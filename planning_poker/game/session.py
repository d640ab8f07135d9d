"""Game session management."""

import asyncio
import contextlib
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union

import structlog

from ..config import settings
from ..models.game import GameSnapshot, PlayerView, RevealPolicy, VotingSystem
from ..websocket_manager import ConnectionManager
from .broadcast import broadcast_update
from .errors import InvalidInput, NotFound, PermissionDenied
from .timer import RoundTimer

logger = structlog.get_logger()


@dataclass
class Player:
    """A member of a game.

    ``connection_id`` is a routing handle into the ConnectionManager; the
    connection layer owns the socket and clears the binding on teardown.
    """

    id: str
    name: str
    vote: Optional[str] = None
    connection_id: Optional[str] = None

    @property
    def has_voted(self) -> bool:
        return self.vote is not None


class GameSession:
    """State machine for a single estimation game.

    Transitions return True when they changed state and the caller should
    broadcast a new snapshot, False for no-ops. Admin-only transitions raise
    PermissionDenied before touching anything.
    """

    def __init__(
        self,
        game_id: str,
        name: str,
        voting_system: VotingSystem,
        reveal_policy: RevealPolicy,
        creator_id: str,
        timer_duration: int,
        max_timer_duration: int = settings.max_timer_duration,
        clock: Callable[[], float] = time.time,
    ):
        self.game_id = game_id
        self.name = name
        self.voting_system = voting_system
        self.reveal_policy = reveal_policy
        self.creator_id = creator_id
        self.max_timer_duration = max_timer_duration
        self._clock = clock

        self.players: dict[str, Player] = {}
        self.revealed = False
        self.timer_started_at: Optional[int] = None
        self.timer_duration = self._validate_duration(timer_duration)
        self.last_activity = time.monotonic()

    def now_ms(self) -> int:
        """Server clock in epoch milliseconds."""
        return int(self._clock() * 1000)

    def _touch(self) -> None:
        self.last_activity = time.monotonic()

    def _validate_duration(self, seconds: int) -> int:
        if seconds <= 0 or seconds > self.max_timer_duration:
            raise InvalidInput(
                f"Timer duration must be between 1 and {self.max_timer_duration} seconds"
            )
        return seconds

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def is_admin(self, player_id: str) -> bool:
        """Whether the player may reveal, reset and control the timer."""
        if player_id == self.creator_id:
            return True
        return self.reveal_policy == RevealPolicy.ALL_MEMBERS and player_id in self.players

    def _require_admin(self, player_id: str, action: str) -> None:
        if not self.is_admin(player_id):
            raise PermissionDenied(player_id, action)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def join(self, player_id: str, name: str, connection_id: Optional[str] = None) -> Player:
        """Add a player, or rebind an existing one (reconnect keeps the vote)."""
        player = self.players.get(player_id)
        if player is None:
            player = Player(id=player_id, name=name, connection_id=connection_id)
            self.players[player_id] = player
        else:
            player.name = name
            player.connection_id = connection_id
        self._touch()
        return player

    def leave(self, player_id: str, connection_id: Optional[str] = None) -> bool:
        """Remove a player.

        With a connection_id, only removes the player while still bound to
        that connection, so a stale socket closing after a reconnect is a no-op.
        """
        player = self.players.get(player_id)
        if player is None:
            return False
        if connection_id is not None and player.connection_id != connection_id:
            return False
        del self.players[player_id]
        self._touch()
        return True

    def rename(self, player_id: str, new_name: str) -> bool:
        player = self.players.get(player_id)
        if player is None or player.name == new_name:
            return False
        player.name = new_name
        self._touch()
        return True

    @property
    def is_empty(self) -> bool:
        return not self.players

    def connection_ids(self) -> list[str]:
        return [p.connection_id for p in self.players.values() if p.connection_id is not None]

    # -------------------------------------------------------------------------
    # Voting
    # -------------------------------------------------------------------------

    def vote(self, player_id: str, value: str) -> bool:
        """Cast or change a vote. Ignored for unknown players and once revealed."""
        player = self.players.get(player_id)
        if player is None or self.revealed or player.vote == value:
            return False
        player.vote = value
        self._touch()
        return True

    def reveal(self, player_id: str) -> bool:
        self._require_admin(player_id, "reveal")
        return self._reveal()

    def _reveal(self) -> bool:
        if self.revealed:
            return False
        self.revealed = True
        self.timer_started_at = None
        self._touch()
        return True

    def reset(self, player_id: str) -> bool:
        """Start a new round: hide cards, clear votes and the timer."""
        self._require_admin(player_id, "reset")
        self.revealed = False
        self.timer_started_at = None
        for player in self.players.values():
            player.vote = None
        self._touch()
        return True

    # -------------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------------

    @property
    def is_timer_running(self) -> bool:
        return self.timer_started_at is not None

    def set_timer_duration(self, player_id: str, seconds: int) -> bool:
        self._require_admin(player_id, "set the timer duration")
        seconds = self._validate_duration(seconds)
        if self.is_timer_running or seconds == self.timer_duration:
            return False
        self.timer_duration = seconds
        self._touch()
        return True

    def start_timer(self, player_id: str, seconds: Optional[int] = None) -> bool:
        """Start the round timer, optionally storing a new duration first.

        Rejected while a timer is already running or the cards are revealed.
        """
        self._require_admin(player_id, "start the timer")
        if seconds is not None:
            seconds = self._validate_duration(seconds)
        if self.is_timer_running or self.revealed:
            return False
        if seconds is not None:
            self.timer_duration = seconds
        self.timer_started_at = self.now_ms()
        self._touch()
        return True

    def expire_timer(self, started_at: int) -> bool:
        """Reveal because the timer started at ``started_at`` ran out.

        No admin check: this is the server acting on its own deadline. A timer
        that was reset or restarted in the meantime no longer matches.
        """
        if self.timer_started_at is None or self.timer_started_at != started_at:
            return False
        return self._reveal()

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def _visible_vote(self, player: Player) -> Union[bool, str, None]:
        if self.revealed:
            return player.vote
        return player.has_voted

    def snapshot(self) -> GameSnapshot:
        """Complete view of the game with votes redacted until reveal."""
        return GameSnapshot(
            id=self.game_id,
            name=self.name,
            voting_system=self.voting_system,
            reveal_policy=self.reveal_policy,
            revealed=self.revealed,
            creator_id=self.creator_id,
            timer_started_at=self.timer_started_at,
            timer_duration=self.timer_duration,
            server_time=self.now_ms(),
            players=[
                PlayerView(
                    id=player.id,
                    name=player.name,
                    vote=self._visible_vote(player),
                    is_creator=player.id == self.creator_id,
                )
                for player in self.players.values()
            ],
        )


class GameSessionManager:
    """Process-wide store of games.

    Games are created on request and only removed by the idle reaper, which
    evicts games that have had no players for ``idle_ttl_seconds``.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        *,
        default_timer_duration: int = settings.default_timer_duration,
        max_timer_duration: int = settings.max_timer_duration,
        auto_reveal_on_expiry: bool = settings.auto_reveal_on_expiry,
        idle_ttl_seconds: int = settings.game_idle_ttl_seconds,
        reaper_interval_seconds: int = settings.reaper_interval_seconds,
        clock: Callable[[], float] = time.time,
    ):
        self.connections = connections
        self.default_timer_duration = default_timer_duration
        self.max_timer_duration = max_timer_duration
        self.auto_reveal_on_expiry = auto_reveal_on_expiry
        self.idle_ttl_seconds = idle_ttl_seconds
        self.reaper_interval_seconds = reaper_interval_seconds
        self._clock = clock
        self._games: dict[str, GameSession] = {}
        self._timers: dict[str, RoundTimer] = {}
        self._reaper_task: Optional[asyncio.Task] = None

    def _new_game_id(self) -> str:
        while True:
            game_id = uuid.uuid4().hex[:8]
            if game_id not in self._games:
                return game_id

    def create_game(
        self,
        name: str,
        voting_system: VotingSystem,
        reveal_policy: RevealPolicy,
        creator_id: str,
        timer_duration: Optional[int] = None,
    ) -> GameSession:
        """Create a new game with no players."""
        session = GameSession(
            game_id=self._new_game_id(),
            name=name,
            voting_system=voting_system,
            reveal_policy=reveal_policy,
            creator_id=creator_id,
            timer_duration=timer_duration or self.default_timer_duration,
            max_timer_duration=self.max_timer_duration,
            clock=self._clock,
        )
        self._games[session.game_id] = session
        logger.info(
            "game created",
            game_id=session.game_id,
            creator_id=creator_id,
            voting_system=voting_system,
            reveal_policy=reveal_policy,
        )
        return session

    def get_game(self, game_id: str) -> GameSession:
        """Get a game by id or raise NotFound."""
        session = self._games.get(game_id)
        if session is None:
            raise NotFound(game_id)
        return session

    def find_game(self, game_id: str) -> Optional[GameSession]:
        return self._games.get(game_id)

    @property
    def active_game_count(self) -> int:
        """Number of games in the store."""
        return len(self._games)

    # -------------------------------------------------------------------------
    # Timer expiry
    # -------------------------------------------------------------------------

    async def arm_timer(self, session: GameSession) -> None:
        """Schedule the server-side reveal for a freshly started timer."""
        await self.disarm_timer(session.game_id)
        if not self.auto_reveal_on_expiry or session.timer_started_at is None:
            return

        started_at = session.timer_started_at
        remaining_ms = started_at + session.timer_duration * 1000 - session.now_ms()
        timer = RoundTimer(max(0.0, remaining_ms / 1000))

        async def on_timeout():
            await self._on_timer_expired(session.game_id, started_at)

        self._timers[session.game_id] = timer
        timer.start(on_timeout=on_timeout)

    async def disarm_timer(self, game_id: str) -> None:
        timer = self._timers.pop(game_id, None)
        if timer is not None:
            await timer.cancel()

    async def _on_timer_expired(self, game_id: str, started_at: int) -> None:
        # Drop the entry before awaiting so a concurrent disarm cannot cancel
        # the task that is running this callback.
        self._timers.pop(game_id, None)
        session = self._games.get(game_id)
        if session is None or not session.expire_timer(started_at):
            return
        logger.info("timer expired, cards revealed", game_id=game_id)
        await broadcast_update(session, self.connections)

    # -------------------------------------------------------------------------
    # Idle game reaper
    # -------------------------------------------------------------------------

    def start_reaper(self) -> None:
        """Start the periodic idle-game reaper. Idempotent."""
        if self.idle_ttl_seconds <= 0:
            return
        if self._reaper_task is not None and not self._reaper_task.done():
            return
        self._reaper_task = asyncio.create_task(self._reaper_loop())

    async def stop_reaper(self) -> None:
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None

    async def _reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reaper_interval_seconds)
            try:
                await self.reap_idle_games()
            except Exception:
                logger.exception("game reaper encountered an error")

    async def reap_idle_games(self) -> list[str]:
        """Remove empty games idle for longer than the TTL. Returns their ids."""
        now = time.monotonic()
        expired = [
            game_id
            for game_id, session in self._games.items()
            if session.is_empty and now - session.last_activity > self.idle_ttl_seconds
        ]
        for game_id in expired:
            del self._games[game_id]
            await self.disarm_timer(game_id)
            logger.info("idle game evicted", game_id=game_id)
        return expired

    async def cleanup_all(self) -> None:
        """Stop background tasks and drop every game."""
        await self.stop_reaper()
        for game_id in list(self._timers):
            await self.disarm_timer(game_id)
        self._games.clear()
