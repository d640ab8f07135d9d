"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from .config import settings
from .api.routes import router as api_router, init_dependencies
from .api.websocket import websocket_endpoint
from .game import GameSessionManager
from .logging import setup_logging
from .websocket_manager import ConnectionManager

logger = structlog.get_logger()

# Global instances
game_manager: GameSessionManager = None
connection_manager: ConnectionManager = None


class SinglePageStaticFiles(StaticFiles):
    """Static files that fall back to index.html for client-side routes.

    Game links look like ``/<gameId>``; any missing path without a file
    extension is answered with the single-page client.
    """

    async def get_response(self, path: str, scope):
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404 or Path(path).suffix:
                raise
            return await super().get_response("index.html", scope)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global game_manager, connection_manager

    # Startup
    setup_logging(settings.log_level, settings.log_format)
    connection_manager = ConnectionManager()
    game_manager = GameSessionManager(
        connection_manager,
        default_timer_duration=settings.default_timer_duration,
        max_timer_duration=settings.max_timer_duration,
        auto_reveal_on_expiry=settings.auto_reveal_on_expiry,
        idle_ttl_seconds=settings.game_idle_ttl_seconds,
        reaper_interval_seconds=settings.reaper_interval_seconds,
    )
    init_dependencies(game_manager, connection_manager)
    game_manager.start_reaper()
    logger.info("server started", port=settings.port, auto_reveal=settings.auto_reveal_on_expiry)

    yield

    # Shutdown
    await game_manager.cleanup_all()
    await connection_manager.close_all()


# Create FastAPI app
app = FastAPI(
    title="Planning Poker",
    description="Real-time collaborative estimation with hidden votes",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_router, prefix="/api")


# WebSocket endpoints; the bundled client connects to the site root.
@app.websocket("/ws")
@app.websocket("/")
async def ws_endpoint(websocket: WebSocket):
    """WebSocket endpoint for game traffic."""
    await websocket_endpoint(websocket, game_manager, connection_manager)


# Serve the single-page client (if configured)
if settings.static_dir and Path(settings.static_dir).is_dir():
    app.mount("/", SinglePageStaticFiles(directory=settings.static_dir, html=True), name="static")


def main():
    """Run the server."""
    import uvicorn

    uvicorn.run(
        "planning_poker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
