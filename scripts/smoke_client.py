#!/usr/bin/env python3
"""Simple smoke client for a running planning poker server.

Plays one round with two players: create, join, vote, reveal, reset.
"""

import argparse
import asyncio
import json
import uuid

import httpx
import websockets


async def check_health(base_url: str) -> bool:
    """Test health endpoint."""
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{base_url}/api/health")
        print(f"Health check: {response.json()}")
        return response.status_code == 200


async def send(ws, msg_type: str, payload: dict = None) -> None:
    await ws.send(json.dumps({"type": msg_type, "payload": payload or {}}))
    print(f"  -> {msg_type} {payload or ''}")


async def wait_for(ws, msg_type: str, timeout: float = 5.0) -> dict:
    """Read frames until one of the given type arrives; return its payload."""
    while True:
        data = json.loads(await asyncio.wait_for(ws.recv(), timeout=timeout))
        if data.get("type") == "ERROR":
            raise RuntimeError(f"server error: {data['payload']}")
        if data.get("type") == msg_type:
            return data["payload"]


def describe(snapshot: dict) -> str:
    votes = ", ".join(f"{p['name']}={p['vote']!r}" for p in snapshot["players"])
    return f"revealed={snapshot['revealed']} players=[{votes}]"


async def play_round(ws_url: str) -> None:
    """Two players estimate one story."""
    alice_id, bob_id = uuid.uuid4().hex[:9], uuid.uuid4().hex[:9]

    async with websockets.connect(ws_url) as alice, websockets.connect(ws_url) as bob:
        await send(alice, "CREATE_GAME", {
            "playerId": alice_id,
            "playerName": "Alice",
            "gameName": "Smoke test",
            "votingSystem": "fibonacci",
            "revealPolicy": "creator",
            "duration": 60,
        })
        game_id = (await wait_for(alice, "GAME_CREATED"))["gameId"]
        print(f"  Game created: {game_id}")

        await send(alice, "JOIN_GAME", {"gameId": game_id, "playerId": alice_id, "playerName": "Alice"})
        await wait_for(alice, "GAME_UPDATE")
        await send(bob, "JOIN_GAME", {"gameId": game_id, "playerId": bob_id, "playerName": "Bob"})
        print(f"  {describe(await wait_for(bob, 'GAME_UPDATE'))}")

        await send(alice, "VOTE", {"vote": "5"})
        await send(bob, "VOTE", {"vote": "8"})
        await wait_for(bob, "GAME_UPDATE")
        print(f"  Hidden: {describe(await wait_for(bob, 'GAME_UPDATE'))}")

        await send(alice, "REVEAL_CARDS")
        print(f"  Revealed: {describe(await wait_for(bob, 'GAME_UPDATE'))}")

        await send(alice, "RESET_GAME")
        print(f"  Reset: {describe(await wait_for(bob, 'GAME_UPDATE'))}")


async def run(base_url: str) -> None:
    print("=" * 60)
    print("Planning Poker Smoke Client")
    print("=" * 60)

    print("\n1. Testing health endpoint...")
    if not await check_health(base_url):
        print("Server not running. Start with: python -m planning_poker.main")
        return

    print("\n2. Playing a round over WebSocket...")
    ws_url = base_url.replace("http", "ws", 1) + "/ws"
    await play_round(ws_url)

    print("\n" + "=" * 60)
    print("Smoke test complete!")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default="http://localhost:3000", help="Server base URL")
    args = parser.parse_args()
    asyncio.run(run(args.url))


if __name__ == "__main__":
    main()
