from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

import pydantic
from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from tycoon.exceptions import GameNotFoundError, InvalidActionError, ValidationError
from tycoon.player import Player
from tycoon.settings import GameSettings, get_server_settings
from tycoon.snapshot import GameSnapshot, serialize_snapshot

from .registry import GameRegistry
from .schemas import (
    CommandRequest,
    CommandResponse,
    CreateGameRequest,
    CreateGameResponse,
    LegalCommandsResponse,
    SessionSummary,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    settings = get_server_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.registry = GameRegistry()
    logger.info("Tycoon server starting")

    yield

    logger.info("Shutting down; closing open sessions")
    await app.state.registry.close_all()


app = FastAPI(title="Tycoon Game Server", version="0.1.0", lifespan=lifespan)


@app.exception_handler(GameNotFoundError)
async def game_not_found(request: Request, exc: GameNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ---- Dependencies ----
def get_registry(request: Request) -> GameRegistry:
    return request.app.state.registry


@app.post("/games", response_model=CreateGameResponse)
async def create_game(req: CreateGameRequest, registry: GameRegistry = Depends(get_registry)):
    try:
        settings = GameSettings(**req.settings)
    except pydantic.ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    players = [
        Player(i, spec.name, color=spec.color, is_ai=spec.is_ai, ai_difficulty=spec.ai_difficulty)
        for i, spec in enumerate(req.players)
    ]
    try:
        runner = await registry.create_game(players, settings, autostart=req.autostart)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return CreateGameResponse(game_id=runner.game_id, status=runner.status.value)


@app.get("/games", response_model=List[SessionSummary])
async def list_games(registry: GameRegistry = Depends(get_registry)):
    return [SessionSummary(**s) for s in await registry.list_sessions()]


@app.post("/games/{game_id}/start", response_model=CreateGameResponse)
async def start_game(game_id: str, registry: GameRegistry = Depends(get_registry)):
    runner = await registry.get(game_id)
    try:
        await runner.start()
    except InvalidActionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return CreateGameResponse(game_id=game_id, status=runner.status.value)


@app.get("/games/{game_id}/snapshot", response_model=GameSnapshot)
async def get_snapshot(game_id: str, registry: GameRegistry = Depends(get_registry)):
    runner = await registry.get(game_id)
    return serialize_snapshot(runner.game)


@app.get("/games/{game_id}/commands", response_model=LegalCommandsResponse)
async def legal_commands(game_id: str, player_id: int, registry: GameRegistry = Depends(get_registry)):
    runner = await registry.get(game_id)
    return LegalCommandsResponse(game_id=game_id, player_id=player_id, commands=runner.legal_commands(player_id))


@app.post("/games/{game_id}/commands", response_model=CommandResponse)
async def submit_command(game_id: str, req: CommandRequest, registry: GameRegistry = Depends(get_registry)):
    """Apply a command. Illegal commands are no-ops and still answer with the current snapshot."""
    runner = await registry.get(game_id)
    accepted, snapshot = await runner.submit(req.player_id, req.command, req.args)
    return CommandResponse(accepted=accepted, snapshot=snapshot)


@app.delete("/games/{game_id}")
async def close_game(game_id: str, registry: GameRegistry = Depends(get_registry)) -> Dict[str, Any]:
    await registry.close(game_id)
    return {"game_id": game_id, "status": "closed"}


@app.websocket("/ws/games/{game_id}")
async def ws_game(websocket: WebSocket, game_id: str):
    await websocket.accept()
    registry: GameRegistry = websocket.app.state.registry
    try:
        runner = await registry.get(game_id)
    except GameNotFoundError:
        await websocket.close(code=4404)
        return

    queue = await runner.subscribe()

    async def sender():
        while True:
            msg = await queue.get()
            await websocket.send_json(msg)
            if queue.empty() and not runner.is_subscribed(queue):
                # Dropped for falling behind; the client reconnects for a fresh snapshot
                await websocket.close(code=1013)
                return

    sender_task = asyncio.create_task(sender())
    try:
        # Clients may send {"player_id", "command", "args"}; the result arrives as a snapshot
        while True:
            try:
                data = await websocket.receive_json()
            except WebSocketDisconnect:
                break
            try:
                req = CommandRequest(**data)
            except (pydantic.ValidationError, TypeError) as exc:
                await websocket.send_json({"type": "error", "detail": str(exc)})
                continue
            accepted, _ = await runner.submit(req.player_id, req.command, req.args)
            if not accepted:
                await websocket.send_json({"type": "rejected", "command": req.command})
    finally:
        await runner.unsubscribe(queue)
        sender_task.cancel()


if __name__ == "__main__":
    import uvicorn

    server_settings = get_server_settings()
    uvicorn.run("server.app:app", host=server_settings.host, port=server_settings.port)
