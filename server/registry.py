from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from tycoon.agents import Agent, HeuristicAgent
from tycoon.exceptions import GameNotFoundError
from tycoon.game import create_game
from tycoon.player import Player
from tycoon.settings import GameSettings

from server.runner import GameRunner, SessionStatus

logger = logging.getLogger(__name__)


class GameRegistry:
    """In-memory registry of game sessions.

    A session is open until its game starts, active while it is played
    and closed once removed from the registry.
    """

    def __init__(self, turn_tick_ms: Optional[int] = None, negotiation_tick_ms: Optional[int] = None):
        self._games: Dict[str, GameRunner] = {}
        self._lock = asyncio.Lock()
        self._turn_tick_ms = turn_tick_ms
        self._negotiation_tick_ms = negotiation_tick_ms

    async def create_game(
        self,
        players: List[Player],
        settings: Optional[GameSettings] = None,
        autostart: bool = True,
    ) -> GameRunner:
        """
        Create a session for a roster and, by default, start it.

        Raises:
            ValidationError: If the roster is invalid
        """
        game = create_game(settings, players)
        agents: Dict[int, Agent] = {
            p.player_id: HeuristicAgent(p.player_id, p.name, p.ai_difficulty) for p in players if p.is_ai
        }
        game_id = uuid.uuid4().hex[:12]
        runner = GameRunner(
            game_id=game_id,
            game=game,
            agents=agents,
            turn_tick_ms=self._turn_tick_ms,
            negotiation_tick_ms=self._negotiation_tick_ms,
        )
        async with self._lock:
            self._games[game_id] = runner
        logger.info("Session %s opened with %d players (%d computer)", game_id, len(players), len(agents))

        if autostart:
            await runner.start()
        return runner

    async def get(self, game_id: str) -> GameRunner:
        runner = self._games.get(game_id)
        if runner is None or runner.status == SessionStatus.CLOSED:
            raise GameNotFoundError(f"Game {game_id} not found")
        return runner

    async def close(self, game_id: str) -> None:
        async with self._lock:
            runner = self._games.pop(game_id, None)
        if runner is None:
            raise GameNotFoundError(f"Game {game_id} not found")
        await runner.stop()

    async def close_all(self) -> None:
        async with self._lock:
            runners = list(self._games.values())
            self._games.clear()
        for runner in runners:
            await runner.stop()

    async def list_sessions(self) -> List[Dict[str, Any]]:
        return [
            {
                "game_id": game_id,
                "status": runner.status.value,
                "phase": runner.game.phase.value,
                "turn_number": runner.game.turn_number,
                "winner_id": runner.game.winner,
            }
            for game_id, runner in self._games.items()
        ]
