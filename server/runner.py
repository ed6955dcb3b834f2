from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from tycoon.agents import Agent
from tycoon.exceptions import InvalidActionError
from tycoon.game import GameState
from tycoon.phases import NEGOTIATION_PHASES, Phase
from tycoon.rules import Action, apply_action, capabilities, get_legal_commands, is_command_legal
from tycoon.settings import get_server_settings
from tycoon.snapshot import GameSnapshot, serialize_snapshot

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    CLOSED = "closed"


class GameRunner:
    """Owns a single GameState and runs it asynchronously.

    Responsibilities:
    - Serialize every command through one lock
    - Step the computer players on the configured cadence
    - Broadcast snapshots to subscribed WebSocket clients
    """

    def __init__(
        self,
        game_id: str,
        game: GameState,
        agents: Optional[Dict[int, Agent]] = None,
        turn_tick_ms: Optional[int] = None,
        negotiation_tick_ms: Optional[int] = None,
        client_queue_size: Optional[int] = None,
    ):
        settings = get_server_settings()
        self.game_id = game_id
        self.game = game
        self.agents: Dict[int, Agent] = agents or {}
        self.status = SessionStatus.OPEN
        self._capabilities = capabilities(game)
        self._turn_tick = (settings.turn_tick_ms if turn_tick_ms is None else turn_tick_ms) / 1000.0
        self._negotiation_tick = (
            settings.negotiation_tick_ms if negotiation_tick_ms is None else negotiation_tick_ms
        ) / 1000.0
        self._queue_size = settings.client_queue_size if client_queue_size is None else client_queue_size
        self._lock = asyncio.Lock()
        self._clients: Set[asyncio.Queue] = set()
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self._wake = asyncio.Event()

    # ---- Lifecycle ----

    async def start(self) -> None:
        """Start the game if it is still in setup and begin scheduling the computer players."""
        if self.status != SessionStatus.OPEN:
            raise InvalidActionError(f"Session {self.game_id} is {self.status.value}")
        if self.game.phase == Phase.SETUP:
            async with self._lock:
                apply_action(self.game, Action("startGame"), self.game.turn_order()[0])
        self._activate()
        await self._broadcast_snapshot()

    def _activate(self) -> None:
        self.status = SessionStatus.ACTIVE
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Session %s is active", self.game_id)

    async def stop(self) -> None:
        self.status = SessionStatus.CLOSED
        self._stop.set()
        self._wake.set()
        if self._task:
            await self._task
        logger.info("Session %s closed", self.game_id)

    # ---- Subscription management for WS ----

    async def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._clients.add(q)
        await q.put(self._message(serialize_snapshot(self.game)))
        return q

    async def unsubscribe(self, q: asyncio.Queue) -> None:
        self._clients.discard(q)

    def is_subscribed(self, q: asyncio.Queue) -> bool:
        return q in self._clients

    @property
    def subscriber_count(self) -> int:
        return len(self._clients)

    def _message(self, snapshot: GameSnapshot) -> Dict[str, Any]:
        return {"type": "snapshot", "game_id": self.game_id, "snapshot": snapshot.model_dump(mode="json")}

    async def _broadcast_snapshot(self, snapshot: Optional[GameSnapshot] = None) -> None:
        if not self._clients:
            return
        payload = self._message(snapshot or serialize_snapshot(self.game))
        for q in list(self._clients):
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                logger.warning("Dropping a subscriber to %s that fell %d snapshots behind", self.game_id, q.qsize())
                self._clients.discard(q)

    # ---- Commands ----

    async def submit(self, player_id: int, command: str, args: Sequence[Any] = ()) -> Tuple[bool, GameSnapshot]:
        """Apply a command from a client. Returns (accepted, snapshot after the attempt)."""
        if self.status == SessionStatus.CLOSED:
            logger.info("Command %s for closed session %s ignored", command, self.game_id)
            return False, serialize_snapshot(self.game)

        async with self._lock:
            accepted = apply_action(self.game, Action(command, *args), player_id)
            snapshot = serialize_snapshot(self.game)

        if accepted:
            if self.status == SessionStatus.OPEN and self.game.phase != Phase.SETUP:
                self._activate()
            await self._broadcast_snapshot(snapshot)
            self._wake.set()
        return accepted, snapshot

    def legal_commands(self, player_id: int) -> List[str]:
        return get_legal_commands(self.game, player_id)

    # ---- Computer players ----

    def _fallback_actions(self, player_id: int) -> List[Action]:
        """Safe moves for an agent whose chosen command was rejected."""
        candidates = [
            Action("passAuction"),
            Action("rejectTrade"),
            Action("cancelTrade"),
            Action("rejectPaymentPlan"),
            Action("forgiveRent"),
            Action("declineRestructuring"),
            Action("deferDebtService"),
            Action("extendIOU"),
            Action("chooseTaxOption", "flat"),
            Action("getOutOfJail", "roll"),
            Action("declineProperty", self.game.players[player_id].position),
            Action("rollDice"),
            Action("endTurn"),
        ]
        return [a for a in candidates if is_command_legal(self.game, player_id, a.name)]

    async def step(self) -> bool:
        """Let the computer player the game is waiting on make one move.

        Returns:
            True if a command was applied
        """
        async with self._lock:
            if self.game.phase in (Phase.SETUP, Phase.GAME_OVER):
                return False
            actor = self.game.active_actor_id()
            agent = self.agents.get(actor) if actor is not None else None
            if agent is None:
                return False

            action = agent.choose_action(self.game, self._capabilities)
            applied = action is not None and apply_action(self.game, action, actor)
            if not applied:
                if action is not None:
                    logger.warning("Agent %s chose rejected %r; falling back", agent.name, action)
                for fallback in self._fallback_actions(actor):
                    if apply_action(self.game, fallback, actor):
                        applied = True
                        break
            snapshot = serialize_snapshot(self.game)

        if applied:
            await self._broadcast_snapshot(snapshot)
        return applied

    def _tick(self) -> float:
        return self._negotiation_tick if self.game.phase in NEGOTIATION_PHASES else self._turn_tick

    async def _run_loop(self) -> None:
        while not self._stop.is_set() and self.game.phase != Phase.GAME_OVER:
            delay = self._tick()
            if self._has_agent_to_move():
                await asyncio.sleep(delay)
                if self._stop.is_set():
                    break
                if not await self.step():
                    await self._wait_for_external_action()
            else:
                await self._wait_for_external_action()
        if self.game.phase == Phase.GAME_OVER:
            logger.info("Game %s finished; winner %s", self.game_id, self.game.winner)

    def _has_agent_to_move(self) -> bool:
        actor = self.game.active_actor_id()
        return actor is not None and actor in self.agents

    async def _wait_for_external_action(self) -> None:
        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=0.5)
        except asyncio.TimeoutError:
            # Periodic wakeup
            pass
