"""
Tycoon Rules Engine

A server-authoritative engine for a multiplayer property-trading board
game, with an extended economy, negotiated debts and computer players.
"""

from .board import Board
from .game import GameState, create_game
from .player import Difficulty, Player, PlayerState
from .rules import Action, apply_action, dispatch, get_legal_commands
from .settings import GameSettings
from .snapshot import GameSnapshot, serialize_snapshot

__all__ = [
    "Action",
    "Board",
    "Difficulty",
    "GameSettings",
    "GameSnapshot",
    "GameState",
    "Player",
    "PlayerState",
    "apply_action",
    "create_game",
    "dispatch",
    "get_legal_commands",
    "serialize_snapshot",
]
