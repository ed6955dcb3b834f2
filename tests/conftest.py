"""Shared test fixtures for the tycoon engine tests."""

import random

import pytest

from tycoon.game import create_game
from tycoon.player import Player
from tycoon.settings import GameSettings


class LoadedDice(random.Random):
    """Random source whose randint calls return queued values, then fall back to seeded rolls."""

    def __init__(self, *values):
        super().__init__(0)
        self.values = list(values)

    def randint(self, a, b):
        if self.values:
            return self.values.pop(0)
        return super().randint(a, b)


def load_dice(game, *values):
    """Queue die faces for the next rolls of a game."""
    game.rng = LoadedDice(*values)


def give(game, player_id, *positions):
    """Hand unowned properties to a player."""
    for position in positions:
        game.assign_property(position, player_id)


@pytest.fixture
def game_settings():
    """Default session rules with a fixed seed for reproducibility."""
    return GameSettings(seed=42)


@pytest.fixture
def two_players():
    """Two test players."""
    return [Player(0, "Alice"), Player(1, "Bob")]


@pytest.fixture
def three_players():
    """Three test players."""
    return [Player(0, "Alice"), Player(1, "Bob"), Player(2, "Charlie")]


@pytest.fixture
def basic_game(game_settings, two_players):
    """Started two-player game, Alice to roll."""
    game = create_game(game_settings, two_players)
    game.start()
    return game


@pytest.fixture
def three_player_game(game_settings, three_players):
    """Started three-player game, Alice to roll."""
    game = create_game(game_settings, three_players)
    game.start()
    return game
