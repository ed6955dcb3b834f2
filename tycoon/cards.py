"""
Chance and Community Chest decks.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from tycoon.spaces import SpaceType


class CardType(Enum):
    """Types of card effects."""

    MOVE_TO = "move_to"
    MOVE_SPACES = "move_spaces"
    MOVE_TO_NEAREST = "move_to_nearest"
    COLLECT = "collect"
    PAY = "pay"
    PAY_PER_BUILDING = "pay_per_building"
    COLLECT_FROM_PLAYERS = "collect_from_players"
    PAY_TO_PLAYERS = "pay_to_players"
    GO_TO_JAIL = "go_to_jail"
    GET_OUT_OF_JAIL = "get_out_of_jail"


@dataclass
class Card:
    """A Chance or Community Chest card."""

    description: str
    card_type: CardType
    value: int = 0
    hotel_value: int = 0
    target_position: Optional[int] = None
    target_type: Optional[SpaceType] = None
    rent_multiplier: int = 0

    def __repr__(self) -> str:
        return f"Card('{self.description}')"


class Deck:
    """A shuffled deck; drawn cards go to the bottom, held cards come back later."""

    def __init__(self, name: str, cards: List[Card], rng: random.Random):
        self.name = name
        self.cards = cards.copy()
        self.rng = rng
        self.discard_pile: List[Card] = []
        self.held_cards: List[Card] = []
        self.shuffle()

    def shuffle(self) -> None:
        self.rng.shuffle(self.cards)

    def draw(self) -> Card:
        """
        Draw the top card.
        If the deck is empty, shuffle the discard pile back in.
        """
        if not self.cards:
            self.cards = self.discard_pile
            self.discard_pile = []
            self.shuffle()
        return self.cards.pop(0)

    def discard(self, card: Card) -> None:
        self.discard_pile.append(card)

    def hold_card(self, card: Card) -> None:
        """Keep a Get Out of Jail Free card out of the deck while a player holds it."""
        self.held_cards.append(card)

    def return_held_card(self) -> None:
        """Put one held card back on the discard pile."""
        if self.held_cards:
            self.discard(self.held_cards.pop())


def create_chance_deck(rng: random.Random) -> Deck:
    """Create a standard Chance deck."""
    cards = [
        Card("Advance to GO (collect salary)", CardType.MOVE_TO, target_position=0),
        Card("Advance to Illinois Avenue", CardType.MOVE_TO, target_position=24),
        Card("Advance to St. Charles Place", CardType.MOVE_TO, target_position=11),
        Card(
            "Advance to the nearest Utility. If owned, pay the owner 10 times the dice roll",
            CardType.MOVE_TO_NEAREST,
            target_type=SpaceType.UTILITY,
            rent_multiplier=10,
        ),
        Card(
            "Advance to the nearest Railroad. If owned, pay the owner twice the rental",
            CardType.MOVE_TO_NEAREST,
            target_type=SpaceType.RAILROAD,
            rent_multiplier=2,
        ),
        Card("Bank pays you a dividend of £50", CardType.COLLECT, value=50),
        Card("Get Out of Jail Free", CardType.GET_OUT_OF_JAIL),
        Card("Go back 3 spaces", CardType.MOVE_SPACES, value=-3),
        Card("Go to Jail", CardType.GO_TO_JAIL),
        Card(
            "General repairs: pay £25 per house and £100 per hotel",
            CardType.PAY_PER_BUILDING,
            value=25,
            hotel_value=100,
        ),
        Card("Pay poor tax of £15", CardType.PAY, value=15),
        Card("Take a trip to Reading Railroad", CardType.MOVE_TO, target_position=5),
        Card("Take a walk on the Boardwalk", CardType.MOVE_TO, target_position=39),
        Card("Elected Chairman of the Board: pay each player £50", CardType.PAY_TO_PLAYERS, value=50),
        Card("Your building loan matures: collect £150", CardType.COLLECT, value=150),
        Card("You won a crossword competition: collect £100", CardType.COLLECT, value=100),
    ]
    return Deck("chance", cards, rng)


def create_community_chest_deck(rng: random.Random) -> Deck:
    """Create a standard Community Chest deck."""
    cards = [
        Card("Advance to GO (collect salary)", CardType.MOVE_TO, target_position=0),
        Card("Bank error in your favour: collect £200", CardType.COLLECT, value=200),
        Card("Doctor's fees: pay £50", CardType.PAY, value=50),
        Card("From sale of stock you get £50", CardType.COLLECT, value=50),
        Card("Get Out of Jail Free", CardType.GET_OUT_OF_JAIL),
        Card("Go to Jail", CardType.GO_TO_JAIL),
        Card("Grand Opera Night: collect £50 from every player", CardType.COLLECT_FROM_PLAYERS, value=50),
        Card("Holiday fund matures: receive £100", CardType.COLLECT, value=100),
        Card("Income tax refund: collect £20", CardType.COLLECT, value=20),
        Card("It is your birthday: collect £10 from every player", CardType.COLLECT_FROM_PLAYERS, value=10),
        Card("Life insurance matures: collect £100", CardType.COLLECT, value=100),
        Card("Hospital fees: pay £100", CardType.PAY, value=100),
        Card("School fees: pay £150", CardType.PAY, value=150),
        Card("Receive £25 consultancy fee", CardType.COLLECT, value=25),
        Card(
            "Street repairs: pay £40 per house and £115 per hotel",
            CardType.PAY_PER_BUILDING,
            value=40,
            hotel_value=115,
        ),
        Card("Second prize in a beauty contest: collect £10", CardType.COLLECT, value=10),
        Card("You inherit £100", CardType.COLLECT, value=100),
    ]
    return Deck("community_chest", cards, rng)
