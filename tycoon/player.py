"""
Player state, ownership records and debt instruments.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from tycoon.money import round_half_up


class Difficulty(str, Enum):
    """Skill tier of an automated player."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass
class BankLoan:
    """An outstanding loan from the bank."""

    loan_id: int
    amount: int
    interest_rate: float
    amount_owed: int
    turn_taken: int


@dataclass
class IOU:
    """
    A promissory note between two players.

    Interest is simple interest on the original amount, accrued per
    completed round since the note was written.
    """

    iou_id: int
    debtor_id: int
    creditor_id: int
    original_amount: int
    interest_rate: float
    created_round: int
    created_turn: int
    due_round: int
    reason: str
    amount_paid: int = 0

    def interest_accrued(self, current_round: int) -> int:
        rounds_passed = max(0, current_round - self.created_round)
        return round_half_up(self.original_amount * self.interest_rate * rounds_passed)

    def amount_owed(self, current_round: int) -> int:
        return max(0, self.original_amount + self.interest_accrued(current_round) - self.amount_paid)

    def is_overdue(self, current_round: int) -> bool:
        return current_round >= self.due_round


@dataclass
class TradeAttempts:
    """Throttle record for trade offers aimed at one property."""

    attempts: int = 0
    last_offer: int = 0
    last_turn: int = 0


class PlayerState:
    """Represents the complete state of a player in the game."""

    def __init__(
        self,
        player_id: int,
        name: str,
        starting_cash: int,
        color: str = "",
        is_ai: bool = False,
        ai_difficulty: Difficulty = Difficulty.MEDIUM,
    ):
        self.player_id = player_id
        self.name = name
        self.color = color
        self.cash = starting_cash
        self.position = 0
        self.in_jail = False
        self.jail_turns = 0
        self.jail_free_cards = 0
        self.is_bankrupt = False
        self.is_ai = is_ai
        self.ai_difficulty = ai_difficulty
        self.properties: Set[int] = set()
        self.consecutive_doubles = 0

        self.bank_loans: List[BankLoan] = []
        self.ious_payable: List[IOU] = []
        self.ious_receivable: List[IOU] = []

        self.last_trade_turn: Optional[int] = None
        self.trade_history: Dict[str, TradeAttempts] = {}

        self.in_chapter11 = False
        self.chapter11_turns_remaining = 0
        self.chapter11_debt_target = 0
        self.chapter11_creditor_id: Optional[int] = None
        self.debt_service_turn: Optional[int] = None

    @property
    def total_loan_debt(self) -> int:
        return sum(loan.amount_owed for loan in self.bank_loans)

    def __repr__(self) -> str:
        return (
            f"PlayerState(id={self.player_id}, name='{self.name}', "
            f"cash={self.cash}, position={self.position}, bankrupt={self.is_bankrupt})"
        )


@dataclass
class PropertyOwnership:
    """Tracks the mutable state of an ownable space."""

    owner_id: Optional[int] = None
    houses: int = 0
    hotel: bool = False
    mortgaged: bool = False
    value_multiplier: float = 1.0
    is_insured: bool = False
    insurance_paid_until_round: Optional[int] = None

    def is_owned(self) -> bool:
        """Check if property is owned by any player."""
        return self.owner_id is not None

    def has_buildings(self) -> bool:
        return self.houses > 0 or self.hotel

    def reset(self) -> None:
        """Clear buildings, mortgage and insurance (ownership is kept)."""
        self.houses = 0
        self.hotel = False
        self.mortgaged = False
        self.is_insured = False
        self.insurance_paid_until_round = None


class Player:
    """
    Roster entry used to seat a player at game creation.
    This is primarily for the external API.
    """

    def __init__(
        self,
        player_id: int,
        name: str,
        color: str = "",
        is_ai: bool = False,
        ai_difficulty: Any = Difficulty.MEDIUM,
    ):
        self.player_id = player_id
        self.name = name
        self.color = color
        self.is_ai = is_ai
        self.ai_difficulty = Difficulty(ai_difficulty)

    def __repr__(self) -> str:
        return f"Player(id={self.player_id}, name='{self.name}', ai={self.is_ai})"
