"""Difficulty tiers for computer players."""

from dataclasses import dataclass
from typing import Dict

from tycoon.player import Difficulty


@dataclass(frozen=True)
class DifficultyProfile:
    """
    Tuning knobs for one difficulty tier.

    Attributes:
        cash_reserve: Share of net worth kept back as cash
        roi_threshold: Minimum rent yield for a discretionary purchase
        auction_aggressiveness: Multiplier on list price when bidding
        loan_appetite: Share of loan collateral the player will borrow against
        trade_margin: Value received must reach this multiple of value given
    """

    cash_reserve: float
    roi_threshold: float
    auction_aggressiveness: float
    loan_appetite: float
    trade_margin: float


PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        cash_reserve=0.25,
        roi_threshold=0.15,
        auction_aggressiveness=0.7,
        loan_appetite=0.2,
        trade_margin=1.2,
    ),
    Difficulty.MEDIUM: DifficultyProfile(
        cash_reserve=0.15,
        roi_threshold=0.10,
        auction_aggressiveness=1.0,
        loan_appetite=0.3,
        trade_margin=1.05,
    ),
    Difficulty.HARD: DifficultyProfile(
        cash_reserve=0.08,
        roi_threshold=0.08,
        auction_aggressiveness=1.1,
        loan_appetite=0.5,
        trade_margin=0.95,
    ),
}


def get_profile(difficulty: Difficulty) -> DifficultyProfile:
    return PROFILES[Difficulty(difficulty)]
