"""
Game phases.
"""

from enum import Enum


class Phase(str, Enum):
    """The phase decides which commands are legal and who may issue them."""

    SETUP = "setup"
    ROLLING = "rolling"
    JAIL_DECISION = "jail_decision"
    AWAITING_BUY_DECISION = "awaiting_buy_decision"
    RESOLVING_SPACE = "resolving_space"
    AUCTION = "auction"
    TRADING = "trading"
    AWAITING_TAX_DECISION = "awaiting_tax_decision"
    AWAITING_RENT_NEGOTIATION = "awaiting_rent_negotiation"
    AWAITING_BANKRUPTCY_DECISION = "awaiting_bankruptcy_decision"
    AWAITING_DEBT_SERVICE = "awaiting_debt_service"
    AWAITING_FORECLOSURE_DECISION = "awaiting_foreclosure_decision"
    GAME_OVER = "game_over"


# Phases in which another party's decision is awaited.
NEGOTIATION_PHASES = frozenset(
    {
        Phase.AUCTION,
        Phase.TRADING,
        Phase.AWAITING_RENT_NEGOTIATION,
        Phase.AWAITING_BANKRUPTCY_DECISION,
        Phase.AWAITING_DEBT_SERVICE,
        Phase.AWAITING_FORECLOSURE_DECISION,
    }
)

# Phases in which the current player may manage their holdings.
MANAGEMENT_PHASES = frozenset(
    {
        Phase.ROLLING,
        Phase.RESOLVING_SPACE,
        Phase.JAIL_DECISION,
        Phase.AWAITING_BUY_DECISION,
    }
)
