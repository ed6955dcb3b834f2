"""
Bank loans, property insurance and property value fluctuation.
"""

import logging
import math
from typing import TYPE_CHECKING, List

from tycoon.economics import EconomicEventType, calculate_current_price, is_event_active
from tycoon.exceptions import InvalidActionError
from tycoon.money import EventType
from tycoon.player import BankLoan

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)

MIN_LOAN = 50
INSURANCE_ROUNDS = 5
MAX_VALUE_MULTIPLIER = 2.0
MIN_VALUE_MULTIPLIER = 0.5


# Loans


def loan_net_worth(game: "GameState", player_id: int) -> int:
    """Collateral for lending: cash plus unmortgaged property, less existing loans."""
    player = game.players[player_id]
    worth = player.cash
    for position in player.properties:
        ownership = game.property_ownership[position]
        if not ownership.mortgaged:
            worth += calculate_current_price(
                game.board.get_ownable(position), ownership, game.active_economic_events
            )
    return max(0, worth - player.total_loan_debt)


def max_loan_amount(game: "GameState", player_id: int) -> int:
    player = game.players[player_id]
    limit = math.floor(loan_net_worth(game, player_id) * game.settings.max_loan_percent)
    return max(0, limit - player.total_loan_debt)


def take_loan(game: "GameState", player_id: int, amount: int) -> BankLoan:
    """
    Borrow from the bank.

    Args:
        amount: Principal, at least 50 and within the borrowing limit

    Returns:
        The new loan
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidActionError("Loan amount must be an integer")
    if amount < MIN_LOAN:
        raise InvalidActionError(f"Minimum loan is £{MIN_LOAN}")
    limit = max_loan_amount(game, player_id)
    if amount > limit:
        raise InvalidActionError(f"Loan of £{amount} exceeds the limit of £{limit}")

    player = game.players[player_id]
    game.next_loan_id += 1
    loan = BankLoan(
        loan_id=game.next_loan_id,
        amount=amount,
        interest_rate=game.settings.loan_interest_rate,
        amount_owed=amount,
        turn_taken=game.turn_number,
    )
    player.bank_loans.append(loan)
    player.cash += amount
    game.event_log.log(EventType.LOAN_TAKEN, player_id=player_id, loan_id=loan.loan_id, amount=amount)
    return loan


def repay_loan(game: "GameState", player_id: int, loan_id: int, amount: int) -> None:
    player = game.players[player_id]
    loan = next((l for l in player.bank_loans if l.loan_id == loan_id), None)
    if loan is None:
        raise InvalidActionError(f"Player {player_id} has no loan {loan_id}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidActionError("Repayment must be a positive integer")
    if amount > player.cash:
        raise InvalidActionError(f"Cannot repay £{amount} with £{player.cash}")

    payment = min(amount, loan.amount_owed)
    player.cash -= payment
    loan.amount_owed -= payment
    if loan.amount_owed <= 0:
        player.bank_loans.remove(loan)
    game.event_log.log(
        EventType.LOAN_REPAID,
        player_id=player_id,
        loan_id=loan_id,
        amount=payment,
        remaining=max(0, loan.amount_owed),
    )


def apply_loan_interest(game: "GameState", player_id: int) -> int:
    """Add one turn of interest to each of a player's loans. Doubled in a banking crisis."""
    player = game.players[player_id]
    multiplier = 2 if is_event_active(game, EconomicEventType.BANKING_CRISIS) else 1
    total = 0
    for loan in player.bank_loans:
        interest = math.ceil(loan.amount_owed * loan.interest_rate * multiplier)
        loan.amount_owed += interest
        total += interest
    if total:
        game.event_log.log(EventType.LOAN_INTEREST, player_id=player_id, interest=total)
    return total


# Insurance


def insurance_cost(game: "GameState", position: int) -> int:
    space = game.board.get_ownable(position)
    return math.ceil(space.price * game.settings.insurance_cost_percent)


def buy_insurance(game: "GameState", player_id: int, position: int) -> None:
    """Insure a property against repair assessments for five rounds."""
    space = game.board.get_ownable(position)
    if space is None or position not in game.players[player_id].properties:
        raise InvalidActionError(f"Player {player_id} does not own position {position}")
    ownership = game.property_ownership[position]
    if ownership.is_insured:
        raise InvalidActionError(f"{space.name} is already insured")
    cost = insurance_cost(game, position)
    player = game.players[player_id]
    if player.cash < cost:
        raise InvalidActionError(f"Insurance costs £{cost}")

    player.cash -= cost
    ownership.is_insured = True
    ownership.insurance_paid_until_round = game.rounds_completed + INSURANCE_ROUNDS
    game.event_log.log(
        EventType.INSURANCE_PURCHASED,
        player_id=player_id,
        property=space.name,
        cost=cost,
        until_round=ownership.insurance_paid_until_round,
    )


def check_insurance_expiry(game: "GameState") -> List[int]:
    """Lapse insurance whose paid-up period is over. Returns the affected positions."""
    expired = []
    for position, ownership in game.property_ownership.items():
        if ownership.is_insured and game.rounds_completed >= (ownership.insurance_paid_until_round or 0):
            ownership.is_insured = False
            ownership.insurance_paid_until_round = None
            expired.append(position)
            game.event_log.log(EventType.INSURANCE_EXPIRED, player_id=ownership.owner_id, position=position)
    return expired


# Value fluctuation


def _positions_sharing_value(game: "GameState", position: int) -> List[int]:
    space = game.board.get_ownable(position)
    if space.color_group:
        return game.board.get_color_group(space.color_group)
    return [position]


def appreciate_color_group(game: "GameState", position: int) -> None:
    """Raise the value of a property and its color group (capped at 2x)."""
    if not game.settings.enable_property_value_fluctuation:
        return
    for pos in _positions_sharing_value(game, position):
        ownership = game.property_ownership[pos]
        ownership.value_multiplier = round(
            min(MAX_VALUE_MULTIPLIER, ownership.value_multiplier + game.settings.appreciation_rate), 2
        )
    game.event_log.log(EventType.VALUE_CHANGE, position=position, direction="up")


def depreciate_color_group(game: "GameState", position: int) -> None:
    """Lower the value of a property and its color group (floored at 0.5x)."""
    if not game.settings.enable_property_value_fluctuation:
        return
    for pos in _positions_sharing_value(game, position):
        ownership = game.property_ownership[pos]
        ownership.value_multiplier = round(
            max(MIN_VALUE_MULTIPLIER, ownership.value_multiplier - game.settings.appreciation_rate), 2
        )
    game.event_log.log(EventType.VALUE_CHANGE, position=position, direction="down")
