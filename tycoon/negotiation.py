"""
Rent negotiation controller and IOUs.

When a player lands on a rented space and cannot pay, the owner
decides how to settle: forgive the rent, offer a payment plan, or
demand immediate payment (taking a property in lieu of cash). A
payment plan turns the unpaid part of the rent into an IOU that
accrues simple interest each round.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from tycoon.bankruptcy import offer_restructuring
from tycoon.exceptions import InvalidActionError
from tycoon.money import EventType
from tycoon.phases import Phase
from tycoon.player import IOU

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)


class NegotiationStatus(str, Enum):
    CREDITOR_DECISION = "creditor_decision"
    DEBTOR_DECISION = "debtor_decision"


@dataclass
class PaymentPlan:
    partial_payment: int
    interest_rate: float


@dataclass
class RentNegotiation:
    """An unpaid rent awaiting a decision from the owner or the tenant."""

    debtor_id: int
    creditor_id: int
    property_position: int
    rent_amount: int
    debtor_cash: int
    status: NegotiationStatus = NegotiationStatus.CREDITOR_DECISION
    proposed_plan: Optional[PaymentPlan] = None
    plan_rejected: bool = False

    @property
    def deciding_player_id(self) -> int:
        if self.status == NegotiationStatus.CREDITOR_DECISION:
            return self.creditor_id
        return self.debtor_id


def open_rent_negotiation(
    game: "GameState", debtor_id: int, creditor_id: int, position: int, rent: int
) -> RentNegotiation:
    """Pause the turn until the owner decides what to do about unpaid rent."""
    debtor = game.players[debtor_id]
    game.pending_rent_negotiation = RentNegotiation(
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        property_position=position,
        rent_amount=rent,
        debtor_cash=debtor.cash,
    )
    game.phase = Phase.AWAITING_RENT_NEGOTIATION
    game.event_log.log(
        EventType.RENT_NEGOTIATION,
        player_id=debtor_id,
        creditor=creditor_id,
        position=position,
        rent=rent,
        cash=debtor.cash,
    )
    logger.info("%s cannot pay rent of £%d; negotiation opened", debtor.name, rent)
    return game.pending_rent_negotiation


def forgive_rent(game: "GameState", player_id: int) -> None:
    negotiation = game.pending_rent_negotiation
    game.event_log.log(
        EventType.RENT_FORGIVEN,
        player_id=player_id,
        debtor=negotiation.debtor_id,
        amount=negotiation.rent_amount,
    )
    _close(game)


def offer_payment_plan(game: "GameState", player_id: int, partial_payment: int, interest_rate: float) -> None:
    """
    Creditor proposes: pay part now, owe the rest as an IOU.

    Args:
        partial_payment: Amount due now (0 to the full rent)
        interest_rate: Interest per round on the remainder (0 to 1)
    """
    negotiation = game.pending_rent_negotiation
    if isinstance(partial_payment, bool) or not isinstance(partial_payment, int):
        raise InvalidActionError("Partial payment must be an integer")
    if not 0 <= partial_payment <= negotiation.rent_amount:
        raise InvalidActionError(f"Partial payment must be between 0 and {negotiation.rent_amount}")
    if isinstance(interest_rate, bool) or not isinstance(interest_rate, (int, float)) or not 0 <= interest_rate <= 1:
        raise InvalidActionError("Interest rate must be between 0 and 1")

    negotiation.proposed_plan = PaymentPlan(partial_payment, float(interest_rate))
    negotiation.status = NegotiationStatus.DEBTOR_DECISION
    game.event_log.log(
        EventType.PAYMENT_PLAN,
        player_id=player_id,
        debtor=negotiation.debtor_id,
        partial_payment=partial_payment,
        interest_rate=interest_rate,
    )


def accept_payment_plan(game: "GameState", player_id: int) -> None:
    negotiation = game.pending_rent_negotiation
    plan = negotiation.proposed_plan
    if plan is None:
        raise InvalidActionError("No payment plan has been offered")
    _settle_with_iou(game, negotiation, plan.partial_payment, plan.interest_rate)


def reject_payment_plan(game: "GameState", player_id: int) -> None:
    negotiation = game.pending_rent_negotiation
    negotiation.proposed_plan = None
    negotiation.plan_rejected = True
    negotiation.status = NegotiationStatus.CREDITOR_DECISION
    logger.info("Player %d rejected the payment plan", player_id)


def create_rent_iou(game: "GameState", player_id: int, partial_payment: int) -> None:
    """Debtor pays what they can now and writes an IOU at the standard rate."""
    negotiation = game.pending_rent_negotiation
    debtor = game.players[negotiation.debtor_id]
    if isinstance(partial_payment, bool) or not isinstance(partial_payment, int):
        raise InvalidActionError("Partial payment must be an integer")
    if not 0 <= partial_payment <= min(debtor.cash, negotiation.rent_amount):
        raise InvalidActionError(f"Partial payment must be between 0 and {min(debtor.cash, negotiation.rent_amount)}")
    _settle_with_iou(game, negotiation, partial_payment, game.settings.iou_interest_rate)


def demand_immediate_payment_or_property(
    game: "GameState", player_id: int, property_position: Optional[int] = None
) -> None:
    """
    Creditor insists on settlement now.

    With a property named, it changes hands in lieu of the rent and the
    debtor pays any remaining difference they can afford. Without one,
    the debt escalates to restructuring or bankruptcy.
    """
    negotiation = game.pending_rent_negotiation
    debtor = game.players[negotiation.debtor_id]
    creditor = game.players[negotiation.creditor_id]

    if property_position is None:
        game.pending_rent_negotiation = None
        logger.info("%s demands payment from %s; escalating", creditor.name, debtor.name)
        offer_restructuring(game, negotiation.debtor_id, negotiation.creditor_id, negotiation.rent_amount)
        return

    if property_position not in debtor.properties:
        raise InvalidActionError(f"{debtor.name} does not own position {property_position}")
    ownership = game.property_ownership[property_position]
    if ownership.has_buildings():
        raise InvalidActionError("Properties with buildings cannot be seized")

    value = game.equity_value(property_position)
    game.transfer_property(property_position, negotiation.creditor_id)
    shortfall = negotiation.rent_amount - value
    if shortfall > 0:
        payment = min(shortfall, max(0, debtor.cash))
        debtor.cash -= payment
        creditor.cash += payment
    game.event_log.log(
        EventType.PROPERTY_SEIZED,
        player_id=negotiation.creditor_id,
        debtor=negotiation.debtor_id,
        position=property_position,
        value=value,
    )
    _close(game)


def create_iou(
    game: "GameState",
    debtor_id: int,
    creditor_id: int,
    amount: int,
    interest_rate: float,
    reason: str,
) -> IOU:
    game.next_iou_id += 1
    iou = IOU(
        iou_id=game.next_iou_id,
        debtor_id=debtor_id,
        creditor_id=creditor_id,
        original_amount=amount,
        interest_rate=interest_rate,
        created_round=game.rounds_completed,
        created_turn=game.turn_number,
        due_round=game.rounds_completed + game.settings.iou_duration_rounds,
        reason=reason,
    )
    game.players[debtor_id].ious_payable.append(iou)
    game.players[creditor_id].ious_receivable.append(iou)
    game.event_log.log(
        EventType.IOU_CREATED,
        player_id=debtor_id,
        creditor=creditor_id,
        amount=amount,
        interest_rate=interest_rate,
        reason=reason,
    )
    return iou


def find_iou(game: "GameState", debtor_id: int, iou_id: int) -> Optional[IOU]:
    return next((i for i in game.players[debtor_id].ious_payable if i.iou_id == iou_id), None)


def discharge_iou(game: "GameState", iou: IOU) -> None:
    """Remove a settled IOU from both parties."""
    debtor = game.players[iou.debtor_id]
    creditor = game.players[iou.creditor_id]
    if iou in debtor.ious_payable:
        debtor.ious_payable.remove(iou)
    if iou in creditor.ious_receivable:
        creditor.ious_receivable.remove(iou)


def pay_iou(game: "GameState", player_id: int, iou_id: int, amount: Optional[int] = None) -> int:
    """
    Pay down an IOU.

    Args:
        iou_id: IOU to pay
        amount: Amount to pay, defaults to everything owed

    Returns:
        Amount actually paid
    """
    iou = find_iou(game, player_id, iou_id)
    if iou is None:
        raise InvalidActionError(f"Player {player_id} has no IOU {iou_id}")
    debtor = game.players[player_id]
    if debtor.cash < 1:
        raise InvalidActionError("No cash available to pay the IOU")

    owed = iou.amount_owed(game.rounds_completed)
    requested = owed if amount is None else amount
    if requested <= 0:
        raise InvalidActionError("Payment must be positive")
    payment = max(1, math.floor(min(requested, owed, debtor.cash)))

    debtor.cash -= payment
    game.players[iou.creditor_id].cash += payment
    iou.amount_paid += payment
    game.event_log.log(
        EventType.IOU_PAYMENT,
        player_id=player_id,
        creditor=iou.creditor_id,
        amount=payment,
        remaining=max(0, owed - payment),
    )
    if payment >= owed:
        discharge_iou(game, iou)
    return payment


def _settle_with_iou(game: "GameState", negotiation: RentNegotiation, partial: int, rate: float) -> None:
    debtor = game.players[negotiation.debtor_id]
    creditor = game.players[negotiation.creditor_id]
    paid = min(partial, max(0, debtor.cash))
    debtor.cash -= paid
    creditor.cash += paid

    remainder = negotiation.rent_amount - paid
    if remainder > 0:
        space = game.board.get_space(negotiation.property_position)
        create_iou(
            game,
            negotiation.debtor_id,
            negotiation.creditor_id,
            remainder,
            rate,
            reason=f"Rent for {space.name}",
        )
    _close(game)


def _close(game: "GameState") -> None:
    game.pending_rent_negotiation = None
    game.resume_turn()
