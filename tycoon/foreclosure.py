"""
Debt-service and foreclosure controller.

Both run at the start of a turn, before the player rolls:

- A player under Chapter 11 owes a debt-service payment each turn,
  which they either pay or add to their debt target.
- A player holding an overdue IOU faces its creditor, who either
  forecloses on a property or extends the due date.
"""

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from tycoon.bankruptcy import declare_bankruptcy
from tycoon.exceptions import InvalidActionError
from tycoon.money import EventType
from tycoon.negotiation import discharge_iou
from tycoon.phases import Phase
from tycoon.player import IOU

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)


@dataclass
class PendingDebtService:
    player_id: int
    creditor_id: Optional[int]
    amount: int


@dataclass
class PendingForeclosure:
    debtor_id: int
    creditor_id: int
    iou_id: int
    amount_owed: int


def debt_service_due(game: "GameState", player_id: int) -> int:
    player = game.players[player_id]
    return math.ceil(player.chapter11_debt_target * game.settings.debt_service_rate)


def open_debt_service(game: "GameState", player_id: int) -> bool:
    """Start the turn with a debt-service decision if one is due this turn."""
    player = game.players[player_id]
    if not player.in_chapter11 or player.debt_service_turn == game.turn_number:
        return False
    amount = debt_service_due(game, player_id)
    if amount <= 0:
        player.debt_service_turn = game.turn_number
        return False
    game.pending_debt_service = PendingDebtService(player_id, player.chapter11_creditor_id, amount)
    game.phase = Phase.AWAITING_DEBT_SERVICE
    return True


def pay_debt_service(game: "GameState", player_id: int) -> None:
    pending = game.pending_debt_service
    player = game.players[player_id]
    if player.cash < pending.amount:
        raise InvalidActionError(f"{player.name} cannot afford debt service of £{pending.amount}")

    player.cash -= pending.amount
    if pending.creditor_id is not None and not game.players[pending.creditor_id].is_bankrupt:
        game.players[pending.creditor_id].cash += pending.amount
    game.event_log.log(EventType.DEBT_SERVICE, player_id=player_id, paid=pending.amount)
    _close_debt_service(game, player_id)


def defer_debt_service(game: "GameState", player_id: int) -> None:
    """Capitalise this turn's debt service into the Chapter 11 target."""
    pending = game.pending_debt_service
    player = game.players[player_id]
    player.chapter11_debt_target += pending.amount
    game.event_log.log(
        EventType.DEBT_SERVICE,
        player_id=player_id,
        deferred=pending.amount,
        debt_target=player.chapter11_debt_target,
    )
    _close_debt_service(game, player_id)


def _close_debt_service(game: "GameState", player_id: int) -> None:
    game.players[player_id].debt_service_turn = game.turn_number
    game.pending_debt_service = None
    game.begin_turn()


def find_overdue_iou(game: "GameState", debtor_id: int) -> Optional[IOU]:
    for iou in game.players[debtor_id].ious_payable:
        if iou.is_overdue(game.rounds_completed) and not game.players[iou.creditor_id].is_bankrupt:
            return iou
    return None


def open_foreclosure(game: "GameState", iou: IOU) -> PendingForeclosure:
    game.pending_foreclosure = PendingForeclosure(
        debtor_id=iou.debtor_id,
        creditor_id=iou.creditor_id,
        iou_id=iou.iou_id,
        amount_owed=iou.amount_owed(game.rounds_completed),
    )
    game.phase = Phase.AWAITING_FORECLOSURE_DECISION
    logger.info("IOU %d is overdue; creditor %d to decide", iou.iou_id, iou.creditor_id)
    return game.pending_foreclosure


def _pending_iou(game: "GameState") -> IOU:
    pending = game.pending_foreclosure
    iou = next((i for i in game.players[pending.debtor_id].ious_payable if i.iou_id == pending.iou_id), None)
    if iou is None:
        raise InvalidActionError(f"IOU {pending.iou_id} no longer exists")
    return iou


def seizable_property(game: "GameState", debtor_id: int) -> Optional[int]:
    """The debtor's most valuable unmortgaged property without buildings."""
    candidates = [
        position
        for position in game.players[debtor_id].properties
        if not game.property_ownership[position].mortgaged
        and not game.property_ownership[position].has_buildings()
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda position: (game.current_price(position), position))


def foreclose(game: "GameState", player_id: int) -> None:
    """
    Settle the overdue IOU by seizing a property.

    The IOU is discharged in full by the seizure. A debtor with nothing
    to seize is declared bankrupt to the creditor.
    """
    pending = game.pending_foreclosure
    iou = _pending_iou(game)
    position = seizable_property(game, pending.debtor_id)
    game.pending_foreclosure = None

    if position is None:
        logger.info("Nothing to foreclose on; player %d is bankrupt", pending.debtor_id)
        declare_bankruptcy(game, pending.debtor_id, pending.creditor_id)
        return

    game.transfer_property(position, pending.creditor_id)
    discharge_iou(game, iou)
    game.event_log.log(
        EventType.FORECLOSURE,
        player_id=pending.creditor_id,
        debtor=pending.debtor_id,
        position=position,
        iou_id=iou.iou_id,
    )
    game.begin_turn()


def extend_iou(game: "GameState", player_id: int) -> None:
    iou = _pending_iou(game)
    iou.due_round = game.rounds_completed + game.settings.iou_duration_rounds
    game.pending_foreclosure = None
    logger.info("IOU %d extended to round %d", iou.iou_id, iou.due_round)
    game.begin_turn()
