"""
Bankruptcy controller: restructuring offers, Chapter 11 and liquidation.

A player who cannot meet a debt may be offered Chapter 11 protection
instead of going straight to liquidation. Under protection their rent
income is halved and they have a fixed number of turns to raise the
debt target; failing that, they are liquidated.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from tycoon.auction import finish_auction
from tycoon.money import EventType
from tycoon.phases import NEGOTIATION_PHASES, Phase
from tycoon.trade import cancel_trades_involving

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)


@dataclass
class PendingBankruptcy:
    """A player choosing between Chapter 11 and liquidation."""

    player_id: int
    creditor_id: Optional[int]
    debt_amount: int


def offer_restructuring(game: "GameState", player_id: int, creditor_id: Optional[int], debt_amount: int) -> None:
    """
    Give an insolvent player the choice of Chapter 11.

    Players already under protection, players with nothing left to
    restructure, and sessions with restructuring disabled go straight to
    liquidation.
    """
    player = game.players[player_id]
    if (
        game.settings.enable_bankruptcy_restructuring
        and not player.in_chapter11
        and player.properties
    ):
        game.pending_bankruptcy = PendingBankruptcy(player_id, creditor_id, debt_amount)
        game.phase = Phase.AWAITING_BANKRUPTCY_DECISION
        game.event_log.log(
            EventType.RESTRUCTURING_OFFERED,
            player_id=player_id,
            creditor=creditor_id,
            debt=debt_amount,
        )
        logger.info("%s offered restructuring for a debt of £%d", player.name, debt_amount)
        return

    declare_bankruptcy(game, player_id, creditor_id)


def enter_chapter11(game: "GameState", player_id: int) -> None:
    """Accept protection; a negative balance becomes part of the debt target."""
    pending = game.pending_bankruptcy
    player = game.players[player_id]

    if player.cash < 0:
        player.cash = 0
    player.in_chapter11 = True
    player.chapter11_turns_remaining = game.settings.chapter11_turns
    player.chapter11_debt_target = pending.debt_amount
    player.chapter11_creditor_id = pending.creditor_id
    player.debt_service_turn = game.turn_number

    cancel_trades_involving(game, player_id)
    game.pending_bankruptcy = None
    game.event_log.log(
        EventType.CHAPTER11_ENTERED,
        player_id=player_id,
        debt_target=pending.debt_amount,
        turns=player.chapter11_turns_remaining,
    )
    game.resume_turn()


def decline_restructuring(game: "GameState", player_id: int) -> None:
    pending = game.pending_bankruptcy
    game.pending_bankruptcy = None
    declare_bankruptcy(game, player_id, pending.creditor_id)


def exit_chapter11(game: "GameState", player_id: int) -> None:
    player = game.players[player_id]
    player.in_chapter11 = False
    player.chapter11_turns_remaining = 0
    player.chapter11_debt_target = 0
    player.chapter11_creditor_id = None
    player.debt_service_turn = None


def check_chapter11_status(game: "GameState", player_id: int) -> None:
    """Count down protection at the end of the player's turn and settle at zero."""
    player = game.players[player_id]
    if not player.in_chapter11 or player.is_bankrupt:
        return

    player.chapter11_turns_remaining -= 1
    if player.chapter11_turns_remaining > 0:
        return

    target = player.chapter11_debt_target
    creditor_id = player.chapter11_creditor_id
    if player.cash >= target:
        player.cash -= target
        if creditor_id is not None and not game.players[creditor_id].is_bankrupt:
            game.players[creditor_id].cash += target
        exit_chapter11(game, player_id)
        game.event_log.log(EventType.CHAPTER11_EXITED, player_id=player_id, paid=target)
        logger.info("%s emerged from Chapter 11", player.name)
    else:
        logger.info("%s failed to meet the Chapter 11 target of £%d", player.name, target)
        declare_bankruptcy(game, player_id, creditor_id)


def _clear_pending_for(game: "GameState", player_id: int) -> None:
    """Drop any pending decision the bankrupt player is party to."""
    negotiation = game.pending_rent_negotiation
    if negotiation is not None and player_id in (negotiation.debtor_id, negotiation.creditor_id):
        game.pending_rent_negotiation = None
    foreclosure = game.pending_foreclosure
    if foreclosure is not None and player_id in (foreclosure.debtor_id, foreclosure.creditor_id):
        game.pending_foreclosure = None
    if game.pending_debt_service is not None and game.pending_debt_service.player_id == player_id:
        game.pending_debt_service = None
    if game.pending_bankruptcy is not None and game.pending_bankruptcy.player_id == player_id:
        game.pending_bankruptcy = None
    if game.awaiting_tax_decision is not None and game.awaiting_tax_decision.player_id == player_id:
        game.awaiting_tax_decision = None


def declare_bankruptcy(game: "GameState", player_id: int, creditor_id: Optional[int] = None) -> None:
    """
    Liquidate a player.

    Buildings go back to the bank. Properties go to the creditor (or
    back to the bank) free of buildings and mortgages, along with any
    positive cash and Get Out of Jail Free cards. Debts the player owes
    are written off and debts owed to them pass to the creditor.
    """
    player = game.players[player_id]
    if player.is_bankrupt:
        return
    creditor = None
    if creditor_id is not None and creditor_id != player_id and not game.players[creditor_id].is_bankrupt:
        creditor = game.players[creditor_id]

    for position in sorted(player.properties):
        ownership = game.property_ownership[position]
        if ownership.hotel:
            game.bank.release_hotel()
        elif ownership.houses:
            game.bank.release_houses(ownership.houses)
        ownership.reset()
        if creditor is not None:
            ownership.owner_id = creditor.player_id
            creditor.properties.add(position)
        else:
            ownership.owner_id = None
    player.properties.clear()

    if creditor is not None:
        creditor.cash += max(0, player.cash)
        creditor.jail_free_cards += player.jail_free_cards
    else:
        for _ in range(player.jail_free_cards):
            game.return_jail_card()
    player.cash = 0
    player.jail_free_cards = 0
    player.bank_loans.clear()

    for iou in player.ious_payable:
        lender = game.players[iou.creditor_id]
        if iou in lender.ious_receivable:
            lender.ious_receivable.remove(iou)
    player.ious_payable.clear()
    for iou in player.ious_receivable:
        if creditor is not None and creditor.player_id != iou.debtor_id:
            iou.creditor_id = creditor.player_id
            creditor.ious_receivable.append(iou)
        else:
            borrower = game.players[iou.debtor_id]
            if iou in borrower.ious_payable:
                borrower.ious_payable.remove(iou)
    player.ious_receivable.clear()

    for other in game.players.values():
        if other.chapter11_creditor_id == player_id:
            other.chapter11_creditor_id = creditor.player_id if creditor is not None else None

    exit_chapter11(game, player_id)
    player.is_bankrupt = True

    cancel_trades_involving(game, player_id)
    if game.auction is not None and player_id in game.auction.bidder_ids:
        game.auction.remove_player(player_id)
        if game.auction.is_complete:
            finish_auction(game, resume=False)
    _clear_pending_for(game, player_id)

    game.event_log.log(EventType.BANKRUPTCY, player_id=player_id, creditor=creditor_id)
    logger.info("%s is bankrupt", player.name)

    if game.check_win_condition():
        return
    if player_id == game.current_player_id:
        game.advance_turn()
    elif game.phase in NEGOTIATION_PHASES and not game.has_pending_decision():
        game.resume_turn()
