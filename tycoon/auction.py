"""
Auction controller.

An auction opens when the current player declines to buy the space
they landed on. Players bid in turn; a player who passes is out. The
auction ends as soon as at most one player is still in, and the
highest bidder (if any) pays their bid for the property.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Set

from tycoon.exceptions import InvalidActionError
from tycoon.money import EventLog, EventType
from tycoon.phases import Phase

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)

MIN_INCREMENT = 10


def opening_minimum(price: int) -> int:
    return max(MIN_INCREMENT, price // 10)


def next_minimum(current_bid: int) -> int:
    return current_bid + max(MIN_INCREMENT, current_bid // 10)


class Auction:
    """
    State of one running auction.

    Bidding order follows seat order starting from the player who
    declined the property.
    """

    def __init__(
        self,
        property_position: int,
        property_name: str,
        property_price: int,
        bidder_ids: List[int],
        starting_player_id: int,
        event_log: EventLog,
    ):
        self.property_position = property_position
        self.property_name = property_name
        self.property_price = property_price
        self.bidder_ids = list(bidder_ids)
        self.event_log = event_log
        self.current_bid = 0
        self.highest_bidder: Optional[int] = None
        self.active_player_id = starting_player_id
        self.passed_players: Set[int] = set()
        self.is_complete = False

        self.event_log.log(
            EventType.AUCTION_START,
            player_id=starting_player_id,
            property=property_name,
            position=property_position,
            players=self.bidder_ids,
        )

    @property
    def minimum_bid(self) -> int:
        if self.current_bid == 0:
            return opening_minimum(self.property_price)
        return next_minimum(self.current_bid)

    def remaining_bidders(self) -> List[int]:
        return [pid for pid in self.bidder_ids if pid not in self.passed_players]

    def place_bid(self, player_id: int, amount: int, available_cash: int) -> None:
        """
        Record a bid from the active bidder.

        Raises:
            InvalidActionError: If it is not the player's turn to bid, the
                bid is below the minimum, or exceeds the player's cash
        """
        if self.is_complete:
            raise InvalidActionError("Auction is already over")
        if player_id != self.active_player_id:
            raise InvalidActionError(f"Player {player_id} is not the active bidder")
        if amount < self.minimum_bid:
            raise InvalidActionError(f"Bid {amount} is below the minimum of {self.minimum_bid}")
        if amount > available_cash:
            raise InvalidActionError(f"Bid {amount} exceeds available cash {available_cash}")

        self.current_bid = amount
        self.highest_bidder = player_id
        self.event_log.log(EventType.AUCTION_BID, player_id=player_id, property=self.property_name, amount=amount)
        self._advance()

    def pass_turn(self, player_id: int) -> None:
        """The active bidder drops out."""
        if self.is_complete:
            raise InvalidActionError("Auction is already over")
        if player_id != self.active_player_id:
            raise InvalidActionError(f"Player {player_id} is not the active bidder")

        self.passed_players.add(player_id)
        self.event_log.log(
            EventType.AUCTION_PASS,
            player_id=player_id,
            property=self.property_name,
            remaining_bidders=self.remaining_bidders(),
        )
        if not self._check_completion():
            self._advance()

    def remove_player(self, player_id: int) -> None:
        """Drop a bankrupt player from the auction."""
        if player_id not in self.bidder_ids:
            return
        was_active = player_id == self.active_player_id
        self.passed_players.add(player_id)
        if self.highest_bidder == player_id:
            self.highest_bidder = None
            self.current_bid = 0
        if not self._check_completion() and was_active:
            self._advance()

    def _advance(self) -> None:
        """Hand the turn to the next bidder still in."""
        count = len(self.bidder_ids)
        start = self.bidder_ids.index(self.active_player_id) if self.active_player_id in self.bidder_ids else 0
        for offset in range(1, count + 1):
            candidate = self.bidder_ids[(start + offset) % count]
            if candidate not in self.passed_players:
                self.active_player_id = candidate
                return

    def _check_completion(self) -> bool:
        if len(self.remaining_bidders()) <= 1:
            self.is_complete = True
        return self.is_complete

    def get_winner(self) -> Optional[int]:
        """Get the winning player ID, or None if incomplete or nobody bid."""
        if not self.is_complete or self.current_bid <= 0:
            return None
        return self.highest_bidder


def start_auction(game: "GameState", position: int, player_id: int) -> Auction:
    """Open an auction for an unowned space, starting with the declining player."""
    space = game.board.get_ownable(position)
    bidders = [pid for pid in game.turn_order() if not game.players[pid].is_bankrupt]
    game.auction = Auction(
        property_position=position,
        property_name=space.name,
        property_price=game.current_price(position),
        bidder_ids=bidders,
        starting_player_id=player_id,
        event_log=game.event_log,
    )
    game.phase = Phase.AUCTION
    logger.info("Auction opened for %s", space.name)
    return game.auction


def place_bid(game: "GameState", player_id: int, amount: int) -> None:
    auction = game.auction
    auction.place_bid(player_id, amount, game.players[player_id].cash)


def pass_auction(game: "GameState", player_id: int) -> None:
    game.auction.pass_turn(player_id)
    if game.auction.is_complete:
        finish_auction(game)


def finish_auction(game: "GameState", resume: bool = True) -> None:
    """Settle a completed auction and, by default, resume the turn."""
    auction = game.auction
    winner = auction.get_winner()
    if winner is not None:
        game.players[winner].cash -= auction.current_bid
        game.assign_property(auction.property_position, winner)

    game.event_log.log(
        EventType.AUCTION_END,
        player_id=winner,
        property=auction.property_name,
        position=auction.property_position,
        winning_bid=auction.current_bid if winner is not None else 0,
    )
    game.auction = None
    if resume:
        game.resume_turn()
