"""
Trade negotiation controller.

Allows the current player to negotiate an exchange of properties, cash
and Get Out of Jail Free cards with one other player.

Lifecycle:
    draft -> pending -> accepted | rejected | counter_pending
    counter_pending -> accepted | rejected
    draft | pending -> cancelled

A counter offer is expressed in the same orientation as the original
offer (what the initiator gives and what the initiator gets) and is
final: the initiator can only accept or reject it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Set

from tycoon.exceptions import InvalidActionError
from tycoon.money import EventType
from tycoon.phases import Phase
from tycoon.player import TradeAttempts

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)


class TradeStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    COUNTER_PENDING = "counter_pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def _non_negative_int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidActionError(f"Trade field '{key}' must be a non-negative integer")
    return value


def _positions(data: Dict[str, Any], key: str) -> Set[int]:
    values = data.get(key, []) or []
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise InvalidActionError(f"Trade field '{key}' must be a list of positions")
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidActionError(f"Trade field '{key}' must contain integer positions")
    return set(values)


@dataclass
class TradeOffer:
    """
    What the initiator gives and what they ask for in return.

    Properties are board positions. Mortgaged properties may be traded;
    properties with buildings may not.
    """

    cash_offered: int = 0
    properties_offered: Set[int] = field(default_factory=set)
    jail_cards_offered: int = 0
    cash_requested: int = 0
    properties_requested: Set[int] = field(default_factory=set)
    jail_cards_requested: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "TradeOffer":
        """Build an offer from a command payload, rejecting malformed fields."""
        if isinstance(data, TradeOffer):
            return data
        if not isinstance(data, dict):
            raise InvalidActionError("Trade offer must be an object")
        return cls(
            cash_offered=_non_negative_int(data, "cash_offered"),
            properties_offered=_positions(data, "properties_offered"),
            jail_cards_offered=_non_negative_int(data, "jail_cards_offered"),
            cash_requested=_non_negative_int(data, "cash_requested"),
            properties_requested=_positions(data, "properties_requested"),
            jail_cards_requested=_non_negative_int(data, "jail_cards_requested"),
        )

    def offers_nothing(self) -> bool:
        return not (self.cash_offered or self.properties_offered or self.jail_cards_offered)

    def requests_nothing(self) -> bool:
        return not (self.cash_requested or self.properties_requested or self.jail_cards_requested)

    def is_empty(self) -> bool:
        return self.offers_nothing() and self.requests_nothing()

    def __repr__(self) -> str:
        return (
            f"TradeOffer(gives=£{self.cash_offered}+{sorted(self.properties_offered)}"
            f"+{self.jail_cards_offered} cards, wants=£{self.cash_requested}"
            f"+{sorted(self.properties_requested)}+{self.jail_cards_requested} cards)"
        )


@dataclass
class Trade:
    """A trade being negotiated between the initiator and the receiver."""

    trade_id: int
    initiator_id: int
    receiver_id: int
    created_turn: int
    offer: TradeOffer = field(default_factory=TradeOffer)
    status: TradeStatus = TradeStatus.DRAFT
    counter_offer: Optional[TradeOffer] = None
    needs_confirmation: bool = False

    def involves(self, player_id: int) -> bool:
        return player_id in (self.initiator_id, self.receiver_id)

    @property
    def responder_id(self) -> Optional[int]:
        """Player whose answer is awaited, if the trade is on the table."""
        if self.status == TradeStatus.PENDING:
            return self.receiver_id
        if self.status == TradeStatus.COUNTER_PENDING:
            return self.initiator_id
        return None


def _check_properties(game: "GameState", owner_id: int, positions: Iterable[int]) -> None:
    for position in positions:
        space = game.board.get_ownable(position)
        if space is None:
            raise InvalidActionError(f"Position {position} is not a tradeable property")
        ownership = game.property_ownership[position]
        if ownership.owner_id != owner_id:
            raise InvalidActionError(f"Player {owner_id} does not own {space.name}")
        if ownership.has_buildings():
            raise InvalidActionError(f"{space.name} has buildings and cannot be traded")


def validate_offer(game: "GameState", initiator_id: int, receiver_id: int, offer: TradeOffer) -> None:
    """
    Check that both sides can deliver what the offer promises.

    Raises:
        InvalidActionError: Describing the first problem found
    """
    if offer.is_empty():
        raise InvalidActionError("Trade offer is empty")
    initiator = game.players[initiator_id]
    receiver = game.players[receiver_id]
    if receiver.is_bankrupt or initiator.is_bankrupt:
        raise InvalidActionError("Bankrupt players cannot trade")
    if offer.cash_offered > initiator.cash:
        raise InvalidActionError(f"{initiator.name} cannot afford £{offer.cash_offered}")
    if offer.cash_requested > receiver.cash:
        raise InvalidActionError(f"{receiver.name} cannot afford £{offer.cash_requested}")
    if offer.jail_cards_offered > initiator.jail_free_cards:
        raise InvalidActionError(f"{initiator.name} does not hold enough jail cards")
    if offer.jail_cards_requested > receiver.jail_free_cards:
        raise InvalidActionError(f"{receiver.name} does not hold enough jail cards")
    _check_properties(game, initiator_id, offer.properties_offered)
    _check_properties(game, receiver_id, offer.properties_requested)


def start_trade(game: "GameState", initiator_id: int, receiver_id: int) -> Trade:
    """Open a draft trade from the current player to another player."""
    if receiver_id == initiator_id or receiver_id not in game.players:
        raise InvalidActionError(f"Cannot trade with player {receiver_id}")
    if game.players[receiver_id].is_bankrupt:
        raise InvalidActionError("Cannot trade with a bankrupt player")

    game.next_trade_id += 1
    game.trade = Trade(
        trade_id=game.next_trade_id,
        initiator_id=initiator_id,
        receiver_id=receiver_id,
        created_turn=game.turn_number,
    )
    game.players[initiator_id].last_trade_turn = game.turn_number
    game.phase = Phase.TRADING
    game.event_log.log(EventType.TRADE_STARTED, player_id=initiator_id, receiver=receiver_id)
    return game.trade


def update_offer(game: "GameState", player_id: int, offer_data: Any) -> None:
    """Replace the draft offer; it is validated when proposed."""
    game.trade.offer = TradeOffer.from_dict(offer_data)
    game.trade.needs_confirmation = False


def propose_trade(game: "GameState", player_id: int, offer_data: Any = None, confirm: bool = False) -> None:
    """
    Put the draft offer in front of the receiver.

    An offer that asks for nothing in return is held back and flagged
    until the initiator proposes it again with confirm=True.
    """
    trade = game.trade
    offer = TradeOffer.from_dict(offer_data) if offer_data is not None else trade.offer
    validate_offer(game, trade.initiator_id, trade.receiver_id, offer)
    trade.offer = offer

    if offer.requests_nothing() and not confirm:
        trade.needs_confirmation = True
        logger.info("Trade %s asks for nothing in return; awaiting confirmation", trade.trade_id)
        return

    trade.needs_confirmation = False
    trade.status = TradeStatus.PENDING
    game.event_log.log(
        EventType.TRADE_PROPOSED,
        player_id=trade.initiator_id,
        receiver=trade.receiver_id,
        offer=repr(offer),
    )


def counter_offer(game: "GameState", player_id: int, offer_data: Any) -> None:
    trade = game.trade
    offer = TradeOffer.from_dict(offer_data)
    validate_offer(game, trade.initiator_id, trade.receiver_id, offer)
    trade.counter_offer = offer
    trade.status = TradeStatus.COUNTER_PENDING
    game.event_log.log(EventType.TRADE_COUNTERED, player_id=player_id, offer=repr(offer))


def accept_trade(game: "GameState", player_id: int) -> None:
    """Execute the offer on the table; a stale offer cancels the trade instead."""
    trade = game.trade
    offer = trade.counter_offer if trade.status == TradeStatus.COUNTER_PENDING else trade.offer
    try:
        validate_offer(game, trade.initiator_id, trade.receiver_id, offer)
    except InvalidActionError as exc:
        logger.info("Trade %s no longer valid: %s", trade.trade_id, exc)
        _close(game, TradeStatus.CANCELLED)
        return

    execute_trade(game, trade.initiator_id, trade.receiver_id, offer)
    game.event_log.log(EventType.TRADE_ACCEPTED, player_id=player_id, trade_id=trade.trade_id)
    _close(game, TradeStatus.ACCEPTED)


def reject_trade(game: "GameState", player_id: int) -> None:
    trade = game.trade
    initiator = game.players[trade.initiator_id]
    if initiator.is_ai and trade.status == TradeStatus.PENDING:
        for position in trade.offer.properties_requested:
            key = f"{trade.receiver_id}-{position}"
            record = initiator.trade_history.setdefault(key, TradeAttempts())
            record.attempts += 1
            record.last_offer = trade.offer.cash_offered
            record.last_turn = game.turn_number
    game.event_log.log(EventType.TRADE_REJECTED, player_id=player_id, trade_id=trade.trade_id)
    _close(game, TradeStatus.REJECTED)


def cancel_trade(game: "GameState", player_id: int) -> None:
    game.event_log.log(EventType.TRADE_CANCELLED, player_id=player_id, trade_id=game.trade.trade_id)
    _close(game, TradeStatus.CANCELLED)


def execute_trade(game: "GameState", initiator_id: int, receiver_id: int, offer: TradeOffer) -> None:
    """Swap everything named in a validated offer."""
    initiator = game.players[initiator_id]
    receiver = game.players[receiver_id]

    initiator.cash += offer.cash_requested - offer.cash_offered
    receiver.cash += offer.cash_offered - offer.cash_requested
    initiator.jail_free_cards += offer.jail_cards_requested - offer.jail_cards_offered
    receiver.jail_free_cards += offer.jail_cards_offered - offer.jail_cards_requested

    for position in offer.properties_offered:
        game.transfer_property(position, receiver_id)
    for position in offer.properties_requested:
        game.transfer_property(position, initiator_id)

    game.event_log.log(
        EventType.TRADE_EXECUTED,
        player_id=initiator_id,
        receiver=receiver_id,
        offer=repr(offer),
    )


def _close(game: "GameState", status: TradeStatus, resume: bool = True) -> None:
    trade = game.trade
    trade.status = status
    game.trade = None
    logger.info("Trade %s closed: %s", trade.trade_id, status.value)
    if resume:
        game.resume_turn()


def cancel_trades_involving(game: "GameState", player_id: int) -> None:
    """Drop the open trade if a player is being restructured or liquidated."""
    if game.trade is not None and game.trade.involves(player_id):
        game.event_log.log(EventType.TRADE_CANCELLED, player_id=player_id, trade_id=game.trade.trade_id)
        _close(game, TradeStatus.CANCELLED, resume=False)
