"""
Money rounding, building supply and event logging.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest whole currency unit, halves rounding up."""
    return math.floor(value + 0.5)


class EventType(Enum):
    """Types of game events."""

    GAME_START = "game_start"
    TURN_START = "turn_start"
    ROUND_COMPLETE = "round_complete"
    DICE_ROLL = "dice_roll"
    MOVE = "move"
    PASS_GO = "pass_go"
    LAND = "land"

    PURCHASE = "purchase"
    AUCTION_START = "auction_start"
    AUCTION_BID = "auction_bid"
    AUCTION_PASS = "auction_pass"
    AUCTION_END = "auction_end"

    RENT_PAYMENT = "rent_payment"
    TAX_PAYMENT = "tax_payment"

    CARD_DRAW = "card_draw"
    CARD_EFFECT = "card_effect"

    BUILD_HOUSE = "build_house"
    BUILD_HOTEL = "build_hotel"
    SELL_BUILDING = "sell_building"

    MORTGAGE = "mortgage"
    UNMORTGAGE = "unmortgage"

    GO_TO_JAIL = "go_to_jail"
    JAIL_ATTEMPT = "jail_attempt"
    JAIL_RELEASE = "jail_release"

    TRANSFER = "transfer"
    BANKRUPTCY = "bankruptcy"
    GAME_END = "game_end"

    TRADE_STARTED = "trade_started"
    TRADE_PROPOSED = "trade_proposed"
    TRADE_COUNTERED = "trade_countered"
    TRADE_ACCEPTED = "trade_accepted"
    TRADE_REJECTED = "trade_rejected"
    TRADE_CANCELLED = "trade_cancelled"
    TRADE_EXECUTED = "trade_executed"

    ECONOMIC_EVENT = "economic_event"
    ECONOMIC_EVENT_END = "economic_event_end"

    LOAN_TAKEN = "loan_taken"
    LOAN_REPAID = "loan_repaid"
    LOAN_INTEREST = "loan_interest"
    INSURANCE_PURCHASED = "insurance_purchased"
    INSURANCE_EXPIRED = "insurance_expired"
    VALUE_CHANGE = "value_change"

    RENT_NEGOTIATION = "rent_negotiation"
    RENT_FORGIVEN = "rent_forgiven"
    PAYMENT_PLAN = "payment_plan"
    IOU_CREATED = "iou_created"
    IOU_PAYMENT = "iou_payment"
    PROPERTY_SEIZED = "property_seized"

    RESTRUCTURING_OFFERED = "restructuring_offered"
    CHAPTER11_ENTERED = "chapter11_entered"
    CHAPTER11_EXITED = "chapter11_exited"
    DEBT_SERVICE = "debt_service"
    FORECLOSURE = "foreclosure"


@dataclass
class GameEvent:
    event_type: EventType
    player_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        who = "bank" if self.player_id is None else f"player {self.player_id}"
        return f"{self.event_type.value} ({who}) {self.details}"


class EventLog:
    """Append-only record of everything that happened in a session."""

    def __init__(self):
        self.events: List[GameEvent] = []

    def log(self, event_type: EventType, player_id: Optional[int] = None, **details: Any) -> None:
        entry = GameEvent(event_type, player_id, details)
        self.events.append(entry)
        logger.debug("%s", entry.describe())

    def get_events(self, event_type: Optional[EventType] = None) -> List[GameEvent]:
        """Events in the order they happened, optionally of one type only."""
        if event_type is None:
            return list(self.events)
        return [entry for entry in self.events if entry.event_type == event_type]

    def __len__(self) -> int:
        return len(self.events)


class Bank:
    """
    The building pool.

    Cash held by the bank is unlimited. Houses and hotels are counted only
    when scarcity is on; otherwise every request succeeds and the counters
    stay at their limits.
    """

    def __init__(self, house_limit: int = 32, hotel_limit: int = 12, scarcity: bool = True):
        self.house_limit = house_limit
        self.hotel_limit = hotel_limit
        self.houses_available = house_limit
        self.hotels_available = hotel_limit
        self.scarcity = scarcity

    def has_houses(self, count: int = 1) -> bool:
        return not self.scarcity or self.houses_available >= count

    def has_hotel(self) -> bool:
        return not self.scarcity or self.hotels_available >= 1

    def take_houses(self, count: int = 1) -> bool:
        if not self.has_houses(count):
            return False
        if self.scarcity:
            self.houses_available -= count
        return True

    def upgrade_to_hotel(self, houses_replaced: int = 4) -> bool:
        """Swap a lot's houses for a hotel; the houses go back into the pool."""
        if not self.has_hotel():
            return False
        if self.scarcity:
            self.hotels_available -= 1
            self.houses_available += houses_replaced
        return True

    def release_houses(self, count: int = 1) -> None:
        if self.scarcity:
            self.houses_available += count

    def downgrade_hotel(self, houses_needed: int = 4) -> bool:
        """Break a hotel back down into houses. Fails when the pool is short of houses."""
        if not self.has_houses(houses_needed):
            return False
        if self.scarcity:
            self.hotels_available += 1
            self.houses_available -= houses_needed
        return True

    def release_hotel(self) -> None:
        if self.scarcity:
            self.hotels_available += 1
