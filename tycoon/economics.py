"""
Economic model: prices, net worth, taxes, inflation and market events.

All functions here are pure except the market event helpers at the
bottom, which update the game's active event list.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from tycoon.money import EventType, round_half_up
from tycoon.player import PropertyOwnership
from tycoon.spaces import OwnableSpace

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)

FLAT_INCOME_TAX = 200
PERCENTAGE_TAX_RATE = 0.1
BASE_GO_SALARY = 200
GO_SALARY_STEP = 25
MAX_GO_SALARY = 350
JAIL_CARD_VALUE = 50
HOUSING_BOOM_COST_MULTIPLIER = 1.5
STIMULUS_AMOUNT = 100


class EconomicEventType(str, Enum):
    """Market conditions that modify prices, rents, taxes and loans."""

    RECESSION = "recession"
    HOUSING_BOOM = "housing_boom"
    TAX_HOLIDAY = "tax_holiday"
    MARKET_CRASH = "market_crash"
    MARKET_CRASH_1 = "market_crash_1"
    MARKET_CRASH_2 = "market_crash_2"
    BULL_MARKET = "bull_market"
    BANKING_CRISIS = "banking_crisis"
    ECONOMIC_STIMULUS = "economic_stimulus"


@dataclass
class ActiveEconomicEvent:
    event_type: EconomicEventType
    turns_remaining: int
    description: str


@dataclass(frozen=True)
class EconomicEventSpec:
    """Duration (in rounds), draw weight and headline of a market event."""

    event_type: EconomicEventType
    duration: int
    weight: int
    description: str


# Draw table for Free Parking. The crash variants are only applied explicitly.
ECONOMIC_EVENTS: List[EconomicEventSpec] = [
    EconomicEventSpec(EconomicEventType.RECESSION, 3, 15, "Recession: rents fall 25%"),
    EconomicEventSpec(EconomicEventType.HOUSING_BOOM, 2, 15, "Housing boom: building costs up 50%"),
    EconomicEventSpec(EconomicEventType.TAX_HOLIDAY, 2, 10, "Tax holiday: no income tax"),
    EconomicEventSpec(EconomicEventType.MARKET_CRASH, 3, 10, "Market crash: prices and rents fall 20%"),
    EconomicEventSpec(EconomicEventType.BULL_MARKET, 3, 15, "Bull market: prices and rents rise 20%"),
    EconomicEventSpec(EconomicEventType.BANKING_CRISIS, 2, 10, "Banking crisis: loan interest doubled"),
    EconomicEventSpec(EconomicEventType.ECONOMIC_STIMULUS, 0, 25, "Economic stimulus: every player receives 100"),
]

_EXTRA_EVENTS = {
    EconomicEventType.MARKET_CRASH_1: EconomicEventSpec(
        EconomicEventType.MARKET_CRASH_1, 3, 0, "Market correction: rents fall 15%"
    ),
    EconomicEventType.MARKET_CRASH_2: EconomicEventSpec(
        EconomicEventType.MARKET_CRASH_2, 3, 0, "Market rebound: rents rise 15%"
    ),
}

# Checked in order; the first active event decides the multiplier.
PRICE_MODIFIERS = [
    (EconomicEventType.MARKET_CRASH, 0.8),
    (EconomicEventType.MARKET_CRASH_1, 1.15),
    (EconomicEventType.MARKET_CRASH_2, 0.85),
    (EconomicEventType.BULL_MARKET, 1.2),
]

RENT_MODIFIERS = [
    (EconomicEventType.RECESSION, 0.75),
    (EconomicEventType.MARKET_CRASH, 0.8),
    (EconomicEventType.MARKET_CRASH_1, 0.85),
    (EconomicEventType.MARKET_CRASH_2, 1.15),
    (EconomicEventType.BULL_MARKET, 1.2),
]


def _first_modifier(events: Iterable[ActiveEconomicEvent], table) -> float:
    active = {e.event_type for e in events}
    for event_type, multiplier in table:
        if event_type in active:
            return multiplier
    return 1.0


def apply_price_modifier(amount: float, events: Iterable[ActiveEconomicEvent]) -> int:
    """Apply the market price modifier to an amount."""
    return round_half_up(amount * _first_modifier(events, PRICE_MODIFIERS))


def apply_rent_modifier(amount: float, events: Iterable[ActiveEconomicEvent]) -> int:
    """Apply the market rent modifier to an amount."""
    return round_half_up(amount * _first_modifier(events, RENT_MODIFIERS))


def calculate_current_price(
    space: OwnableSpace,
    ownership: PropertyOwnership,
    events: Iterable[ActiveEconomicEvent],
) -> int:
    """
    Market price of a space.

    Args:
        space: Static space data
        ownership: Mutable ownership state (for the value multiplier)
        events: Active economic events

    Returns:
        Price after the value multiplier and market modifier
    """
    return apply_price_modifier(space.price * ownership.value_multiplier, events)


def calculate_net_worth(game: "GameState", player_id: int) -> int:
    """
    Total worth of a player.

    Cash, plus each property at its market price (less the mortgage
    value when mortgaged), plus half the cost of standing buildings,
    plus a fixed value per Get Out of Jail Free card.
    """
    player = game.players[player_id]
    total: float = player.cash

    for position in player.properties:
        space = game.board.get_ownable(position)
        ownership = game.property_ownership[position]
        price = calculate_current_price(space, ownership, game.active_economic_events)
        total += price - space.mortgage_value if ownership.mortgaged else price
        if ownership.hotel:
            total += math.floor(space.building_cost * 5 / 2)
        elif ownership.houses:
            total += math.floor(space.building_cost * ownership.houses / 2)

    total += JAIL_CARD_VALUE * player.jail_free_cards
    return round_half_up(total)


def calculate_percentage_tax(net_worth: int) -> int:
    """Ten percent of net worth, rounded down."""
    return math.floor(net_worth * PERCENTAGE_TAX_RATE)


def get_optimal_tax_choice(net_worth: int) -> str:
    """Return "percentage" when it is strictly cheaper than the flat tax, else "flat"."""
    return "percentage" if calculate_percentage_tax(net_worth) < FLAT_INCOME_TAX else "flat"


def calculate_go_salary(rounds_completed: int) -> int:
    """GO salary after inflation: +25 every two rounds, capped at 350."""
    return min(BASE_GO_SALARY + GO_SALARY_STEP * (rounds_completed // 2), MAX_GO_SALARY)


def calculate_gini_coefficient(net_worths: Sequence[float]) -> float:
    """
    Gini coefficient of a list of net worths.

    The cumulative sums run over the worths in ascending order, which makes
    the raw value non-positive for any unequal set, so after clamping the
    result is 0 there as well. Market history entries record this same
    figure.

    Returns:
        A value in [0, 1]; 0 for fewer than two players or no wealth
    """
    n = len(net_worths)
    if n <= 1:
        return 0.0
    values = sorted(net_worths)
    total = sum(values)
    if total == 0:
        return 0.0

    cumulative = 0.0
    weighted_sum = 0.0
    for value in values:
        cumulative += value
        weighted_sum += cumulative

    gini = (2 * weighted_sum) / (n * total) - (n + 1) / n
    return max(0.0, min(1.0, gini))


def calculate_game_gini(game: "GameState") -> float:
    """Gini coefficient over the net worths of non-bankrupt players."""
    worths = [calculate_net_worth(game, pid) for pid, p in game.players.items() if not p.is_bankrupt]
    return calculate_gini_coefficient(worths)


def calculate_money_in_circulation(game: "GameState") -> int:
    return sum(p.cash for p in game.players.values())


def calculate_building_cost(game: "GameState", space: OwnableSpace) -> int:
    """Cost of one building, raised during a housing boom."""
    if is_event_active(game, EconomicEventType.HOUSING_BOOM):
        return math.floor(space.building_cost * HOUSING_BOOM_COST_MULTIPLIER)
    return space.building_cost


def is_event_active(game: "GameState", event_type: EconomicEventType) -> bool:
    return any(e.event_type == event_type for e in game.active_economic_events)


def trigger_economic_event(
    game: "GameState",
    player_id: Optional[int] = None,
    event_type: Optional[EconomicEventType] = None,
) -> EconomicEventSpec:
    """
    Start a market event, drawn by weight unless a type is given.

    An event of a type that is already active extends its duration
    instead of stacking. Economic stimulus pays out immediately and
    is not kept in the active list.
    """
    if event_type is None:
        spec = game.rng.choices(ECONOMIC_EVENTS, weights=[e.weight for e in ECONOMIC_EVENTS])[0]
    else:
        spec = next((e for e in ECONOMIC_EVENTS if e.event_type == event_type), None) or _EXTRA_EVENTS[event_type]

    if spec.event_type == EconomicEventType.ECONOMIC_STIMULUS:
        for player in game.players.values():
            if not player.is_bankrupt:
                player.cash += STIMULUS_AMOUNT
    else:
        existing = next((e for e in game.active_economic_events if e.event_type == spec.event_type), None)
        if existing is not None:
            existing.turns_remaining += spec.duration
        else:
            game.active_economic_events.append(
                ActiveEconomicEvent(spec.event_type, spec.duration, spec.description)
            )

    game.event_log.log(
        EventType.ECONOMIC_EVENT,
        player_id=player_id,
        event=spec.event_type.value,
        duration=spec.duration,
        description=spec.description,
    )
    logger.info("Economic event: %s", spec.description)
    return spec


def tick_economic_events(game: "GameState") -> None:
    """Count active events down by one round and drop expired ones."""
    remaining: List[ActiveEconomicEvent] = []
    for event in game.active_economic_events:
        event.turns_remaining -= 1
        if event.turns_remaining > 0:
            remaining.append(event)
        else:
            game.event_log.log(EventType.ECONOMIC_EVENT_END, event=event.event_type.value)
    game.active_economic_events = remaining
