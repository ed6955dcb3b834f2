"""
How a computer player values holdings.

Properties are worth more to a player when they complete or extend a
color group, or when holding them keeps an opponent from completing one.
"""

import math
from typing import TYPE_CHECKING, Iterable, Optional

from tycoon.economics import JAIL_CARD_VALUE
from tycoon.rent import count_owned_of_type
from tycoon.spaces import PropertySpace, RailroadSpace, SpaceType, UtilitySpace

if TYPE_CHECKING:
    from tycoon.game import GameState

COMPLETES_MONOPOLY = 4.0
EXTENDS_GROUP = 1.5
BLOCKS_MONOPOLY = 2.5

AUCTION_COMPLETION_PREMIUM = 2.0
AUCTION_BLOCKING_PREMIUM = 1.5

RAILROAD_BASE_RENT = 25
UTILITY_DICE_ESTIMATE = 7


def _group_holders(game: "GameState", player_id: int, position: int):
    """Return (others in the group held by the player, the single opponent holding all the others or None)."""
    space = game.board.get_ownable(position)
    group = [p for p in game.board.get_color_group(space.color_group) if p != position]
    owners = [game.property_ownership[p].owner_id for p in group]
    mine = sum(1 for owner in owners if owner == player_id)
    rival: Optional[int] = None
    if owners and len(set(owners)) == 1 and owners[0] not in (None, player_id):
        rival = owners[0]
    return mine, len(group), rival


def completes_monopoly(game: "GameState", player_id: int, position: int) -> bool:
    """True if acquiring the position gives the player the whole group."""
    space = game.board.get_ownable(position)
    if not isinstance(space, PropertySpace):
        return False
    mine, others, _ = _group_holders(game, player_id, position)
    return mine == others


def blocks_monopoly(game: "GameState", player_id: int, position: int) -> bool:
    """True if one opponent holds every other property in the position's group."""
    space = game.board.get_ownable(position)
    if not isinstance(space, PropertySpace):
        return False
    _, _, rival = _group_holders(game, player_id, position)
    return rival is not None


def property_factor(game: "GameState", player_id: int, position: int) -> float:
    space = game.board.get_ownable(position)
    if not isinstance(space, PropertySpace):
        return 1.0
    mine, others, rival = _group_holders(game, player_id, position)
    if mine == others:
        return COMPLETES_MONOPOLY
    if mine > 0:
        return EXTENDS_GROUP
    if rival is not None:
        return BLOCKS_MONOPOLY
    return 1.0


def calculate_valuation(
    game: "GameState",
    player_id: int,
    cash: int,
    positions: Iterable[int],
    jail_cards: int,
) -> float:
    """
    Value of a bundle of cash, properties and jail cards to a player.

    Args:
        game: Current game state
        player_id: Player doing the valuing
        cash: Cash in the bundle
        positions: Property positions in the bundle
        jail_cards: Get Out of Jail Free cards in the bundle

    Returns:
        Cash-equivalent value; an empty bundle is worth 0
    """
    value: float = cash + JAIL_CARD_VALUE * jail_cards
    for position in positions:
        value += game.current_price(position) * property_factor(game, player_id, position)
    return value


def auction_premium(game: "GameState", player_id: int, position: int) -> float:
    if completes_monopoly(game, player_id, position):
        return AUCTION_COMPLETION_PREMIUM
    if blocks_monopoly(game, player_id, position):
        return AUCTION_BLOCKING_PREMIUM
    return 1.0


def return_on_investment(game: "GameState", player_id: int, position: int) -> float:
    """Expected rent per landing as a share of the purchase price."""
    space = game.board.get_ownable(position)
    price = game.current_price(position)
    if price <= 0:
        return 0.0
    if isinstance(space, RailroadSpace):
        owned = count_owned_of_type(game, player_id, SpaceType.RAILROAD)
        return RAILROAD_BASE_RENT * 2 ** owned / price
    if isinstance(space, UtilitySpace):
        owned = count_owned_of_type(game, player_id, SpaceType.UTILITY)
        return UTILITY_DICE_ESTIMATE * (10 if owned >= 1 else 4) / price
    return space.rents[1] / price


def cash_reserve(game: "GameState", player_id: int, share: float) -> int:
    """Cash the player wants to keep back, as a share of net worth."""
    return max(0, math.floor(game.net_worth(player_id) * share))
