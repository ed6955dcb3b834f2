"""
Rent calculation and monopoly detection.
"""

import math
from typing import TYPE_CHECKING, Optional

from tycoon.economics import apply_rent_modifier
from tycoon.spaces import SpaceType

if TYPE_CHECKING:
    from tycoon.game import GameState


def group_owner(game: "GameState", color_group: str) -> Optional[int]:
    """Return the single owner of a whole color group, or None."""
    positions = game.board.get_color_group(color_group)
    if not positions:
        return None
    owners = {game.property_ownership[p].owner_id for p in positions}
    if len(owners) != 1:
        return None
    return owners.pop()


def has_monopoly(game: "GameState", player_id: int, color_group: str) -> bool:
    """Check if a player owns every property in a color group (mortgages don't matter)."""
    return group_owner(game, color_group) == player_id


def count_owned_of_type(game: "GameState", player_id: int, space_type: SpaceType) -> int:
    return sum(
        1
        for position in game.board.get_positions_of_type(space_type)
        if game.property_ownership[position].owner_id == player_id
    )


def calculate_rent(game: "GameState", position: int, dice_total: int = 0) -> int:
    """
    Rent due for landing on an ownable space.

    Args:
        game: Current game state
        position: Board position of the space
        dice_total: Dice total of the roll that landed there (utilities)

    Returns:
        Rent amount, 0 if unowned or mortgaged
    """
    space = game.board.get_ownable(position)
    ownership = game.property_ownership.get(position)
    if space is None or ownership is None or ownership.owner_id is None or ownership.mortgaged:
        return 0
    owner_id = ownership.owner_id

    if space.space_type == SpaceType.PROPERTY:
        if ownership.hotel:
            rent = space.rents[5]
        elif ownership.houses > 0:
            rent = space.rents[ownership.houses]
        else:
            rent = space.base_rent
            if has_monopoly(game, owner_id, space.color_group):
                rent *= 2
    elif space.space_type == SpaceType.RAILROAD:
        owned = count_owned_of_type(game, owner_id, SpaceType.RAILROAD)
        rent = space.base_rent * 2 ** (owned - 1)
        if game.railroad_rent_multiplier:
            rent *= game.railroad_rent_multiplier
    else:
        if game.utility_multiplier_override:
            multiplier = game.utility_multiplier_override
        else:
            owned = count_owned_of_type(game, owner_id, SpaceType.UTILITY)
            multiplier = 10 if owned >= 2 else 4
        rent = dice_total * multiplier

    rent = apply_rent_modifier(rent, game.active_economic_events)

    if game.settings.enable_property_value_fluctuation:
        rent = math.floor(rent * ownership.value_multiplier)

    owner = game.players[owner_id]
    if owner.in_chapter11:
        rent = math.floor(rent * 0.5)

    return rent
