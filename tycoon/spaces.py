"""
Static space records. Every ownable kind shares OwnableSpace's price data;
the remaining kinds only carry a name and a position.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SpaceType(Enum):
    GO = "go"
    PROPERTY = "property"
    RAILROAD = "railroad"
    UTILITY = "utility"
    TAX = "tax"
    CHANCE = "chance"
    COMMUNITY_CHEST = "community_chest"
    JAIL = "jail"
    GO_TO_JAIL = "go_to_jail"
    FREE_PARKING = "free_parking"


OWNABLE_TYPES = frozenset({SpaceType.PROPERTY, SpaceType.RAILROAD, SpaceType.UTILITY})


@dataclass
class Space:
    """A square on the board."""

    name: str
    position: int
    space_type: SpaceType

    @property
    def is_ownable(self) -> bool:
        return self.space_type in OWNABLE_TYPES

    def __str__(self) -> str:
        return f"{self.name} [{self.position}]"


@dataclass
class OwnableSpace(Space):
    """
    A space that can be bought, mortgaged and traded.

    The static price data never changes during a game; ownership,
    buildings and market multipliers live in PropertyOwnership.
    """

    price: int = 0
    base_rent: int = 0
    rents: List[int] = field(default_factory=list)
    mortgage_value: int = 0
    color_group: Optional[str] = None
    building_cost: int = 0


@dataclass
class PropertySpace(OwnableSpace):
    """A street that can be owned, built upon, and mortgaged."""

    def __init__(
        self,
        name: str,
        position: int,
        price: int,
        color_group: str,
        rents: List[int],
        building_cost: int,
        mortgage_value: int,
    ):
        super().__init__(
            name,
            position,
            SpaceType.PROPERTY,
            price=price,
            base_rent=rents[0],
            rents=list(rents),
            mortgage_value=mortgage_value,
            color_group=color_group,
            building_cost=building_cost,
        )


@dataclass
class RailroadSpace(OwnableSpace):
    """Rent doubles with each additional railroad held by the same owner."""

    def __init__(self, name: str, position: int, price: int = 200, mortgage_value: int = 100):
        super().__init__(
            name,
            position,
            SpaceType.RAILROAD,
            price=price,
            base_rent=25,
            rents=[25, 50, 100, 200],
            mortgage_value=mortgage_value,
        )


@dataclass
class UtilitySpace(OwnableSpace):
    """Rent is a multiple of the dice total."""

    def __init__(self, name: str, position: int, price: int = 150, mortgage_value: int = 75):
        super().__init__(
            name,
            position,
            SpaceType.UTILITY,
            price=price,
            mortgage_value=mortgage_value,
        )


@dataclass
class TaxSpace(Space):
    """Income tax offers a flat/percentage choice; luxury tax is a fixed charge."""

    amount: int = 0
    has_choice: bool = False

    def __init__(self, name: str, position: int, amount: int, has_choice: bool = False):
        super().__init__(name, position, SpaceType.TAX)
        self.amount = amount
        self.has_choice = has_choice


def card_space(space_type: SpaceType, position: int) -> Space:
    """A Chance or Community Chest draw space."""
    title = "Chance" if space_type == SpaceType.CHANCE else "Community Chest"
    return Space(title, position, space_type)


def corner(space_type: SpaceType, position: int) -> Space:
    titles = {
        SpaceType.GO: "GO",
        SpaceType.JAIL: "Jail",
        SpaceType.FREE_PARKING: "Free Parking",
        SpaceType.GO_TO_JAIL: "Go To Jail",
    }
    return Space(titles[space_type], position, space_type)
