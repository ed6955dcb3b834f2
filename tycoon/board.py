"""
The 40-space board definition.

The board is static data: it is built once per game and never
mutated. Per-game ownership state is kept in PropertyOwnership.
"""

from typing import Dict, List, Optional

from tycoon.exceptions import ValidationError
from tycoon.spaces import (
    OwnableSpace,
    PropertySpace,
    RailroadSpace,
    Space,
    SpaceType,
    TaxSpace,
    UtilitySpace,
    card_space,
    corner,
)

BOARD_SIZE = 40
JAIL_POSITION = 10
INCOME_TAX_POSITION = 4
LUXURY_TAX_POSITION = 38


def create_standard_spaces() -> List[Space]:
    """Create the standard 40-space board."""
    return [
        # Bottom row (0-10)
        corner(SpaceType.GO, 0),
        PropertySpace("Mediterranean Avenue", 1, 60, "brown", [2, 10, 30, 90, 160, 250], 50, 30),
        card_space(SpaceType.COMMUNITY_CHEST, 2),
        PropertySpace("Baltic Avenue", 3, 60, "brown", [4, 20, 60, 180, 320, 450], 50, 30),
        TaxSpace("Income Tax", INCOME_TAX_POSITION, 200, has_choice=True),
        RailroadSpace("Reading Railroad", 5),
        PropertySpace("Oriental Avenue", 6, 100, "light_blue", [6, 30, 90, 270, 400, 550], 50, 50),
        card_space(SpaceType.CHANCE, 7),
        PropertySpace("Vermont Avenue", 8, 100, "light_blue", [6, 30, 90, 270, 400, 550], 50, 50),
        PropertySpace("Connecticut Avenue", 9, 120, "light_blue", [8, 40, 100, 300, 450, 600], 50, 60),
        corner(SpaceType.JAIL, JAIL_POSITION),
        # Left side (11-20)
        PropertySpace("St. Charles Place", 11, 140, "pink", [10, 50, 150, 450, 625, 750], 100, 70),
        UtilitySpace("Electric Company", 12),
        PropertySpace("States Avenue", 13, 140, "pink", [10, 50, 150, 450, 625, 750], 100, 70),
        PropertySpace("Virginia Avenue", 14, 160, "pink", [12, 60, 180, 500, 700, 900], 100, 80),
        RailroadSpace("Pennsylvania Railroad", 15),
        PropertySpace("St. James Place", 16, 180, "orange", [14, 70, 200, 550, 750, 950], 100, 90),
        card_space(SpaceType.COMMUNITY_CHEST, 17),
        PropertySpace("Tennessee Avenue", 18, 180, "orange", [14, 70, 200, 550, 750, 950], 100, 90),
        PropertySpace("New York Avenue", 19, 200, "orange", [16, 80, 220, 600, 800, 1000], 100, 100),
        corner(SpaceType.FREE_PARKING, 20),
        # Top row (21-30)
        PropertySpace("Kentucky Avenue", 21, 220, "red", [18, 90, 250, 700, 875, 1050], 150, 110),
        card_space(SpaceType.CHANCE, 22),
        PropertySpace("Indiana Avenue", 23, 220, "red", [18, 90, 250, 700, 875, 1050], 150, 110),
        PropertySpace("Illinois Avenue", 24, 240, "red", [20, 100, 300, 750, 925, 1100], 150, 120),
        RailroadSpace("B. & O. Railroad", 25),
        PropertySpace("Atlantic Avenue", 26, 260, "yellow", [22, 110, 330, 800, 975, 1150], 150, 130),
        PropertySpace("Ventnor Avenue", 27, 260, "yellow", [22, 110, 330, 800, 975, 1150], 150, 130),
        UtilitySpace("Water Works", 28),
        PropertySpace("Marvin Gardens", 29, 280, "yellow", [24, 120, 360, 850, 1025, 1200], 150, 140),
        corner(SpaceType.GO_TO_JAIL, 30),
        # Right side (31-39)
        PropertySpace("Pacific Avenue", 31, 300, "green", [26, 130, 390, 900, 1100, 1275], 200, 150),
        PropertySpace("North Carolina Avenue", 32, 300, "green", [26, 130, 390, 900, 1100, 1275], 200, 150),
        card_space(SpaceType.COMMUNITY_CHEST, 33),
        PropertySpace("Pennsylvania Avenue", 34, 320, "green", [28, 150, 450, 1000, 1200, 1400], 200, 160),
        RailroadSpace("Short Line", 35),
        card_space(SpaceType.CHANCE, 36),
        PropertySpace("Park Place", 37, 350, "dark_blue", [35, 175, 500, 1100, 1300, 1500], 200, 175),
        TaxSpace("Luxury Tax", LUXURY_TAX_POSITION, 100),
        PropertySpace("Boardwalk", 39, 400, "dark_blue", [50, 200, 600, 1400, 1700, 2000], 200, 200),
    ]


class Board:
    """The game board. Read-only once constructed."""

    def __init__(self, spaces: Optional[List[Space]] = None):
        self.spaces: List[Space] = spaces if spaces is not None else create_standard_spaces()
        self._validate()
        self.color_groups: Dict[str, List[int]] = self._build_color_groups()

    def _validate(self) -> None:
        if len(self.spaces) != BOARD_SIZE:
            raise ValidationError(f"Board must have {BOARD_SIZE} spaces, got {len(self.spaces)}")
        for index, space in enumerate(self.spaces):
            if space.position != index:
                raise ValidationError(f"Space '{space.name}' is at index {index} but claims position {space.position}")

    def _build_color_groups(self) -> Dict[str, List[int]]:
        """Build a mapping of color groups to property positions."""
        groups: Dict[str, List[int]] = {}
        for space in self.spaces:
            if isinstance(space, PropertySpace):
                groups.setdefault(space.color_group, []).append(space.position)
        return groups

    def get_space(self, position: int) -> Space:
        """Get the space at a board position (wraps around)."""
        return self.spaces[position % BOARD_SIZE]

    def get_ownable(self, position: int) -> Optional[OwnableSpace]:
        """Get the ownable space at a position, or None for other kinds."""
        if not isinstance(position, int) or not 0 <= position < BOARD_SIZE:
            return None
        space = self.spaces[position]
        return space if isinstance(space, OwnableSpace) else None

    def get_ownable_positions(self) -> List[int]:
        return [s.position for s in self.spaces if isinstance(s, OwnableSpace)]

    def get_color_group(self, color_group: str) -> List[int]:
        """Get all property positions in a color group."""
        return self.color_groups.get(color_group, [])

    def get_positions_of_type(self, space_type: SpaceType) -> List[int]:
        return [s.position for s in self.spaces if s.space_type == space_type]

    def find_nearest(self, from_position: int, space_type: SpaceType) -> int:
        """Find the next space of a type, moving forward from a position."""
        for offset in range(1, BOARD_SIZE + 1):
            position = (from_position + offset) % BOARD_SIZE
            if self.spaces[position].space_type == space_type:
                return position
        raise ValidationError(f"No {space_type.value} space on the board")
