"""Base class for all computer players."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from tycoon.game import GameState
    from tycoon.rules import Action


class Agent(ABC):
    """
    Abstract base class for computer players.

    An agent is consulted whenever the game waits on its player. It
    reads the state and proposes at most one command, which is applied
    through the same command surface as a human's.

    Attributes:
        player_id: The seat the agent plays.
        name: The player's display name.
    """

    def __init__(self, player_id: int, name: str):
        self.player_id = player_id
        self.name = name

    @abstractmethod
    def choose_action(self, game: "GameState", capabilities: Optional[Iterable[str]] = None) -> Optional["Action"]:
        """
        Choose the next command for this player.

        Args:
            game: The current game state. Must not be modified.
            capabilities: Command names enabled for the session; all
                enabled commands when None.

        Returns:
            The command to issue, or None if the player has nothing to do.
        """
