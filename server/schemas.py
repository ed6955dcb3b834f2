from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tycoon.player import Difficulty
from tycoon.snapshot import GameSnapshot


class PlayerSpec(BaseModel):
    name: str = Field(min_length=1, max_length=40)
    color: str = ""
    is_ai: bool = False
    ai_difficulty: Difficulty = Difficulty.MEDIUM


class CreateGameRequest(BaseModel):
    players: List[PlayerSpec] = Field(min_length=2, max_length=8)
    settings: Dict[str, Any] = Field(default_factory=dict)
    autostart: bool = True


class CreateGameResponse(BaseModel):
    game_id: str
    status: str


class CommandRequest(BaseModel):
    player_id: int
    command: str
    args: List[Any] = Field(default_factory=list)


class CommandResponse(BaseModel):
    accepted: bool
    snapshot: GameSnapshot


class LegalCommandsResponse(BaseModel):
    game_id: str
    player_id: int
    commands: List[str]


class SessionSummary(BaseModel):
    game_id: str
    status: str
    phase: str
    turn_number: int
    winner_id: Optional[int] = None
