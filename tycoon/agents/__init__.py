"""Computer players."""

from tycoon.agents.base import Agent
from tycoon.agents.heuristic import HeuristicAgent
from tycoon.agents.profiles import PROFILES, DifficultyProfile, get_profile

__all__ = ["Agent", "HeuristicAgent", "DifficultyProfile", "PROFILES", "get_profile"]
