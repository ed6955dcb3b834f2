"""
Server package exposing the FastAPI app and the session registry.
"""

from .app import app  # noqa: F401
from .registry import GameRegistry  # noqa: F401
