"""
Central configuration using pydantic-settings.

This module provides typed access to:
- Per-session game rules (feature toggles and economic constants)
- Server options (bind address, AI scheduling cadence, logging)

Every game setting has a default, so a session can be created with
no configuration at all. Overrides come from keyword arguments or
from the environment.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GameSettings(BaseSettings):
    """
    Rules for a single game session.

    Environment variables (prefix: TYCOON_GAME_), e.g.
        TYCOON_GAME_STARTING_CASH        - Cash per player at start (default: 1500)
        TYCOON_GAME_ENABLE_BANK_LOANS    - Allow bank loans (default: true)
        TYCOON_GAME_SEED                 - Seed for dice and decks (default: random)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="TYCOON_GAME_",
    )

    # Building stock
    enable_housing_scarcity: bool = Field(
        default=True,
        description="Limit houses and hotels to the bank's stock.",
    )
    house_limit: int = Field(default=32, ge=0)
    hotel_limit: int = Field(default=12, ge=0)

    # Bank loans
    enable_bank_loans: bool = True
    loan_interest_rate: float = Field(default=0.1, ge=0, description="Interest per turn on loans.")
    max_loan_percent: float = Field(
        default=0.5,
        gt=0,
        le=1,
        description="Share of net worth that can be borrowed in total.",
    )

    # Market
    enable_economic_events: bool = Field(
        default=True,
        description="Trigger a random market event when landing on Free Parking.",
    )
    enable_inflation: bool = Field(default=True, description="Raise the GO salary as rounds pass.")
    enable_progressive_tax: bool = Field(
        default=True,
        description="Offer 10% of net worth as an alternative to flat income tax.",
    )

    # Rent negotiation and IOUs
    enable_rent_negotiation: bool = True
    iou_interest_rate: float = Field(default=0.05, ge=0)
    iou_duration_rounds: int = Field(default=5, gt=0)

    # Insurance and value fluctuation
    enable_property_insurance: bool = True
    insurance_cost_percent: float = Field(default=0.05, ge=0)
    enable_property_value_fluctuation: bool = False
    appreciation_rate: float = Field(default=0.05, ge=0)

    # Restructuring
    enable_bankruptcy_restructuring: bool = True
    chapter11_turns: int = Field(default=5, gt=0)
    debt_service_rate: float = Field(
        default=0.05,
        ge=0,
        description="Share of the Chapter 11 debt due at the start of each turn.",
    )

    # Classic rules
    starting_cash: int = Field(default=1500, ge=0)
    jail_fine: int = Field(default=50, ge=0)
    max_jail_turns: int = Field(default=3, gt=0)

    seed: Optional[int] = Field(default=None, description="Seed for dice, decks and events.")


class ServerSettings(BaseSettings):
    """
    Configuration for the session server and AI scheduler.

    Environment variables (prefix: TYCOON_):
        TYCOON_HOST                 - Bind host (default: 127.0.0.1)
        TYCOON_PORT                 - Bind port (default: 8000)
        TYCOON_LOG_LEVEL            - Logging level (default: INFO)
        TYCOON_TURN_TICK_MS         - Delay before each AI turn action (default: 1200)
        TYCOON_NEGOTIATION_TICK_MS  - Delay before each AI negotiation response (default: 2000)
        TYCOON_CLIENT_QUEUE_SIZE    - Snapshots buffered per WebSocket client (default: 64)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="TYCOON_",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0)
    log_level: str = "INFO"
    turn_tick_ms: int = Field(default=1200, ge=0)
    negotiation_tick_ms: int = Field(default=2000, ge=0)
    client_queue_size: int = Field(default=64, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Optional[str]) -> str:
        """Accept lowercase level names from the environment."""
        if not value:
            return "INFO"
        return str(value).upper()


@lru_cache
def get_server_settings() -> ServerSettings:
    """Return cached server settings instance."""
    return ServerSettings()
