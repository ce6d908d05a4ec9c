"""Core utilities and configuration."""

from serp_volatility.core.config import Settings, get_settings
from serp_volatility.core.database import Base, db_manager, get_session
from serp_volatility.core.logging import (
    db_logger,
    get_logger,
    setup_logging,
    volatility_logger,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "db_manager",
    "get_session",
    # Logging
    "db_logger",
    "get_logger",
    "setup_logging",
    "volatility_logger",
]
