"""
Centralized configuration with environment variable overrides.

Pricing policy, rental-length rules, conflict-check timing and the
reservation store connection are configurable here. Nothing is hardcoded
in the pricing or availability logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from rentals.logging_context import LOG_FORMAT, CheckIdFormatter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class PricingConfig:
    """Fee policy applied on top of the rental subtotal."""

    service_fee_rate: float = _safe_float("SERVICE_FEE_RATE", "0.05")
    currency: str = os.getenv("CURRENCY", "usd")


@dataclass(frozen=True)
class BookingRulesConfig:
    """Rental length limits and availability check timing."""

    min_rental_days: int = _safe_int("MIN_RENTAL_DAYS", "1")
    max_rental_days: int = _safe_int("MAX_RENTAL_DAYS", "30")
    conflict_check_timeout_sec: float = _safe_float("CONFLICT_CHECK_TIMEOUT", "10.0")
    availability_horizon_days: int = _safe_int("AVAILABILITY_HORIZON_DAYS", "180")


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for the hosted reservation store."""

    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    bookings_table: str = os.getenv("BOOKINGS_TABLE", "booking_requests")
    availability_table: str = os.getenv("AVAILABILITY_TABLE", "availability_calendar")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    rules: BookingRulesConfig = field(default_factory=BookingRulesConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.pricing.service_fee_rate < 1.0:
        raise ValueError(
            f"SERVICE_FEE_RATE must be between 0.0 and 1.0, got {config.pricing.service_fee_rate}"
        )
    if config.rules.min_rental_days < 1:
        raise ValueError(
            f"MIN_RENTAL_DAYS must be >= 1, got {config.rules.min_rental_days}"
        )
    if config.rules.max_rental_days < config.rules.min_rental_days:
        raise ValueError(
            "MAX_RENTAL_DAYS must be >= MIN_RENTAL_DAYS, "
            f"got {config.rules.max_rental_days}"
        )
    if config.rules.conflict_check_timeout_sec <= 0:
        raise ValueError(
            "CONFLICT_CHECK_TIMEOUT must be > 0, "
            f"got {config.rules.conflict_check_timeout_sec}"
        )
    if config.rules.availability_horizon_days < 1:
        raise ValueError(
            "AVAILABILITY_HORIZON_DAYS must be >= 1, "
            f"got {config.rules.availability_horizon_days}"
        )


def _log_handler() -> logging.Handler:
    """Console handler that prefixes lines logged inside a conflict check."""
    handler = logging.StreamHandler()
    handler.setFormatter(CheckIdFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=[_log_handler()],
    )
    logger.info(
        "Configuration loaded (service fee %.2f%%, max %d days)",
        config.pricing.service_fee_rate * 100,
        config.rules.max_rental_days,
    )
    return config


# Singleton instance
settings = load_config()
