"""
Centralized configuration with environment variable overrides.

Service hours, seat capacities, integration identifiers and policy
switches are configurable here. Nothing is hardcoded in booking logic.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

CAPACITY_READ_POLICIES = ("fail_open", "fail_closed")


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


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag (1/0, true/false, yes/no)."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


def _safe_weekdays(env_var: str, default: str) -> tuple[int, ...]:
    """Parse a comma-separated list of weekday numbers (Monday=0)."""
    raw = os.getenv(env_var, default)
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"Invalid weekday list for {env_var}: {raw!r}") from None


@dataclass(frozen=True)
class WindowConfig:
    """Initial settings for one service window."""

    name: str
    label: str
    start_hour: int
    end_hour: int
    max_capacity: int


@dataclass(frozen=True)
class RestaurantConfig:
    """Restaurant-specific settings loaded from environment or defaults."""

    name: str = os.getenv("RESTAURANT_NAME", "La Savane")
    timezone: str = os.getenv("RESTAURANT_TIMEZONE", "Europe/Paris")
    lunch_start_hour: int = _safe_int("LUNCH_START_HOUR", "12")
    lunch_end_hour: int = _safe_int("LUNCH_END_HOUR", "14")
    lunch_capacity: int = _safe_int("LUNCH_CAPACITY", "60")
    dinner_start_hour: int = _safe_int("DINNER_START_HOUR", "19")
    dinner_end_hour: int = _safe_int("DINNER_END_HOUR", "22")
    dinner_capacity: int = _safe_int("DINNER_CAPACITY", "70")
    reservation_duration_hours: int = _safe_int("RESERVATION_DURATION_HOURS", "2")
    almost_full_threshold: int = _safe_int("ALMOST_FULL_THRESHOLD", "10")
    closed_weekdays: tuple[int, ...] = _safe_weekdays("CLOSED_WEEKDAYS", "6,0")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def windows(self) -> list[WindowConfig]:
        """Service windows in classification order."""
        return [
            WindowConfig("lunch", "lunch", self.lunch_start_hour,
                         self.lunch_end_hour, self.lunch_capacity),
            WindowConfig("dinner", "dinner", self.dinner_start_hour,
                         self.dinner_end_hour, self.dinner_capacity),
        ]


@dataclass(frozen=True)
class IntegrationConfig:
    """Identifiers for the chat platform, calendar and reservation store."""

    telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    telegram_chat_id: str = os.getenv("TELEGRAM_CHAT_ID", "")
    calendar_id: str = os.getenv("CALENDAR_ID", "reservations")
    store_path: str = os.getenv("RESERVATION_STORE_PATH", "")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server binding for the web form endpoint."""

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _safe_int("PORT", "3000")


@dataclass(frozen=True)
class PolicyConfig:
    """Behavioral switches for sessions and admission."""

    session_ttl_minutes: int = _safe_int("SESSION_TTL_MINUTES", "30")
    serialize_admissions: bool = _safe_bool("SERIALIZE_ADMISSIONS", "true")
    capacity_read_policy: str = os.getenv("CAPACITY_READ_POLICY", "fail_open")
    external_call_timeout_sec: float = _safe_float("EXTERNAL_CALL_TIMEOUT_SEC", "10.0")
    housekeeping_interval_sec: int = _safe_int("HOUSEKEEPING_INTERVAL_SEC", "300")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    restaurant: RestaurantConfig = field(default_factory=RestaurantConfig)
    integrations: IntegrationConfig = field(default_factory=IntegrationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_window(name: str, start: int, end: int, capacity: int) -> None:
    upper = name.upper()
    for label, hour in ((f"{upper}_START_HOUR", start), (f"{upper}_END_HOUR", end)):
        if not 0 <= hour <= 23:
            raise ValueError(f"{label} must be between 0 and 23, got {hour}")
    if start > end:
        raise ValueError(
            f"{upper}_START_HOUR must be <= {upper}_END_HOUR, got {start} > {end}"
        )
    if capacity < 1:
        raise ValueError(f"{upper}_CAPACITY must be >= 1, got {capacity}")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    restaurant = config.restaurant
    try:
        ZoneInfo(restaurant.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"RESTAURANT_TIMEZONE is not a known timezone: {restaurant.timezone!r}"
        ) from None

    _validate_window("lunch", restaurant.lunch_start_hour,
                     restaurant.lunch_end_hour, restaurant.lunch_capacity)
    _validate_window("dinner", restaurant.dinner_start_hour,
                     restaurant.dinner_end_hour, restaurant.dinner_capacity)

    if restaurant.reservation_duration_hours < 1:
        raise ValueError(
            "RESERVATION_DURATION_HOURS must be >= 1, "
            f"got {restaurant.reservation_duration_hours}"
        )
    if restaurant.almost_full_threshold < 0:
        raise ValueError(
            f"ALMOST_FULL_THRESHOLD must be >= 0, got {restaurant.almost_full_threshold}"
        )
    if any(not 0 <= day <= 6 for day in restaurant.closed_weekdays):
        raise ValueError(
            f"CLOSED_WEEKDAYS must contain values 0-6, got {restaurant.closed_weekdays}"
        )

    if not 1 <= config.server.port <= 65535:
        raise ValueError(f"PORT must be between 1 and 65535, got {config.server.port}")

    policy = config.policy
    if policy.session_ttl_minutes < 1:
        raise ValueError(
            f"SESSION_TTL_MINUTES must be >= 1, got {policy.session_ttl_minutes}"
        )
    if policy.capacity_read_policy not in CAPACITY_READ_POLICIES:
        raise ValueError(
            f"CAPACITY_READ_POLICY must be one of {CAPACITY_READ_POLICIES}, "
            f"got {policy.capacity_read_policy!r}"
        )
    if policy.external_call_timeout_sec <= 0:
        raise ValueError(
            "EXTERNAL_CALL_TIMEOUT_SEC must be > 0, "
            f"got {policy.external_call_timeout_sec}"
        )
    if policy.housekeeping_interval_sec < 1:
        raise ValueError(
            "HOUSEKEEPING_INTERVAL_SEC must be >= 1, "
            f"got {policy.housekeeping_interval_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.restaurant.name)
    return config


# Singleton instance
settings = load_config()
