"""Configuration settings for the clinic services."""

import os

DISABLED_MARKERS = ("none", "off", "disabled")


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "5432")
    password = os.environ.get("DB_PASSWORD", "clinic_pass")
    user = os.environ.get("DB_USER", "clinic_user")
    db_name = os.environ.get("DB_NAME", "clinic_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", "6379"))
    return dict(host=host, port=port)


def _positive_int(name, default):
    try:
        value = int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def get_bus_config():
    """
    Get event bus settings from environment variables.

    The bus is switched off entirely when REDIS_HOST or EVENT_BUS is set to
    one of "none", "off" or "disabled".
    """
    host = os.environ.get("REDIS_HOST", "localhost").strip().lower()
    switch = os.environ.get("EVENT_BUS", "redis").strip().lower()
    enabled = host not in DISABLED_MARKERS and switch not in DISABLED_MARKERS

    return dict(
        enabled=enabled,
        connect_timeout_ms=_positive_int("BUS_CONNECT_TIMEOUT_MS", 500),
        block_ms=_positive_int("BUS_BLOCK_MS", 1000),
        batch_size=_positive_int("BUS_BATCH_SIZE", 10),
        claim_idle_ms=_positive_int("BUS_CLAIM_IDLE_MS", 30000),
    )


def get_booking_config():
    """Get appointment booking settings from environment variables."""
    max_age = os.environ.get("SCHEMA_PROBE_MAX_AGE_SECONDS")
    return dict(
        default_duration_minutes=_positive_int("APPOINTMENT_DEFAULT_MINUTES", 30),
        capability_max_age_seconds=float(max_age) if max_age else None,
    )


def get_log_level():
    """Get log level name from environment variables."""
    return os.environ.get("LOG_LEVEL", "INFO").upper()
