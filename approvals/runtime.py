"""
🧠 Approvals Runtime Core
-------------------------
Centralized logging setup and time helpers shared by every module.

 - configure_logging() runs once; level comes from APPROVALS_LOG_LEVEL
 - get_logger() hands out module loggers
 - masked env summary is logged on first configuration
"""

from __future__ import annotations
import logging
import os
from datetime import datetime, timezone
from typing import Optional

# Internal state flags
_LOGGING_CONFIGURED = False
_CORE_ENV_LOGGED = False


# ────────────────────────────────────────────────
# ENV MASKING + LOGGING CONFIG
# ────────────────────────────────────────────────
def _mask_env_value(value: Optional[str]) -> str:
    """Mask sensitive env values (API keys, tokens, etc.)."""
    if not value:
        return "<missing>"
    trimmed = value.strip()
    if len(trimmed) <= 4:
        return "*" * len(trimmed)
    if len(trimmed) <= 8:
        return f"{trimmed[:2]}...{trimmed[-2:]}"
    return f"{trimmed[:4]}...{trimmed[-4:]}"


def _normalize_level(value: int | str | None) -> int:
    """Normalize string or int log level."""
    if value is None:
        env_level = os.getenv("APPROVALS_LOG_LEVEL")
        if env_level:
            value = env_level
        else:
            return logging.INFO
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: int | str | None = None) -> None:
    """Initialize root logging configuration once."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=_normalize_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _LOGGING_CONFIGURED = True
    _log_core_env()


def get_logger(name: str = "approvals") -> logging.Logger:
    """Return module-specific logger."""
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)


# ────────────────────────────────────────────────
# CORE ENV LOGGING
# ────────────────────────────────────────────────
def _log_core_env() -> None:
    """Logs masked environment variables for observability."""
    global _CORE_ENV_LOGGED
    if _CORE_ENV_LOGGED:
        return
    logger = get_logger("env")

    pit = os.getenv("GHL_PIT") or os.getenv("PIT") or os.getenv("VITE_PIT")
    logger.info(
        "Core env summary:\n"
        "• Airtable Key=%s | ControlBase=%s\n"
        "• CRM Token=%s | Location=%s\n"
        "• Password hash configured=%s",
        _mask_env_value(os.getenv("AIRTABLE_API_KEY")),
        os.getenv("CONTROL_BASE_ID") or "<missing>",
        _mask_env_value(pit),
        os.getenv("GHL_LOCATION_ID") or "<missing>",
        bool(os.getenv("ADMIN_PASSWORD_HASH")),
    )
    _CORE_ENV_LOGGED = True


# ────────────────────────────────────────────────
# TIME UTILITIES
# ────────────────────────────────────────────────
def utc_now() -> datetime:
    """Return UTC datetime (always timezone-aware)."""
    return datetime.now(timezone.utc)


def iso_now() -> str:
    """Return ISO8601 UTC timestamp (Z suffix)."""
    return utc_now().isoformat(timespec="seconds").replace("+00:00", "Z")
