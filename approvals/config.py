from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

# -----------------------------
# .env Loader
# -----------------------------
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
ENV_PATH = os.path.join(BASE_DIR, "..", ".env")
load_dotenv(dotenv_path=ENV_PATH, override=True)

CUSTOMFIELDS_DIR = os.path.join(BASE_DIR, "customfields")
DEFAULT_FIELDS_CSV = os.path.join(CUSTOMFIELDS_DIR, "customfields.csv")
DEFAULT_SECTION_ORDER_CSV = os.path.join(CUSTOMFIELDS_DIR, "SectionOrder.csv")


# -----------------------------
# Env helpers
# -----------------------------
def env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")


def env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    return v if (v and str(v).strip() != "") else default


def first_env(*names: str) -> Optional[str]:
    for n in names:
        v = env_str(n)
        if v:
            return v
    return None


# -----------------------------
# Settings Object
# -----------------------------
@dataclass(frozen=True)
class Settings:
    AIRTABLE_API_KEY: Optional[str]
    AIRTABLE_PAGE_SIZE: int
    CONTROL_BASE_ID: Optional[str]
    CONTROL_TABLE_NAME: str
    GHL_PIT: Optional[str]
    GHL_API_URL: str
    GHL_API_VERSION: str
    GHL_LOCATION_ID: Optional[str]
    FEATURED_UPGRADE_FIELD_ID: Optional[str]
    PROFILE_COMPLETE_FIELD_ID: Optional[str]
    CRM_LINK_TEMPLATE: Optional[str]
    ADMIN_PASSWORD_HASH: Optional[str]
    FIELD_DEFINITIONS_CSV: str
    SECTION_ORDER_CSV: str
    HTTP_TIMEOUT_SEC: int
    CORS_ORIGINS: str


@lru_cache(maxsize=1)
def settings() -> Settings:
    return Settings(
        AIRTABLE_API_KEY=env_str("AIRTABLE_API_KEY"),
        AIRTABLE_PAGE_SIZE=env_int("AIRTABLE_PAGE_SIZE", 100),
        CONTROL_BASE_ID=env_str("CONTROL_BASE_ID"),
        CONTROL_TABLE_NAME=env_str("CONTROL_TABLE_NAME", "Controls"),
        GHL_PIT=first_env("GHL_PIT", "VITE_PIT", "PIT"),
        GHL_API_URL=env_str("GHL_API_URL", "https://services.leadconnectorhq.com").rstrip("/"),
        GHL_API_VERSION=env_str("GHL_API_VERSION", "2021-07-28"),
        GHL_LOCATION_ID=env_str("GHL_LOCATION_ID"),
        FEATURED_UPGRADE_FIELD_ID=env_str("FEATURED_UPGRADE_FIELD_ID"),
        PROFILE_COMPLETE_FIELD_ID=env_str("PROFILE_COMPLETE_FIELD_ID"),
        CRM_LINK_TEMPLATE=env_str("CRM_LINK_TEMPLATE"),
        ADMIN_PASSWORD_HASH=env_str("ADMIN_PASSWORD_HASH"),
        FIELD_DEFINITIONS_CSV=env_str("FIELD_DEFINITIONS_CSV", DEFAULT_FIELDS_CSV),
        SECTION_ORDER_CSV=env_str("SECTION_ORDER_CSV", DEFAULT_SECTION_ORDER_CSV),
        HTTP_TIMEOUT_SEC=env_int("HTTP_TIMEOUT_SEC", 15),
        CORS_ORIGINS=env_str("CORS_ORIGINS", "*"),
    )
