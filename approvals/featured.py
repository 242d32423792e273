"""Featured client selection: CRM search for contacts whose profile still needs review."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from approvals import ghl_client
from approvals.config import Settings, settings
from approvals.ghl_client import GHLError
from approvals.runtime import get_logger

logger = get_logger("featured")

PAGE_LIMIT = 100
UPGRADE_DATE_KEYS = ("featured_upgrade_date", "contact.featured_upgrade_date")
PROFILE_COMPLETE_KEYS = ("featured_profile_complete", "contact.featured_profile_complete")


def featured_search_params(s: Optional[Settings] = None) -> Dict[str, Any]:
    """Upgrade date set AND (profile complete != Yes OR not set), first name ascending."""
    s = s or settings()
    if not (s.GHL_LOCATION_ID and s.FEATURED_UPGRADE_FIELD_ID and s.PROFILE_COMPLETE_FIELD_ID):
        raise GHLError(
            "Configuration error: GHL_LOCATION_ID, FEATURED_UPGRADE_FIELD_ID and "
            "PROFILE_COMPLETE_FIELD_ID are required",
            status_code=500,
        )
    complete = f"customFields.{s.PROFILE_COMPLETE_FIELD_ID}"
    return {
        "locationId": s.GHL_LOCATION_ID,
        "page": 1,
        "pageLimit": PAGE_LIMIT,
        "filters": [
            {
                "group": "AND",
                "filters": [
                    {"field": f"customFields.{s.FEATURED_UPGRADE_FIELD_ID}", "operator": "exists"},
                    {
                        "group": "OR",
                        "filters": [
                            {"field": complete, "operator": "not_eq", "value": "Yes"},
                            {"field": complete, "operator": "not_exists"},
                        ],
                    },
                ],
            }
        ],
        "sort": [{"field": "firstNameLowerCase", "direction": "asc"}],
    }


def _custom_value(custom: Any, keys, field_id: Optional[str]) -> Any:
    """Search results carry custom fields either as a keyed dict or as an [{id, value}] list."""
    if isinstance(custom, list):
        for cf in custom:
            if isinstance(cf, dict) and field_id and cf.get("id") == field_id:
                return cf.get("value")
        return None
    if not isinstance(custom, dict):
        return None
    for k in keys:
        if custom.get(k) is not None:
            return custom[k]
    return None


def normalize_contact(contact: Dict[str, Any], s: Optional[Settings] = None) -> Dict[str, Any]:
    s = s or settings()
    custom = contact.get("customFields") or contact.get("contact") or {}
    full_name = (
        contact.get("name")
        or f"{contact.get('firstName') or ''} {contact.get('lastName') or ''}".strip()
        or contact.get("email")
        or "Unknown Contact"
    )
    return {
        "id": contact.get("id"),
        "name": full_name,
        "email": contact.get("email"),
        "phone": contact.get("phone"),
        "featuredUpgradeDate": _custom_value(custom, UPGRADE_DATE_KEYS, s.FEATURED_UPGRADE_FIELD_ID),
        "profileComplete": _custom_value(custom, PROFILE_COMPLETE_KEYS, s.PROFILE_COMPLETE_FIELD_ID),
    }


def fetch_featured_contacts() -> List[Dict[str, Any]]:
    contacts = ghl_client.search_contacts(featured_search_params())
    out = [normalize_contact(c) for c in contacts if isinstance(c, dict)]
    logger.info(f"✅ {len(out)} featured contacts awaiting review")
    return out
