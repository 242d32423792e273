# approvals/ghl_client.py
"""
📇 CRM Client · LeadConnector (GoHighLevel) contacts API
- GET /contacts/{id}, PUT /contacts/{id}, POST /contacts/search
- Bearer private integration token + Version header on every call
- Non-2xx responses raise GHLError carrying status + parsed body
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from approvals.config import settings
from approvals.runtime import get_logger

logger = get_logger("ghl_client")


# =========================
# Errors
# =========================
class GHLError(RuntimeError):
    """Custom error that carries HTTP metadata and response body."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:  # pragma: no cover - string formatting helper
        base = super().__str__()
        if self.body in (None, "", b""):
            return base
        body_repr = str(self.body).strip()
        if not body_repr or body_repr in base:
            return base
        return f"{base} | body={body_repr}"


@dataclass(frozen=True)
class ContactFieldUpdate:
    contact_id: str
    field_key: str
    value: Any
    is_custom_field: bool = False
    custom_field_id: Optional[str] = None


# =========================
# Small helpers
# =========================
def _has_value(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _headers() -> Dict[str, str]:
    s = settings()
    if not s.GHL_PIT:
        raise GHLError("Configuration error: Missing authentication token", status_code=500)
    return {
        "Authorization": f"Bearer {s.GHL_PIT}",
        "Version": s.GHL_API_VERSION,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def _extract_error_body(resp: Any) -> Any:
    """Parse JSON body if available; fallback to plain text."""
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError:
        text = getattr(resp, "text", None)
        return text.strip() if text else None


def _summarize_error_body(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, dict):
        for key in ("message", "error", "detail", "msg"):
            value = body.get(key)
            if _has_value(value):
                return str(value)
        return str(body)
    return str(body)


def _request(method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    s = settings()
    url = f"{s.GHL_API_URL}{path}"
    resp = requests.request(method, url, headers=_headers(), json=json, timeout=s.HTTP_TIMEOUT_SEC)
    if resp.status_code >= 400:
        body = _extract_error_body(resp)
        summary = _summarize_error_body(body)
        logger.error("CRM %s %s → %s: %s", method, path, resp.status_code, summary or "<empty>")
        message = f"GHL API returned {resp.status_code}"
        if summary:
            message = f"{message}: {summary}"
        raise GHLError(message, status_code=resp.status_code, body=body)
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}


# =========================
# Public API
# =========================
def build_update_payload(update: ContactFieldUpdate) -> Dict[str, Any]:
    """Custom fields go through the customFields list; standard fields are top-level keys."""
    if update.is_custom_field:
        return {"customFields": [{"id": update.custom_field_id, "field_value": update.value}]}
    return {update.field_key: update.value}


def get_contact(contact_id: str) -> Dict[str, Any]:
    if not _has_value(contact_id):
        raise GHLError("Contact ID is required", status_code=400)
    data = _request("GET", f"/contacts/{contact_id}")
    logger.debug("Fetched contact %s", contact_id)
    return data


def update_contact_field(update: ContactFieldUpdate) -> Dict[str, Any]:
    if not (_has_value(update.contact_id) and _has_value(update.field_key)) or update.value is None:
        raise GHLError("contactId, fieldKey, and value are required", status_code=400)
    if update.is_custom_field and not _has_value(update.custom_field_id):
        raise GHLError("custom_field_id is required for custom fields", status_code=400)
    payload = build_update_payload(update)
    data = _request("PUT", f"/contacts/{update.contact_id}", json=payload)
    logger.info(f"📝 Updated contact {update.contact_id} field {update.field_key}")
    return data


def search_contacts(params: Dict[str, Any]) -> List[Dict[str, Any]]:
    data = _request("POST", "/contacts/search", json=params)
    contacts = data.get("contacts") or data.get("elements") or []
    if not isinstance(contacts, list):
        logger.warning("⚠️ Unexpected contacts payload type: %s", type(contacts).__name__)
        return []
    return contacts
