"""
🖼 Featured Profile View
-----------------------
Server-side model of the featured client profile screen: walks the field
schema section by section, resolves each field against one CRM contact, and
turns edits / approval button presses into contact field updates.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qs, urlparse

from approvals.config import settings
from approvals.field_schema import (
    CRM_LINK_FIELD_KEY,
    ContentApprovalPair,
    FieldDefinition,
    FieldSchema,
    field_label,
    resolve_value,
)
from approvals.ghl_client import ContactFieldUpdate
from approvals.runtime import get_logger
from approvals.spec import DEFAULT_BUTTON_SELECTION, DEFAULT_CLICKABLE_VALUES, DisplayKind, FieldKind

logger = get_logger("profile")

_IMAGE_EXT = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)$", re.IGNORECASE)


# ---------------- display helpers ----------------
def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return bool(parsed.scheme and (parsed.netloc or parsed.scheme in ("mailto", "data")))


def looks_like_image(url: str) -> bool:
    return bool(_IMAGE_EXT.search(urlparse(url).path or url))


def embed_video_url(url: str) -> str:
    """YouTube watch/short links → embeddable player URL (no autoplay, no related videos)."""
    if not url:
        return url
    parsed = urlparse(url)
    host = (parsed.netloc or "").lower()
    video_id = None
    if "youtube.com" in host:
        video_id = (parse_qs(parsed.query).get("v") or [None])[0]
    elif "youtu.be" in host:
        video_id = parsed.path.lstrip("/").split("/")[0] or None
    if not video_id:
        return url
    return f"https://www.youtube.com/embed/{video_id}?autoplay=0&rel=0"


def effective_display(field: FieldDefinition, value: Any) -> str:
    """TEXT values holding a URL are shown as an image or a link."""
    if field.display_kind == DisplayKind.TEXT and is_valid_url(value):
        return DisplayKind.EMBEDDED_IMAGE.value if looks_like_image(value) else DisplayKind.LINK.value
    return field.display_kind.value


def clickable_values(field: FieldDefinition) -> frozenset:
    return field.clickable_values if field.clickable_values else DEFAULT_CLICKABLE_VALUES


def crm_link(contact_id: str) -> Optional[str]:
    s = settings()
    if not (s.CRM_LINK_TEMPLATE and contact_id):
        return None
    return s.CRM_LINK_TEMPLATE.format(contact_id=contact_id, location_id=s.GHL_LOCATION_ID or "")


# ---------------- view model ----------------
def _contact_of(record: Mapping[str, Any]) -> Mapping[str, Any]:
    contact = record.get("contact") if isinstance(record, Mapping) else None
    return contact if isinstance(contact, Mapping) else record


def render_field(field: FieldDefinition, record: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    overrides = overrides or {}
    value = overrides[field.field_key] if field.field_key in overrides else resolve_value(field, record)
    display = effective_display(field, value)
    out: Dict[str, Any] = {
        "fieldKey": field.field_key,
        "label": field_label(field),
        "value": value,
        "displayAs": display,
        "editable": field.editable,
    }
    if display == DisplayKind.EMBEDDED_VIDEO.value and value:
        out["embedUrl"] = embed_video_url(str(value))
    if field.display_kind == DisplayKind.BUTTONS:
        out["possibleValues"] = list(field.possible_values or ())
        out["clickableValues"] = sorted(clickable_values(field))
        out["selected"] = value or DEFAULT_BUTTON_SELECTION
    return out


def render_profile(schema: FieldSchema, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Sections in schema order; each entry is a lone field or a content/approval pair."""
    contact = _contact_of(record)
    contact_id = contact.get("id")
    overrides = {CRM_LINK_FIELD_KEY: crm_link(contact_id)} if contact_id else {}

    sections = []
    for name in schema.ordered_section_names:
        entries = []
        for entry in schema.entries(name):
            if isinstance(entry, ContentApprovalPair):
                entries.append(
                    {
                        "type": "pair",
                        "content": render_field(entry.content, record, overrides),
                        "approval": render_field(entry.approval, record, overrides),
                    }
                )
            else:
                entries.append({"type": "field", **render_field(entry, record, overrides)})
        sections.append({"name": name, "entries": entries})

    return {"contactId": contact_id, "sections": sections}


# ---------------- edits ----------------
def build_field_update(field: FieldDefinition, contact_id: str, value: Any) -> ContactFieldUpdate:
    return ContactFieldUpdate(
        contact_id=contact_id,
        field_key=field.field_key,
        value=value,
        is_custom_field=field.kind == FieldKind.CUSTOM,
        custom_field_id=field.custom_field_id,
    )


def build_text_edit(field: FieldDefinition, contact_id: str, value: Any) -> ContactFieldUpdate:
    if not field.editable:
        raise ValueError(f"Field {field.field_key} is not editable")
    return build_field_update(field, contact_id, value)


def apply_button_action(field: FieldDefinition, contact_id: str, value: str) -> ContactFieldUpdate:
    """Only clickable values of a BUTTONS field trigger a write."""
    if field.display_kind != DisplayKind.BUTTONS:
        raise ValueError(f"Field {field.field_key} is not a button field")
    allowed = clickable_values(field)
    if value not in allowed:
        raise ValueError(f"'{value}' is not an actionable value for {field.field_key}")
    logger.info(f"🔘 {field.field_key} → {value} for contact {contact_id}")
    return build_field_update(field, contact_id, value)
