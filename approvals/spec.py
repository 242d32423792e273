"""
🧠 Authoritative Field Names & Status Values
────────────────────────────────────────────
Central source of truth for column names, display kinds, and the status
values the dashboard writes back to Airtable and the CRM.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Env helper
# ---------------------------------------------------------------------------


def _env(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if not v or not str(v).strip() else str(v)


# ---------------------------------------------------------------------------
# Field definition export columns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldTableColumns:
    type: str = "Type"
    field_key: str = "fieldKey"
    custom_field_id: str = "custom_field_id"
    name: str = "name"
    possible_values: str = "Possible Values"
    approval_for: str = "approval for"
    display_as: str = "display as"
    editable: str = "editable"
    clickable: str = "clickable"
    section: str = "Section"


@dataclass(frozen=True)
class ControlFields:
    client: str = _env("CONTROL_CLIENT_FIELD", "Client")
    base: str = _env("CONTROL_BASE_FIELD", "airtableBase")
    posts_table: str = _env("CONTROL_POSTS_FIELD", "airtableSMPosts")


@dataclass(frozen=True)
class PostFields:
    status: str = _env("POST_STATUS_FIELD", "Status")
    image_square: str = _env("POST_IMAGE_1X1_FIELD", "imageUrls1x1")
    image_portrait: str = _env("POST_IMAGE_2X3_FIELD", "imageUrls2x3")


FIELD_COLUMNS = FieldTableColumns()
CONTROL_FIELDS = ControlFields()
POST_FIELDS = PostFields()

LIST_DELIMITER = "|"
EDITABLE_MARKER = "EDITABLE"
UNCATEGORISED = "Uncategorised"

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    STANDARD = "STANDARD"
    CUSTOM = "CUSTOM"


class DisplayKind(str, Enum):
    TEXT = "TEXT"
    LINK = "LINK"
    EMBEDDED_IMAGE = "EMBEDDED_IMAGE"
    EMBEDDED_VIDEO = "EMBEDDED_VIDEO"
    BUTTONS = "BUTTONS"


class PostStatus(str, Enum):
    CHECK = "Check"
    APPROVED = "Approved"
    REDO = "Redo"
    DISCARD = "Discard"


class ApprovalValue(str, Enum):
    IN_PROGRESS = "In Progress"
    AWAITING = "Awaiting Approval"
    APPROVED = "Approved"
    REDO = "Re-Do"
    YES = "Yes"
    NO = "No"


POST_ACTIONS = frozenset(
    s.value for s in (PostStatus.APPROVED, PostStatus.REDO, PostStatus.DISCARD)
)
DEFAULT_CLICKABLE_VALUES = frozenset({ApprovalValue.APPROVED.value, ApprovalValue.REDO.value})
DEFAULT_BUTTON_SELECTION = ApprovalValue.NO.value


def parse_field_kind(value: Optional[str]) -> Optional[FieldKind]:
    if not value:
        return None
    try:
        return FieldKind(value.strip().upper())
    except ValueError:
        return None


def parse_display_kind(value: Optional[str]) -> Optional[DisplayKind]:
    """Accept both 'EMBEDDED IMAGE' and 'EMBEDDED_IMAGE' spellings."""
    if not value:
        return None
    norm = "_".join(value.strip().upper().split())
    try:
        return DisplayKind(norm)
    except ValueError:
        return None
