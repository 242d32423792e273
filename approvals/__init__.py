"""
✅ Content Approvals Package
----------------------------
Backend for the content approval dashboard: the field schema loader that
drives the featured profile review, plus thin Airtable / CRM proxies.
"""

from .config import settings
from .field_schema import (
    ContentApprovalPair,
    FieldDefinition,
    FieldSchema,
    SchemaConfigError,
    load_schema,
    resolve_value,
)

__all__ = [
    "settings",
    "ContentApprovalPair",
    "FieldDefinition",
    "FieldSchema",
    "SchemaConfigError",
    "load_schema",
    "resolve_value",
]
