"""
🗂 Field Schema Loader
----------------------
Turns the custom-field export (customfields.csv) and the section ordering
(SectionOrder.csv) into the sectioned, paired schema that drives the
featured profile review screen.

• Rows missing fieldKey / display kind are skipped, never raised
• Approval fields pair with their content field by custom_field_id
• Sections not in the order table collect under "Uncategorised" (last)
• The result is immutable; build it once and share it
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field as dataclass_field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from approvals.config import settings
from approvals.runtime import get_logger
from approvals.spec import (
    EDITABLE_MARKER,
    FIELD_COLUMNS,
    LIST_DELIMITER,
    UNCATEGORISED,
    DisplayKind,
    FieldKind,
    parse_display_kind,
    parse_field_kind,
)

logger = get_logger("field_schema")

CRM_LINK_FIELD_KEY = "ghlLink"
CRM_LINK_SECTION = "Basic Information"


class SchemaConfigError(RuntimeError):
    """Raised once at load time when a configuration table is absent or unreadable."""


# ---------------- types ----------------
@dataclass(frozen=True)
class FieldDefinition:
    kind: FieldKind
    field_key: str
    label: str
    display_kind: DisplayKind
    custom_field_id: Optional[str] = None
    possible_values: Optional[Tuple[str, ...]] = None
    approval_for_id: Optional[str] = None
    editable: bool = False
    clickable_values: Optional[frozenset] = None
    section: Optional[str] = None

    @property
    def is_approval(self) -> bool:
        return self.approval_for_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "fieldKey": self.field_key,
            "custom_field_id": self.custom_field_id,
            "name": self.label,
            "possibleValues": list(self.possible_values) if self.possible_values else None,
            "approvalFor": self.approval_for_id,
            "displayAs": self.display_kind.value,
            "editable": self.editable,
            "clickableValues": sorted(self.clickable_values) if self.clickable_values else None,
            "section": self.section,
        }


@dataclass(frozen=True)
class ContentApprovalPair:
    content: FieldDefinition
    approval: FieldDefinition

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content.to_dict(), "approval": self.approval.to_dict()}


SchemaEntry = Union[FieldDefinition, ContentApprovalPair]
TableSource = Union[str, io.IOBase, Iterable[Any]]


@dataclass(frozen=True)
class FieldSchema:
    ordered_section_names: Tuple[str, ...]
    schema: Mapping[str, Tuple[SchemaEntry, ...]]
    fields: Tuple[FieldDefinition, ...] = ()
    warnings: Tuple[str, ...] = ()
    _by_key: Mapping[str, FieldDefinition] = dataclass_field(default_factory=lambda: MappingProxyType({}), repr=False, compare=False)
    _by_custom_id: Mapping[str, FieldDefinition] = dataclass_field(default_factory=lambda: MappingProxyType({}), repr=False, compare=False)

    def entries(self, section: str) -> Tuple[SchemaEntry, ...]:
        return self.schema.get(section, ())

    def pairs(self) -> List[ContentApprovalPair]:
        return [e for name in self.ordered_section_names for e in self.schema[name] if isinstance(e, ContentApprovalPair)]

    def field_by_key(self, field_key: str) -> Optional[FieldDefinition]:
        return self._by_key.get(field_key)

    def field_by_custom_id(self, custom_field_id: str) -> Optional[FieldDefinition]:
        return self._by_custom_id.get(custom_field_id)

    def approval_field_for(self, content: FieldDefinition) -> Optional[FieldDefinition]:
        for pair in self.pairs():
            if pair.content.field_key == content.field_key:
                return pair.approval
        return None

    def has_approval_field(self, content: FieldDefinition) -> bool:
        return self.approval_field_for(content) is not None

    def iter_fields(self) -> Iterator[FieldDefinition]:
        """Every emitted field, in display order (pairs yield content then approval)."""
        for name in self.ordered_section_names:
            for entry in self.schema[name]:
                if isinstance(entry, ContentApprovalPair):
                    yield entry.content
                    yield entry.approval
                else:
                    yield entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": list(self.ordered_section_names),
            "schema": {
                name: [
                    {"type": "pair", **e.to_dict()} if isinstance(e, ContentApprovalPair) else {"type": "field", "field": e.to_dict()}
                    for e in self.schema[name]
                ]
                for name in self.ordered_section_names
            },
            "warnings": list(self.warnings),
        }


# ---------------- helpers ----------------
def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _split(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    parts = [p.strip() for p in value.split(LIST_DELIMITER)]
    parts = [p for p in parts if p]
    return parts or None


def field_label(field: FieldDefinition) -> str:
    if field.label:
        return field.label
    return derive_label(field.field_key)


def derive_label(field_key: str) -> str:
    last = field_key.split(".")[-1].replace("_", " ").strip()
    return last or field_key


def _read_text(source: Any) -> Any:
    if hasattr(source, "read"):
        return source.read()
    return source


def _field_rows(source: TableSource) -> List[Mapping[str, Any]]:
    data = _read_text(source)
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig")
    if isinstance(data, str):
        return list(csv.DictReader(io.StringIO(data.lstrip("\ufeff"))))
    return list(data)


def _order_rows(source: TableSource) -> List[Sequence[Any]]:
    data = _read_text(source)
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig")
    if isinstance(data, str):
        return list(csv.reader(io.StringIO(data.lstrip("\ufeff"))))
    return [list(r) for r in data]


def parse_field_row(row: Mapping[str, Any]) -> Optional[FieldDefinition]:
    """Build a FieldDefinition from one export row, or None when the row is unusable."""
    if not isinstance(row, Mapping):
        return None
    c = FIELD_COLUMNS
    get = lambda col: _clean(row.get(col))  # noqa: E731

    section = get(c.section)
    if section == c.section:
        return None  # repeated header

    field_key = get(c.field_key)
    display_kind = parse_display_kind(get(c.display_as))
    if not field_key or display_kind is None:
        return None

    custom_field_id = get(c.custom_field_id)
    raw_type = get(c.type)
    if raw_type:
        kind = parse_field_kind(raw_type)
        if kind is None:
            return None
    else:
        kind = FieldKind.CUSTOM if custom_field_id else FieldKind.STANDARD

    possible = _split(get(c.possible_values))
    clickable = _split(get(c.clickable))
    editable = (get(c.editable) or "").upper() == EDITABLE_MARKER

    return FieldDefinition(
        kind=kind,
        field_key=field_key,
        label=get(c.name) or derive_label(field_key),
        display_kind=display_kind,
        custom_field_id=custom_field_id,
        possible_values=tuple(possible) if possible else None,
        approval_for_id=get(c.approval_for),
        editable=editable,
        clickable_values=frozenset(clickable) if clickable else None,
        section=section,
    )


def parse_section_order(rows: Iterable[Sequence[Any]]) -> List[str]:
    """Header row first, then (section, rank). Bad rows are skipped; a repeated name keeps its last rank."""
    ranks: Dict[str, int] = {}
    for row in list(rows)[1:]:
        if not row:
            continue
        name = _clean(row[0])
        raw_rank = _clean(row[1]) if len(row) > 1 else None
        if not name or raw_rank is None:
            continue
        try:
            ranks[name] = int(raw_rank)
        except ValueError:
            logger.debug("Skipping section order row with bad rank: %r", row)
    return sorted(ranks, key=lambda n: ranks[n])


# ---------------- loader ----------------
def load_schema(
    field_table: Optional[TableSource],
    section_order_table: Optional[TableSource],
    *,
    extra_fields: Iterable[FieldDefinition] = (),
) -> FieldSchema:
    if field_table is None:
        raise SchemaConfigError("Field definition table is missing")
    if section_order_table is None:
        raise SchemaConfigError("Section order table is missing")

    try:
        raw_rows = _field_rows(field_table)
        order_rows = _order_rows(section_order_table)
    except (csv.Error, UnicodeDecodeError, TypeError) as e:
        raise SchemaConfigError(f"Unreadable configuration table: {e}") from e

    warnings: List[str] = []

    def _warn(msg: str) -> None:
        logger.warning(f"⚠️ {msg}")
        warnings.append(msg)

    # 1. rows → definitions
    fields: List[FieldDefinition] = []
    by_key: Dict[str, FieldDefinition] = {}
    by_custom_id: Dict[str, FieldDefinition] = {}
    candidates = [parse_field_row(r) for r in raw_rows]
    skipped = sum(1 for f in candidates if f is None)
    if skipped:
        logger.debug("Skipped %s unusable field rows", skipped)

    # 2. lookup indices (first occurrence wins)
    for f in [f for f in candidates if f is not None] + list(extra_fields):
        if f.field_key in by_key:
            _warn(f"Duplicate fieldKey {f.field_key} ignored")
            continue
        if f.custom_field_id and f.custom_field_id in by_custom_id:
            _warn(f"Duplicate custom_field_id {f.custom_field_id} on {f.field_key} ignored")
            continue
        fields.append(f)
        by_key[f.field_key] = f
        if f.custom_field_id:
            by_custom_id[f.custom_field_id] = f

    # 3. sections
    # "Uncategorised" is reserved for the trailing fallback bucket
    ordered = [n for n in parse_section_order(order_rows) if n != UNCATEGORISED]
    buckets: Dict[str, List[FieldDefinition]] = {name: [] for name in ordered}
    if any(not f.section or f.section not in buckets for f in fields):
        buckets[UNCATEGORISED] = []
        ordered.append(UNCATEGORISED)
    for f in fields:
        target = f.section if f.section in buckets and f.section != UNCATEGORISED else UNCATEGORISED
        buckets[target].append(f)

    # 4/5. pairing
    approval_targets = {f.approval_for_id for f in fields if f.approval_for_id}
    consumed: set = set()
    pairs = 0
    schema: Dict[str, Tuple[SchemaEntry, ...]] = {}

    for name in ordered:
        out: List[SchemaEntry] = []
        for f in buckets[name]:
            if f.field_key in consumed:
                continue
            if f.approval_for_id:
                content = by_custom_id.get(f.approval_for_id)
                if content is None or content is f:
                    _warn(
                        f"Approval field {f.field_key} references content field with "
                        f"custom_field_id {f.approval_for_id} which was not found"
                    )
                    out.append(f)
                elif content.approval_for_id:
                    _warn(f"Approval field {f.field_key} points at approval field {content.field_key}; kept standalone")
                    out.append(f)
                elif content.field_key in consumed:
                    _warn(f"Content field {content.field_key} already paired; {f.field_key} kept standalone")
                    out.append(f)
                else:
                    out.append(ContentApprovalPair(content=content, approval=f))
                    consumed.update((content.field_key, f.field_key))
                    pairs += 1
                continue
            if f.custom_field_id and f.custom_field_id in approval_targets:
                continue  # emitted with its approval row
            out.append(f)
        schema[name] = tuple(out)

    logger.info(
        "Loaded field schema: %s fields, %s sections, %s pairs",
        len(fields),
        len(ordered),
        pairs,
    )
    return FieldSchema(
        ordered_section_names=tuple(ordered),
        schema=MappingProxyType(schema),
        fields=tuple(fields),
        warnings=tuple(warnings),
        _by_key=MappingProxyType(by_key),
        _by_custom_id=MappingProxyType(by_custom_id),
    )


def load_schema_files(
    field_path: str,
    section_order_path: str,
    *,
    extra_fields: Iterable[FieldDefinition] = (),
) -> FieldSchema:
    try:
        with open(field_path, encoding="utf-8-sig", newline="") as fh:
            field_text = fh.read()
        with open(section_order_path, encoding="utf-8-sig", newline="") as fh:
            order_text = fh.read()
    except OSError as e:
        logger.error(f"❌ Field schema configuration unreadable: {e}")
        raise SchemaConfigError(f"Cannot read schema configuration: {e}") from e
    return load_schema(field_text, order_text, extra_fields=extra_fields)


def crm_link_field() -> FieldDefinition:
    """Synthetic link to the contact inside the CRM; its value is filled in by the profile view."""
    return FieldDefinition(
        kind=FieldKind.CUSTOM,
        field_key=CRM_LINK_FIELD_KEY,
        custom_field_id=CRM_LINK_FIELD_KEY,
        label="GHL Link",
        display_kind=DisplayKind.LINK,
        section=CRM_LINK_SECTION,
    )


_default_schema_error: Optional[SchemaConfigError] = None


@lru_cache(maxsize=1)
def default_schema() -> FieldSchema:
    """Build once. A configuration error is also kept and re-raised, not retried."""
    global _default_schema_error
    if _default_schema_error is not None:
        raise _default_schema_error
    s = settings()
    try:
        return load_schema_files(
            s.FIELD_DEFINITIONS_CSV,
            s.SECTION_ORDER_CSV,
            extra_fields=(crm_link_field(),),
        )
    except SchemaConfigError as e:
        _default_schema_error = e
        raise


def reset_default_schema() -> None:
    global _default_schema_error
    _default_schema_error = None
    default_schema.cache_clear()


# ---------------- value resolver ----------------
def resolve_value(field: FieldDefinition, record: Optional[Mapping[str, Any]]) -> Optional[Any]:
    """Current value of `field` on a CRM contact (bare or wrapped in {"contact": ...})."""
    if field is None or not record:
        return None
    contact = record["contact"] if isinstance(record.get("contact"), Mapping) else record
    if not contact:
        return None

    if field.kind == FieldKind.STANDARD:
        return contact.get(field.field_key)

    for cf in contact.get("customFields") or []:
        if cf.get("id") == field.custom_field_id:
            return cf.get("value")
    return None
