"""
🚀 Airtable Client (record read / update proxy)
-----------------------------------------------
• One page per read (page_size from settings, default 100)
• Table handles cached per (base, table)
• Airtable errors surface as AirtableProxyError with the upstream status
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

import requests
from pyairtable import Api

from approvals.config import settings
from approvals.runtime import get_logger

logger = get_logger("airtable_client")


class AirtableProxyError(RuntimeError):
    """Carries the HTTP status the proxy should answer with."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------- table getters (cached) ----------------
@lru_cache(maxsize=None)
def _api(api_key: str) -> Api:
    return Api(api_key, timeout=(5, settings().HTTP_TIMEOUT_SEC), retry_strategy=None)


@lru_cache(maxsize=None)
def get_table(base_id: str, table_name: str):
    key = settings().AIRTABLE_API_KEY
    if not key:
        logger.error(f"❌ AIRTABLE_API_KEY missing; cannot open '{table_name}'")
        raise AirtableProxyError("Airtable API key is not configured", status_code=500)
    logger.debug(f"✅ Using Api().table for '{base_id}/{table_name}'")
    return _api(key).table(base_id, table_name)


def reset_tables() -> None:
    get_table.cache_clear()
    _api.cache_clear()


# ---------------- error helpers ----------------
def _status_of(err: requests.HTTPError) -> int:
    resp = getattr(err, "response", None)
    return getattr(resp, "status_code", None) or 500


def _message_of(err: requests.HTTPError, fallback: str) -> str:
    resp = getattr(err, "response", None)
    if resp is None:
        return fallback
    try:
        data = resp.json()
    except ValueError:
        return fallback
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("type") or fallback
    if isinstance(error, str) and error:
        return error
    return fallback


# ---------------- proxy operations ----------------
def fetch_records(
    base_id: str,
    table_name: str,
    filter_by_formula: Optional[str] = None,
    fields: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Return the first page of records: [{id, createdTime, fields}]."""
    tbl = get_table(base_id, table_name)
    options: Dict[str, Any] = {"page_size": settings().AIRTABLE_PAGE_SIZE}
    if filter_by_formula:
        options["formula"] = filter_by_formula
    if fields:
        options["fields"] = list(fields)

    try:
        page = next(iter(tbl.iterate(**options)), [])
    except requests.HTTPError as e:
        msg = _message_of(e, "Failed to fetch records")
        logger.warning(f"⚠️ fetch_records {table_name} failed: {msg}")
        raise AirtableProxyError(msg, status_code=_status_of(e)) from e

    records = list(page)
    logger.debug("Fetched %s records from %s", len(records), table_name)
    return records


def update_record(base_id: str, table_name: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    tbl = get_table(base_id, table_name)
    try:
        record = tbl.update(record_id, fields)
    except requests.HTTPError as e:
        msg = _message_of(e, "Failed to update record")
        logger.warning(f"⚠️ update_record {table_name}/{record_id} failed: {msg}")
        raise AirtableProxyError(msg, status_code=_status_of(e)) from e
    logger.info(f"📝 Updated {table_name}/{record_id}: {sorted(fields)}")
    return record


# ---------------- diagnostics ----------------
def config_summary() -> Dict[str, Any]:
    s = settings()
    return {
        "airtable_api_key": bool(s.AIRTABLE_API_KEY),
        "control_base": bool(s.CONTROL_BASE_ID),
        "page_size": s.AIRTABLE_PAGE_SIZE,
        "cached_tables": get_table.cache_info().currsize,
    }
