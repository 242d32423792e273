from __future__ import annotations

"""
Content Approvals Dashboard · API
- Thin proxy in front of Airtable (social posts) and the CRM (featured profiles)
- Field schema is built once at startup and shared read-only
- Upstream errors are answered as {"error": ...} with the upstream status
"""

import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from approvals import airtable_client, featured, ghl_client, social_queue
from approvals.airtable_client import AirtableProxyError
from approvals.auth import PasswordConfigError, verify_password
from approvals.config import env_bool, settings
from approvals.field_schema import SchemaConfigError, default_schema
from approvals.ghl_client import ContactFieldUpdate, GHLError
from approvals.profile import apply_button_action, build_text_edit, render_profile
from approvals.runtime import get_logger, iso_now
from approvals.spec import DisplayKind

logger = get_logger("api")

VERSION = "1.0.0"
STRICT_MODE = env_bool("STRICT_MODE", False)

app = FastAPI(title="Content Approvals Dashboard", version=VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings().CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ─────────────────────────── Request bodies ───────────────────────────
class FetchRecordsRequest(BaseModel):
    baseId: Optional[str] = None
    tableName: Optional[str] = None
    filterByFormula: Optional[str] = None
    fields: Optional[List[str]] = None


class UpdateRecordRequest(BaseModel):
    baseId: Optional[str] = None
    tableName: Optional[str] = None
    recordId: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None


class ContactRequest(BaseModel):
    contactId: Optional[str] = None


class UpdateContactFieldRequest(BaseModel):
    contactId: Optional[str] = None
    fieldKey: Optional[str] = None
    value: Any = None
    isCustomField: bool = False
    custom_field_id: Optional[str] = None


class PasswordRequest(BaseModel):
    password: Optional[str] = None


class FieldValueRequest(BaseModel):
    value: Any = None


# ─────────────────────────── Error mapping ───────────────────────────
@app.exception_handler(AirtableProxyError)
async def _airtable_error(_request: Request, exc: AirtableProxyError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(GHLError)
async def _ghl_error(_request: Request, exc: GHLError):
    return JSONResponse(
        status_code=exc.status_code or 500,
        content={"error": exc.args[0] if exc.args else "CRM request failed", "details": exc.body},
    )


@app.exception_handler(SchemaConfigError)
async def _schema_error(_request: Request, exc: SchemaConfigError):
    return JSONResponse(status_code=500, content={"error": str(exc)})


def _require(**values: Any) -> None:
    missing = [k for k, v in values.items() if v is None or (isinstance(v, str) and not v.strip())]
    if missing:
        raise HTTPException(status_code=400, detail=f"{', '.join(missing)} required")


def _require_value(value: Any) -> None:
    # "" clears a field; only an absent value is rejected
    if value is None:
        raise HTTPException(status_code=400, detail="value required")


# ─────────────────────────── Startup checks ─────────────────────────
@app.on_event("startup")
async def startup_checks():
    s = settings()
    missing: list[str] = []
    if not s.AIRTABLE_API_KEY:
        missing.append("AIRTABLE_API_KEY")
    if not s.GHL_PIT:
        missing.append("GHL_PIT|PIT")
    if missing:
        logger.warning(f"🚨 Missing env vars → {', '.join(missing)}")

    try:
        schema = default_schema()
        logger.info(f"✅ Field schema ready: {list(schema.ordered_section_names)}")
    except SchemaConfigError as e:
        logger.error(f"❌ Field schema failed to load: {e}")
        if STRICT_MODE:
            raise


# ─────────────────────────── Health ────────────────────────────────
@app.get("/ping")
async def ping():
    return {"ok": True, "pong": True, "time": iso_now()}


@app.get("/health")
async def health():
    return {
        "ok": True,
        "timestamp": iso_now(),
        "version": VERSION,
        "airtable": airtable_client.config_summary(),
        "crm_token": bool(settings().GHL_PIT),
        "pid": os.getpid(),
    }


# ─────────────────────── Airtable record proxy ──────────────────────
@app.post("/fetch-records")
def fetch_records(body: FetchRecordsRequest):
    _require(baseId=body.baseId, tableName=body.tableName)
    records = airtable_client.fetch_records(body.baseId, body.tableName, body.filterByFormula, body.fields)
    return {"records": records}


@app.post("/update-record")
def update_record(body: UpdateRecordRequest):
    _require(baseId=body.baseId, tableName=body.tableName, recordId=body.recordId, fields=body.fields)
    return airtable_client.update_record(body.baseId, body.tableName, body.recordId, body.fields)


# ─────────────────────── CRM contact proxy ──────────────────────────
@app.post("/fetch-featured-client-profile")
def fetch_featured_client_profile(body: ContactRequest):
    _require(contactId=body.contactId)
    return ghl_client.get_contact(body.contactId)


@app.post("/update-ghl-record")
def update_ghl_record(body: UpdateContactFieldRequest):
    _require(contactId=body.contactId, fieldKey=body.fieldKey)
    _require_value(body.value)
    update = ContactFieldUpdate(
        contact_id=body.contactId,
        field_key=body.fieldKey,
        value=body.value,
        is_custom_field=body.isCustomField,
        custom_field_id=body.custom_field_id,
    )
    return ghl_client.update_contact_field(update)


@app.post("/fetch-featured-contacts")
def fetch_featured_contacts():
    return {"contacts": featured.fetch_featured_contacts()}


@app.post("/verify-password")
async def verify_password_endpoint(body: PasswordRequest):
    try:
        ok = verify_password(body.password)
    except PasswordConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        return JSONResponse(status_code=401, content={"success": False, "error": "Invalid password"})
    return {"success": True}


# ─────────────────────── Schema + profile view ──────────────────────
@app.get("/schema")
def schema():
    return default_schema().to_dict()


@app.get("/profile/{contact_id}")
def profile(contact_id: str):
    record = ghl_client.get_contact(contact_id)
    return render_profile(default_schema(), record)


@app.post("/profile/{contact_id}/fields/{field_key}")
def update_profile_field(contact_id: str, field_key: str, body: FieldValueRequest):
    field = default_schema().field_by_key(field_key)
    if field is None:
        raise HTTPException(status_code=404, detail=f"Unknown field {field_key}")
    _require_value(body.value)
    try:
        if field.display_kind == DisplayKind.BUTTONS:
            update = apply_button_action(field, contact_id, body.value)
        else:
            update = build_text_edit(field, contact_id, body.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ghl_client.update_contact_field(update)


# ─────────────────────── Social post queue ──────────────────────────
@app.get("/clients")
def clients():
    loaded = social_queue.load_clients()
    first = social_queue.first_client_with_items(loaded)
    return {"clients": [c.to_dict() for c in loaded], "selectedClientId": first.id if first else None}


def _client_or_404(client_id: str) -> social_queue.Client:
    client = social_queue.find_client(social_queue.load_clients(), client_id)
    if client is None:
        raise HTTPException(status_code=404, detail=f"Unknown client {client_id}")
    return client


@app.get("/clients/{client_id}/items")
def client_items(client_id: str):
    client = _client_or_404(client_id)
    return {"client": client.to_dict(), "items": social_queue.load_pending_items(client)}


@app.post("/clients/{client_id}/items/{record_id}/{action}")
def client_item_action(client_id: str, record_id: str, action: str):
    client = _client_or_404(client_id)
    try:
        record = social_queue.apply_action(client, record_id, action)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "record": record}
