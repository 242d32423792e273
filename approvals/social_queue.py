"""
📬 Social Post Approval Queue
-----------------------------
Clients are listed in the Controls table (one row per client, pointing at
that client's own base + posts table). Posts waiting for review carry
Status="Check"; reviewers set Approved / Redo / Discard.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from approvals import airtable_client
from approvals.airtable_client import AirtableProxyError
from approvals.config import settings
from approvals.runtime import get_logger
from approvals.spec import CONTROL_FIELDS, POST_ACTIONS, POST_FIELDS, PostStatus

logger = get_logger("social_queue")

PENDING_FORMULA = f'{{{POST_FIELDS.status}}}="{PostStatus.CHECK.value}"'


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    base_id: str
    table_name: str
    count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "baseId": self.base_id,
            "tableName": self.table_name,
            "count": self.count,
        }


def _pending_count(client: Client) -> int:
    try:
        posts = airtable_client.fetch_records(
            client.base_id, client.table_name, PENDING_FORMULA, [POST_FIELDS.status]
        )
    except AirtableProxyError as e:
        logger.warning(f"⚠️ Pending count failed for {client.name}: {e}")
        return 0
    return len(posts)


def load_clients(control_base_id: Optional[str] = None, control_table: Optional[str] = None) -> List[Client]:
    """Controls rows with a client name, base and posts table, each with its pending count."""
    s = settings()
    base = control_base_id or s.CONTROL_BASE_ID
    table = control_table or s.CONTROL_TABLE_NAME
    if not base:
        raise AirtableProxyError("CONTROL_BASE_ID is not configured", status_code=500)

    clients: List[Client] = []
    for rec in airtable_client.fetch_records(base, table):
        fields = rec.get("fields") or {}
        name = fields.get(CONTROL_FIELDS.client)
        base_id = fields.get(CONTROL_FIELDS.base)
        posts_table = fields.get(CONTROL_FIELDS.posts_table)
        if not (name and base_id and posts_table):
            continue
        client = Client(id=rec["id"], name=name, base_id=base_id, table_name=posts_table)
        clients.append(replace(client, count=_pending_count(client)))

    logger.info(f"✅ Loaded {len(clients)} clients ({sum(c.count for c in clients)} posts pending)")
    return clients


def first_client_with_items(clients: List[Client]) -> Optional[Client]:
    return next((c for c in clients if c.count > 0), None)


def find_client(clients: List[Client], client_id: str) -> Optional[Client]:
    return next((c for c in clients if c.id == client_id), None)


def load_pending_items(client: Client) -> List[Dict[str, Any]]:
    posts = airtable_client.fetch_records(
        client.base_id,
        client.table_name,
        PENDING_FORMULA,
        [POST_FIELDS.image_square, POST_FIELDS.image_portrait],
    )
    return [
        {
            "id": rec["id"],
            POST_FIELDS.image_square: (rec.get("fields") or {}).get(POST_FIELDS.image_square),
            POST_FIELDS.image_portrait: (rec.get("fields") or {}).get(POST_FIELDS.image_portrait),
        }
        for rec in posts
    ]


def apply_action(client: Client, record_id: str, action: str) -> Dict[str, Any]:
    if action not in POST_ACTIONS:
        raise ValueError(f"Unknown action '{action}' (expected one of {sorted(POST_ACTIONS)})")
    record = airtable_client.update_record(
        client.base_id, client.table_name, record_id, {POST_FIELDS.status: action}
    )
    logger.info(f"📝 {client.name}: {record_id} → {action}")
    return record
