import pytest

from approvals import airtable_client, social_queue
from approvals.airtable_client import AirtableProxyError
from approvals.config import settings
from approvals.social_queue import Client

CONTROLS = [
    {"id": "recA", "fields": {"Client": "Acme Bakery", "airtableBase": "appAcme", "airtableSMPosts": "Posts"}},
    {"id": "recB", "fields": {"Client": "Bolt Bikes", "airtableBase": "appBolt", "airtableSMPosts": "Social"}},
    {"id": "recC", "fields": {"Client": "No Table Yet", "airtableBase": "appNone"}},
]

POSTS = {
    "appAcme": [],
    "appBolt": [
        {"id": "p1", "fields": {"Status": "Check", "imageUrls1x1": "https://img/1.jpg", "imageUrls2x3": "https://img/1t.jpg"}},
        {"id": "p2", "fields": {"Status": "Check"}},
    ],
}


class FakeAirtable:
    def __init__(self):
        self.fetches = []
        self.updates = []
        self.broken = set()

    def fetch_records(self, base_id, table_name, filter_by_formula=None, fields=None):
        self.fetches.append((base_id, table_name, filter_by_formula, fields))
        if base_id in self.broken:
            raise AirtableProxyError("Could not find table", status_code=404)
        if base_id == "appControl":
            return CONTROLS
        return POSTS[base_id]

    def update_record(self, base_id, table_name, record_id, fields):
        self.updates.append((base_id, table_name, record_id, fields))
        return {"id": record_id, "fields": fields}


@pytest.fixture
def airtable(monkeypatch):
    monkeypatch.setenv("CONTROL_BASE_ID", "appControl")
    settings.cache_clear()
    fake = FakeAirtable()
    monkeypatch.setattr(airtable_client, "fetch_records", fake.fetch_records)
    monkeypatch.setattr(airtable_client, "update_record", fake.update_record)
    return fake


def test_load_clients_counts_pending_posts(airtable):
    clients = social_queue.load_clients()

    assert [(c.name, c.count) for c in clients] == [("Acme Bakery", 0), ("Bolt Bikes", 2)]
    assert airtable.fetches[0] == ("appControl", "Controls", None, None)
    assert airtable.fetches[1][2] == '{Status}="Check"'


def test_first_client_with_items(airtable):
    clients = social_queue.load_clients()
    assert social_queue.first_client_with_items(clients).id == "recB"
    assert social_queue.first_client_with_items([Client("x", "X", "appX", "Posts")]) is None


def test_unreachable_client_counts_zero(airtable):
    airtable.broken.add("appBolt")
    clients = social_queue.load_clients()
    assert [c.count for c in clients] == [0, 0]


def test_missing_control_base(monkeypatch):
    with pytest.raises(AirtableProxyError) as exc:
        social_queue.load_clients()
    assert exc.value.status_code == 500


def test_load_pending_items(airtable):
    client = Client("recB", "Bolt Bikes", "appBolt", "Social", 2)
    items = social_queue.load_pending_items(client)

    assert items == [
        {"id": "p1", "imageUrls1x1": "https://img/1.jpg", "imageUrls2x3": "https://img/1t.jpg"},
        {"id": "p2", "imageUrls1x1": None, "imageUrls2x3": None},
    ]
    assert airtable.fetches[-1][3] == ["imageUrls1x1", "imageUrls2x3"]


@pytest.mark.parametrize("action", ["Approved", "Redo", "Discard"])
def test_apply_action_writes_status(airtable, action):
    client = Client("recB", "Bolt Bikes", "appBolt", "Social", 2)
    record = social_queue.apply_action(client, "p1", action)
    assert record == {"id": "p1", "fields": {"Status": action}}
    assert airtable.updates == [("appBolt", "Social", "p1", {"Status": action})]


def test_apply_action_rejects_unknown(airtable):
    client = Client("recB", "Bolt Bikes", "appBolt", "Social", 2)
    with pytest.raises(ValueError):
        social_queue.apply_action(client, "p1", "Check")
    assert airtable.updates == []


def test_client_to_dict():
    assert Client("recA", "Acme", "appA", "Posts", 3).to_dict() == {
        "id": "recA",
        "name": "Acme",
        "baseId": "appA",
        "tableName": "Posts",
        "count": 3,
    }
