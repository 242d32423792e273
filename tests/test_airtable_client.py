import json

import pytest
import requests

from approvals import airtable_client
from approvals.airtable_client import AirtableProxyError
from approvals.config import settings


def _http_error(status, payload):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload).encode("utf-8") if payload is not None else b"not json"
    return requests.HTTPError(f"{status} Client Error", response=resp)


class DummyTable:
    def __init__(self, pages=None, error=None):
        self.pages = pages or []
        self.error = error
        self.iterate_calls = []
        self.updates = []

    def iterate(self, **kwargs):
        self.iterate_calls.append(kwargs)
        if self.error:
            raise self.error
        return iter(self.pages)

    def update(self, record_id, fields):
        if self.error:
            raise self.error
        self.updates.append((record_id, fields))
        return {"id": record_id, "fields": dict(fields)}


@pytest.fixture
def table(monkeypatch):
    tbl = DummyTable()
    monkeypatch.setattr(airtable_client, "get_table", lambda base, name: tbl)
    return tbl


def test_fetch_returns_first_page_only(table):
    table.pages = [
        [{"id": "rec1", "fields": {"Status": "Check"}}, {"id": "rec2", "fields": {}}],
        [{"id": "rec3", "fields": {}}],
    ]
    records = airtable_client.fetch_records("appX", "Posts")
    assert [r["id"] for r in records] == ["rec1", "rec2"]
    assert table.iterate_calls == [{"page_size": 100}]


def test_fetch_passes_formula_and_fields(table):
    airtable_client.fetch_records("appX", "Posts", '{Status}="Check"', ("Status",))
    assert table.iterate_calls == [
        {"page_size": 100, "formula": '{Status}="Check"', "fields": ["Status"]}
    ]


def test_fetch_empty_table(table):
    assert airtable_client.fetch_records("appX", "Posts") == []


def test_fetch_maps_upstream_status(table):
    table.error = _http_error(404, {"error": {"type": "TABLE_NOT_FOUND", "message": "Could not find table Posts"}})
    with pytest.raises(AirtableProxyError) as exc:
        airtable_client.fetch_records("appX", "Posts")
    assert exc.value.status_code == 404
    assert str(exc.value) == "Could not find table Posts"


def test_fetch_falls_back_to_generic_message(table):
    table.error = _http_error(422, None)
    with pytest.raises(AirtableProxyError) as exc:
        airtable_client.fetch_records("appX", "Posts")
    assert exc.value.status_code == 422
    assert str(exc.value) == "Failed to fetch records"


def test_update_record(table):
    rec = airtable_client.update_record("appX", "Posts", "rec1", {"Status": "Approved"})
    assert rec == {"id": "rec1", "fields": {"Status": "Approved"}}
    assert table.updates == [("rec1", {"Status": "Approved"})]


def test_update_record_error(table):
    table.error = _http_error(403, {"error": "NOT_AUTHORIZED"})
    with pytest.raises(AirtableProxyError) as exc:
        airtable_client.update_record("appX", "Posts", "rec1", {"Status": "Approved"})
    assert exc.value.status_code == 403
    assert str(exc.value) == "NOT_AUTHORIZED"


def test_missing_api_key_is_server_error():
    with pytest.raises(AirtableProxyError) as exc:
        airtable_client.get_table("appX", "Posts")
    assert exc.value.status_code == 500


def test_tables_are_cached_per_base_and_name(monkeypatch):
    monkeypatch.setenv("AIRTABLE_API_KEY", "keyTEST")
    settings.cache_clear()
    a = airtable_client.get_table("appX", "Posts")
    b = airtable_client.get_table("appX", "Posts")
    c = airtable_client.get_table("appY", "Posts")
    assert a is b
    assert a is not c
    assert airtable_client.config_summary()["cached_tables"] == 2


def test_page_size_from_env(monkeypatch, table):
    monkeypatch.setenv("AIRTABLE_PAGE_SIZE", "25")
    settings.cache_clear()
    airtable_client.fetch_records("appX", "Posts")
    assert table.iterate_calls[0]["page_size"] == 25
