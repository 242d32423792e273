import pytest
import requests

from approvals import ghl_client
from approvals.config import settings
from approvals.ghl_client import ContactFieldUpdate, GHLError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class FakeCRM:
    def __init__(self):
        self.calls = []
        self.responses = []

    def __call__(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
        return self.responses.pop(0) if self.responses else FakeResponse(200, {"succeded": True})


@pytest.fixture
def crm(monkeypatch):
    monkeypatch.setenv("GHL_PIT", "pit-test")
    settings.cache_clear()
    fake = FakeCRM()
    monkeypatch.setattr(requests, "request", fake)
    return fake


def test_get_contact_sends_auth_and_version(crm):
    crm.responses.append(FakeResponse(200, {"contact": {"id": "c-1"}}))
    data = ghl_client.get_contact("c-1")

    assert data == {"contact": {"id": "c-1"}}
    call = crm.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://services.leadconnectorhq.com/contacts/c-1"
    assert call["headers"]["Authorization"] == "Bearer pit-test"
    assert call["headers"]["Version"] == "2021-07-28"
    assert call["timeout"] == 15


def test_get_contact_requires_id(crm):
    with pytest.raises(GHLError) as exc:
        ghl_client.get_contact("  ")
    assert exc.value.status_code == 400
    assert crm.calls == []


def test_missing_token_is_server_error(monkeypatch):
    monkeypatch.setattr(requests, "request", lambda *a, **k: pytest.fail("should not call CRM"))
    with pytest.raises(GHLError) as exc:
        ghl_client.get_contact("c-1")
    assert exc.value.status_code == 500
    assert "authentication token" in exc.value.args[0]


def test_token_fallback_names(monkeypatch):
    monkeypatch.setenv("PIT", "legacy-pit")
    settings.cache_clear()
    assert settings().GHL_PIT == "legacy-pit"


def test_upstream_error_carries_status_and_body(crm):
    crm.responses.append(FakeResponse(404, {"message": "Contact not found"}))
    with pytest.raises(GHLError) as exc:
        ghl_client.get_contact("missing")
    assert exc.value.status_code == 404
    assert exc.value.body == {"message": "Contact not found"}
    assert exc.value.args[0] == "GHL API returned 404: Contact not found"


def test_upstream_error_with_text_body(crm):
    crm.responses.append(FakeResponse(502, None, text=" Bad Gateway "))
    with pytest.raises(GHLError) as exc:
        ghl_client.get_contact("c-1")
    assert exc.value.status_code == 502
    assert exc.value.body == "Bad Gateway"


def test_custom_field_update_payload(crm):
    update = ContactFieldUpdate("c-1", "contact.blog_article", "New copy", True, "CF1")
    ghl_client.update_contact_field(update)

    call = crm.calls[0]
    assert call["method"] == "PUT"
    assert call["url"].endswith("/contacts/c-1")
    assert call["json"] == {"customFields": [{"id": "CF1", "field_value": "New copy"}]}


def test_standard_field_update_payload(crm):
    ghl_client.update_contact_field(ContactFieldUpdate("c-1", "email", "new@example.com"))
    assert crm.calls[0]["json"] == {"email": "new@example.com"}


def test_update_validation(crm):
    with pytest.raises(GHLError) as exc:
        ghl_client.update_contact_field(ContactFieldUpdate("c-1", "email", None))
    assert exc.value.status_code == 400

    with pytest.raises(GHLError) as exc:
        ghl_client.update_contact_field(ContactFieldUpdate("c-1", "contact.blog_article", "x", True, None))
    assert exc.value.status_code == 400
    assert crm.calls == []


def test_search_contacts_reads_contacts_or_elements(crm):
    crm.responses.append(FakeResponse(200, {"contacts": [{"id": "a"}]}))
    crm.responses.append(FakeResponse(200, {"elements": [{"id": "b"}]}))
    crm.responses.append(FakeResponse(200, {"contacts": {"id": "bad"}}))

    assert ghl_client.search_contacts({"locationId": "loc"}) == [{"id": "a"}]
    assert ghl_client.search_contacts({"locationId": "loc"}) == [{"id": "b"}]
    assert ghl_client.search_contacts({"locationId": "loc"}) == []
    assert crm.calls[0]["url"].endswith("/contacts/search")
    assert crm.calls[0]["json"] == {"locationId": "loc"}
