"""HTTP surface: tenant selection, chats, messages, templates and error envelopes."""
import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from conftest import BrokenSession, FakeHttp, FakeResponse, hours_ago
from wappy.core import config
from wappy.main import app
from wappy.models.message import InboundMessage, OutboundLog
from wappy.models.template import MarketingMessage
from wappy.services import (
    get_chat_service, get_connection_factory, get_provider_gateway, get_tenant_resolver
)
from wappy.services.chat_cache import TTLCache
from wappy.services.chat_service import ChatService
from wappy.services.provider_gateway import KaleyraGateway
from wappy.services.tenant_resolver import TenantResolver

MOBILE = "393331234567"


@pytest.fixture
def http():
    return FakeHttp(FakeResponse(200, {"id": "kal-123"}))


@pytest.fixture
def client(add_tenant, add_settings, kaleyra_settings, resolver, config_loader, connection_factory, http):
    add_tenant("spotty42", group="Resort", name="Hotel Mare")
    add_tenant("spotty43", group="resort ", name="Hotel Monte")
    add_settings("spotty42", **kaleyra_settings)

    cache = TTLCache(60)
    chat_service = ChatService(cache)
    gateway = KaleyraGateway(
        config_loader=config_loader,
        resolver=resolver,
        connection_factory=connection_factory,
        http=http,
        base_url="https://api.kaleyra.test",
        chat_cache=cache,
    )

    app.dependency_overrides[get_tenant_resolver] = lambda: resolver
    app.dependency_overrides[get_connection_factory] = lambda: connection_factory
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    app.dependency_overrides[get_provider_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def add_inbound(tenant_db, when, text="Ciao"):
    tenant_db.add(InboundMessage(
        mobile=MOBILE, sender=MOBILE, name="Mario",
        message=json.dumps([{"text": {"body": text}}]), created_at=when,
    ))
    tenant_db.commit()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_current_tenant_with_peers(client):
    r = client.get("/api/v1/tenants/current", params={"tenant_code": "spotty42"})

    assert r.status_code == 200
    body = r.json()
    assert body["tenant_code"] == "spotty42"
    assert body["display_name"] == "Hotel Mare"
    assert body["peers"] == [{"tenant_code": "spotty43", "display_name": "Hotel Monte"}]
    assert body["group_lookup_failed"] is False
    assert "secret_spotty42" not in r.text
    assert "db_password" not in body


def test_missing_tenant_code_is_400(client):
    r = client.get("/api/v1/tenants/current")
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"
    assert r.json()["retryable"] is False


@pytest.mark.parametrize("path", ["/api/v1/chats", "/api/v1/templates"])
def test_unknown_tenant_is_404_without_tenant_connection(client, pool_counter, path):
    r = client.get(path, params={"tenant_code": "spotty99"})

    assert r.status_code == 404
    assert r.json()["error"] == "tenant_not_found"
    assert pool_counter["checkout"] == 0


def test_unknown_tenant_send_is_404_without_tenant_connection(monkeypatch, client, pool_counter, http):
    monkeypatch.setattr(config, "ENFORCE_SESSION_WINDOW", True)

    r = client.post("/api/v1/messages/send", json={
        "tenant_code": "spotty99", "to": MOBILE, "text": "Ciao",
    })

    assert r.status_code == 404
    assert pool_counter["checkout"] == 0
    assert http.calls == []


def test_registry_down_is_retryable_500(client):
    app.dependency_overrides[get_tenant_resolver] = lambda: TenantResolver(session_factory=BrokenSession)

    r = client.get("/api/v1/tenants/current", params={"tenant_code": "spotty42"})

    assert r.status_code == 500
    assert r.json() == {
        "error": "registry_unavailable",
        "message": "Tenant registry is not reachable",
        "retryable": True,
    }


def test_chat_list_served_from_cache_on_second_call(client, tenant_db):
    add_inbound(tenant_db, hours_ago(2))

    first = client.get("/api/v1/chats", params={"tenant_code": "spotty42"})
    second = client.get("/api/v1/chats", params={"tenant_code": "spotty42"})
    refreshed = client.get("/api/v1/chats", params={"tenant_code": "spotty42", "refresh": "true"})

    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert first.json()["chats"][0]["mobile"] == MOBILE
    assert first.json()["chats"][0]["name"] == "Mario"
    assert second.json()["cached"] is True
    assert refreshed.json()["cached"] is False


def test_conversation_with_window_state(client, tenant_db):
    add_inbound(tenant_db, hours_ago(2), text="Posso fare il check-in prima?")

    r = client.get("/api/v1/messages", params={"tenant_code": "spotty42", "mobile": MOBILE})

    assert r.status_code == 200
    body = r.json()
    assert [m["content"] for m in body["messages"]] == ["Posso fare il check-in prima?"]
    assert body["session_window"]["state"] == "open"
    assert body["session_window"]["can_send_free_form"] is True


def test_conversation_requires_mobile(client):
    r = client.get("/api/v1/messages", params={"tenant_code": "spotty42"})
    assert r.status_code == 400


def test_free_form_send_inside_window(client, tenant_db, http):
    add_inbound(tenant_db, hours_ago(1))

    r = client.post("/api/v1/messages/send", json={
        "tenant_code": "spotty42", "to": "+39 333 1234567", "text": "Certo!",
    })

    assert r.status_code == 200
    body = r.json()
    assert body["message_id"] == "kal-123"
    assert body["send_type"] == "chat"
    assert body["audit_logged"] is True
    assert http.calls[0]["data"]["to"] == MOBILE


def test_free_form_send_refused_when_window_closed(monkeypatch, client, tenant_db, http):
    monkeypatch.setattr(config, "ENFORCE_SESSION_WINDOW", True)
    add_inbound(tenant_db, hours_ago(25))

    r = client.post("/api/v1/messages/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "text": "Ciao di nuovo",
    })

    assert r.status_code == 403
    assert r.json()["error"] == "session_window_closed"
    assert r.json()["details"]["state"] == "closed"
    assert http.calls == []


def test_rejected_template_does_not_unlock_free_form(monkeypatch, client, tenant_db, http):
    monkeypatch.setattr(config, "ENFORCE_SESSION_WINDOW", True)
    add_inbound(tenant_db, hours_ago(25))
    http.response = FakeResponse(400, {"error": {"template_name": "not approved"}})

    rejected = client.post("/api/v1/templates/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "benvenuto",
    })
    assert rejected.status_code == 400
    assert rejected.json()["error"] == "provider_rejected"

    http.response = FakeResponse(200, {"id": "kal-123"})
    r = client.post("/api/v1/messages/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "text": "Ciao di nuovo",
    })

    assert r.status_code == 403
    assert r.json()["error"] == "session_window_closed"
    assert len(http.calls) == 1


def test_free_form_send_allowed_when_enforcement_disabled(monkeypatch, client, tenant_db, http):
    monkeypatch.setattr(config, "ENFORCE_SESSION_WINDOW", False)
    add_inbound(tenant_db, hours_ago(25))

    r = client.post("/api/v1/messages/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "text": "Ciao di nuovo",
    })

    assert r.status_code == 200
    assert len(http.calls) == 1


def test_template_send_ignores_closed_window(client, tenant_db, http):
    add_inbound(tenant_db, hours_ago(25))

    r = client.post("/api/v1/templates/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "riapertura",
    })

    assert r.status_code == 200
    assert r.json()["send_type"] == "template"
    assert http.calls[0]["data"]["lang_code"] == "it"

    tenant_db.expire_all()
    row = tenant_db.execute(select(OutboundLog)).scalars().one()
    assert row.send_type == "template"
    assert row.template_name == "riapertura"


def test_media_template_from_filename(monkeypatch, client, http):
    monkeypatch.setattr(config, "MEDIA_BASE_URL", "https://media.example.com/wa")

    r = client.post("/api/v1/templates/send-media", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "promo",
        "media_filename": "promo.png", "caption": "Offerta",
    })

    assert r.status_code == 200
    assert http.calls[0]["data"]["media_url"] == "https://media.example.com/wa/42/images/promo.png"


def test_media_template_uses_stored_image(monkeypatch, client, tenant_db, http):
    monkeypatch.setattr(config, "MEDIA_BASE_URL", "https://media.example.com/wa")
    tenant_db.add(MarketingMessage(uuid="u1", template_name="promo", status="Approved", image="estate.jpg"))
    tenant_db.commit()

    r = client.post("/api/v1/templates/send-media", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "promo",
    })

    assert r.status_code == 200
    assert http.calls[0]["data"]["media_url"] == "https://media.example.com/wa/42/images/estate.jpg"


def test_media_template_without_any_media_is_400(client, http):
    r = client.post("/api/v1/templates/send-media", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "sconosciuto",
    })

    assert r.status_code == 400
    assert http.calls == []


def test_provider_status_is_preserved(client, http):
    http.response = FakeResponse(422, {"error": {"to": "invalid number"}})

    r = client.post("/api/v1/templates/send", json={
        "tenant_code": "spotty42", "to": MOBILE, "template_name": "benvenuto",
    })

    assert r.status_code == 422
    assert r.json()["error"] == "provider_rejected"
    assert r.json()["details"] == {"error": {"to": "invalid number"}}


def test_incomplete_provider_config(client, add_tenant, http):
    add_tenant("spotty77")

    r = client.post("/api/v1/templates/send", json={
        "tenant_code": "spotty77", "to": MOBILE, "template_name": "benvenuto",
    })

    assert r.status_code == 400
    assert r.json()["error"] == "provider_config_incomplete"
    assert "wa_kaleyra_apikey" in r.json()["details"]["missing_keys"]
    assert http.calls == []


def test_invalid_phone_number_is_400(client):
    r = client.post("/api/v1/templates/send", json={
        "tenant_code": "spotty42", "to": "not-a-number", "template_name": "benvenuto",
    })
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_request"


def test_templates_listing(client, tenant_db):
    tenant_db.add(MarketingMessage(uuid="u1", template_name="benvenuto", status="Approved"))
    tenant_db.commit()

    r = client.get("/api/v1/templates", params={"tenant_code": "spotty42"})

    assert r.status_code == 200
    assert r.json()["total"] == 1
    assert r.json()["languages"]["unknown"][0]["template_name"] == "benvenuto"
