import httpx
import pytest
from fastapi.testclient import TestClient

from supportdesk import main
from supportdesk.container import ServiceContainer
from supportdesk.domain.enums import ChannelStatus
from supportdesk.domain.models import ChannelConfig

from tests.fakes import FakeAuditRepository, FakeChannelRepository, FakeRuleRepository, make_ticket


@pytest.fixture
def sent_requests():
    return []


@pytest.fixture
def container(settings, sent_requests):
    def handler(request):
        sent_requests.append(request)
        return httpx.Response(202)

    channels = FakeChannelRepository([ChannelConfig(
        id="sms-1",
        type="sms",
        status=ChannelStatus.CONNECTED,
        config={"twilioAccountSid": "AC1", "twilioAuthToken": "tok", "twilioPhoneNumber": "+15550100"},
    )])
    return ServiceContainer.from_settings(
        settings,
        channel_repo=channels,
        rule_repo=FakeRuleRepository(),
        audit_repo=FakeAuditRepository(),
        email_transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def client(container, monkeypatch):
    monkeypatch.setattr(main, "close_connection", lambda: None)
    app = main.create_app(container)
    with TestClient(app) as test_client:
        yield test_client


def _ticket_json(**overrides):
    return make_ticket(**overrides).model_dump(mode="json")


def test_root_and_correlation_header(client):
    response = client.get("/", headers={"X-Correlation-Id": "corr-42"})

    assert response.status_code == 200
    assert response.json()["name"] == main.APP_NAME
    assert response.headers["X-Correlation-Id"] == "corr-42"


def test_health_reports_database_state(client, monkeypatch):
    monkeypatch.setattr(main, "health_check", lambda: {"status": "unhealthy", "error": "down"})
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


def test_startup_is_recorded_in_audit_log(client, container):
    started = [entry for entry in container.audit.repo.entries if entry.action == "service_started"]

    assert len(started) == 1
    assert started[0].entity == "system"
    assert started[0].metadata["rules"] == len(container.rule_store.get_rules())


def test_docs_are_hidden_in_production(monkeypatch):
    monkeypatch.setattr(main, "settings", main.settings.model_copy(update={"debug": True, "environment": "production"}))
    assert main.docs_enabled() is False

    monkeypatch.setattr(main, "settings", main.settings.model_copy(update={"environment": "development"}))
    assert main.docs_enabled() is True


def test_process_ticket_endpoint(client):
    response = client.post("/api/v1/tickets/process", json={
        "ticket": _ticket_json(priority="high"),
        "agents": [{"id": "agent-1", "role": "agent"}, {"id": "senior-1", "role": "senior_agent"}],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["event"] == "created"
    assert body["update"]["assigned_agent_id"] == "senior-1"
    assert body["result"]["matched_rule_ids"] == ["auto-assign-high-priority"]


def test_process_ticket_rejects_missing_channel(client):
    ticket = _ticket_json()
    del ticket["channel"]
    response = client.post("/api/v1/tickets/process", json={"ticket": ticket})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_sentiment_endpoint(client):
    response = client.post("/api/v1/tickets/sentiment", json={"text": "Thanks, great job"})
    assert response.json() == {"sentiment": "positive"}


def test_rule_crud(client, container):
    created = client.post("/api/v1/automation/rules", json={
        "name": "Escalate SMS",
        "conditions": [{"kind": "channel", "value": "sms"}],
        "action": {"type": "escalate", "priority": "high"},
        "priority": 0,
    })
    assert created.status_code == 201
    rule_id = created.json()["id"]

    patched = client.patch(f"/api/v1/automation/rules/{rule_id}", json={"is_active": False})
    assert patched.status_code == 200
    assert patched.json()["is_active"] is False

    listed = client.get("/api/v1/automation/rules").json()
    assert rule_id in [rule["id"] for rule in listed]

    assert client.delete(f"/api/v1/automation/rules/{rule_id}").json() == {"success": True}
    assert container.rule_store.get_rule(rule_id) is None


def test_rule_errors(client):
    missing = client.patch("/api/v1/automation/rules/nope", json={"priority": 2})
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "RULE_NOT_FOUND"

    invalid = client.patch("/api/v1/automation/rules/escalate-urgent", json={"action": {"type": "teleport"}})
    assert invalid.status_code == 400

    assert client.delete("/api/v1/automation/rules/nope").status_code == 404


def test_channel_test_endpoint_never_errors_on_bad_input(client):
    response = client.post("/api/v1/channels/test", json={"name": "missing type"})

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_channel_health_and_lifecycle(client, container):
    health = client.post("/api/v1/channels/health", json={"type": "email", "inbound_settings": {"server": ""}})
    assert health.json() == {"status": "error"}

    activated = client.post("/api/v1/channels/sms-1/activate")
    assert activated.json()["success"] is True

    deactivated = client.post("/api/v1/channels/sms-1/deactivate")
    assert deactivated.json()["status"] == "disconnected"
    assert container.channel_repo.get_channel("sms-1").is_active is False

    assert client.post("/api/v1/channels/ghost/activate").status_code == 404


def test_email_endpoints(client, sent_requests):
    message = {"to": "a@example.com", "from": "support@company.com", "subject": "Hi", "text": "Body"}

    assert client.get("/api/v1/email/provider").json() == {"provider": "sendgrid", "configured": False}
    assert client.post("/api/v1/email/send", json=message).json() == {"success": False}
    assert sent_requests == []

    updated = client.put("/api/v1/email/provider", json={"provider": "sendgrid", "settings": {"api_key": "SG.k"}})
    assert updated.json() == {"provider": "sendgrid", "configured": True}
    assert client.post("/api/v1/email/send", json=message).json() == {"success": True}
    assert len(sent_requests) == 1

    rejected = client.put("/api/v1/email/provider", json={"provider": "pigeon"})
    assert rejected.status_code == 500
    assert rejected.json()["error"]["code"] == "EMAIL_NOT_CONFIGURED"


def test_local_upload_normalize_and_download(client):
    upload_url = client.post("/api/v1/objects/upload", json={"contentType": "text/plain"}).json()["uploadURL"]
    assert "/api/v1/storage/upload/local?path=uploads%2F" in upload_url

    uploaded = client.put(upload_url, content=b"attachment body")
    assert uploaded.status_code == 200
    assert uploaded.json()["size"] == len(b"attachment body")

    normalized = client.put("/api/v1/attachments/normalize", json={"attachmentURL": upload_url})
    object_path = normalized.json()["objectPath"]
    assert object_path.startswith("uploads/")

    downloaded = client.get(f"/api/v1/objects/{object_path}")
    assert downloaded.status_code == 200
    assert downloaded.content == b"attachment body"
    assert downloaded.headers["cache-control"] == "private, max-age=3600"


def test_download_missing_object_is_404(client):
    response = client.get("/api/v1/objects/uploads/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "OBJECT_NOT_FOUND"


def test_local_upload_rejects_traversal(client):
    response = client.put("/api/v1/storage/upload/local", params={"path": "../escape.txt"}, content=b"x")
    assert response.status_code == 400
