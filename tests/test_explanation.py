from fastapi.testclient import TestClient
from freightops.main import app
import freightops.core.ai as ai

client = TestClient(app)

PAYLOAD = {
    "bank_transaction_id": "tx-2",
    "description": "PILOT TRAVEL CENTER #123",
    "amount": 250.0,
    "match_type": "fuel_expense",
    "confidence": 0.7,
    "status": "suggested",
    "expense_id": "fuel-tx-2"
}


def test_explain_fallback(monkeypatch):
    print("Testing match explanation fallback (no API key)...")
    monkeypatch.setattr(ai, "client", None)

    response = client.post("/explain-match", json=PAYLOAD, headers={"X-Tenant-ID": "explain-test"})
    assert response.status_code == 200, response.text
    data = response.json()

    assert data["explanation"] == "Automated explanation unavailable. Please review manually."
    assert data["root_cause"] == "System Limitation"
    assert data["original_status"] == "suggested"


def test_model_output_never_changes_status(monkeypatch):
    class FakeCompletions:
        def create(self, **kwargs):
            message = type("Message", (), {"content": '{"explanation": "Pilot is a fuel stop.", '
                                                      '"root_cause": "Keyword Match", "status": "confirmed"}'})
            choice = type("Choice", (), {"message": message})
            return type("Response", (), {"choices": [choice]})

    fake_client = type("Client", (), {"chat": type("Chat", (), {"completions": FakeCompletions()})})
    monkeypatch.setattr(ai, "client", fake_client)

    response = client.post("/explain-match", json=PAYLOAD, headers={"X-Tenant-ID": "explain-test"})
    data = response.json()
    assert data["explanation"] == "Pilot is a fuel stop."
    assert data["suggested_action"] == "Review"
    assert data["original_status"] == "suggested"


def test_invalid_model_json_falls_back(monkeypatch):
    class BrokenCompletions:
        def create(self, **kwargs):
            message = type("Message", (), {"content": "not json"})
            return type("Response", (), {"choices": [type("Choice", (), {"message": message})]})

    fake_client = type("Client", (), {"chat": type("Chat", (), {"completions": BrokenCompletions()})})
    monkeypatch.setattr(ai, "client", fake_client)

    data = client.post("/explain-match", json=PAYLOAD, headers={"X-Tenant-ID": "explain-test"}).json()
    assert data["root_cause"] == "System Limitation"


def fake_client_returning(content):
    class Completions:
        def create(self, **kwargs):
            message = type("Message", (), {"content": content})
            return type("Response", (), {"choices": [type("Choice", (), {"message": message})]})

    return type("Client", (), {"chat": type("Chat", (), {"completions": Completions()})})


def test_empty_completion_falls_back(monkeypatch):
    monkeypatch.setattr(ai, "client", fake_client_returning(None))
    response = client.post("/explain-match", json=PAYLOAD, headers={"X-Tenant-ID": "explain-test"})
    assert response.status_code == 200
    assert response.json()["root_cause"] == "System Limitation"
    assert response.json()["original_status"] == "suggested"


def test_non_object_json_falls_back(monkeypatch):
    monkeypatch.setattr(ai, "client", fake_client_returning('["not", "an", "object"]'))
    response = client.post("/explain-match", json=PAYLOAD, headers={"X-Tenant-ID": "explain-test"})
    assert response.status_code == 200
    assert response.json()["explanation"] == "Automated explanation unavailable. Please review manually."
