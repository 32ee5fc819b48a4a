"""Integration tests for API endpoints"""

import json
import uuid
import httpx
import pytest
from datetime import date, timedelta
from fastapi.testclient import TestClient
from lendbook.api.dependencies import get_reminder_client
from lendbook.infrastructure.clients.reminders import ReminderWebhookClient


@pytest.fixture
def debtor_id(client: TestClient) -> str:
    response = client.post("/v1/debtors", json={"name": "Carlos Pereira", "phone": "+55 21 98888-1111"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def agreement_data(client: TestClient, debtor_id: str) -> dict:
    """1000.00 in 2 monthly installments, first one due in a week"""
    start = date.today() + timedelta(days=7)
    response = client.post(
        f"/v1/debtors/{debtor_id}/agreements",
        json={"principal_cents": 100000, "installment_count": 2, "start_date": start.isoformat()},
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "lendbook_credit_score" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_malformed_request_id_is_replaced(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "x" * 200})

    request_id = response.headers["X-Request-ID"]
    assert request_id != "x" * 200
    assert uuid.UUID(request_id)


def test_unmatched_paths_share_one_metric_label(client: TestClient):
    client.get(f"/v1/nowhere/{uuid.uuid4()}")

    metrics = client.get("/metrics").text
    assert 'endpoint="unmatched"' in metrics
    assert "/v1/nowhere/" not in metrics


def test_create_and_get_debtor(client: TestClient, debtor_id: str):
    response = client.get(f"/v1/debtors/{debtor_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Carlos Pereira"
    assert data["archived"] is False
    assert data["summary"]["total_agreements"] == 0


def test_create_debtor_blank_name(client: TestClient):
    response = client.post("/v1/debtors", json={"name": "   "})
    assert response.status_code == 422


def test_get_unknown_debtor(client: TestClient):
    response = client.get(f"/v1/debtors/{uuid.uuid4()}")
    assert response.status_code == 404


def test_archive_toggle(client: TestClient, debtor_id: str):
    response = client.post(f"/v1/debtors/{debtor_id}/archive")
    assert response.json()["archived"] is True

    response = client.post(f"/v1/debtors/{debtor_id}/archive", json={"archived": False})
    assert response.json()["archived"] is False


def test_create_agreement_schedule(client: TestClient, agreement_data: dict):
    """Test POST /v1/debtors/{id}/agreements generates the schedule"""
    installments = agreement_data["installments"]

    assert agreement_data["closed"] is False
    assert agreement_data["currency_code"] == "BRL"
    assert [inst["number"] for inst in installments] == [1, 2]
    assert [inst["amount_cents"] for inst in installments] == [50000, 50000]
    assert all(inst["status"] == "pending" for inst in installments)
    assert all(inst["is_overdue"] is False for inst in installments)


def test_create_agreement_rejects_invalid_body(client: TestClient, debtor_id: str):
    response = client.post(
        f"/v1/debtors/{debtor_id}/agreements",
        json={"principal_cents": 0, "installment_count": 2, "start_date": "2030-01-01"},
    )
    assert response.status_code == 422


@pytest.mark.parametrize(
    "body",
    [
        {"principal_cents": 10_000_000, "installment_count": 120_000, "start_date": "2030-01-01"},
        {"principal_cents": 120000, "installment_count": 24, "start_date": "9999-06-01"},
        {"principal_cents": 2**63, "installment_count": 1, "start_date": "2030-01-01"},
        {"principal_cents": 100000, "installment_count": 2, "start_date": "2030-01-01", "monthly_interest_rate": 250},
    ],
)
def test_create_agreement_out_of_range_returns_422(client: TestClient, debtor_id: str, body: dict):
    response = client.post(f"/v1/debtors/{debtor_id}/agreements", json=body)

    assert response.status_code == 422
    assert client.get(f"/v1/debtors/{debtor_id}").json()["summary"]["total_agreements"] == 0


def test_create_agreement_for_unknown_debtor(client: TestClient):
    response = client.post(
        f"/v1/debtors/{uuid.uuid4()}/agreements",
        json={"principal_cents": 1000, "installment_count": 2, "start_date": "2030-01-01"},
    )
    assert response.status_code == 404


def test_create_agreement_price_policy(client: TestClient, debtor_id: str):
    response = client.post(
        f"/v1/debtors/{debtor_id}/agreements",
        json={
            "principal_cents": 100000,
            "installment_count": 12,
            "start_date": "2030-01-10",
            "monthly_interest_rate": 2,
            "interest_policy": "price",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["monthly_interest_rate"] == pytest.approx(0.02)
    assert {inst["amount_cents"] for inst in data["installments"]} == {9456}


def test_payment_flow_closes_agreement(client: TestClient, agreement_data: dict):
    """Test partial payment, full payment and closure through the API"""
    first, second = agreement_data["installments"]

    response = client.post(f"/v1/installments/{first['id']}/payments", json={"amount_cents": 20000})
    assert response.status_code == 201
    data = response.json()
    assert data["installment"]["status"] == "partial"
    assert data["installment"]["remaining_cents"] == 30000
    assert data["installment"]["payments"][0]["paid_on"] == date.today().isoformat()
    assert data["agreement_closed"] is False

    response = client.post(f"/v1/installments/{first['id']}/mark-paid", json={"method": "pix"})
    assert response.status_code == 200
    assert response.json()["installment"]["status"] == "paid"

    response = client.post(
        f"/v1/installments/{second['id']}/payments",
        json={"amount_cents": 50000, "paid_on": "2024-05-01", "method": "cash"},
    )
    assert response.json()["agreement_closed"] is True

    response = client.get(f"/v1/agreements/{agreement_data['id']}")
    assert response.json()["closed"] is True


def test_overpayment_returns_422(client: TestClient, agreement_data: dict):
    first = agreement_data["installments"][0]

    response = client.post(f"/v1/installments/{first['id']}/payments", json={"amount_cents": 50001})

    assert response.status_code == 422
    assert "exceeds" in response.json()["detail"]


def test_undo_last_payment(client: TestClient, agreement_data: dict):
    first = agreement_data["installments"][0]
    client.post(f"/v1/installments/{first['id']}/payments", json={"amount_cents": 50000})

    response = client.post(f"/v1/installments/{first['id']}/undo-last-payment")

    assert response.status_code == 200
    data = response.json()
    assert data["installment"]["status"] == "pending"
    assert data["installment"]["paid_amount_cents"] == 0
    assert data["installment"]["payments"] == []

    response = client.post(f"/v1/installments/{first['id']}/undo-last-payment")
    assert response.status_code == 422


def test_status_override(client: TestClient, agreement_data: dict):
    first, second = agreement_data["installments"]

    client.put(f"/v1/installments/{first['id']}/status", json={"status": "paid"})
    response = client.put(f"/v1/installments/{second['id']}/status", json={"status": "paid"})

    assert response.status_code == 200
    data = response.json()
    assert data["installment"]["status"] == "paid"
    assert data["installment"]["paid_amount_cents"] == 0
    assert data["agreement_closed"] is True

    response = client.put(f"/v1/installments/{first['id']}/status", json={"status": "forgiven"})
    assert response.status_code == 422


def test_payment_unknown_installment(client: TestClient):
    response = client.post(f"/v1/installments/{uuid.uuid4()}/payments", json={"amount_cents": 100})
    assert response.status_code == 404


def test_debtor_summary_reflects_payments(client: TestClient, debtor_id: str, agreement_data: dict):
    first = agreement_data["installments"][0]
    client.post(f"/v1/installments/{first['id']}/payments", json={"amount_cents": 50000})

    summary = client.get(f"/v1/debtors/{debtor_id}").json()["summary"]

    assert summary["active_agreements"] == 1
    assert summary["paid_installments"] == 1
    assert summary["open_installments"] == 1
    assert summary["remaining_amount_cents"] == 50000


def test_credit_profile_endpoint(client: TestClient, debtor_id: str):
    response = client.get(f"/v1/debtors/{debtor_id}/credit-profile")

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 50
    assert data["risk_level"] == "medium"
    assert data["total_agreements"] == 0


def test_credit_profile_refresh(client: TestClient, debtor_id: str, agreement_data: dict):
    client.get(f"/v1/debtors/{debtor_id}/credit-profile")

    cached = client.get(f"/v1/debtors/{debtor_id}/credit-profile").json()
    refreshed = client.get(f"/v1/debtors/{debtor_id}/credit-profile", params={"refresh": True}).json()

    assert cached["total_agreements"] == 1
    assert refreshed["total_agreements"] == 1
    assert refreshed["total_lent_cents"] == 100000


def test_credit_profile_unknown_debtor(client: TestClient):
    response = client.get(f"/v1/debtors/{uuid.uuid4()}/credit-profile")
    assert response.status_code == 404


def test_delete_agreement_and_debtor(client: TestClient, debtor_id: str, agreement_data: dict):
    response = client.delete(f"/v1/agreements/{agreement_data['id']}")
    assert response.status_code == 204
    assert client.get(f"/v1/agreements/{agreement_data['id']}").status_code == 404

    response = client.delete(f"/v1/debtors/{debtor_id}")
    assert response.status_code == 204
    assert client.get(f"/v1/debtors/{debtor_id}").status_code == 404


def test_ledger_events_forwarded_to_reminder_webhook(client: TestClient, agreement_data: dict):
    """Test committed payments are handed to the reminder scheduler after the response"""
    delivered = []

    def handler(request: httpx.Request) -> httpx.Response:
        delivered.append(json.loads(request.content))
        return httpx.Response(202)

    reminder_client = ReminderWebhookClient(
        webhook_url="http://reminders.test/events", transport=httpx.MockTransport(handler)
    )
    client.app.dependency_overrides[get_reminder_client] = lambda: reminder_client

    first = agreement_data["installments"][0]
    response = client.post(f"/v1/installments/{first['id']}/payments", json={"amount_cents": 50000})

    assert response.status_code == 201
    assert len(delivered) == 1
    event = delivered[0]
    assert event["event"] == "payment_registered"
    assert event["agreement_id"] == agreement_data["id"]
    assert event["agreement_closed"] is False
    assert event["reminder"]["installment_number"] == 2
