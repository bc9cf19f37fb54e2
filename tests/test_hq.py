from datetime import datetime
from fastapi.testclient import TestClient
from freightops.main import app
from freightops.core.hq import process_monthly_overages
from freightops.core.identifiers import is_valid_scac

client = TestClient(app)
HQ_HEADERS = {"X-HQ-Key": "hq-dev-key"}


def test_hq_key_is_required():
    assert client.get("/hq/tenants").status_code == 403
    response = client.get("/hq/tenants", headers={"X-HQ-Key": "wrong"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid HQ credentials"


def test_create_and_fetch_tenant():
    response = client.post("/hq/tenants", json={
        "tenant_name": "Harbor Ocean Shipping",
        "business_type": "ocean_carrier",
        "subscription_tier": "pro"
    }, headers=HQ_HEADERS)
    assert response.status_code == 201, response.text
    tenant = response.json()
    assert tenant["id"].endswith("O")
    assert is_valid_scac(tenant["id"])

    fetched = client.get(f"/hq/tenants/{tenant['id']}", headers=HQ_HEADERS).json()
    assert fetched["tenant_name"] == "Harbor Ocean Shipping"
    assert tenant["id"] in {t["id"] for t in client.get("/hq/tenants", headers=HQ_HEADERS).json()}


def test_unknown_tenant_is_404():
    assert client.get("/hq/tenants/ZZZ9", headers=HQ_HEADERS).status_code == 404


def test_identifier_options_and_validation():
    options = client.get("/hq/identifiers/options?company_name=Blue%20Ridge&business_type=air_carrier",
                         headers=HQ_HEADERS).json()
    assert len(options) == 5
    assert all(o.endswith("A") for o in options)

    check = client.get("/hq/identifiers/abco", headers=HQ_HEADERS).json()
    assert check["code"] == "ABCO"
    assert check["valid"] is True
    assert check["business_type"] == "ocean_carrier"


def test_hq_employees():
    response = client.post("/hq/employees", json={
        "first_name": "Alex",
        "last_name": "Rivera",
        "email": "alex@example.com",
        "role": "support",
        "department": "Customer Success",
        "position": "Agent"
    }, headers=HQ_HEADERS)
    assert response.status_code == 201
    employee = response.json()
    assert len(employee["employee_id"]) == 6
    assert employee["is_active"] is True
    assert employee["employee_id"] in {e["employee_id"] for e in client.get("/hq/employees", headers=HQ_HEADERS).json()}


def test_monthly_overage_billing_is_once_per_period():
    tenant_id = client.post("/hq/tenants", json={
        "tenant_name": "Overage Haulers", "subscription_tier": "pro"
    }, headers=HQ_HEADERS).json()["id"]

    for i in range(17):
        response = client.post("/payroll/employees", json={
            "name": f"Driver {i}", "employee_type": "driver", "pay_type": "mileage"
        }, headers={"X-Tenant-ID": tenant_id})
        assert response.status_code == 201

    events = [e for e in process_monthly_overages(datetime(2024, 5, 31)) if e.tenant_id == tenant_id]
    assert len(events) == 1
    assert events[0].billing_period == "2024-05"
    assert events[0].extra_drivers == 2
    assert events[0].amount == 16
    assert events[0].status == "pending"

    again = [e for e in process_monthly_overages(datetime(2024, 5, 31)) if e.tenant_id == tenant_id]
    assert again == []

    next_month = [e for e in process_monthly_overages(datetime(2024, 6, 30)) if e.tenant_id == tenant_id]
    assert len(next_month) == 1

    listed = client.get(f"/hq/billing/events?tenant_id={tenant_id}", headers=HQ_HEADERS).json()
    assert [e["billing_period"] for e in listed] == ["2024-05", "2024-06"]


def test_billing_run_endpoint():
    response = client.post("/hq/billing/overages", headers=HQ_HEADERS)
    assert response.status_code == 200
    assert isinstance(response.json(), list)


def test_audit_log_is_readable_per_tenant():
    client.get("/subscription/overage", headers={"X-Tenant-ID": "audit-reader"})
    entries = client.get("/hq/audit?tenant_id=audit-reader", headers=HQ_HEADERS).json()
    assert entries
    assert all(e["tenant_id"] == "audit-reader" for e in entries)
    assert entries[0]["action_type"] == "SUBSCRIPTION"


def test_identifier_option_count_is_bounded():
    url = "/hq/identifiers/options?company_name=Blue%20Ridge&count="
    response = client.get(url + "20", headers=HQ_HEADERS)
    assert response.status_code == 200
    assert 0 < len(response.json()) <= 20
    assert client.get(url + "21", headers=HQ_HEADERS).status_code == 422
    assert client.get(url + "0", headers=HQ_HEADERS).status_code == 422
