import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from freightops.main import app
from freightops.core.audit import audit_repo
from freightops.core.payroll import calculate_pay
from freightops.schemas.payroll import Employee, TimeEntry, TimeEntryStatus
import uuid

client = TestClient(app)


def make_entry(employee, hours, miles=None):
    return TimeEntry(
        employee_id=employee.id,
        tenant_id=employee.tenant_id,
        clock_in=datetime(2024, 1, 2, 8),
        total_hours=hours,
        miles=miles,
        employee_type=employee.employee_type,
        status=TimeEntryStatus.COMPLETED
    )


def test_hourly_overtime_and_deductions():
    employee = Employee(tenant_id="t", name="Dana", employee_type="dispatcher", pay_type="hourly", hourly_rate=20)
    pay = calculate_pay(employee, [make_entry(employee, 11) for _ in range(4)])

    assert pay["regular_hours"] == 40
    assert pay["overtime_hours"] == 4
    assert pay["regular_pay"] == 800.0
    assert pay["overtime_pay"] == 120.0
    assert pay["gross_pay"] == 920.0
    assert pay["federal_tax"] == 202.4
    assert pay["state_tax"] == 55.2
    assert pay["social_security"] == 57.04
    assert pay["medicare"] == 13.34
    assert pay["total_deductions"] == pytest.approx(327.98)
    assert pay["net_pay"] == pytest.approx(592.02)


def test_mileage_driver_with_high_mileage_bonus():
    employee = Employee(tenant_id="t", name="Sam", employee_type="driver", pay_type="mileage")
    pay = calculate_pay(employee, [make_entry(employee, 6, 1200), make_entry(employee, 4, 900)])

    assert pay["total_miles"] == 2100
    assert pay["mileage_rate"] == 0.60
    assert pay["mileage_pay"] == 1260.0
    assert pay["regular_pay"] == 250.0  # default hourly rate
    assert pay["bonus_pay"] == 500.0
    assert pay["gross_pay"] == 2010.0


def test_salary_and_benefit_deductions():
    employee = Employee(
        tenant_id="t", name="Lee", employee_type="manager", pay_type="salary", salary_amount=52000,
        health_insurance=150, retirement_401k_percent=0.05
    )
    pay = calculate_pay(employee, [])
    assert pay["salary_pay"] == 2000.0
    assert pay["health_insurance"] == 150.0
    assert pay["retirement_401k"] == 100.0


def test_commission_pay():
    employee = Employee(tenant_id="t", name="Kim", employee_type="office", pay_type="commission", commission_rate=0.1)
    pay = calculate_pay(employee, [], commission_base=5000)
    assert pay["commission_pay"] == 500.0
    assert pay["gross_pay"] == 500.0


@pytest.fixture
def headers():
    return {"X-Tenant-ID": f"payroll-test-{uuid.uuid4().hex[:8]}"}


def create_employee(headers, **overrides):
    payload = {"name": "Sam Driver", "employee_type": "driver", "pay_type": "mileage", "mileage_rate": 0.55,
               "hourly_rate": 20}
    payload.update(overrides)
    response = client.post("/payroll/employees", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def work_shift(headers, employee_id, start, end, miles=None):
    response = client.post(f"/payroll/employees/{employee_id}/clock-in", json={"at": start}, headers=headers)
    assert response.status_code == 200, response.text
    response = client.post(f"/payroll/employees/{employee_id}/clock-out", json={"at": end, "miles": miles},
                           headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_salary_requires_amount(headers):
    response = client.post("/payroll/employees", json={
        "name": "No Salary", "employee_type": "office", "pay_type": "salary"
    }, headers=headers)
    assert response.status_code == 422


def test_clock_in_and_out(headers):
    employee = create_employee(headers)
    entry = work_shift(headers, employee["id"], "2024-01-02T08:00:00", "2024-01-02T17:30:00", miles=410)
    assert entry["total_hours"] == 9.5
    assert entry["status"] == "completed"

    client.post(f"/payroll/employees/{employee['id']}/clock-in", json={"at": "2024-01-03T08:00:00"}, headers=headers)
    again = client.post(f"/payroll/employees/{employee['id']}/clock-in", json={}, headers=headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "Employee is already clocked in"


def test_clock_out_without_clock_in(headers):
    employee = create_employee(headers)
    response = client.post(f"/payroll/employees/{employee['id']}/clock-out", json={}, headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "No active clock-in found for employee"


def test_clock_out_before_clock_in(headers):
    employee = create_employee(headers)
    client.post(f"/payroll/employees/{employee['id']}/clock-in", json={"at": "2024-01-02T08:00:00"}, headers=headers)
    response = client.post(f"/payroll/employees/{employee['id']}/clock-out", json={"at": "2024-01-02T07:00:00"},
                           headers=headers)
    assert response.status_code == 400


def test_calculate_uses_entries_inside_period(headers):
    employee = create_employee(headers)
    work_shift(headers, employee["id"], "2024-01-02T08:00:00", "2024-01-02T18:00:00", miles=500)
    work_shift(headers, employee["id"], "2024-01-20T08:00:00", "2024-01-20T18:00:00", miles=500)

    response = client.post("/payroll/calculate", json={
        "employee_id": employee["id"],
        "pay_period_start": "2024-01-01T00:00:00",
        "pay_period_end": "2024-01-14T23:59:59"
    }, headers=headers)
    assert response.status_code == 200, response.text
    payroll = response.json()
    assert payroll["total_hours"] == 10
    assert payroll["total_miles"] == 500
    assert payroll["mileage_pay"] == 275.0
    assert payroll["regular_pay"] == 200.0
    assert payroll["gross_pay"] == 475.0
    assert payroll["status"] == "draft"


def test_payroll_approval_order(headers):
    employee = create_employee(headers)
    payroll = client.post("/payroll/calculate", json={
        "employee_id": employee["id"],
        "pay_period_start": "2024-01-01T00:00:00",
        "pay_period_end": "2024-01-14T23:59:59"
    }, headers=headers).json()

    assert client.post(f"/payroll/records/{payroll['id']}/pay", headers=headers).status_code == 409
    assert client.post(f"/payroll/records/{payroll['id']}/approve", headers=headers).json()["status"] == "approved"
    assert client.post(f"/payroll/records/{payroll['id']}/pay", headers=headers).json()["status"] == "paid"


def test_payroll_run_lifecycle(headers):
    driver = create_employee(headers)
    clerk = create_employee(headers, name="Pat Clerk", employee_type="office", pay_type="hourly", hourly_rate=18)
    work_shift(headers, driver["id"], "2024-01-02T06:00:00", "2024-01-02T16:00:00", miles=600)
    work_shift(headers, clerk["id"], "2024-01-02T09:00:00", "2024-01-02T17:00:00")

    response = client.post("/payroll/runs", json={
        "pay_period_start": "2024-01-01T00:00:00",
        "pay_period_end": "2024-01-14T23:59:59",
        "pay_date": "2024-01-19"
    }, headers=headers)
    assert response.status_code == 201, response.text
    run = response.json()
    assert run["status"] == "processing"
    assert run["total_employees"] == 2
    # driver 600 * 0.55 + 10h * 20, clerk 8h * 18
    assert run["total_gross_pay"] == pytest.approx(674.0)

    assert client.post(f"/payroll/runs/{run['id']}/complete", headers=headers).status_code == 409
    assert client.post(f"/payroll/runs/{run['id']}/approve", headers=headers).json()["status"] == "approved"
    assert client.post(f"/payroll/runs/{run['id']}/complete", headers=headers).json()["status"] == "completed"

    statuses = {p["status"] for p in client.get("/payroll/records", headers=headers).json()}
    assert statuses == {"paid"}


def test_starter_tenant_driver_limit(headers):
    for i in range(5):
        create_employee(headers, name=f"Driver {i}")
    response = client.post("/payroll/employees", json={
        "name": "Driver 6", "employee_type": "driver", "pay_type": "mileage"
    }, headers=headers)
    assert response.status_code == 403
    assert "Driver limit exceeded" in response.json()["detail"]

    # Office staff do not count against the driver allowance
    create_employee(headers, name="Office", employee_type="office", pay_type="hourly")


def test_pay_stub_json_and_pdf(headers):
    employee = create_employee(headers, name="Stub Driver")
    work_shift(headers, employee["id"], "2024-01-02T06:00:00", "2024-01-02T16:00:00", miles=600)
    payroll = client.post("/payroll/calculate", json={
        "employee_id": employee["id"],
        "pay_period_start": "2024-01-01T00:00:00",
        "pay_period_end": "2024-01-14T23:59:59"
    }, headers=headers).json()

    stub = client.get(f"/payroll/records/{payroll['id']}/stub", headers=headers).json()
    assert stub["employee_name"] == "Stub Driver"
    assert stub["mileage"]["quantity"] == 600
    assert stub["net_pay"] == payroll["net_pay"]

    response = client.get(f"/payroll/records/{payroll['id']}/stub/pdf", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")

    pdf_log = next(l for l in audit_repo.get_all(headers["X-Tenant-ID"]) if l.action_type == "PDF_DOWNLOAD")
    assert pdf_log.output_hash is not None


def test_unknown_payroll_is_404(headers):
    assert client.get("/payroll/records/missing", headers=headers).status_code == 404
    assert client.get("/payroll/runs/missing", headers=headers).status_code == 404


def test_offset_timestamps_are_stored_as_utc(headers):
    employee = create_employee(headers)
    response = client.post(f"/payroll/employees/{employee['id']}/clock-in", json={"at": "2024-01-02T10:00:00+02:00"},
                           headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["clock_in"] == "2024-01-02T08:00:00"

    response = client.post(f"/payroll/employees/{employee['id']}/clock-out", json={"at": "2024-01-02T17:00:00Z"},
                           headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["total_hours"] == 9


def test_clock_out_now_after_utc_clock_in(headers):
    employee = create_employee(headers)
    client.post(f"/payroll/employees/{employee['id']}/clock-in", json={"at": "2024-01-05T08:00:00Z"}, headers=headers)
    response = client.post(f"/payroll/employees/{employee['id']}/clock-out", json={}, headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "completed"


def test_calculate_and_run_accept_utc_periods(headers):
    employee = create_employee(headers)
    work_shift(headers, employee["id"], "2024-01-02T08:00:00Z", "2024-01-02T18:00:00Z", miles=500)

    response = client.post("/payroll/calculate", json={
        "employee_id": employee["id"],
        "pay_period_start": "2024-01-01T00:00:00Z",
        "pay_period_end": "2024-01-14T23:59:59Z"
    }, headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["total_hours"] == 10

    response = client.post("/payroll/runs", json={
        "pay_period_start": "2024-01-01T00:00:00Z",
        "pay_period_end": "2024-01-14T23:59:59Z",
        "pay_date": "2024-01-19"
    }, headers=headers)
    assert response.status_code == 201, response.text
    assert response.json()["total_employees"] == 1
