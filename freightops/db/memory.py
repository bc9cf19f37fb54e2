from typing import Dict, Any

# AUTHORITATIVE GLOBAL STORE – DO NOT DUPLICATE
# Structure: { tenant_id: { "connection": BankConnection | None, "transactions": {id: tx},
#              "loads": {}, "expenses": {}, "matches": [], "employees": {}, "time_entries": [],
#              "payrolls": {}, "payroll_runs": {} } }
# In-memory only; records live for the lifetime of the process.
APP_STATE: Dict[str, Dict[str, Any]] = {}

# Operator (HQ) records: { "tenants": {}, "employees": {}, "billing_events": [] }
HQ_STATE: Dict[str, Any] = {"tenants": {}, "employees": {}, "billing_events": []}


def tenant_state(tenant_id: str) -> Dict[str, Any]:
    """Returns the tenant's record collections, creating them on first use."""
    state = APP_STATE.get(tenant_id)
    if state is None:
        state = {
            "connection": None,
            "transactions": {},
            "loads": {},
            "expenses": {},
            "matches": [],
            "employees": {},
            "time_entries": [],
            "payrolls": {},
            "payroll_runs": {},
        }
        APP_STATE[tenant_id] = state
    return state
