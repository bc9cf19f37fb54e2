from datetime import date
import uuid
from freightops.core.matching import (
    score_load, find_load_match, match_transaction, classify_expense, connect_bank, ingest_transactions,
    register_loads, match_transactions, update_match_status
)
from freightops.db.memory import tenant_state
from freightops.schemas.banking import BankTransaction, BankConnectionRequest, Load, Expense, MatchType, MatchStatus


def make_tx(tx_id, amount, description, on=date(2024, 1, 10), merchant_name=None):
    return BankTransaction(
        id=tx_id,
        account_id="acct-1",
        amount=amount,
        date=on,
        description=description,
        merchant_name=merchant_name
    )


ACME_LOAD = Load(
    id="load-1",
    load_number="L-100",
    customer_name="Acme Logistics",
    rate=1500.0,
    delivery_date=date(2024, 1, 8)
)


def test_transaction_type_follows_sign():
    assert make_tx("t1", 25.0, "Fee").transaction_type == "debit"
    assert make_tx("t2", -25.0, "Deposit").transaction_type == "credit"


def test_csv_style_fields_are_accepted():
    tx = BankTransaction(
        transaction_id="t-csv",
        account_id="acct-1",
        amount="-1500.00",
        date="2024-01-10",
        name="ACME DEPOSIT",
        category="Transfer;Deposit",
        merchant_name=""
    )
    assert tx.id == "t-csv"
    assert tx.description == "ACME DEPOSIT"
    assert tx.category == ["Transfer", "Deposit"]
    assert tx.merchant_name is None


def test_full_load_evidence_is_capped_at_one():
    tx = make_tx("t1", -1500.0, "ACME LOGISTICS PAYMENT L-100")
    assert score_load(tx, ACME_LOAD) == 1.0

    match = match_transaction(tx, [ACME_LOAD], [])
    assert match.load_id == "load-1"
    assert match.match_type == MatchType.LOAD_PAYMENT
    assert match.status == MatchStatus.CONFIRMED


def test_amount_and_date_only_is_a_suggestion():
    tx = make_tx("t1", -1520.0, "WIRE DEPOSIT")
    score = score_load(tx, ACME_LOAD)
    assert score == 0.6

    match = match_transaction(tx, [ACME_LOAD], [])
    assert match.status == MatchStatus.SUGGESTED


def test_weak_evidence_does_not_match():
    # Amount within the loose tolerance only
    tx = make_tx("t1", -1400.0, "WIRE DEPOSIT", on=date(2024, 3, 1))
    assert score_load(tx, ACME_LOAD) == 0.2
    assert find_load_match(tx, [ACME_LOAD]) is None


def test_best_scoring_load_wins():
    other = Load(id="load-2", customer_name="Beta Freight", rate=1500.0)
    tx = make_tx("t1", -1500.0, "BETA FREIGHT ACH")
    load, score = find_load_match(tx, [ACME_LOAD, other])
    assert load.id == "load-2"
    assert score == 0.7


def test_fuel_keyword_without_recorded_expense():
    tx = make_tx("tx-fuel", 250.0, "PILOT TRAVEL CENTER #123")
    match = match_transaction(tx, [], [])
    assert match.match_type == MatchType.FUEL_EXPENSE
    assert match.expense_id == "fuel-tx-fuel"
    assert match.confidence == 0.7
    assert match.status == MatchStatus.SUGGESTED


def test_recorded_expense_raises_confidence():
    expense = Expense(id="exp-1", category="fuel", amount=250.0, expense_date=date(2024, 1, 9))
    tx = make_tx("tx-fuel", 251.0, "PILOT TRAVEL CENTER #123")
    match = match_transaction(tx, [], [expense])
    assert match.expense_id == "exp-1"
    assert match.confidence == 0.9
    assert match.status == MatchStatus.CONFIRMED


def test_merchant_name_is_used_for_classification():
    tx = make_tx("t1", 80.0, "POS PURCHASE 4411", merchant_name="Discount Tire")
    assert classify_expense(tx)[1] == MatchType.MAINTENANCE


def test_driver_pay_stays_suggested_at_threshold():
    match = match_transaction(make_tx("t1", 3000.0, "PAYROLL ACH"), [], [])
    assert match.match_type == MatchType.DRIVER_PAY
    assert match.confidence == 0.8
    assert match.status == MatchStatus.SUGGESTED


def test_unrecognised_debit_is_left_unmatched():
    assert match_transaction(make_tx("t1", 42.0, "OFFICE DEPOT"), [ACME_LOAD], []) is None


def test_equal_scores_keep_the_first_load():
    first = Load(id="load-a", rate=1500.0, delivery_date=date(2024, 1, 8))
    second = Load(id="load-b", rate=1500.0, delivery_date=date(2024, 1, 8))
    tx = make_tx("t1", -1500.0, "WIRE DEPOSIT")

    load, score = find_load_match(tx, [first, second])
    assert load.id == "load-a"
    assert score == 0.6
    assert find_load_match(tx, [second, first])[0].id == "load-b"


def test_expense_outside_date_window_is_not_linked():
    expense = Expense(id="exp-old", category="fuel", amount=250.0, expense_date=date(2024, 1, 1))
    tx = make_tx("tx-fuel", 250.0, "PILOT TRAVEL CENTER #123")
    match = match_transaction(tx, [], [expense])
    assert match.expense_id == "fuel-tx-fuel"
    assert match.confidence == 0.7


def connected_tenant():
    tenant_id = f"match-test-{uuid.uuid4().hex[:8]}"
    connect_bank(tenant_id, BankConnectionRequest(account_id="acct-1", account_name="Operating"))
    return tenant_id


def test_claimed_load_is_skipped_until_rejected():
    tenant_id = connected_tenant()
    ingest_transactions(tenant_id, [make_tx("tx-a", -1500.0, "WIRE DEPOSIT"),
                                    make_tx("tx-b", -1500.0, "WIRE DEPOSIT")])
    register_loads(tenant_id, [ACME_LOAD])

    first_run = match_transactions(tenant_id)
    assert [(m.bank_transaction_id, m.load_id) for m in first_run] == [("tx-a", "load-1")]

    assert match_transactions(tenant_id) == []

    update_match_status(tenant_id, "tx-a", MatchStatus.REJECTED)
    later_run = match_transactions(tenant_id)
    assert [(m.bank_transaction_id, m.load_id) for m in later_run] == [("tx-b", "load-1")]


def test_reingest_replaces_stored_transaction():
    tenant_id = connected_tenant()
    ingest_transactions(tenant_id, [make_tx("tx-a", -1500.0, "WIRE DEPOSIT")])
    ingest_transactions(tenant_id, [make_tx("tx-a", -900.0, "WIRE DEPOSIT ADJUSTED")])

    stored = tenant_state(tenant_id)["transactions"]
    assert list(stored) == ["tx-a"]
    assert stored["tx-a"].amount == -900.0
    assert stored["tx-a"].description == "WIRE DEPOSIT ADJUSTED"
