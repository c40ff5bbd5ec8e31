"""Integration tests for API endpoints"""

from decimal import Decimal
from fastapi.testclient import TestClient
from member_finance.domain.calculator import calculate_loan


def _apply_loan(client: TestClient, headers: dict, user_id: str, **overrides) -> dict:
    body = {"user_id": user_id, "amount": "15000", "interest_rate": "10", "term_months": 4, "purpose": "Tuition"}
    body.update(overrides)
    response = client.post("/v1/loans", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _deposit(client: TestClient, headers: dict, user_id: str, amount: str, txn_type: str = "DEPOSIT") -> dict:
    response = client.post(
        "/v1/transactions",
        json={"user_id": user_id, "type": txn_type, "amount": amount, "description": "Sunday savings"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
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
    assert "member_finance_loan_transition_total" in response.text


def test_request_id_header_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_missing_actor_is_unauthorized(client: TestClient):
    assert client.get("/v1/loans").status_code == 401
    assert client.get("/v1/loans", headers={"X-User-Id": "nobody"}).status_code == 401


def test_member_cannot_reach_staff_routes(client: TestClient, member_headers: dict):
    assert client.get("/v1/dashboard", headers=member_headers).status_code == 403
    assert client.get("/v1/members", headers=member_headers).status_code == 403


def test_register_member_and_duplicate_email(client: TestClient, officer_headers: dict):
    body = {"name": "Ana Lim", "email": "ana@example.org", "phone": "0921-111-2222", "address": "Pasig City"}

    response = client.post("/v1/members", json=body, headers=officer_headers)
    assert response.status_code == 201
    assert response.json()["role"] == "MEMBER"

    duplicate = client.post("/v1/members", json=body, headers=officer_headers)
    assert duplicate.status_code == 409


def test_list_members_with_savings(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "5000")
    _deposit(client, officer_headers, member.id, "1200", txn_type="WITHDRAWAL")

    response = client.get("/v1/members", headers=officer_headers)

    assert response.status_code == 200
    rows = response.json()
    assert [r["name"] for r in rows] == ["Juan dela Cruz"]
    assert Decimal(rows[0]["savings_balance"]) == Decimal("3800")

    assert client.get("/v1/members?q=nomatch", headers=officer_headers).json() == []


def test_create_loan_computes_terms(client: TestClient, officer_headers: dict, member):
    data = _apply_loan(client, officer_headers, member.id)

    assert data["status"] == "PENDING"
    assert Decimal(data["total_due"]) == Decimal("15500")
    assert Decimal(data["monthly_payment"]) == Decimal("3875")
    assert Decimal(data["outstanding"]) == Decimal("15500")


def test_create_loan_uses_default_rate(client: TestClient, officer_headers: dict, member):
    data = _apply_loan(client, officer_headers, member.id, amount="20000", interest_rate=None, term_months=12)

    assert Decimal(data["interest_rate"]) == Decimal("12")
    assert Decimal(data["total_due"]) == Decimal("22400")


def test_create_loan_outside_policy_bounds(client: TestClient, officer_headers: dict, member):
    too_small = {"user_id": member.id, "amount": "500", "interest_rate": "10", "term_months": 4}
    response = client.post("/v1/loans", json=too_small, headers=officer_headers)
    assert response.status_code == 400
    assert "Loan amount" in response.json()["detail"]

    too_long = {"user_id": member.id, "amount": "5000", "interest_rate": "10", "term_months": 48}
    response = client.post("/v1/loans", json=too_long, headers=officer_headers)
    assert response.status_code == 400
    assert "Loan term" in response.json()["detail"]


def test_create_loan_respects_settings_override(
    client: TestClient, admin_headers: dict, officer_headers: dict, member
):
    client.put("/v1/settings", json={"maxLoanAmount": "10000"}, headers=admin_headers)

    body = {"user_id": member.id, "amount": "15000", "interest_rate": "10", "term_months": 4}
    assert client.post("/v1/loans", json=body, headers=officer_headers).status_code == 400


def test_create_loan_unknown_member(client: TestClient, officer_headers: dict):
    body = {"user_id": "missing", "amount": "15000", "interest_rate": "10", "term_months": 4}
    assert client.post("/v1/loans", json=body, headers=officer_headers).status_code == 404


def test_quote_does_not_persist(client: TestClient, officer_headers: dict):
    response = client.post(
        "/v1/loans/quote", json={"amount": "15000", "interest_rate": "10", "term_months": 4}, headers=officer_headers
    )

    assert response.status_code == 200
    assert Decimal(response.json()["total_interest"]) == Decimal("500")
    assert client.get("/v1/loans", headers=officer_headers).json() == []


def test_approve_releases_once(client: TestClient, officer_headers: dict, member, officer):
    loan = _apply_loan(client, officer_headers, member.id, amount="20000", term_months=12)

    approved = client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "ACTIVE"
    assert approved.json()["approved_by_id"] == officer.id
    assert approved.json()["start_date"] is not None

    again = client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    assert again.status_code == 400

    detail = client.get(f"/v1/loans/{loan['id']}", headers=officer_headers).json()
    releases = [t for t in detail["transactions"] if t["type"] == "LOAN_RELEASE"]
    assert len(releases) == 1
    assert Decimal(releases[0]["amount"]) == Decimal("20000")
    assert len(detail["schedule"]) == 12


def test_reject_active_loan_fails(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)

    response = client.post(f"/v1/loans/{loan['id']}/reject", headers=officer_headers)

    assert response.status_code == 400
    detail = client.get(f"/v1/loans/{loan['id']}", headers=officer_headers).json()
    assert detail["status"] == "ACTIVE"


def test_reject_pending_loan(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)

    response = client.post(f"/v1/loans/{loan['id']}/reject", headers=officer_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers).status_code == 400


def test_payments_schedule_and_progress(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)

    pending_payment = client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "3875"}, headers=officer_headers)
    assert pending_payment.status_code == 400

    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    payment = client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "3875"}, headers=officer_headers)
    assert payment.status_code == 201
    assert payment.json()["type"] == "LOAN_PAYMENT"

    detail = client.get(f"/v1/loans/{loan['id']}", headers=officer_headers).json()
    assert Decimal(detail["total_paid"]) == Decimal("3875")
    assert Decimal(detail["outstanding"]) == Decimal("11625")
    assert detail["progress_pct"] == 25.0
    assert [e["status"] for e in detail["schedule"]] == ["Paid", "Upcoming", "Upcoming", "Upcoming"]


def test_overpayment_allowed_and_outstanding_floored(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)

    response = client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "20000"}, headers=officer_headers)
    assert response.status_code == 201

    detail = client.get(f"/v1/loans/{loan['id']}", headers=officer_headers).json()
    assert detail["status"] == "ACTIVE"
    assert Decimal(detail["outstanding"]) == 0
    assert detail["progress_pct"] == 100.0


def test_mark_paid(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)

    response = client.post(f"/v1/loans/{loan['id']}/mark-paid", headers=officer_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "PAID"
    paid_payment = client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "1"}, headers=officer_headers)
    assert paid_payment.status_code == 400


def test_loan_not_found(client: TestClient, officer_headers: dict):
    assert client.get("/v1/loans/missing", headers=officer_headers).status_code == 404
    assert client.post("/v1/loans/missing/approve", headers=officer_headers).status_code == 404


def test_transaction_types(client: TestClient, officer_headers: dict, member):
    loan = _apply_loan(client, officer_headers, member.id)

    release = client.post(
        "/v1/transactions",
        json={"user_id": member.id, "type": "LOAN_RELEASE", "amount": "15000", "loan_id": loan["id"]},
        headers=officer_headers,
    )
    assert release.status_code == 400

    bogus = client.post(
        "/v1/transactions", json={"user_id": member.id, "type": "FEE", "amount": "10"}, headers=officer_headers
    )
    assert bogus.status_code == 400

    pending_payment = client.post(
        "/v1/transactions",
        json={"user_id": member.id, "type": "LOAN_PAYMENT", "amount": "100", "loan_id": loan["id"]},
        headers=officer_headers,
    )
    assert pending_payment.status_code == 400

    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    payment = client.post(
        "/v1/transactions",
        json={"user_id": member.id, "type": "LOAN_PAYMENT", "amount": "100", "loan_id": loan["id"]},
        headers=officer_headers,
    )
    assert payment.status_code == 201
    assert payment.json()["loan_id"] == loan["id"]

    negative = client.post(
        "/v1/transactions", json={"user_id": member.id, "type": "DEPOSIT", "amount": "-5"}, headers=officer_headers
    )
    assert negative.status_code == 422


def test_transaction_list_totals(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "5000")
    _deposit(client, officer_headers, member.id, "1000", txn_type="WITHDRAWAL")
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)

    response = client.get("/v1/transactions?period=all", headers=officer_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert data["period_label"] == "All Time"
    assert Decimal(data["totals"]["deposits"]) == Decimal("5000")
    assert Decimal(data["totals"]["loan_releases"]) == Decimal("15000")
    assert Decimal(data["totals"]["net_flow"]) == Decimal("-11000")

    deposits_only = client.get("/v1/transactions?type=DEPOSIT", headers=officer_headers).json()
    assert deposits_only["count"] == 1

    assert client.get("/v1/transactions?year=1999", headers=officer_headers).json()["count"] == 0


def test_member_statement_running_balance(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "5000")
    _deposit(client, officer_headers, member.id, "1500", txn_type="WITHDRAWAL")
    _deposit(client, officer_headers, member.id, "250")

    response = client.get(f"/v1/members/{member.id}/statement", headers=officer_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["transaction_count"] == 3
    assert Decimal(data["savings_balance"]) == Decimal("3750")
    assert Decimal(data["total_deposits"]) == Decimal("5250")
    assert [Decimal(line["running_balance"]) for line in data["lines"]] == [
        Decimal("5000"),
        Decimal("3500"),
        Decimal("3750"),
    ]


def test_member_detail(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "800")
    active = _apply_loan(client, officer_headers, member.id)
    _apply_loan(client, officer_headers, member.id, purpose="Roof repair")
    client.post(f"/v1/loans/{active['id']}/approve", headers=officer_headers)
    client.post(f"/v1/loans/{active['id']}/payments", json={"amount": "3875"}, headers=officer_headers)

    data = client.get(f"/v1/members/{member.id}", headers=officer_headers).json()

    assert Decimal(data["savings_balance"]) == Decimal("800")
    assert Decimal(data["total_loan_payments"]) == Decimal("3875")
    # Pending loan owes nothing yet
    assert Decimal(data["total_outstanding"]) == Decimal("11625")
    assert len(data["loans"]) == 2
    assert len(data["transactions"]) == 3
    assert client.get("/v1/members/missing", headers=officer_headers).status_code == 404


def test_my_account(client: TestClient, officer_headers: dict, member_headers: dict, member):
    _deposit(client, officer_headers, member.id, "2000")
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "3875"}, headers=officer_headers)

    response = client.get("/v1/me", headers=member_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["member"]["id"] == member.id
    assert Decimal(data["savings_balance"]) == Decimal("2000")
    assert Decimal(data["total_outstanding"]) == Decimal("11625")


def test_settings_read_and_update(client: TestClient, admin_headers: dict, officer_headers: dict):
    defaults = client.get("/v1/settings", headers=officer_headers).json()
    assert defaults["defaultInterestRate"] == "12"

    assert client.put("/v1/settings", json={"maxLoanAmount": "50000"}, headers=officer_headers).status_code == 403

    bad = client.put("/v1/settings", json={"maxLoanAmount": "-1", "minLoanAmount": "500"}, headers=admin_headers)
    assert bad.status_code == 400
    assert client.get("/v1/settings", headers=officer_headers).json()["minLoanAmount"] == "1000"

    updated = client.put(
        "/v1/settings", json={"maxLoanAmount": 50000, "unknown": "1"}, headers=admin_headers
    ).json()
    assert updated["maxLoanAmount"] == "50000"
    assert "unknown" not in updated


def test_dashboard(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "3000")
    active = _apply_loan(client, officer_headers, member.id)
    _apply_loan(client, officer_headers, member.id, purpose="Roof repair")
    client.post(f"/v1/loans/{active['id']}/approve", headers=officer_headers)
    client.post(f"/v1/loans/{active['id']}/payments", json={"amount": "500"}, headers=officer_headers)

    data = client.get("/v1/dashboard", headers=officer_headers).json()

    assert data["total_members"] == 1
    assert Decimal(data["total_deposits"]) == Decimal("3000")
    assert Decimal(data["total_outstanding"]) == Decimal("15000")
    assert data["active_loans"] == 1
    assert data["pending_loans"] == 1
    assert Decimal(data["monthly_collections"]) == Decimal("3500")
    assert len(data["recent_transactions"]) == 3


def test_reports(client: TestClient, officer_headers: dict, member):
    _deposit(client, officer_headers, member.id, "3000")
    loan = _apply_loan(client, officer_headers, member.id)
    client.post(f"/v1/loans/{loan['id']}/approve", headers=officer_headers)
    client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": "16000"}, headers=officer_headers)

    loans = client.get("/v1/reports/loans", headers=officer_headers).json()
    assert loans["report"] == "loans"
    assert Decimal(loans["rows"][0]["outstanding"]) == 0
    assert Decimal(loans["rows"][0]["total_paid"]) == Decimal("16000")

    balances = client.get("/v1/reports/balances", headers=officer_headers).json()
    assert Decimal(balances["rows"][0]["balance"]) == Decimal("3000")

    collections = client.get("/v1/reports/collections", headers=officer_headers).json()
    assert len(collections["rows"]) == 1
    assert Decimal(collections["rows"][0]["total"]) == Decimal("19000")
    assert Decimal(collections["rows"][0]["loan_releases"]) == Decimal("15000")

    transactions = client.get("/v1/reports/transactions", headers=officer_headers).json()
    assert len(transactions["rows"]) == 3
    assert transactions["rows"][0]["recorded_by"] == "Maria Santos"

    assert client.get("/v1/reports/unknown", headers=officer_headers).status_code == 400


def test_loan_payment_for_unknown_loan(client: TestClient, officer_headers: dict, member):
    response = client.post(
        "/v1/transactions",
        json={"user_id": member.id, "type": "LOAN_PAYMENT", "amount": "100", "loan_id": "missing"},
        headers=officer_headers,
    )
    assert response.status_code == 404


def test_loan_figures_follow_stored_rate(client: TestClient, officer_headers: dict, member):
    body = {"user_id": member.id, "amount": "100000", "interest_rate": "12.34567", "term_months": 36}
    assert client.post("/v1/loans", json=body, headers=officer_headers).status_code == 422

    data = _apply_loan(client, officer_headers, member.id, amount="100000", interest_rate="12.346", term_months=36)

    rate = Decimal(data["interest_rate"])
    expected = calculate_loan(Decimal(data["amount"]), rate, data["term_months"]).quantized()
    assert rate == Decimal("12.346")
    assert Decimal(data["total_due"]) == expected.total_due == Decimal("137038.00")
    assert Decimal(data["monthly_payment"]) == expected.monthly_payment


def test_default_rate_rounded_before_calculation(
    client: TestClient, admin_headers: dict, officer_headers: dict, member
):
    client.put("/v1/settings", json={"defaultInterestRate": "12.3456"}, headers=admin_headers)

    data = _apply_loan(client, officer_headers, member.id, amount="100000", interest_rate=None, term_months=36)

    assert Decimal(data["interest_rate"]) == Decimal("12.346")
    assert Decimal(data["total_due"]) == Decimal("137038.00")


def test_settings_minimum_must_stay_below_maximum(
    client: TestClient, admin_headers: dict, officer_headers: dict, member
):
    inverted = client.put(
        "/v1/settings", json={"minLoanAmount": "50000", "maxLoanAmount": "2000"}, headers=admin_headers
    )
    assert inverted.status_code == 400
    assert inverted.json()["detail"] == "Minimum loan amount must be less than maximum"

    # Checked against the values already stored, not only the request
    client.put("/v1/settings", json={"maxTermMonths": "12"}, headers=admin_headers)
    assert client.put("/v1/settings", json={"minTermMonths": "12"}, headers=admin_headers).status_code == 400

    settings = client.get("/v1/settings", headers=officer_headers).json()
    assert (settings["minLoanAmount"], settings["maxLoanAmount"], settings["minTermMonths"]) == ("1000", "100000", "1")

    _apply_loan(client, officer_headers, member.id)


def test_settings_reject_fractional_term(client: TestClient, admin_headers: dict):
    response = client.put("/v1/settings", json={"minTermMonths": "1.5"}, headers=admin_headers)
    assert response.status_code == 400
