from datetime import date, datetime, timedelta, timezone

from conftest import make_principal


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _seed(fake_db):
    today = _today()
    fake_db.tables["finance_categories"] = [
        {"id": "fc-tables", "company_id": "c-1", "name": "Table rental", "category_type": "INCOME"},
        {"id": "fc-bar", "company_id": "c-1", "name": "Bar", "category_type": "INCOME"},
        {"id": "fc-rent", "company_id": "c-1", "name": "Rent", "category_type": "EXPENSE"},
        {"id": "fc-other", "company_id": "c-2", "name": "Other venue", "category_type": "INCOME"},
    ]
    fake_db.tables["finance_transactions"] = [
        {"id": "ft-1", "company_id": "c-1", "category_id": "fc-tables", "amount": 120.0, "transaction_date": today.isoformat()},
        {"id": "ft-2", "company_id": "c-1", "category_id": "fc-bar", "amount": 30.5, "transaction_date": today.isoformat()},
        {"id": "ft-3", "company_id": "c-1", "category_id": "fc-rent", "amount": 500.0, "transaction_date": (today - timedelta(days=3)).isoformat()},
        {"id": "ft-4", "company_id": "c-1", "category_id": "fc-tables", "amount": 80.0, "transaction_date": (today - timedelta(days=60)).isoformat()},
        {"id": "ft-9", "company_id": "c-2", "category_id": "fc-other", "amount": 999.0, "transaction_date": today.isoformat()},
    ]


def test_summary_by_period(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    today = client.get("/api/finance/summary", params={"period": "today"}).json()
    assert today["income"] == 150.5
    assert today["expense"] == 0
    assert today["transaction_count"] == 2
    assert [row["category_id"] for row in today["top_income_categories"]] == ["fc-tables", "fc-bar"]

    week = client.get("/api/finance/summary", params={"period": "week"}).json()
    assert week["expense"] == 500.0
    assert week["net"] == -349.5

    everything = client.get("/api/finance/summary", params={"period": "all"}).json()
    assert everything["income"] == 230.5
    assert everything["transaction_count"] == 4
    assert everything["top_expense_categories"] == [{"category_id": "fc-rent", "name": "Rent", "total": 500.0}]


def test_summary_rejects_unknown_period(client, fake_db, login):
    login(make_principal("STAFF", company_id="c-1"))
    assert client.get("/api/finance/summary", params={"period": "decade"}).status_code == 422


def test_list_transactions_filters(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    recent = client.get(
        "/api/finance/transactions",
        params={"date_from": (_today() - timedelta(days=7)).isoformat()},
    ).json()
    assert {row["id"] for row in recent} == {"ft-1", "ft-2", "ft-3"}

    by_category = client.get("/api/finance/transactions", params={"category_id": "fc-tables"}).json()
    assert [row["id"] for row in by_category] == ["ft-1", "ft-4"]


def test_staff_cannot_write_finance(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    response = client.post(
        "/api/finance/transactions",
        json={"category_id": "fc-bar", "amount": 5, "transaction_date": _today().isoformat()},
    )
    assert response.status_code == 403


def test_admin_transaction_lifecycle(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("ADMIN", company_id="c-1", user_id="a1"))

    created = client.post(
        "/api/finance/transactions",
        json={"category_id": "fc-bar", "amount": 12.75, "transaction_date": "2026-03-01", "description": "Beer"},
    )
    assert created.status_code == 201
    transaction_id = created.json()["id"]
    assert created.json()["staff_id"] == "p-a1"

    updated = client.put(f"/api/finance/transactions/{transaction_id}", json={"amount": 13})
    assert updated.json()["amount"] == 13

    assert client.delete(f"/api/finance/transactions/{transaction_id}").status_code == 204
    assert client.delete("/api/finance/transactions/ft-9").status_code == 404


def test_transaction_category_must_belong_to_company(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("ADMIN", company_id="c-1"))

    response = client.post(
        "/api/finance/transactions",
        json={"category_id": "fc-other", "amount": 1, "transaction_date": "2026-03-01"},
    )
    assert response.status_code == 404
    assert client.post(
        "/api/finance/transactions",
        json={"category_id": "fc-bar", "amount": -1, "transaction_date": "2026-03-01"},
    ).status_code == 422


def test_category_lifecycle(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("ADMIN", company_id="c-1"))

    expenses = client.get("/api/finance/categories", params={"category_type": "EXPENSE"}).json()
    assert [row["id"] for row in expenses] == ["fc-rent"]

    created = client.post("/api/finance/categories", json={"name": "Utilities", "category_type": "EXPENSE"})
    assert created.status_code == 201
    assert client.delete("/api/finance/categories/fc-rent").status_code == 409
    assert client.delete(f"/api/finance/categories/{created.json()['id']}").status_code == 204
