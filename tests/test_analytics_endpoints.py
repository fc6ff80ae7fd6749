from datetime import datetime, time, timedelta, timezone

from conftest import make_principal


def _today():
    return datetime.now(timezone.utc).date()


def _seed(fake_db):
    today = _today()
    this_morning = datetime.combine(today, time(0, 5), tzinfo=timezone.utc).isoformat()
    fake_db.tables["inventory_items"] = [
        {"id": "i-1", "company_id": "c-1", "name": "Cola", "quantity": 10},
        {"id": "i-2", "company_id": "c-1", "name": "Chips", "quantity": 10},
        {"id": "i-3", "company_id": "c-1", "name": "Chalk", "quantity": 10},
    ]
    fake_db.tables["pos_orders"] = [
        {"id": "o-1", "company_id": "c-1", "total_amount": 12.5, "created_at": this_morning},
        {"id": "o-2", "company_id": "c-1", "total_amount": 4.0, "created_at": this_morning},
        {"id": "o-old", "company_id": "c-1", "total_amount": 99.0, "created_at": "2020-01-01T10:00:00+00:00"},
        {"id": "o-9", "company_id": "c-2", "total_amount": 50.0, "created_at": this_morning},
    ]
    fake_db.tables["pos_order_items"] = [
        {"id": "l-1", "order_id": "o-1", "item_id": "i-1", "quantity": 3, "line_total": 7.5},
        {"id": "l-2", "order_id": "o-1", "item_id": "i-2", "quantity": 5, "line_total": 5.0},
        {"id": "l-3", "order_id": "o-2", "item_id": "i-1", "quantity": 2, "line_total": 4.0},
        {"id": "l-old", "order_id": "o-old", "item_id": "i-3", "quantity": 40, "line_total": 99.0},
    ]
    fake_db.tables["finance_categories"] = [
        {"id": "fc-in", "company_id": "c-1", "name": "Tables", "category_type": "INCOME"},
        {"id": "fc-out", "company_id": "c-1", "name": "Rent", "category_type": "EXPENSE"},
    ]
    fake_db.tables["finance_transactions"] = [
        {"id": "ft-1", "company_id": "c-1", "category_id": "fc-in", "amount": 30.0, "transaction_date": today.isoformat()},
        {"id": "ft-2", "company_id": "c-1", "category_id": "fc-out", "amount": 10.25, "transaction_date": today.isoformat()},
        {"id": "ft-3", "company_id": "c-1", "category_id": "fc-in", "amount": 7.0, "transaction_date": (today - timedelta(days=2)).isoformat()},
        {"id": "ft-4", "company_id": "c-1", "category_id": "fc-in", "amount": 500.0, "transaction_date": (today - timedelta(days=30)).isoformat()},
    ]


def test_revenue_combines_pos_and_finance_for_today(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    response = client.get("/api/analytics/revenue")
    assert response.status_code == 200
    assert response.json() == {
        "company_id": "c-1",
        "date": _today().isoformat(),
        "pos_revenue": 16.5,
        "other_income": 30.0,
        "expenses": 10.25,
    }


def test_top_products_this_week(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    products = client.get("/api/analytics/top-products").json()
    assert products == [
        {"item_id": "i-1", "name": "Cola", "quantity_sold": 5, "revenue": 11.5},
        {"item_id": "i-2", "name": "Chips", "quantity_sold": 5, "revenue": 5.0},
    ]
    assert len(client.get("/api/analytics/top-products", params={"limit": 1}).json()) == 1


def test_finance_trends_include_empty_days(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("STAFF", company_id="c-1"))

    trends = client.get("/api/analytics/finance-trends", params={"days": 3}).json()
    today = _today()
    assert [point["date"] for point in trends] == [
        (today - timedelta(days=offset)).isoformat() for offset in (2, 1, 0)
    ]
    assert [(point["income"], point["expense"]) for point in trends] == [(7.0, 0), (0, 0), (30.0, 10.25)]
    assert len(client.get("/api/analytics/finance-trends").json()) == 7


def test_analytics_follow_the_resolved_company(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("SUPERADMIN", company_id=None))

    assert client.get("/api/analytics/revenue").status_code == 409
    other = client.get("/api/analytics/revenue", params={"company_id": "c-2"}).json()
    assert other["company_id"] == "c-2"
    assert other["pos_revenue"] == 50.0
    assert client.get("/api/analytics/top-products", params={"company_id": "c-2"}).json() == []


def test_users_cannot_read_analytics(client, fake_db, login):
    _seed(fake_db)
    login(make_principal("USER", company_id="c-1"))

    assert client.get("/api/analytics/revenue").status_code == 403
