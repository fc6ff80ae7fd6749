from conftest import make_principal

from cueboard.config import settings


def test_available_companies_for_superadmin_lists_active_only(client, fake_db, login):
    login(make_principal("SUPERADMIN", company_id=None))

    response = client.get("/api/companies/available")
    assert response.status_code == 200
    assert [company["id"] for company in response.json()] == ["c-1", "c-2"]


def test_available_companies_for_user_is_own_company(client, fake_db, login):
    login(make_principal("STAFF", company_id="c-2"))
    assert [c["id"] for c in client.get("/api/companies/available").json()] == ["c-2"]

    login(make_principal("USER", company_id=None))
    assert client.get("/api/companies/available").json() == []


def test_current_company(client, fake_db, login):
    login(make_principal("USER", company_id="c-1"))

    response = client.get("/api/companies/current")
    assert response.status_code == 200
    assert response.json()["name"] == "Downtown Billiards"


def test_select_company_sets_cookie_without_touching_profile(client, fake_db, login):
    fake_db.tables["profiles"] = [{"id": "p-sa", "user_id": "sa", "role": "SUPERADMIN", "company_id": None}]
    login(make_principal("SUPERADMIN", company_id=None, user_id="sa"))

    response = client.post("/api/companies/c-2/select")
    assert response.status_code == 200
    assert response.json()["company"]["id"] == "c-2"
    assert f"{settings.company_cookie_name}=c-2" in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()
    assert fake_db.tables["profiles"][0]["company_id"] is None

    client.cookies.set(settings.company_cookie_name, "c-2")
    assert client.get("/api/companies/current").json()["id"] == "c-2"


def test_select_inactive_or_missing_company_fails(client, fake_db, login):
    login(make_principal("SUPERADMIN", company_id=None))

    assert client.post("/api/companies/c-off/select").status_code == 403
    assert client.post("/api/companies/c-404/select").status_code == 404


def test_select_company_requires_superadmin(client, fake_db, login):
    login(make_principal("ADMIN", company_id="c-1"))

    response = client.post("/api/companies/c-1/select")
    assert response.status_code == 403
    assert response.json()["detail"] == "Superadmin role required"


def test_clear_selection(client, fake_db, login):
    login(make_principal("SUPERADMIN", company_id=None))

    response = client.delete("/api/companies/selection")
    assert response.status_code == 204
    assert settings.company_cookie_name in response.headers["set-cookie"]


def test_join_request_flow(client, fake_db, login):
    login(make_principal("GUEST", company_id=None, user_id="u-new"))

    created = client.post("/api/companies/join-request", json={"company_id": "c-1", "message": "Hi"})
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["user_id"] == "u-new"

    duplicate = client.post("/api/companies/join-request", json={"company_id": "c-1"})
    assert duplicate.status_code == 409


def test_join_request_rejects_assigned_or_unknown(client, fake_db, login):
    login(make_principal("USER", company_id="c-1"))
    assert client.post("/api/companies/join-request", json={"company_id": "c-2"}).status_code == 400

    login(make_principal("GUEST", company_id=None))
    assert client.post("/api/companies/join-request", json={"company_id": "c-off"}).status_code == 404
    assert client.post("/api/companies/join-request", json={"company_id": "c-404"}).status_code == 404
