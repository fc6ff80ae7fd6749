import base64
import json
import time

from jose import jwt

from cueboard.auth.cookies import auth_cookie_name, extract_access_token, read_access_token
from cueboard.auth.jwt import decode_access_token
from cueboard.config import settings
from cueboard.observability import metrics_snapshot

COOKIE_NAME = "sb-localhost-auth-token"


def _token(sub: str = "u-1", **claims) -> str:
    payload = {
        "sub": sub,
        "aud": "authenticated",
        "email": f"{sub}@example.com",
        "exp": int(time.time()) + 3600,
        **claims,
    }
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm="HS256")


def _seed_profile(fake_db, **overrides):
    profile = {
        "id": "p-1",
        "user_id": "u-1",
        "email": "u-1@example.com",
        "role": "STAFF",
        "company_id": "c-1",
        "active": True,
    }
    profile.update(overrides)
    fake_db.tables.setdefault("profiles", []).append(profile)
    return profile


# --- Cookie parsing ---

def test_cookie_name_derived_from_project_ref():
    assert auth_cookie_name("https://abcd1234.supabase.co") == "sb-abcd1234-auth-token"
    assert auth_cookie_name() == COOKIE_NAME


def test_extract_plain_token():
    token = _token()
    assert extract_access_token(token) == token


def test_extract_from_json_array_and_object():
    token = _token()
    assert extract_access_token(json.dumps([token, "refresh", None])) == token
    assert extract_access_token(json.dumps({"access_token": token, "refresh_token": "r"})) == token
    assert extract_access_token(json.dumps({"currentSession": {"access_token": token}})) == token


def test_extract_from_base64_prefixed_session():
    token = _token()
    encoded = base64.urlsafe_b64encode(json.dumps({"access_token": token}).encode()).decode().rstrip("=")
    assert extract_access_token(f"base64-{encoded}") == token


def test_extract_rejects_garbage():
    assert extract_access_token("not-a-token") is None
    assert extract_access_token("[broken json") is None
    assert extract_access_token("base64-%%%") is None
    assert extract_access_token(json.dumps({"user": {}})) is None


def test_read_access_token_joins_chunks():
    token = _token()
    raw = json.dumps({"access_token": token})
    cookies = {f"{COOKIE_NAME}.0": raw[:20], f"{COOKIE_NAME}.1": raw[20:]}
    assert read_access_token(cookies) == token
    assert read_access_token({}) is None


def test_decode_access_token_rejects_bad_signature_and_audience():
    assert decode_access_token(_token())["sub"] == "u-1"
    assert decode_access_token(jwt.encode({"sub": "u-1", "aud": "authenticated"}, "wrong", algorithm="HS256")) is None
    assert decode_access_token(_token(aud="anon")) is None
    assert decode_access_token(_token(sub="")) is None


# --- Principal loading ---

def test_me_with_bearer_token_uses_profile_role(client, fake_db):
    _seed_profile(fake_db, role="seller")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token(role='SUPERADMIN')}"})
    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == "u-1"
    assert body["profile_id"] == "p-1"
    assert body["role"] == "STAFF"
    assert body["company_id"] == "c-1"
    assert "pos.write" in body["permissions"]


def test_me_with_session_cookie(client, fake_db):
    _seed_profile(fake_db)
    client.cookies.set(COOKIE_NAME, json.dumps([_token(), "refresh"]))

    response = client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["user_id"] == "u-1"


def test_missing_credentials_is_unauthenticated(client, fake_db):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_invalid_token_is_unauthenticated(client, fake_db):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer a.b.c"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_expired_token_is_unauthenticated(client, fake_db):
    _seed_profile(fake_db)
    expired = _token(exp=int(time.time()) - 60)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_unknown_or_inactive_profile_is_forbidden(client, fake_db):
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 403

    _seed_profile(fake_db, active=False)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Profile not found or inactive"


def test_assignment_to_inactive_company_is_dropped(client, fake_db):
    _seed_profile(fake_db, company_id="c-off")

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    assert me.status_code == 200
    assert me.json()["company_id"] is None

    scoped = client.get("/api/inventory/items", headers={"Authorization": f"Bearer {_token()}"})
    assert scoped.status_code == 403
    assert scoped.json()["detail"] == "Access denied"


def test_garbled_profile_role_is_treated_as_user(client, fake_db):
    _seed_profile(fake_db, role="overlord")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 200
    assert response.json()["role"] == "USER"


def test_company_store_failure_while_loading_principal_is_retryable_503(client, fake_db):
    _seed_profile(fake_db)
    fake_db.failing_tables.add("companies")

    response = client.get("/api/inventory/items", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["type"] == "tenant_store_unavailable"
    assert detail["retryable"] is True
    assert metrics_snapshot().get("tenant_scope.store_unavailable") == 1


def test_profile_store_failure_is_retryable_503(client, fake_db):
    fake_db.failing_tables.add("profiles")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 503
    assert response.json()["detail"]["type"] == "tenant_store_unavailable"
