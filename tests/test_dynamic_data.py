import json

import pytest

from app.core.exceptions import NotFoundException
from app.models.dynamic_data import DynamicData
from app.services import dynamic_data_service


# ── service ───────────────────────────────────────────────────────────────────

def test_save_serialises_non_string_data(db_session) -> None:
    record = dynamic_data_service.save_dynamic_data(db_session, "u1", "prefs", {"theme": "dark"})

    assert json.loads(record.data) == {"theme": "dark"}
    assert record.updated_by == "system"
    assert record.updated_time is not None


def test_save_keeps_strings_verbatim(db_session) -> None:
    raw = '{ "b": 1,  "a": [1, 2] }'
    record = dynamic_data_service.save_dynamic_data(db_session, "u1", "prefs", raw)
    assert record.data == raw


def test_update_missing_record(db_session) -> None:
    with pytest.raises(NotFoundException):
        dynamic_data_service.update_dynamic_data(db_session, "u1", "missing", "{}")


def test_upsert_creates_then_updates(db_session) -> None:
    record, created = dynamic_data_service.upsert_dynamic_data(db_session, "u1", "k", "[1]", "a@example.com")
    assert created is True

    record, created = dynamic_data_service.upsert_dynamic_data(db_session, "u1", "k", "[2]", "b@example.com")
    assert created is False
    assert record.data == "[2]"
    assert record.updated_by == "b@example.com"
    assert db_session.query(DynamicData).count() == 1


def test_keys_are_scoped_per_user(db_session) -> None:
    dynamic_data_service.save_dynamic_data(db_session, "u1", "k", "1")
    dynamic_data_service.save_dynamic_data(db_session, "u2", "k", "2")

    assert dynamic_data_service.get_dynamic_data(db_session, "u1", "k").data == "1"
    assert dynamic_data_service.get_dynamic_data(db_session, "u2", "k").data == "2"
    assert dynamic_data_service.get_dynamic_data(db_session, "u3", "k") is None


# ── routes ────────────────────────────────────────────────────────────────────

def _post(client, headers, path: str, content: str):
    return client.post(
        path,
        content=content,
        headers={**headers, "Content-Type": "application/json"},
    )


def test_create_then_update_then_fetch(client, user, auth_headers) -> None:
    first = _post(client, auth_headers, "/api/dynamic/update/tenant-1/settings", '{"a": 1}')
    assert first.status_code == 201
    assert first.text == "created"

    second = _post(client, auth_headers, "/api/dynamic/update/tenant-1/settings", '{"a": 2, "b": [true, null]}')
    assert second.status_code == 200
    assert second.text == "updated"

    fetched = client.get("/api/dynamic/fetch/tenant-1/settings", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.headers["content-type"].startswith("application/json")
    assert fetched.text == '{"a": 2, "b": [true, null]}'


def test_updated_by_is_caller_email(client, db_session, user, auth_headers) -> None:
    _post(client, auth_headers, "/api/dynamic/update/tenant-1/k", "[]")

    record = db_session.query(DynamicData).one()
    assert record.updated_by == user.email


def test_scalar_json_accepted(client, auth_headers) -> None:
    response = _post(client, auth_headers, "/api/dynamic/update/tenant-1/count", "42")
    assert response.status_code == 201
    assert client.get("/api/dynamic/fetch/tenant-1/count", headers=auth_headers).json() == 42


@pytest.mark.parametrize("body", ["", "   "])
def test_empty_body_rejected(client, auth_headers, body) -> None:
    response = _post(client, auth_headers, "/api/dynamic/update/tenant-1/k", body)

    assert response.status_code == 400
    assert response.text == "Data cannot be null or empty"


def test_invalid_json_rejected(client, db_session, auth_headers) -> None:
    response = _post(client, auth_headers, "/api/dynamic/update/tenant-1/k", "{not json")

    assert response.status_code == 400
    assert response.text.startswith("JSON parse error:")
    assert db_session.query(DynamicData).count() == 0


def test_fetch_missing_key(client, auth_headers) -> None:
    response = client.get("/api/dynamic/fetch/tenant-1/nope", headers=auth_headers)
    assert response.status_code == 404


def test_dynamic_routes_require_auth(client) -> None:
    assert client.get("/api/dynamic/fetch/tenant-1/k").status_code == 401
    assert client.post("/api/dynamic/update/tenant-1/k", content="{}").status_code == 401
