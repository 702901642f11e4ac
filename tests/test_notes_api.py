import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from notepad.api import notes as note_store
from notepad.api.main import app


def _create(client, headers, **fields):
    payload = {"title": "Shop", "content": "milk,eggs"}
    payload.update(fields)
    response = client.post("/notes", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["note"]


def _list(client, headers, **params):
    response = client.get("/notes", params=params, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["notes"]


def test_end_to_end_note_lifecycle(client, signup):
    body = signup("Ann", "ann@x.com", "pw123456")
    assert body["token"]
    headers = {"Authorization": f"Bearer {body['token']}"}

    created = client.post("/notes", json={"title": "Shop", "content": "milk,eggs"}, headers=headers)
    assert created.status_code == 201
    note = created.json()["note"]

    listed = _list(client, headers, view="all")
    assert [n["id"] for n in listed] == [note["id"]]
    assert (listed[0]["pinned"], listed[0]["archived"], listed[0]["deleted"]) == (False, False, False)
    assert listed[0]["user_id"] == body["user"]["id"]

    other = _create(client, headers, title="Later", content="newer note")
    assert _list(client, headers, view="all")[0]["id"] == other["id"]

    pinned = client.put(f"/notes/{note['id']}", json={"pinned": True}, headers=headers)
    assert pinned.status_code == 200
    assert pinned.json()["note"]["pinned"] is True
    assert _list(client, headers, view="all")[0]["id"] == note["id"]

    deleted = client.delete(f"/notes/{note['id']}", headers=headers)
    assert deleted.status_code == 200
    assert "message" in deleted.json()

    for view in ("active", "archived", "all"):
        assert note["id"] not in [n["id"] for n in _list(client, headers, view=view)]
    assert [n["id"] for n in _list(client, headers, view="trash")] == [note["id"]]


def test_create_note_defaults(client, auth_headers):
    note = _create(client, auth_headers)
    assert note["title"] == "Shop"
    assert note["content"] == "milk,eggs"
    assert note["color"] == "default"
    assert note["pinned"] is False


def test_create_note_ignores_client_owner(client, auth_headers, other_headers):
    bob_id = client.get("/auth/me", headers=other_headers).json()["id"]
    note = _create(client, auth_headers, user_id=bob_id, archived=True, deleted=True)
    assert note["user_id"] != bob_id
    assert note["archived"] is False
    assert note["deleted"] is False


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "", "content": "x"},
        {"title": "x", "content": ""},
        {"title": "x"},
        {"content": "x"},
        {"title": "x", "content": "y", "pinned": "not-a-bool"},
    ],
)
def test_create_note_validation_is_400(client, auth_headers, payload):
    response = client.post("/notes", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert "message" in response.json()


def test_create_note_requires_auth(client):
    response = client.post("/notes", json={"title": "x", "content": "y"})
    assert response.status_code == 401


def test_default_view_is_active(client, auth_headers):
    active = _create(client, auth_headers)
    archived = _create(client, auth_headers, title="Old")
    client.put(f"/notes/{archived['id']}", json={"archived": True}, headers=auth_headers)

    assert [n["id"] for n in _list(client, auth_headers)] == [active["id"]]
    assert [n["id"] for n in _list(client, auth_headers, view="archived")] == [archived["id"]]


def test_unknown_view_is_400(client, auth_headers):
    response = client.get("/notes", params={"view": "bogus"}, headers=auth_headers)
    assert response.status_code == 400


def test_search(client, auth_headers):
    a = _create(client, auth_headers, title="A", content="bread", pinned=True)
    b = _create(client, auth_headers, title="B", content="Call the PLUMBER")

    assert [n["id"] for n in _list(client, auth_headers, search="plumber")] == [b["id"]]
    assert [n["id"] for n in _list(client, auth_headers, search="BREAD")] == [a["id"]]
    assert len(_list(client, auth_headers, search="")) == 2


def test_notes_are_private(client, auth_headers, other_headers):
    note = _create(client, auth_headers)

    for view in ("active", "archived", "trash", "all"):
        assert _list(client, other_headers, view=view) == []

    assert client.get(f"/notes/{note['id']}", headers=other_headers).status_code == 404
    assert client.put(f"/notes/{note['id']}", json={"title": "x"}, headers=other_headers).status_code == 404
    assert client.delete(f"/notes/{note['id']}", headers=other_headers).status_code == 404
    assert client.post(f"/notes/{note['id']}/restore", headers=other_headers).status_code == 404
    assert client.delete(f"/notes/{note['id']}/permanent", headers=other_headers).status_code == 404

    missing = client.get("/notes/99999", headers=other_headers)
    foreign = client.get(f"/notes/{note['id']}", headers=other_headers)
    assert missing.json() == foreign.json() == {"message": "Note not found"}

    mine = client.get(f"/notes/{note['id']}", headers=auth_headers)
    assert mine.status_code == 200
    assert mine.json()["note"]["deleted"] is False


def test_update_note(client, auth_headers):
    note = _create(client, auth_headers)
    response = client.put(
        f"/notes/{note['id']}",
        json={"title": "Groceries", "color": "green", "archived": True},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()["note"]
    assert updated["title"] == "Groceries"
    assert updated["content"] == "milk,eggs"
    assert updated["color"] == "green"
    assert updated["archived"] is True


@pytest.mark.parametrize("payload", [{"title": ""}, {"content": ""}, {"title": None}])
def test_update_note_validation_is_400(client, auth_headers, payload):
    note = _create(client, auth_headers)
    response = client.put(f"/notes/{note['id']}", json=payload, headers=auth_headers)
    assert response.status_code == 400


def test_update_missing_note_is_404(client, auth_headers):
    response = client.put("/notes/424242", json={"title": "x"}, headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Note not found"}


def test_restore_returns_note_to_archive(client, auth_headers):
    note = _create(client, auth_headers)
    client.put(f"/notes/{note['id']}", json={"archived": True}, headers=auth_headers)
    client.delete(f"/notes/{note['id']}", headers=auth_headers)

    response = client.post(f"/notes/{note['id']}/restore", headers=auth_headers)
    assert response.status_code == 200
    restored = response.json()["note"]
    assert restored["deleted"] is False
    assert restored["archived"] is True
    assert [n["id"] for n in _list(client, auth_headers, view="archived")] == [note["id"]]


def test_purge(client, auth_headers):
    note = _create(client, auth_headers)

    not_trashed = client.delete(f"/notes/{note['id']}/permanent", headers=auth_headers)
    assert not_trashed.status_code == 400

    client.delete(f"/notes/{note['id']}", headers=auth_headers)
    purged = client.delete(f"/notes/{note['id']}/permanent", headers=auth_headers)
    assert purged.status_code == 200
    assert "message" in purged.json()

    assert _list(client, auth_headers, view="trash") == []
    assert client.get(f"/notes/{note['id']}", headers=auth_headers).status_code == 404
    assert client.put(f"/notes/{note['id']}", json={"title": "x"}, headers=auth_headers).status_code == 404
    assert client.delete(f"/notes/{note['id']}", headers=auth_headers).status_code == 404
    assert client.post(f"/notes/{note['id']}/restore", headers=auth_headers).status_code == 404


@pytest.mark.parametrize("note_id", [0, -1])
def test_non_positive_note_id_is_404(client, auth_headers, note_id):
    assert client.get(f"/notes/{note_id}", headers=auth_headers).status_code == 404
    assert client.put(f"/notes/{note_id}", json={"title": "x"}, headers=auth_headers).status_code == 404
    response = client.delete(f"/notes/{note_id}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Note not found"}


def test_database_failure_is_generic_500(client, auth_headers, monkeypatch):
    def broken_list_notes(*args, **kwargs):
        raise OperationalError("SELECT * FROM notes", {}, Exception("disk I/O error at /var/db/notes.db"))

    monkeypatch.setattr(note_store, "list_notes", broken_list_notes)
    response = client.get("/notes", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
    assert "disk" not in response.text
    assert "SELECT" not in response.text


def test_unexpected_failure_is_generic_500(auth_headers, monkeypatch):
    def broken_create_note(*args, **kwargs):
        raise RuntimeError("secret internal detail")

    monkeypatch.setattr(note_store, "create_note", broken_create_note)
    client = TestClient(app, raise_server_exceptions=False)
    response = client.post("/notes", json={"title": "x", "content": "y"}, headers=auth_headers)
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"message": "Internal server error"}
    assert "secret" not in response.text
