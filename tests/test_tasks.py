import pytest
from bookledger.models.task import TASK_STATUSES

TASK = {
    "title": "Shelve returns",
    "description": "Put back everything from the drop box",
    "status": "pending",
    "priority": "high",
    "due_date": "",
}


def _create(client, headers, **overrides):
    return client.post("/v1/tasks", json={**TASK, **overrides}, headers=headers)


def test_user_creates_and_reads_own_task(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    resp = _create(client, headers)
    assert resp.status_code == 200
    task = resp.json()
    assert task["owner_id"] == user.id
    assert task["due_date"] is None

    assert client.get(f"/v1/tasks/{task['id']}", headers=headers).status_code == 200
    assert [t["id"] for t in client.get("/v1/tasks", headers=headers).json()] == [task["id"]]


def test_users_only_see_their_own_tasks(client, make_user, auth_headers):
    alice, bob = make_user(), make_user()
    task_id = _create(client, auth_headers(alice)).json()["id"]

    assert client.get("/v1/tasks", headers=auth_headers(bob)).json() == []
    assert client.get(f"/v1/tasks/{task_id}", headers=auth_headers(bob)).status_code == 404

    put = client.put(f"/v1/tasks/{task_id}", json=TASK, headers=auth_headers(bob))
    assert put.status_code == 404
    assert client.delete(f"/v1/tasks/{task_id}", headers=auth_headers(bob)).status_code == 404


def test_admin_and_guest_see_all_tasks(client, make_user, auth_headers):
    alice, bob = make_user(), make_user()
    admin, guest = make_user(role="admin"), make_user(role="guest")
    _create(client, auth_headers(alice))
    _create(client, auth_headers(bob))

    assert len(client.get("/v1/tasks", headers=auth_headers(admin)).json()) == 2
    assert len(client.get("/v1/tasks", headers=auth_headers(guest)).json()) == 2


def test_guest_cannot_write(client, make_user, auth_headers):
    guest = make_user(role="guest")
    resp = _create(client, auth_headers(guest))
    assert resp.status_code == 403


def test_update_and_delete(client, make_user, auth_headers):
    user, admin = make_user(), make_user(role="admin")
    task_id = _create(client, auth_headers(user)).json()["id"]

    updated = client.put(
        f"/v1/tasks/{task_id}",
        json={**TASK, "status": "completed", "due_date": "2030-05-01T12:00:00"},
        headers=auth_headers(user),
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "completed"
    assert updated.json()["due_date"].startswith("2030-05-01")

    # Admins may remove anyone's task.
    resp = client.delete(f"/v1/tasks/{task_id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert client.get(f"/v1/tasks/{task_id}", headers=auth_headers(user)).status_code == 404


def test_task_validation(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    assert _create(client, headers, title="   ").status_code == 422
    assert _create(client, headers, status="blocked").status_code == 422
    assert _create(client, headers, priority="urgent").status_code == 422


@pytest.mark.parametrize(
    "field,value",
    [("status", "archived"), ("priority", "urgent"), ("title", "   ")],
)
def test_task_input_is_validated(client, make_user, auth_headers, field, value):
    resp = client.post(
        "/v1/tasks", json={**TASK, field: value}, headers=auth_headers(make_user())
    )
    assert resp.status_code == 422


def test_every_task_status_is_accepted(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    for status in TASK_STATUSES:
        resp = client.post("/v1/tasks", json={**TASK, "status": status}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == status
