import pytest

from conftest import run

STATUSES = ["pending", "in-progress", "completed", "rejected"]


def test_create_request_starts_pending_and_notifies_creator(client, mongo, make_user, submit_request):
    user, headers = make_user()

    request = submit_request(headers)

    assert request["status"] == "pending"
    assert request["userId"] == user["id"]
    assert request["serviceType"] == "General Waste Collection"
    notifications = run(mongo.notifications.find({"user_id": user["id"]}).to_list(None))
    assert len(notifications) == 1
    assert notifications[0]["request_id"] == request["id"]
    assert notifications[0]["read"] is False
    assert notifications[0]["message"] == "New General Waste Collection service request submitted by Amaka"


@pytest.mark.parametrize("payload", [
    {"location": "Library", "description": "bin full"},
    {"serviceType": "Recycling", "description": "bin full"},
    {"serviceType": "Recycling", "location": "Library", "description": "  "},
])
def test_create_request_requires_fields(client, mongo, make_user, payload):
    _, headers = make_user()

    response = client.post("/requests", headers=headers, json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == "Service type, location, and description are required"
    assert run(mongo.requests.count_documents({})) == 0


def test_create_request_requires_authentication(client):
    response = client.post("/requests", json={"serviceType": "Recycling", "location": "Library", "description": "x"})

    assert response.status_code == 401


def test_users_only_list_their_own_requests(client, make_user, make_admin, submit_request):
    _, amaka = make_user("Amaka", "a@x.com")
    _, bola = make_user("Bola", "b@x.com")
    _, admin = make_admin()
    mine = submit_request(amaka)
    submit_request(bola)
    submit_request(bola)

    response = client.get("/requests", headers=amaka)
    assert response.status_code == 200
    assert [request["id"] for request in response.json()["requests"]] == [mine["id"]]

    response = client.get("/requests", headers=admin)
    assert len(response.json()["requests"]) == 3


def test_list_requests_newest_first(client, make_user, submit_request):
    _, headers = make_user()
    first = submit_request(headers, description="first")
    second = submit_request(headers, description="second")

    response = client.get("/requests", headers=headers)

    assert [request["id"] for request in response.json()["requests"]] == [second["id"], first["id"]]


def test_status_filter_and_invalid_filter_is_ignored(client, make_user, make_admin, submit_request):
    _, user = make_user()
    _, admin = make_admin()
    done = submit_request(user, description="done")
    submit_request(user, description="waiting")
    client.put(f"/requests/{done['id']}", headers=admin, json={"status": "completed"})

    response = client.get("/requests", headers=user, params={"status": "completed"})
    assert [request["id"] for request in response.json()["requests"]] == [done["id"]]

    response = client.get("/requests", headers=user, params={"status": "archived"})
    assert response.status_code == 200
    assert len(response.json()["requests"]) == 2


def test_admin_can_include_submitter_details(client, mongo, make_user, make_admin, submit_request):
    amaka, amaka_headers = make_user("Amaka", "a@x.com")
    bola, bola_headers = make_user("Bola", "b@x.com")
    _, admin = make_admin()
    submit_request(amaka_headers)
    orphan = submit_request(bola_headers)
    run(mongo.users.delete_one({"email": "b@x.com"}))

    response = client.get("/requests", headers=admin, params={"includeUserDetails": "true"})

    by_id = {request["id"]: request for request in response.json()["requests"]}
    assert by_id[orphan["id"]]["userName"] == "Unknown User"
    assert by_id[orphan["id"]]["userEmail"] == "No Email"
    others = [request for request in by_id.values() if request["id"] != orphan["id"]]
    assert others[0]["userName"] == "Amaka"
    assert others[0]["userEmail"] == "a@x.com"


def test_submitter_details_are_not_attached_for_regular_users(client, make_user, submit_request):
    _, headers = make_user()
    submit_request(headers)

    response = client.get("/requests", headers=headers, params={"includeUserDetails": "true"})

    assert "userName" not in response.json()["requests"][0]


def test_get_request_owner_admin_and_stranger(client, make_user, make_admin, submit_request):
    _, owner = make_user("Amaka", "a@x.com")
    _, stranger = make_user("Bola", "b@x.com")
    _, admin = make_admin()
    request = submit_request(owner)

    assert client.get(f"/requests/{request['id']}", headers=owner).status_code == 200
    assert client.get(f"/requests/{request['id']}", headers=admin).status_code == 200

    response = client.get(f"/requests/{request['id']}", headers=stranger)
    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Not authorized to view this request"}


def test_get_request_invalid_and_missing_ids(client, make_user):
    _, headers = make_user()

    assert client.get("/requests/not-an-id", headers=headers).status_code == 400
    assert client.get("/requests/665f1c2e9b1e8a3d4c5b6a70", headers=headers).status_code == 404


@pytest.mark.parametrize("new_status", STATUSES)
def test_admin_status_transition_notifies_owner(client, mongo, make_user, make_admin, submit_request, new_status):
    owner, owner_headers = make_user()
    _, admin = make_admin()
    request = submit_request(owner_headers)

    response = client.put(f"/requests/{request['id']}", headers=admin, json={"status": new_status})

    assert response.status_code == 200
    assert response.json()["request"]["status"] == new_status
    stored = run(mongo.requests.find_one({}))
    assert stored["status"] == new_status
    assert stored["updated_at"] >= stored["created_at"]
    owner_notifications = run(mongo.notifications.find({"user_id": owner["id"]}).to_list(None))
    assert len(owner_notifications) == 2
    assert any(n["message"] == f"Your service request has been updated to: {new_status}" for n in owner_notifications)


def test_any_status_can_follow_any_other(client, make_user, make_admin, submit_request):
    _, owner = make_user()
    _, admin = make_admin()
    request = submit_request(owner)

    for new_status in ["completed", "pending", "rejected", "rejected"]:
        response = client.put(f"/requests/{request['id']}", headers=admin, json={"status": new_status})
        assert response.json()["request"]["status"] == new_status


@pytest.mark.parametrize("bad_status", ["done", "", None, 3])
def test_invalid_status_leaves_request_unchanged(client, mongo, make_user, make_admin, submit_request, bad_status):
    _, owner = make_user()
    _, admin = make_admin()
    request = submit_request(owner)

    response = client.put(f"/requests/{request['id']}", headers=admin, json={"status": bad_status})

    assert response.status_code == 400
    assert response.json()["message"] == "Valid status is required"
    assert run(mongo.requests.find_one({}))["status"] == "pending"
    assert run(mongo.notifications.count_documents({})) == 1


def test_status_update_requires_admin(client, make_user, submit_request):
    _, owner = make_user()
    request = submit_request(owner)

    response = client.put(f"/requests/{request['id']}", headers=owner, json={"status": "completed"})

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Admin access required"}


def test_status_update_missing_request(client, make_admin):
    _, admin = make_admin()

    response = client.put("/requests/665f1c2e9b1e8a3d4c5b6a70", headers=admin, json={"status": "completed"})

    assert response.status_code == 404
    assert response.json()["message"] == "Request not found"


def test_status_update_survives_notification_failure(client, mongo, monkeypatch, make_user, make_admin, submit_request):
    from services import notifications

    _, owner = make_user()
    _, admin = make_admin()
    request = submit_request(owner)

    async def broken_notify(*args, **kwargs):
        raise RuntimeError("notifications collection unavailable")

    monkeypatch.setattr(notifications, "notify", broken_notify)

    response = client.put(f"/requests/{request['id']}", headers=admin, json={"status": "in-progress"})

    assert response.status_code == 200
    assert run(mongo.requests.find_one({}))["status"] == "in-progress"
    assert run(mongo.notifications.count_documents({})) == 1


def test_delete_request_cascades_to_its_notifications(client, mongo, make_user, make_admin, submit_request):
    owner, owner_headers = make_user()
    _, admin = make_admin()
    doomed = submit_request(owner_headers, description="doomed")
    kept = submit_request(owner_headers, description="kept")
    client.put(f"/requests/{doomed['id']}", headers=admin, json={"status": "rejected"})

    response = client.delete(f"/requests/{doomed['id']}", headers=admin)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Request deleted successfully"}
    assert run(mongo.requests.count_documents({})) == 1
    assert run(mongo.notifications.count_documents({"request_id": doomed["id"]})) == 0
    assert run(mongo.notifications.count_documents({"request_id": kept["id"]})) == 1


def test_delete_missing_request_is_not_found(client, make_admin):
    _, admin = make_admin()

    response = client.delete("/requests/665f1c2e9b1e8a3d4c5b6a70", headers=admin)

    assert response.status_code == 404


def test_delete_request_requires_admin(client, make_user, submit_request):
    _, owner = make_user()
    request = submit_request(owner)

    assert client.delete(f"/requests/{request['id']}", headers=owner).status_code == 403


def test_summary_counts_by_status(client, make_user, make_admin, submit_request):
    _, owner = make_user()
    _, admin = make_admin()
    requests = [submit_request(owner, description=str(i)) for i in range(6)]
    client.put(f"/requests/{requests[0]['id']}", headers=admin, json={"status": "completed"})
    client.put(f"/requests/{requests[1]['id']}", headers=admin, json={"status": "in-progress"})

    response = client.get("/requests/summary", headers=owner)

    body = response.json()
    assert body["summary"] == {"pending": 4, "inProgress": 1, "completed": 1, "rejected": 0}
    assert len(body["recent"]) == 5
    assert body["recent"][0]["id"] == requests[-1]["id"]
