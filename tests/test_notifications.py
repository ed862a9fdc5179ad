from bson import ObjectId

from conftest import bearer
from notifications import notify


def test_list_is_recipient_scoped_and_newest_first(client, db, register):
    alice = register()
    bob = register()
    alice_id = ObjectId(alice["user"]["id"])
    first = notify(db, alice_id, "other", title="Hello", message="first")
    second = notify(db, alice_id, "other", title="Hello", message="second")
    notify(db, ObjectId(bob["user"]["id"]), "other", title="Hello", message="not for alice")

    res = client.get("/api/notifications", headers=bearer(alice["token"]))
    assert res.status_code == 200
    notifications = res.json()["notifications"]
    assert [n["id"] for n in notifications] == [str(second), str(first)]
    assert all(n["read"] is False for n in notifications)


def test_list_includes_the_related_order(client, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"], medicine_name="Vitamin D3")

    notifications = client.get("/api/notifications", headers=bearer(admin["token"])).json()["notifications"]
    assert len(notifications) == 1
    assert notifications[0]["order"]["id"] == order["id"]
    assert notifications[0]["order"]["medicine"]["name"] == "Vitamin D3"


def test_mark_read_is_idempotent(client, db, register):
    user = register()
    notification_id = notify(db, ObjectId(user["user"]["id"]), "other", title="t", message="m")
    url = f"/api/notifications/{notification_id}/read"

    for _ in range(2):
        res = client.patch(url, headers=bearer(user["token"]))
        assert res.status_code == 200
        assert res.json()["notification"]["read"] is True
    assert db["notification"].find_one({"_id": notification_id})["read"] is True


def test_mark_read_of_someone_elses_notification_is_not_found(client, db, register):
    owner = register()
    other = register()
    notification_id = notify(db, ObjectId(owner["user"]["id"]), "other", title="t", message="m")

    res = client.patch(f"/api/notifications/{notification_id}/read", headers=bearer(other["token"]))
    assert res.status_code == 404
    assert res.json() == {"message": "لم يتم العثور على الإشعار"}
    assert db["notification"].find_one({"_id": notification_id})["read"] is False

    assert client.patch("/api/notifications/garbage/read", headers=bearer(other["token"])).status_code == 404
