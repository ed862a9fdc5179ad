from bson import ObjectId

from conftest import bearer
from schemas import User
from security import create_access_token


def test_create_order_defaults_and_notifies_pharmacy_admin(client, db, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"], notes="after 6pm")

    assert order["status"] == "pending"
    assert order["medicine"] == {"name": "Paracetamol 500mg", "quantity": 1}
    assert order["notes"] == "after 6pm"
    assert order["user"]["id"] == customer["user"]["id"]
    assert order["pharmacy"]["id"] == admin["user"]["pharmacy"]
    assert "passwordHash" not in order["user"]

    notification = db["notification"].find_one({"recipient": ObjectId(admin["user"]["id"])})
    assert notification["type"] == "new_order"
    assert notification["title"] == "طلب جديد"
    assert notification["read"] is False
    assert str(notification["order"]) == order["id"]
    assert customer["user"]["name"] in notification["message"]


def test_create_order_for_unknown_pharmacy(client, register):
    customer = register()
    res = client.post("/api/orders", json={
        "pharmacyId": str(ObjectId()), "medicineName": "Aspirin", "address": "Addr", "phone": "0600",
    }, headers=bearer(customer["token"]))
    assert res.status_code == 404
    assert res.json() == {"message": "لم يتم العثور على الصيدلية"}


def test_create_order_requires_fields(client, db, register):
    admin = register("admin")
    customer = register()
    res = client.post("/api/orders", json={
        "pharmacyId": admin["user"]["pharmacy"], "medicineName": "Aspirin",
    }, headers=bearer(customer["token"]))
    assert res.status_code == 400
    assert res.json() == {"message": "بيانات الطلب غير كاملة"}
    assert db["order"].count_documents({}) == 0


def test_owner_admin_updates_status_and_customer_is_notified(client, db, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"])

    res = client.patch(f"/api/orders/{order['id']}/status", json={"status": "accepted"},
                       headers=bearer(admin["token"]))
    assert res.status_code == 200
    assert res.json()["order"]["status"] == "accepted"
    assert db["order"].find_one({"_id": ObjectId(order["id"])})["status"] == "accepted"

    notification = db["notification"].find_one({"recipient": ObjectId(customer["user"]["id"])})
    assert notification["type"] == "order_status_change"
    assert notification["message"] == "تم تحديث حالة طلبك إلى: accepted"


def test_status_can_move_between_any_values(client, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"])
    for status in ("completed", "pending", "rejected", "accepted"):
        res = client.patch(f"/api/orders/{order['id']}/status", json={"status": status},
                           headers=bearer(admin["token"]))
        assert res.status_code == 200
        assert res.json()["order"]["status"] == status


def test_only_the_pharmacy_owner_may_change_status(client, db, register, place_order):
    owner = register("admin")
    other_admin = register("admin")
    customer = register()
    order = place_order(customer, owner["user"]["pharmacy"])

    for intruder in (other_admin, customer):
        res = client.patch(f"/api/orders/{order['id']}/status", json={"status": "accepted"},
                           headers=bearer(intruder["token"]))
        assert res.status_code == 403
        assert res.json() == {"message": "غير مصرح لك بتحديث هذا الطلب"}

    assert db["order"].find_one({"_id": ObjectId(order["id"])})["status"] == "pending"
    assert db["notification"].count_documents({"type": "order_status_change"}) == 0


def test_invalid_status_is_rejected(client, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"])
    res = client.patch(f"/api/orders/{order['id']}/status", json={"status": "shipped"},
                       headers=bearer(admin["token"]))
    assert res.status_code == 400
    assert res.json() == {"message": "حالة الطلب غير صالحة"}


def test_status_update_on_missing_order(client, register):
    admin = register("admin")
    res = client.patch(f"/api/orders/{ObjectId()}/status", json={"status": "accepted"},
                       headers=bearer(admin["token"]))
    assert res.status_code == 404


def test_get_order_visibility(client, register, place_order):
    owner_admin = register("admin")
    unrelated_admin = register("admin")
    customer = register()
    stranger = register()
    order = place_order(customer, owner_admin["user"]["pharmacy"])
    url = f"/api/orders/{order['id']}"

    assert client.get(url, headers=bearer(customer["token"])).status_code == 200
    assert client.get(url, headers=bearer(owner_admin["token"])).status_code == 200
    # read access is granted to every admin, not only the pharmacy's own
    assert client.get(url, headers=bearer(unrelated_admin["token"])).status_code == 200

    res = client.get(url, headers=bearer(stranger["token"]))
    assert res.status_code == 403
    assert res.json() == {"message": "غير مصرح لك بعرض هذا الطلب"}


def test_get_missing_order(client, register):
    customer = register()
    assert client.get(f"/api/orders/{ObjectId()}", headers=bearer(customer["token"])).status_code == 404
    assert client.get("/api/orders/not-an-id", headers=bearer(customer["token"])).status_code == 404


def test_list_orders_by_role_newest_first(client, register, place_order):
    admin = register("admin")
    other_admin = register("admin")
    alice = register()
    bob = register()

    first = place_order(alice, admin["user"]["pharmacy"], medicine_name="First")
    second = place_order(bob, admin["user"]["pharmacy"], medicine_name="Second")
    third = place_order(alice, admin["user"]["pharmacy"], medicine_name="Third")
    place_order(bob, other_admin["user"]["pharmacy"], medicine_name="Elsewhere")

    admin_orders = client.get("/api/orders", headers=bearer(admin["token"])).json()["orders"]
    assert [o["id"] for o in admin_orders] == [third["id"], second["id"], first["id"]]

    alice_orders = client.get("/api/orders", headers=bearer(alice["token"])).json()["orders"]
    assert [o["id"] for o in alice_orders] == [third["id"], first["id"]]


def test_admin_without_pharmacy_sees_no_orders(client, db):
    admin_id = db["user"].insert_one(
        User(name="Lonely", email="lonely@pharma.ma", password_hash="x", role="admin").model_dump()
    ).inserted_id
    token = create_access_token({"_id": admin_id, "role": "admin"})
    res = client.get("/api/orders", headers=bearer(token))
    assert res.status_code == 200
    assert res.json() == {"orders": []}


def test_null_quantity_defaults_to_one(client, register, place_order):
    admin = register("admin")
    customer = register()
    order = place_order(customer, admin["user"]["pharmacy"], quantity=None)
    assert order["medicine"]["quantity"] == 1
    order = place_order(customer, admin["user"]["pharmacy"], quantity=3)
    assert order["medicine"]["quantity"] == 3
