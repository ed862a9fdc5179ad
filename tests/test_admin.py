from bson import ObjectId

from conftest import bearer
from schemas import User
from security import create_access_token


def set_status(client, admin, order, status):
    res = client.patch(f"/api/orders/{order['id']}/status", json={"status": status}, headers=bearer(admin["token"]))
    assert res.status_code == 200


def lonely_admin_token(db):
    admin_id = db["user"].insert_one(
        User(name="Lonely", email="lonely@pharma.ma", password_hash="x", role="admin").model_dump()
    ).inserted_id
    return create_access_token({"_id": admin_id, "role": "admin"})


def test_dashboard_statistics(client, register, place_order):
    admin = register("admin")
    customer = register()
    orders = [place_order(customer, admin["user"]["pharmacy"]) for _ in range(3)]
    set_status(client, admin, orders[0], "completed")
    set_status(client, admin, orders[1], "accepted")

    res = client.get("/api/admin/dashboard", headers=bearer(admin["token"]))
    assert res.status_code == 200
    body = res.json()
    assert body["hasPharmacy"] is True
    assert body["pharmacy"]["id"] == admin["user"]["pharmacy"]
    assert len(body["orders"]) == 3
    assert body["statistics"] == {
        "totalOrders": 3,
        "pendingOrders": 1,
        "completedOrders": 1,
        "unreadNotifications": 3,
    }


def test_dashboard_without_pharmacy(client, db):
    res = client.get("/api/admin/dashboard", headers=bearer(lonely_admin_token(db)))
    assert res.status_code == 404
    assert res.json() == {"message": "لم يتم العثور على صيدلية مرتبطة بحسابك", "hasPharmacy": False}


def test_my_pharmacy_read_and_update(client, register):
    admin = register("admin")
    res = client.get("/api/admin/pharmacy", headers=bearer(admin["token"]))
    assert res.status_code == 200
    assert res.json()["hasPharmacy"] is True
    assert res.json()["pharmacy"]["admin"]["name"] == admin["user"]["name"]

    res = client.put("/api/admin/pharmacy", json={"specialties": ["Dermatology"], "image": "💊", "name": ""},
                     headers=bearer(admin["token"]))
    assert res.status_code == 200
    pharmacy = res.json()["pharmacy"]
    assert pharmacy["specialties"] == ["Dermatology"]
    assert pharmacy["image"] == "💊"
    assert pharmacy["name"] == "Pharmacy 1"


def test_pharmacy_orders_pagination_and_filter(client, register, place_order):
    admin = register("admin")
    customer = register()
    orders = [place_order(customer, admin["user"]["pharmacy"], medicine_name=f"M{i}") for i in range(5)]
    set_status(client, admin, orders[0], "rejected")

    res = client.get("/api/admin/pharmacy/orders", params={"page": 2, "limit": 2}, headers=bearer(admin["token"]))
    assert res.status_code == 200
    body = res.json()
    assert [o["medicine"]["name"] for o in body["orders"]] == ["M2", "M1"]
    assert body["pagination"] == {
        "currentPage": 2,
        "totalPages": 3,
        "totalOrders": 5,
        "hasNext": True,
        "hasPrev": True,
    }

    res = client.get("/api/admin/pharmacy/orders", params={"status": "pending"}, headers=bearer(admin["token"]))
    assert res.json()["pagination"]["totalOrders"] == 4
    res = client.get("/api/admin/pharmacy/orders", params={"status": "all"}, headers=bearer(admin["token"]))
    assert res.json()["pagination"]["totalOrders"] == 5


def test_pharmacy_orders_without_pharmacy(client, db):
    res = client.get("/api/admin/pharmacy/orders", headers=bearer(lonely_admin_token(db)))
    assert res.status_code == 404


def test_legacy_request_route_redirects_to_order(client):
    order_id = str(ObjectId())
    res = client.get(f"/api/admin/requests/{order_id}", follow_redirects=False)
    assert res.status_code == 301
    assert res.headers["location"] == f"/api/orders/{order_id}"
