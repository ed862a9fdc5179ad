def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


def test_database_check(client):
    assert client.get("/test").json()["database"] == "connected"


def test_unknown_route_uses_message_body(client):
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    assert "message" in res.json()


def test_malformed_body_is_a_400(client):
    res = client.post("/api/auth/register", content="{not json", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json() == {"message": "الرجاء ملء جميع الحقول المطلوبة"}
