import itertools
import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    # mongomock clients share state, so every test gets its own database name.
    database = mongomock.MongoClient()[f"pharmacy_test_{uuid.uuid4().hex}"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register an account through the API and return the response body."""
    counter = itertools.count(1)

    def _register(role="user", **overrides):
        n = next(counter)
        body = {
            "email": f"{role}{n}@pharma.ma",
            "password": "secret1",
            "name": f"{role.title()} {n}",
            "phone": f"06000000{n:02d}",
        }
        if role == "admin":
            body.update(role="admin", pharmacyName=f"Pharmacy {n}", address=f"{n} Boulevard Zerktouni")
        body.update(overrides)
        res = client.post("/api/auth/register", json=body)
        assert res.status_code == 201, res.text
        return res.json()

    return _register


@pytest.fixture
def place_order(client):
    def _place(customer, pharmacy_id, medicine_name="Paracetamol 500mg", **extra):
        body = {
            "pharmacyId": pharmacy_id,
            "medicineName": medicine_name,
            "address": "12 Rue Atlas",
            "phone": "0611111111",
            **extra,
        }
        res = client.post("/api/orders", json=body, headers=bearer(customer["token"]))
        assert res.status_code == 201, res.text
        return res.json()["order"]

    return _place
