from __future__ import annotations

import pytest


def _rent(**overrides):
    body = {"name": "Alquiler", "amount": 300, "day": 5, "type": "expense"}
    body.update(overrides)
    return body


def test_create_and_list(client, other_client):
    res = client.post("/api/recurring", json=_rent())
    assert res.status_code == 201
    rec = res.json()
    assert rec["category"] == "General"
    assert rec["active"] is True
    assert rec["period"] is None

    client.post("/api/recurring", json=_rent(name="Sueldo", day=1, type="income", amount=900))

    names = [r["name"] for r in client.get("/api/recurring").json()]
    assert names == ["Sueldo", "Alquiler"]
    assert other_client.get("/api/recurring").json() == []


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"day": 0}, "day"),
        ({"day": 32}, "day"),
        ({"amount": -1}, "amount"),
        ({"period": "2026-13"}, "period"),
        ({"period": "Feb 2026"}, "period"),
        ({"name": ""}, "name"),
    ],
)
def test_validation(client, overrides, field):
    res = client.post("/api/recurring", json=_rent(**overrides))
    assert res.status_code == 400
    assert [e["field"] for e in res.json()["errors"]] == [field]


def test_update(client, other_client):
    rec = client.post("/api/recurring", json=_rent()).json()

    res = client.put(f"/api/recurring/{rec['id']}", json={"active": False, "period": "2026-02"})
    assert res.status_code == 200
    assert res.json()["active"] is False
    assert res.json()["period"] == "2026-02"
    assert res.json()["name"] == "Alquiler"

    theirs = other_client.put(f"/api/recurring/{rec['id']}", json={"active": True})
    assert theirs.status_code == 404
    assert theirs.json() == {"message": "Recurring transaction not found"}


def test_bulk_replace(client, other_client):
    client.post("/api/recurring", json=_rent(name="Viejo"))
    other_client.post("/api/recurring", json=_rent(name="Ajeno"))

    res = client.post(
        "/api/recurring/sync",
        json={"items": [_rent(name="Gimnasio", day=10), _rent(name="Internet", day=15, category="Servicios")]},
    )

    assert res.status_code == 200
    assert [r["name"] for r in res.json()] == ["Gimnasio", "Internet"]
    assert [r["name"] for r in client.get("/api/recurring").json()] == ["Gimnasio", "Internet"]
    assert [r["name"] for r in other_client.get("/api/recurring").json()] == ["Ajeno"]


def test_bulk_replace_validates_every_item(client):
    client.post("/api/recurring", json=_rent(name="Viejo"))

    res = client.post("/api/recurring/sync", json={"items": [_rent(), _rent(day=40)]})

    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "items.1.day"
    assert [r["name"] for r in client.get("/api/recurring").json()] == ["Viejo"]
