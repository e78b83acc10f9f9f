"""
Integration tests for /customers routes.

Exercises the full stack (router -> services -> SQLite) through TestClient:
- create and duplicate rejection
- month listing by bucket and distinct months
- PATCH with history, actor header and automatic completion
- error responses (404, 400, 422)
"""
import uuid

import pytest

from wifidesk.models.customer_histories import CustomerHistory


def create(client, payload):
    response = client.post("/customers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
def test_create_customer_returns_pending_record(client, customer_payload):
    response = client.post("/customers", json=customer_payload(package="STANDARD", price=None))

    assert response.status_code == 201
    data = response.json()
    uuid.UUID(data["id"])
    assert data["paymentStatus"] == "PENDING"
    assert data["package"] == "STANDARD"
    assert data["price"] == 700
    assert data["month"] == "2024-01"
    assert "createdAt" in data and "updatedAt" in data


@pytest.mark.integration
def test_duplicate_phone_in_same_month_rejected(client, customer_payload):
    create(client, customer_payload())

    response = client.post("/customers", json=customer_payload(name="Someone Else"))

    assert response.status_code == 400
    assert response.json()["error"] == "Customer with this phone number already exists for this month"

    listed = client.get("/customers", params={"month": "2024-01"}).json()
    assert len(listed) == 1
    assert listed[0]["name"] == "Rahim Uddin"


@pytest.mark.integration
def test_same_phone_in_new_month_allowed(client, customer_payload):
    create(client, customer_payload(month="2024-01"))
    create(client, customer_payload(month="2024-02"))

    assert client.get("/customers/months").json() == ["2024-02", "2024-01"]


@pytest.mark.integration
@pytest.mark.parametrize(
    "overrides",
    [
        {"month": "2024-13"},
        {"month": "January"},
        {"days": 0},
        {"price": -1},
        {"package": "GOLD"},
        {"phone": "123"},
    ],
)
def test_create_rejects_invalid_payload(client, customer_payload, overrides):
    response = client.post("/customers", json=customer_payload(**overrides))

    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


@pytest.mark.integration
def test_list_requires_month(client):
    response = client.get("/customers")

    assert response.status_code == 422


@pytest.mark.integration
def test_list_splits_active_and_completed(client, customer_payload):
    pending = create(client, customer_payload(phone="01711000001"))
    done = create(client, customer_payload(phone="01711000002", days=30))
    client.patch(f"/customers/{done['id']}", json={"paymentStatus": "PAID"})

    active = client.get("/customers", params={"month": "2024-01", "status": "active"}).json()
    completed = client.get("/customers", params={"month": "2024-01", "status": "completed"}).json()

    assert [c["id"] for c in active] == [pending["id"]]
    assert [c["id"] for c in completed] == [done["id"]]
    assert completed[0]["paymentStatus"] == "COMPLETED"


@pytest.mark.integration
def test_list_defaults_to_active_and_rejects_unknown_bucket(client, customer_payload):
    create(client, customer_payload())

    assert len(client.get("/customers", params={"month": "2024-01"}).json()) == 1
    assert client.get("/customers", params={"month": "2024-01", "status": "archived"}).status_code == 422


@pytest.mark.integration
def test_months_empty_store(client):
    response = client.get("/customers/months")

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.integration
def test_get_customer(client, customer_payload):
    created = create(client, customer_payload())

    response = client.get(f"/customers/{created['id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == created["id"]
    assert data["phone"] == "01711000001"
    assert data["paymentStatus"] == "PENDING"


@pytest.mark.integration
def test_unknown_customer_returns_404(client):
    missing = uuid.uuid4()

    assert client.get(f"/customers/{missing}").status_code == 404
    assert client.patch(f"/customers/{missing}", json={"days": 12}).status_code == 404
    # Records are never deleted through the API
    assert client.delete(f"/customers/{missing}").status_code == 405


@pytest.mark.integration
def test_malformed_id_returns_422(client):
    assert client.get("/customers/not-a-uuid").status_code == 422


@pytest.mark.integration
def test_patch_records_history_with_actor(client, customer_payload):
    created = create(client, customer_payload())

    response = client.patch(
        f"/customers/{created['id']}",
        json={"days": 20, "paymentStatus": "PAID"},
        headers={"X-Updated-By": "desk-operator"},
    )

    assert response.status_code == 200
    assert response.json()["paymentStatus"] == "PAID"
    assert response.json()["days"] == 20

    history = client.get(f"/customers/{created['id']}/history").json()
    assert len(history) == 1
    assert history[0]["updatedBy"] == "desk-operator"
    assert history[0]["customerId"] == created["id"]
    assert history[0]["changes"] == [
        {"field": "days", "oldValue": 10, "newValue": 20},
        {"field": "paymentStatus", "oldValue": "PENDING", "newValue": "PAID"},
    ]


@pytest.mark.integration
def test_patch_without_changes_writes_no_history(client, customer_payload):
    created = create(client, customer_payload())

    response = client.patch(f"/customers/{created['id']}", json={"days": 10})

    assert response.status_code == 200
    assert client.get(f"/customers/{created['id']}/history").json() == []


@pytest.mark.integration
def test_patch_rejects_unknown_fields(client, customer_payload):
    created = create(client, customer_payload())

    response = client.patch(f"/customers/{created['id']}", json={"name": "Renamed"})

    assert response.status_code == 422


@pytest.mark.integration
def test_paid_at_thirty_days_returns_completed(client, customer_payload):
    created = create(client, customer_payload(days=10))

    response = client.patch(
        f"/customers/{created['id']}",
        json={"paymentStatus": "PAID", "days": 30},
    )

    assert response.status_code == 200
    assert response.json()["paymentStatus"] == "COMPLETED"

    history = client.get(f"/customers/{created['id']}/history").json()
    assert [h["updatedBy"] for h in history] == ["lifecycle-policy", "system"]
    assert history[0]["changes"] == [
        {"field": "paymentStatus", "oldValue": "PAID", "newValue": "COMPLETED"},
    ]


@pytest.mark.integration
def test_backwards_status_rejected(client, customer_payload):
    created = create(client, customer_payload())
    client.patch(f"/customers/{created['id']}", json={"paymentStatus": "PAID"})

    response = client.patch(f"/customers/{created['id']}", json={"paymentStatus": "PENDING"})

    assert response.status_code == 400
    assert response.json()["details"] == {"current": "PAID", "requested": "PENDING"}
    assert client.get(f"/customers/{created['id']}").json()["paymentStatus"] == "PAID"


@pytest.mark.integration
def test_explicit_completed_rejected(client, customer_payload):
    created = create(client, customer_payload())

    response = client.patch(f"/customers/{created['id']}", json={"paymentStatus": "COMPLETED"})

    assert response.status_code == 400


@pytest.mark.integration
def test_history_failure_does_not_fail_update(client, database, customer_payload):
    created = create(client, customer_payload())
    CustomerHistory.__table__.drop(database.engine)

    response = client.patch(f"/customers/{created['id']}", json={"days": 15})

    assert response.status_code == 200
    assert response.json()["days"] == 15
    assert client.get(f"/customers/{created['id']}").json()["days"] == 15



@pytest.mark.integration
def test_create_rejects_unknown_fields(client, customer_payload):
    response = client.post("/customers", json=customer_payload(paymentStatus="PAID"))

    assert response.status_code == 422
    assert client.get("/customers", params={"month": "2024-01"}).json() == []


@pytest.mark.integration
@pytest.mark.parametrize("field", ["days", "paymentStatus", "package", "price"])
def test_patch_rejects_explicit_null(client, customer_payload, field):
    created = create(client, customer_payload())

    response = client.patch(f"/customers/{created['id']}", json={field: None})

    assert response.status_code == 422
    assert client.get(f"/customers/{created['id']}").json()["days"] == 10


@pytest.mark.integration
def test_price_with_sub_cent_precision_rejected(client, customer_payload):
    created = create(client, customer_payload())

    assert client.patch(f"/customers/{created['id']}", json={"price": 500.555}).status_code == 422
    assert client.post("/customers", json=customer_payload(phone="01711000009", price=99.999)).status_code == 422
    assert client.get(f"/customers/{created['id']}/history").json() == []


@pytest.mark.integration
def test_repeated_price_patch_writes_one_entry(client, customer_payload):
    created = create(client, customer_payload())

    first = client.patch(f"/customers/{created['id']}", json={"price": 650.5})
    second = client.patch(f"/customers/{created['id']}", json={"price": 650.5})

    assert first.status_code == 200
    assert second.json()["price"] == 650.5
    history = client.get(f"/customers/{created['id']}/history").json()
    assert len(history) == 1
    assert history[0]["changes"] == [{"field": "price", "oldValue": 500.0, "newValue": 650.5}]
