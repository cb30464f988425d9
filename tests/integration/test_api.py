"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

ALICE = {"X-User-ID": "alice"}
BOB = {"X-User-ID": "bob"}
CAROL = {"X-User-ID": "carol"}
MALLORY = {"X-User-ID": "mallory"}

FRIENDS = [
    {"participant_id": "alice", "display_name": "Alice"},
    {"participant_id": "bob", "display_name": "Bob"},
    {"participant_id": "carol", "display_name": "Carol"},
]


def create_transaction(client: TestClient, amount: str = "10.00", merchant: str = "Trattoria") -> str:
    response = client.post(
        "/v1/transactions",
        json={"merchant": merchant, "amount": amount, "date": "2026-10-01", "category": "Food & Drink"},
        headers=ALICE,
    )
    assert response.status_code == 201
    return response.json()["transaction_id"]


@pytest.fixture
def equal_split_id(client: TestClient) -> str:
    """alice splits $10.00 evenly with bob and carol"""
    transaction_id = create_transaction(client)
    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "equal", "participants": FRIENDS},
        headers=ALICE,
    )
    assert response.status_code == 201
    return response.json()["split_id"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_metrics_endpoint(client: TestClient, equal_split_id: str):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "split_created_total" in response.text
    assert "split_deleted_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_missing_caller_identity(client: TestClient):
    assert client.get("/v1/splits").status_code == 401
    assert client.post("/v1/transactions", json={"merchant": "Cafe", "amount": "5.00"}).status_code == 401


def test_transactions_crud(client: TestClient):
    transaction_id = create_transaction(client, amount="42.5", merchant="  Bistro ")

    response = client.get(f"/v1/transactions/{transaction_id}", headers=ALICE)
    assert response.status_code == 200
    data = response.json()
    assert data["merchant"] == "Bistro"
    assert Decimal(data["amount"]) == Decimal("42.50")
    assert data["date"] == "2026-10-01"

    listed = client.get("/v1/transactions", headers=ALICE).json()
    assert [t["transaction_id"] for t in listed] == [transaction_id]

    assert client.get(f"/v1/transactions/{transaction_id}", headers=BOB).status_code == 404
    assert client.get("/v1/transactions", headers=BOB).json() == []


def test_transaction_validation(client: TestClient):
    response = client.post("/v1/transactions", json={"merchant": "Cafe", "amount": "0"}, headers=ALICE)
    assert response.status_code == 422

    response = client.post("/v1/transactions", json={"merchant": "   ", "amount": "3.00"}, headers=ALICE)
    assert response.status_code == 422


def test_equal_split_has_no_rounding_drift(client: TestClient, equal_split_id: str):
    """$10.00 among 3 saves 3.34 + 3.33 + 3.33"""
    response = client.get(f"/v1/splits/{equal_split_id}", headers=ALICE)
    assert response.status_code == 200

    data = response.json()
    assert data["method"] == "equal"
    assert data["status"] == "pending"
    assert data["settled_count"] == 0
    assert data["total_participants"] == 3
    assert [Decimal(s["amount"]) for s in data["shares"]] == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]
    assert sum(Decimal(s["percentage"]) for s in data["shares"]) == Decimal("100")
    assert data["receipt_items"] == []


def test_percentage_split_must_total_hundred(client: TestClient):
    transaction_id = create_transaction(client)

    response = client.post(
        "/v1/splits",
        json={
            "transaction_id": transaction_id,
            "method": "percentage",
            "participants": FRIENDS,
            "percentages": {"alice": "33", "bob": "33", "carol": "33"},
        },
        headers=ALICE,
    )
    assert response.status_code == 422
    assert client.get("/v1/splits", headers=ALICE).json()["splits"] == []

    response = client.post(
        "/v1/splits",
        json={
            "transaction_id": transaction_id,
            "method": "percentage",
            "participants": FRIENDS,
            "percentages": {"alice": "33.33", "bob": "33.33", "carol": "33.34"},
        },
        headers=ALICE,
    )
    assert response.status_code == 201


def test_custom_split(client: TestClient):
    transaction_id = create_transaction(client, amount="50.00")
    body = {
        "transaction_id": transaction_id,
        "method": "custom",
        "participants": FRIENDS[:2],
        "amounts": {"alice": "30.00", "bob": "15.00"},
    }

    assert client.post("/v1/splits", json=body, headers=ALICE).status_code == 422

    body["amounts"]["bob"] = "20.00"
    response = client.post("/v1/splits", json=body, headers=ALICE)
    assert response.status_code == 201
    shares = response.json()["shares"]
    assert [Decimal(s["percentage"]) for s in shares] == [Decimal("60.00"), Decimal("40.00")]


def test_itemized_split(client: TestClient):
    transaction_id = create_transaction(client, amount="50.00")
    items = [
        {"item_id": "pizza", "name": "Pizza", "quantity": 1, "unit_price": "30.00", "assigned_to": ["alice", "bob", "carol"]},
        {"item_id": "wine", "name": "Wine", "quantity": 2, "unit_price": "10.00", "assigned_to": ["bob"]},
    ]

    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "itemized", "participants": FRIENDS, "items": items},
        headers=ALICE,
    )
    assert response.status_code == 201
    split_id = response.json()["split_id"]

    data = client.get(f"/v1/splits/{split_id}", headers=BOB).json()
    assert [Decimal(s["amount"]) for s in data["shares"]] == [Decimal("10.00"), Decimal("30.00"), Decimal("10.00")]
    assert data["shares"][1]["item_ids"] == ["pizza", "wine"]
    assert [i["item_id"] for i in data["receipt_items"]] == ["pizza", "wine"]


def test_itemized_split_with_unassigned_item_rejected(client: TestClient):
    transaction_id = create_transaction(client, amount="50.00")
    items = [
        {"name": "Pizza", "unit_price": "30.00", "assigned_to": ["alice"]},
        {"name": "Wine", "unit_price": "20.00"},
    ]

    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "itemized", "participants": FRIENDS, "items": items},
        headers=ALICE,
    )
    assert response.status_code == 422
    assert "Wine" in response.json()["detail"]


def test_split_requires_participants(client: TestClient):
    transaction_id = create_transaction(client)
    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "equal", "participants": []},
        headers=ALICE,
    )
    assert response.status_code == 422


def test_cannot_split_someone_elses_transaction(client: TestClient):
    transaction_id = create_transaction(client)
    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "equal", "participants": FRIENDS},
        headers=BOB,
    )
    assert response.status_code == 403

    response = client.post(
        "/v1/splits",
        json={"transaction_id": "00000000-0000-0000-0000-000000000000", "method": "equal", "participants": FRIENDS},
        headers=ALICE,
    )
    assert response.status_code == 404


def test_manual_split_creates_transaction_and_split(client: TestClient):
    response = client.post(
        "/v1/splits/manual",
        json={
            "transaction": {"merchant": "Corner Cafe", "amount": "9.00"},
            "method": "equal",
            "participants": FRIENDS,
        },
        headers=ALICE,
    )
    assert response.status_code == 201
    data = response.json()
    assert [Decimal(s["amount"]) for s in data["shares"]] == [Decimal("3.00")] * 3

    transaction = client.get(f"/v1/transactions/{data['transaction_id']}", headers=ALICE).json()
    assert transaction["merchant"] == "Corner Cafe"
    assert transaction["category"] == "Other"


def test_manual_split_rejected_saves_nothing(client: TestClient):
    response = client.post(
        "/v1/splits/manual",
        json={
            "transaction": {"merchant": "Corner Cafe", "amount": "9.00"},
            "method": "custom",
            "participants": FRIENDS,
            "amounts": {"alice": "1.00"},
        },
        headers=ALICE,
    )
    assert response.status_code == 422
    assert client.get("/v1/transactions", headers=ALICE).json() == []


def test_preview_allocation(client: TestClient):
    response = client.post(
        "/v1/allocations/preview",
        json={"total": "10.00", "method": "equal", "participants": FRIENDS},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert Decimal(data["allocated_total"]) == Decimal("10.00")
    assert data["reconciliation"] is None

    response = client.post(
        "/v1/allocations/preview",
        json={"total": "10.00", "method": "percentage", "participants": FRIENDS, "percentages": {"alice": "50"}},
    )
    assert response.status_code == 200
    assert response.json()["valid"] is False


def test_preview_itemized_reconciliation(client: TestClient):
    body = {
        "total": "50.00",
        "method": "itemized",
        "participants": FRIENDS[:2],
        "items": [
            {"name": "Burger", "unit_price": "20.00", "assigned_to": ["alice"]},
            {"name": "Salad", "unit_price": "25.00"},
        ],
    }

    data = client.post("/v1/allocations/preview", json=body).json()
    assert data["shares"] == []
    assert data["valid"] is False
    assert data["reconciliation"]["state"] == "under"
    assert Decimal(data["reconciliation"]["difference"]) == Decimal("5.00")
    assert data["reconciliation"]["all_items_assigned"] is False

    body["items"][1]["assigned_to"] = ["bob"]
    data = client.post("/v1/allocations/preview", json=body).json()
    assert data["valid"] is True
    assert data["reconciliation"]["all_items_assigned"] is True
    assert [Decimal(s["amount"]) for s in data["shares"]] == [Decimal("20.00"), Decimal("25.00")]


def test_preview_unknown_participant_input(client: TestClient):
    response = client.post(
        "/v1/allocations/preview",
        json={"total": "10.00", "method": "custom", "participants": FRIENDS[:1], "amounts": {"zed": "10.00"}},
    )
    assert response.status_code == 422


def test_split_visibility(client: TestClient, equal_split_id: str):
    assert client.get(f"/v1/splits/{equal_split_id}", headers=CAROL).status_code == 200
    assert client.get(f"/v1/splits/{equal_split_id}", headers=MALLORY).status_code == 403
    assert client.get("/v1/splits/00000000-0000-0000-0000-000000000000", headers=ALICE).status_code == 404


def test_self_toggle(client: TestClient, equal_split_id: str):
    url = f"/v1/splits/{equal_split_id}/participants/bob/toggle"

    response = client.post(url, headers=BOB)
    assert response.status_code == 200
    data = response.json()
    assert data["participant_status"] == "paid"
    assert data["split_status"] == "settled_by_me"

    # Owner's view still shows pending until everyone has paid
    detail = client.get(f"/v1/splits/{equal_split_id}", headers=ALICE).json()
    assert detail["status"] == "pending"
    assert detail["settled_count"] == 1

    response = client.post(url, headers=BOB)
    assert response.json()["participant_status"] == "pending"


def test_toggle_someone_elses_share_rejected(client: TestClient, equal_split_id: str):
    url = f"/v1/splits/{equal_split_id}/participants/bob/toggle"

    assert client.post(url, headers=CAROL).status_code == 403
    assert client.post(url, headers=ALICE).status_code == 403

    detail = client.get(f"/v1/splits/{equal_split_id}", headers=BOB).json()
    assert detail["settled_count"] == 0


def test_all_settled(client: TestClient, equal_split_id: str):
    for participant, headers in (("alice", ALICE), ("bob", BOB), ("carol", CAROL)):
        response = client.post(f"/v1/splits/{equal_split_id}/participants/{participant}/toggle", headers=headers)
        assert response.status_code == 200

    assert response.json()["split_status"] == "all_settled"
    listed = client.get("/v1/splits", headers=ALICE).json()["splits"]
    assert listed[0]["status"] == "all_settled"


def test_owner_correction(client: TestClient, equal_split_id: str):
    url = f"/v1/splits/{equal_split_id}/participants/carol/status"

    response = client.put(url, json={"status": "paid"}, headers=ALICE)
    assert response.status_code == 200
    assert response.json()["participant_status"] == "paid"

    assert client.put(url, json={"status": "pending"}, headers=BOB).status_code == 403
    assert client.put(url, json={"status": "settled"}, headers=ALICE).status_code == 422

    missing = f"/v1/splits/{equal_split_id}/participants/zed/status"
    assert client.put(missing, json={"status": "paid"}, headers=ALICE).status_code == 404


def test_participant_listings(client: TestClient, equal_split_id: str):
    participating = client.get("/v1/splits/participating", headers=CAROL).json()
    assert [s["split_id"] for s in participating["splits"]] == [equal_split_id]
    assert client.get("/v1/splits", headers=CAROL).json()["splits"] == []

    pending = client.get("/v1/splits/pending-payments", headers=CAROL).json()["payments"]
    assert [(p["split_id"], Decimal(p["amount"])) for p in pending] == [(equal_split_id, Decimal("3.33"))]

    client.post(f"/v1/splits/{equal_split_id}/participants/carol/toggle", headers=CAROL)
    assert client.get("/v1/splits/pending-payments", headers=CAROL).json()["payments"] == []


def test_delete_split(client: TestClient, equal_split_id: str):
    assert client.delete(f"/v1/splits/{equal_split_id}", headers=BOB).status_code == 403

    # Settled shares do not block deletion
    client.post(f"/v1/splits/{equal_split_id}/participants/bob/toggle", headers=BOB)
    assert client.delete(f"/v1/splits/{equal_split_id}", headers=ALICE).status_code == 204

    assert client.get(f"/v1/splits/{equal_split_id}", headers=ALICE).status_code == 404
    assert client.delete(f"/v1/splits/{equal_split_id}", headers=ALICE).status_code == 404
    assert client.post(f"/v1/splits/{equal_split_id}/participants/bob/toggle", headers=BOB).status_code == 404
    assert client.get("/v1/splits/pending-payments", headers=CAROL).json()["payments"] == []


@pytest.mark.parametrize(
    "method, inputs",
    [
        ("percentage", {"percentages": {"alice": "150", "bob": "-50"}}),
        ("custom", {"amounts": {"alice": "130.00", "bob": "-30.00"}}),
        ("custom", {"amounts": {"alice": "50.005", "bob": "49.995"}}),
    ],
)
def test_out_of_range_inputs_rejected(client: TestClient, method: str, inputs: dict):
    """Inputs that sum correctly but fall outside their bounds are never saved"""
    transaction_id = create_transaction(client, amount="100.00")

    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": method, "participants": FRIENDS[:2], **inputs},
        headers=ALICE,
    )
    assert response.status_code == 422
    assert client.get("/v1/splits", headers=ALICE).json()["splits"] == []

    response = client.post(
        "/v1/allocations/preview",
        json={"total": "100.00", "method": method, "participants": FRIENDS[:2], **inputs},
    )
    assert response.status_code == 422


def test_percentage_split_accepts_unrounded_inputs(client: TestClient):
    transaction_id = create_transaction(client, amount="90.00")

    response = client.post(
        "/v1/splits",
        json={
            "transaction_id": transaction_id,
            "method": "percentage",
            "participants": FRIENDS,
            "percentages": {"alice": "33.333", "bob": "33.333", "carol": "33.334"},
        },
        headers=ALICE,
    )
    assert response.status_code == 201
    assert [Decimal(s["amount"]) for s in response.json()["shares"]] == [Decimal("30.00")] * 3


def test_sub_cent_unit_price_rejected(client: TestClient):
    transaction_id = create_transaction(client, amount="10.01")
    items = [{"name": "Espresso", "unit_price": "10.005", "assigned_to": ["alice"]}]

    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "itemized", "participants": FRIENDS[:1], "items": items},
        headers=ALICE,
    )
    assert response.status_code == 422


def test_receipt_snapshot_returns_prices_as_entered(client: TestClient):
    transaction_id = create_transaction(client, amount="19.00")
    items = [
        {"item_id": "soup", "name": "Soup", "quantity": 3, "unit_price": "4.33", "assigned_to": ["alice"]},
        {"item_id": "bread", "name": "Bread", "unit_price": "7.00", "assigned_to": ["bob"]},
        {"item_id": "promo", "name": "Promo", "unit_price": "-0.99", "assigned_to": ["alice", "bob"]},
    ]
    response = client.post(
        "/v1/splits",
        json={"transaction_id": transaction_id, "method": "itemized", "participants": FRIENDS[:2], "items": items},
        headers=ALICE,
    )
    assert response.status_code == 201

    detail = client.get(f"/v1/splits/{response.json()['split_id']}", headers=ALICE).json()
    saved = {i["item_id"]: (i["quantity"], Decimal(i["unit_price"])) for i in detail["receipt_items"]}
    assert saved == {item["item_id"]: (item.get("quantity", 1), Decimal(item["unit_price"])) for item in items}


def test_transaction_splits_listing(client: TestClient, equal_split_id: str):
    transaction_id = client.get(f"/v1/splits/{equal_split_id}", headers=ALICE).json()["transaction_id"]

    response = client.get(f"/v1/transactions/{transaction_id}/splits", headers=ALICE)
    assert response.status_code == 200
    assert [s["split_id"] for s in response.json()["splits"]] == [equal_split_id]

    assert client.get(f"/v1/transactions/{transaction_id}/splits", headers=BOB).status_code == 403
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/v1/transactions/{missing}/splits", headers=ALICE).status_code == 404


def test_delete_transaction_removes_its_splits(client: TestClient, equal_split_id: str):
    transaction_id = client.get(f"/v1/splits/{equal_split_id}", headers=ALICE).json()["transaction_id"]

    assert client.delete(f"/v1/transactions/{transaction_id}", headers=BOB).status_code == 403
    assert client.get(f"/v1/splits/{equal_split_id}", headers=BOB).status_code == 200

    assert client.delete(f"/v1/transactions/{transaction_id}", headers=ALICE).status_code == 204

    assert client.get(f"/v1/transactions/{transaction_id}", headers=ALICE).status_code == 404
    assert client.get(f"/v1/splits/{equal_split_id}", headers=ALICE).status_code == 404
    assert client.get("/v1/splits/participating", headers=BOB).json()["splits"] == []
    assert client.get("/v1/splits/pending-payments", headers=CAROL).json()["payments"] == []
    assert client.delete(f"/v1/transactions/{transaction_id}", headers=ALICE).status_code == 404
