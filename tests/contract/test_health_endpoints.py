from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_live_returns_alive(client: TestClient) -> None:
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_health_ready_checks_the_receipt_ledger(client: TestClient) -> None:
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "ledger": "receipts"}


def test_openapi_groups_routes_by_ledger_area(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert [tag["name"] for tag in schema["tags"]] == [
        "Receipts",
        "Claims",
        "Participants",
        "Settlement",
        "Users",
    ]
    assert "/v1/receipts/{code}/claims" in schema["paths"]
