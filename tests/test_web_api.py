from __future__ import annotations

from collections.abc import Iterator

import allure
import pytest
from fastapi.testclient import TestClient

from mission_control import __version__
from mission_control.config import MetricsSettings, Settings, StoreSettings
from mission_control.web import create_app

pytestmark = [
    allure.epic("Dashboard"),
    allure.feature("JSON API"),
]


@pytest.fixture()
def client(database_url: str) -> Iterator[TestClient]:
    settings = Settings(
        store=StoreSettings(database_url=database_url),
        metrics=MetricsSettings(mode="mock"),
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def test_create_task_defaults_to_pending(client: TestClient) -> None:
    response = client.post("/api/tasks", json={"title": "Test"})

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Test"
    assert body["status"] == "pending"
    assert body["priority"] == "medium"
    assert body["assigned_to"] is None
    assert [task["id"] for task in client.get("/api/tasks").json()] == [body["id"]]


def test_tasks_are_listed_newest_first(client: TestClient) -> None:
    for title in ("one", "two", "three"):
        client.post("/api/tasks", json={"title": title})

    assert [task["title"] for task in client.get("/api/tasks").json()] == ["three", "two", "one"]


def test_patch_updates_status(client: TestClient) -> None:
    task = client.post("/api/tasks", json={"title": "Test"}).json()

    response = client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"})

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert client.get("/api/tasks").json()[0]["status"] == "completed"


def test_patch_only_writes_fields_present_in_body(client: TestClient) -> None:
    task = client.post(
        "/api/tasks",
        json={"title": "Keep", "description": "original", "priority": "high"},
    ).json()

    updated = client.patch(f"/api/tasks/{task['id']}", json={"progress_percentage": 30}).json()

    assert updated["description"] == "original"
    assert updated["priority"] == "high"
    assert updated["progress_percentage"] == 30


def test_patch_unknown_task_is_not_found(client: TestClient) -> None:
    response = client.patch("/api/tasks/999", json={"status": "completed"})

    assert response.status_code == 404
    assert response.json() == {"error": "Task not found: 999"}


def test_patch_rejects_null_for_required_fields(client: TestClient) -> None:
    task = client.post("/api/tasks", json={"title": "Keep", "description": "notes"}).json()

    null_title = client.patch(f"/api/tasks/{task['id']}", json={"title": None})
    null_status = client.patch(f"/api/tasks/{task['id']}", json={"status": None})

    for response in (null_title, null_status):
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid payload: ")
    assert "title" in null_title.json()["error"]
    assert "status" in null_status.json()["error"]
    stored = client.get("/api/tasks").json()[0]
    assert stored["title"] == "Keep"
    assert stored["status"] == "pending"


def test_patch_accepts_null_for_optional_fields(client: TestClient) -> None:
    task = client.post(
        "/api/tasks",
        json={"title": "Clear", "description": "notes", "assigned_to": "operator"},
    ).json()

    response = client.patch(
        f"/api/tasks/{task['id']}",
        json={"description": None, "assigned_to": None},
    )

    assert response.status_code == 200
    assert response.json()["description"] is None
    assert response.json()["assigned_to"] is None


def test_delete_reports_removed_rows(client: TestClient) -> None:
    keep = client.post("/api/tasks", json={"title": "keep"}).json()
    drop = client.post("/api/tasks", json={"title": "drop"}).json()

    assert client.delete(f"/api/tasks/{drop['id']}").json() == {"success": True, "deleted": 1}
    assert client.delete(f"/api/tasks/{drop['id']}").json() == {"success": True, "deleted": 0}
    assert [task["id"] for task in client.get("/api/tasks").json()] == [keep["id"]]


def test_cost_is_created_and_listed(client: TestClient) -> None:
    response = client.post("/api/costs", json={"amount": 10.5, "description": "x"})

    assert response.status_code == 200
    costs = client.get("/api/costs").json()
    assert len(costs) == 1
    assert costs[0]["amount"] == 10.5
    assert costs[0]["description"] == "x"


def test_negative_cost_is_a_store_error(client: TestClient) -> None:
    response = client.post("/api/costs", json={"amount": -1, "description": "refund"})

    assert response.status_code == 500
    assert response.json() == {"error": "Error creating cost"}
    assert client.get("/api/costs").json() == []


def test_missing_required_fields_are_invalid_payloads(client: TestClient) -> None:
    no_title = client.post("/api/tasks", json={"description": "no title"})
    no_description = client.post("/api/costs", json={"amount": 1})
    bad_status = client.post("/api/tasks", json={"title": "t", "status": "archived"})

    for response in (no_title, no_description, bad_status):
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid payload: ")
    assert "title" in no_title.json()["error"]
    assert "description" in no_description.json()["error"]


def test_logs_default_to_info_and_list_newest_first(client: TestClient) -> None:
    created = client.post("/api/logs", json={"message": "first"}).json()
    client.post(
        "/api/logs",
        json={"message": "second", "level": "warning", "source": "monitoring", "metadata": {"k": 1}},
    )

    assert created["level"] == "info"
    logs = client.get("/api/logs").json()
    assert [log["message"] for log in logs] == ["second", "first"]
    assert logs[0]["metadata"] == {"k": 1}
    assert [log["message"] for log in client.get("/api/logs", params={"limit": 1}).json()] == [
        "second",
    ]


def test_empty_log_metadata_round_trips(client: TestClient) -> None:
    created = client.post("/api/logs", json={"message": "bare", "metadata": {}}).json()

    assert created["metadata"] == {}
    assert client.get("/api/logs").json()[0]["metadata"] == {}


def test_metrics_snapshot_shape(client: TestClient) -> None:
    body = client.get("/api/metrics").json()

    assert set(body) == {"cpu", "memory", "disk", "timestamp"}
    assert set(body["cpu"]) == {"usage", "count"}
    assert set(body["memory"]) == {"used", "total", "percentage"}
    assert set(body["disk"]) == {"used", "total", "percentage"}


def test_health_and_dashboard_page(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "version": __version__}

    page = client.get("/")
    assert page.status_code == 200
    assert "Mission Control" in page.text
    assert client.get("/static/dashboard.js").status_code == 200


def test_unconfigured_store_answers_500() -> None:
    with TestClient(create_app(Settings(metrics=MetricsSettings(mode="mock")))) as client:
        for response in (
            client.get("/api/tasks"),
            client.post("/api/tasks", json={"title": "t"}),
            client.get("/api/costs"),
            client.get("/api/logs"),
        ):
            assert response.status_code == 500
            assert response.json() == {"error": "Database not configured"}
        assert client.get("/api/metrics").status_code == 200
