"""End-to-end tests of the HTTP and WebSocket surface."""

import io
import time

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from softdeploy.app import create_app
from tests.conftest import api_suite


@pytest.fixture
def client(tmp_path, engine):
    app = create_app(tmp_path / "data", test_engine=engine)
    with TestClient(app) as test_client:
        yield test_client


def wait_until_finished(client, url, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(url).json()
        data = body.get("data", body)
        if data["status"] in ("completed", "failed", "stopped"):
            return data
        time.sleep(0.02)
    raise AssertionError(f"{url} did not finish in time")


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["activeExecutions"] == 0
    assert body["version"] == "1.0.0"
    assert body["timestamp"].endswith("Z")


def test_execute_test_suite_and_poll_status(client):
    response = client.post("/api/execute-test-suite", json={"testSuite": api_suite()})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Test suite execution started"

    status = wait_until_finished(client, f"/api/execution-status/{body['executionId']}")
    assert status["status"] == "completed"
    assert status["finalResult"]["passedSteps"] == 2

    run = client.get(f"/api/runs/{body['executionId']}").json()["data"]
    assert run["status"] == "completed"


@pytest.mark.parametrize(
    "payload, detail",
    [
        ({}, "Invalid test suite data: name and testType are required"),
        ({"testSuite": {"name": "x", "testType": "Unit"}}, "Invalid test type: Unit. Valid types are: API, Functional, Performance"),
        ({"testSuite": {"name": "x", "testType": "API", "baseUrl": "not a url"}}, "Invalid base URL: not a url"),
    ],
)
def test_execute_rejects_invalid_suites(client, payload, detail):
    response = client.post("/api/execute-test-suite", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_unknown_execution(client):
    assert client.get("/api/execution-status/exec_nope").status_code == 404
    response = client.post("/api/stop-execution/exec_nope")
    assert response.json() == {"success": True, "message": "Execution stopped"}


def test_websocket_streams_execution_events(client):
    with client.websocket_connect("/ws/executions") as websocket:
        assert websocket.receive_json() == {"type": "connected"}
        execution_id = client.post("/api/execute-test-suite", json={"testSuite": api_suite()}).json()["executionId"]

        types = []
        while True:
            event = websocket.receive_json()
            assert event["executionId"] == execution_id
            types.append(event["type"])
            if event["type"] == "execution_completed":
                break

    assert types[0] == "execution_started"
    assert types.count("step_completed") == 2


def test_suite_crud_and_execute(client):
    created = client.post(
        "/api/suites",
        json={"name": "Users", "projectId": "p1", "baseUrl": "https://api.example.test", "steps": api_suite()["steps"]},
    )
    assert created.status_code == 201
    suite_id = created.json()["data"]["id"]

    assert [suite["id"] for suite in client.get("/api/suites", params={"projectId": "p1"}).json()["data"]] == [suite_id]
    assert client.get("/api/suites", params={"projectId": "p2"}).json()["data"] == []

    updated = client.put(f"/api/suites/{suite_id}", json={"stopOnFailure": True}).json()["data"]
    assert updated["stopOnFailure"] is True

    execution = client.post(f"/api/suites/{suite_id}/execute", params={"userId": "u1"}).json()
    status = wait_until_finished(client, f"/api/execution-status/{execution['executionId']}")
    assert status["status"] == "completed"
    run = client.get(f"/api/runs/{execution['executionId']}").json()["data"]
    assert run["projectId"] == "p1"
    assert run["userId"] == "u1"
    assert run["testSuiteId"] == suite_id

    assert client.delete(f"/api/suites/{suite_id}").status_code == 200
    assert client.get(f"/api/suites/{suite_id}").status_code == 404
    assert client.delete(f"/api/suites/{suite_id}").status_code == 404


def test_create_suite_requires_fields(client):
    response = client.post("/api/suites", json={"name": "x"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: name, projectId, baseUrl"


def test_import_suite_from_excel(client):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Name", "Type", "Method", "URL", "Expected Status"])
    sheet.append(["List users", "api", "GET", "/users", 200])
    buffer = io.BytesIO()
    workbook.save(buffer)

    response = client.post(
        "/api/suites/import",
        params={"name": "Imported", "projectId": "p1", "baseUrl": "https://api.example.test"},
        files={"file": ("steps.xlsx", buffer.getvalue(), "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
    )
    assert response.status_code == 201
    suite = response.json()["data"]
    assert suite["steps"] == [
        {"name": "List users", "type": "api", "config": {"method": "GET", "url": "/users", "expectedStatus": 200}}
    ]


def test_runs_are_created_executed_and_listed(client):
    response = client.post("/api/runs", json={"testSuite": api_suite(), "projectId": "p1", "userId": "u1"})
    assert response.status_code == 201
    run_id = response.json()["data"]["id"]
    assert run_id.startswith("run_")

    status = wait_until_finished(client, f"/api/runs/{run_id}/status")
    assert status["status"] == "completed"
    assert status["progress"] == 100

    listed = client.get("/api/runs/project/p1").json()
    assert listed["pagination"]["total"] == 1
    assert listed["data"][0]["id"] == run_id
    assert client.get("/api/runs/user/u2").json()["pagination"]["total"] == 0

    logs = client.get(f"/api/runs/{run_id}/logs").json()["data"]
    assert logs[-1]["message"] == "Test execution completed: 2/2 steps passed"
    artifacts = client.get(f"/api/runs/{run_id}/artifacts").json()["data"]
    assert artifacts["artifacts"] == {"cypressReport": None, "screenshots": [], "videos": []}

    stopped = client.post(f"/api/runs/{run_id}/stop").json()["data"]
    assert stopped["status"] == "completed"


def test_create_run_validation_and_missing_runs(client):
    response = client.post("/api/runs", json={"testSuite": api_suite()})
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: testSuite, projectId, userId"

    response = client.post("/api/runs", json={"testSuite": api_suite(steps=[]), "projectId": "p", "userId": "u"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid test suite: must have name and at least one step"

    for path in ("/api/runs/run_x", "/api/runs/run_x/status", "/api/runs/run_x/logs", "/api/runs/run_x/artifacts"):
        assert client.get(path).status_code == 404
    assert client.post("/api/runs/run_x/stop").status_code == 404


def test_settings_round_trip_updates_engine(client, engine):
    settings = client.get("/api/settings").json()
    assert settings["server"]["host"] == "0.0.0.0"

    settings["execution"]["api_timeout"] = 12
    saved = client.post("/api/settings", json=settings).json()
    assert saved["execution"]["api_timeout"] == 12
    assert engine.settings.api_timeout == 12.0
