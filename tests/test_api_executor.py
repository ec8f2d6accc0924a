"""Tests for the API step executor."""

import base64
import time

import httpx
import pytest

from softdeploy.executors.api import execute_api_step
from tests.conftest import RecordingHandler, json_response

SUITE = {"name": "API", "testType": "API", "baseUrl": "https://api.example.test"}


def client_for(handler: RecordingHandler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_relative_url_uses_suite_base_url(fast_settings):
    handler = RecordingHandler(lambda request: json_response(200, {"id": 1}))
    async with client_for(handler) as client:
        result = await execute_api_step({"config": {"url": "/users/1"}}, SUITE, client, fast_settings)

    assert result["success"] is True
    assert result["status"] == 200
    assert result["responseData"] == {"id": 1}
    assert result["message"] == "API call successful"
    assert str(handler.requests[0].url) == "https://api.example.test/users/1"
    assert handler.requests[0].method == "GET"


@pytest.mark.asyncio
async def test_default_base_url_when_suite_has_none(fast_settings):
    handler = RecordingHandler()
    async with client_for(handler) as client:
        await execute_api_step({"url": "/posts"}, {"name": "x", "testType": "API"}, client, fast_settings)
    assert str(handler.requests[0].url) == "https://api.example.test/posts"


@pytest.mark.asyncio
async def test_flat_step_fields_params_headers_and_body(fast_settings):
    handler = RecordingHandler(lambda request: json_response(201, {"id": 7}))
    step = {
        "url": "https://other.test/items",
        "action": "post",
        "params": {"page": 2},
        "headers": {"X-Trace": "abc"},
        "body": {"title": "hello"},
        "expectedStatus": 201,
    }
    async with client_for(handler) as client:
        result = await execute_api_step(step, SUITE, client, fast_settings)

    request = handler.requests[0]
    assert result["success"] is True
    assert request.method == "POST"
    assert request.url.params["page"] == "2"
    assert request.headers["X-Trace"] == "abc"
    assert request.headers["Content-Type"] == "application/json"
    assert handler.last_json() == {"title": "hello"}


@pytest.mark.asyncio
async def test_body_is_not_sent_for_get(fast_settings):
    handler = RecordingHandler()
    async with client_for(handler) as client:
        await execute_api_step({"config": {"url": "/x", "body": {"a": 1}}}, SUITE, client, fast_settings)
    assert handler.requests[0].content == b""


@pytest.mark.asyncio
async def test_bearer_and_basic_auth(fast_settings):
    handler = RecordingHandler()
    async with client_for(handler) as client:
        await execute_api_step(
            {"config": {"url": "/a", "auth": {"type": "bearer", "token": "t0k"}}}, SUITE, client, fast_settings
        )
        await execute_api_step(
            {"config": {"url": "/b", "auth": {"type": "basic", "username": "ann", "password": "pw"}}},
            SUITE,
            client,
            fast_settings,
        )
    assert handler.requests[0].headers["Authorization"] == "Bearer t0k"
    expected = base64.b64encode(b"ann:pw").decode()
    assert handler.requests[1].headers["Authorization"] == f"Basic {expected}"


@pytest.mark.asyncio
async def test_status_mismatch_is_reported(fast_settings):
    handler = RecordingHandler(lambda request: json_response(200))
    step = {"config": {"url": "/x", "validation": {"statusCode": 201}}}
    async with client_for(handler) as client:
        result = await execute_api_step(step, SUITE, client, fast_settings)
    assert result["success"] is False
    assert result["validationResults"] == ["Status code mismatch: expected 201, got 200"]
    assert result["message"].startswith("API call failed: Status code mismatch")


@pytest.mark.asyncio
async def test_expected_error_status_passes(fast_settings):
    handler = RecordingHandler(lambda request: json_response(404, {"error": "missing"}))
    async with client_for(handler) as client:
        result = await execute_api_step(
            {"config": {"url": "/x"}, "expectedStatus": 404}, SUITE, client, fast_settings
        )
    assert result["success"] is True


@pytest.mark.asyncio
async def test_error_status_fails_without_expectation(fast_settings):
    handler = RecordingHandler(lambda request: json_response(500, {"error": "boom"}))
    async with client_for(handler) as client:
        result = await execute_api_step({"config": {"url": "/x"}}, SUITE, client, fast_settings)
    assert result["success"] is False
    assert "Request failed with status code 500" in result["validationResults"]


@pytest.mark.asyncio
async def test_response_data_mismatch(fast_settings):
    handler = RecordingHandler(lambda request: json_response(200, {"id": 1, "name": "Bob"}))
    step = {"config": {"url": "/x", "validation": {"responseData": {"id": 1, "name": "Ada"}}}}
    async with client_for(handler) as client:
        result = await execute_api_step(step, SUITE, client, fast_settings)
    assert result["validationResults"] == ["Response data mismatch for 'name': expected Ada, got Bob"]


@pytest.mark.asyncio
async def test_missing_url_fails_without_request(fast_settings):
    handler = RecordingHandler()
    async with client_for(handler) as client:
        result = await execute_api_step({"name": "no url"}, SUITE, client, fast_settings)
    assert result["success"] is False
    assert result["message"] == "API call failed: No URL provided for API step"
    assert handler.requests == []


@pytest.mark.asyncio
async def test_transport_error_becomes_failed_result(fast_settings):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with client_for(RecordingHandler(refuse)) as client:
        result = await execute_api_step({"config": {"url": "/x"}}, SUITE, client, fast_settings)
    assert result["success"] is False
    assert result["error"] == "connection refused"
    assert result["duration"] >= 0


@pytest.mark.asyncio
async def test_slow_response_fails_response_time_check(fast_settings):
    def slow(request):
        time.sleep(0.02)
        return json_response(200)

    step = {"config": {"url": "/x", "validation": {"responseTime": 1}}}
    async with client_for(RecordingHandler(slow)) as client:
        result = await execute_api_step(step, SUITE, client, fast_settings)
    assert result["success"] is False
    assert len(result["validationResults"]) == 1
    assert result["validationResults"][0].startswith("Response time too slow: ")
    assert result["validationResults"][0].endswith("ms > 1ms")


@pytest.mark.asyncio
async def test_url_with_control_character_becomes_failed_result(fast_settings):
    handler = RecordingHandler()
    async with client_for(handler) as client:
        result = await execute_api_step({"name": "pasted", "url": "/users\n"}, SUITE, client, fast_settings)
    assert result["success"] is False
    assert result["message"].startswith("API call failed: ")
    assert handler.requests == []
