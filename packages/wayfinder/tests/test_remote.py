import asyncio
import json
import random

import httpx
import pytest

from payloads import completion, remote_path_payload
from wayfinder.errors import (
    AuthError,
    MalformedResponseError,
    RemoteApiError,
    RequestCancelledError,
    TransientServiceError,
    UnconfiguredError,
)
from wayfinder.graph import RouteRequest
from wayfinder.remote import RemotePlannerClient, RetryPolicy

REQUEST = RouteRequest("entrance", "east_wing")


class RecordingClient(RemotePlannerClient):
    """Records backoff delays instead of sleeping."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.delays = []

    async def _wait(self, delay, cancel):
        self.delays.append(delay)


def _client(handler, cls=RecordingClient, **retry):
    retry.setdefault("jitter_max_s", 0.0)
    return cls(
        api_key="test-key",
        base_url="https://planner.example.com/v1",
        model="test-model",
        retry=RetryPolicy(**retry),
        transport=httpx.MockTransport(handler),
    )


def test_plan_returns_parsed_object(corridor_snapshot):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return completion(remote_path_payload())

    async def run_test():
        return await _client(handler).plan(corridor_snapshot, REQUEST)

    payload = asyncio.run(run_test())
    assert payload["total_distance"] == 40.0
    assert seen["url"] == "https://planner.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["temperature"] == 0.0
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert "NAVIGATE FROM: Entrance (entrance)" in body["messages"][1]["content"]


def test_plan_accepts_fenced_json(corridor_snapshot):
    def handler(request: httpx.Request) -> httpx.Response:
        return completion("Here you go:\n```json\n" + json.dumps(remote_path_payload()) + "\n```")

    payload = asyncio.run(_client(handler).plan(corridor_snapshot, REQUEST))
    assert payload["success"] is True


@pytest.mark.parametrize("api_key", [None, "", "   ", "YOUR_OPENAI_API_KEY_HERE"])
def test_unconfigured_makes_no_call(corridor_snapshot, api_key):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return completion(remote_path_payload())

    client = RemotePlannerClient(api_key=api_key, transport=httpx.MockTransport(handler))
    assert client.configured is False
    with pytest.raises(UnconfiguredError):
        asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 0


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failure_is_not_retried(corridor_snapshot, status):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(status, json={"error": "bad key"})

    client = _client(handler)
    with pytest.raises(AuthError) as exc_info:
        asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 1
    assert client.delays == []
    assert exc_info.value.reason == "auth_error"


def test_server_errors_exhaust_retries(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(500, json={"error": "boom"})

    client = _client(handler, max_retries=3)
    with pytest.raises(TransientServiceError) as exc_info:
        asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 4
    assert client.delays == [2.0, 4.0, 8.0]
    assert exc_info.value.status_code == 500
    assert exc_info.value.attempts == 4


def test_rate_limit_then_success_honors_retry_after(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "7"})
        return completion(remote_path_payload())

    client = _client(handler)
    payload = asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert payload["success"] is True
    assert calls["count"] == 2
    assert client.delays == [7.0]


def test_rate_limit_without_header_backs_off_exponentially(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] <= 2:
            return httpx.Response(429)
        return completion(remote_path_payload())

    client = _client(handler)
    asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert client.delays == [2.0, 4.0]


def test_unparseable_retry_after_falls_back_to_exponential(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
        return completion(remote_path_payload())

    client = _client(handler)
    asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert client.delays == [2.0]


def test_retry_after_is_capped(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(429, headers={"Retry-After": "600"})
        return completion(remote_path_payload())

    client = _client(handler, max_retry_after_s=60.0)
    asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert client.delays == [60.0]


def test_backoff_jitter_is_bounded():
    client = RemotePlannerClient(api_key="k", retry=RetryPolicy(backoff_base_s=2.0, jitter_max_s=0.5))
    rng = random.Random(7)
    for attempt in range(3):
        delay = client.backoff_delay(attempt, None, rng)
        base = 2.0 * (2**attempt)
        assert base <= delay <= base + 0.5


def test_zero_retries_means_single_attempt(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503)

    with pytest.raises(TransientServiceError):
        asyncio.run(_client(handler, max_retries=0).plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 1


def test_unexpected_status_is_api_error(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(404, json={"error": "no such model"})

    with pytest.raises(RemoteApiError) as exc_info:
        asyncio.run(_client(handler).plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 1
    assert exc_info.value.code == "ApiError"
    assert exc_info.value.status_code == 404


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"choices": []}),
        completion("I am unable to compute a route."),
        completion("[1, 2, 3]"),
        completion("{not json}"),
    ],
)
def test_malformed_response_is_not_retried(corridor_snapshot, response):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return response

    with pytest.raises(MalformedResponseError):
        asyncio.run(_client(handler).plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 1


def test_timeout_is_retried(corridor_snapshot):
    calls = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        await asyncio.sleep(1.0)
        return completion(remote_path_payload())

    client = _client(handler, max_retries=1, timeout_s=0.05)
    with pytest.raises(TransientServiceError) as exc_info:
        asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert calls["count"] == 2
    assert exc_info.value.status_code is None


def test_network_error_is_retried(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return completion(remote_path_payload())

    client = _client(handler)
    payload = asyncio.run(client.plan(corridor_snapshot, REQUEST))
    assert payload["success"] is True
    assert client.delays == [2.0]


def test_cancel_set_before_call(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return completion(remote_path_payload())

    async def run_test():
        cancel = asyncio.Event()
        cancel.set()
        await _client(handler).plan(corridor_snapshot, REQUEST, cancel=cancel)

    with pytest.raises(RequestCancelledError):
        asyncio.run(run_test())
    assert calls["count"] == 0


def test_cancel_during_backoff(corridor_snapshot):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503)

    async def run_test():
        cancel = asyncio.Event()
        client = _client(handler, cls=RemotePlannerClient, backoff_base_s=30.0)
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, cancel.set)
        started = loop.time()
        with pytest.raises(RequestCancelledError):
            await client.plan(corridor_snapshot, REQUEST, cancel=cancel)
        return loop.time() - started

    elapsed = asyncio.run(run_test())
    assert calls["count"] == 1
    assert elapsed < 5.0


def test_cancel_during_attempt(corridor_snapshot):
    calls = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        await asyncio.sleep(10.0)
        return completion(remote_path_payload())

    async def run_test():
        cancel = asyncio.Event()
        client = _client(handler, cls=RemotePlannerClient, timeout_s=30.0)
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, cancel.set)
        started = loop.time()
        with pytest.raises(RequestCancelledError):
            await client.plan(corridor_snapshot, REQUEST, cancel=cancel)
        return loop.time() - started

    elapsed = asyncio.run(run_test())
    assert calls["count"] == 1
    assert elapsed < 5.0


def test_preset_cancel_wins_over_missing_key(corridor_snapshot):
    async def run_test():
        cancel = asyncio.Event()
        cancel.set()
        await RemotePlannerClient(api_key=None).plan(corridor_snapshot, REQUEST, cancel=cancel)

    with pytest.raises(RequestCancelledError):
        asyncio.run(run_test())


def test_plan_prefers_object_with_success_flag(corridor_snapshot):
    content = (
        'Graph read: {"nodes": 4}. Result:\n'
        + json.dumps(remote_path_payload())
        + '\nLegend: {"m": "meters"}'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return completion(content)

    payload = asyncio.run(_client(handler).plan(corridor_snapshot, REQUEST))
    assert payload["success"] is True
    assert payload["total_distance"] == 40.0


def test_plan_returns_first_object_without_success_flag(corridor_snapshot):
    def handler(request: httpx.Request) -> httpx.Response:
        return completion('{"route": ["entrance"]} and {"note": 1}')

    payload = asyncio.run(_client(handler).plan(corridor_snapshot, REQUEST))
    assert payload == {"route": ["entrance"]}
