"""RemotePlannerClient: OpenAI-compatible chat completion with bounded retries.

Only 429/5xx/timeout/network errors are retried. 401/403 are never retried.
Other statuses and unparseable bodies stop the attempt chain at once.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, TypeVar

import httpx

from wayfinder.errors import (
    AuthError,
    MalformedResponseError,
    RemoteApiError,
    RequestCancelledError,
    TransientServiceError,
    UnconfiguredError,
)
from wayfinder.graph import GraphSnapshot, RouteRequest
from wayfinder.prompts import build_messages

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
PLACEHOLDER_API_KEYS = ("YOUR_OPENAI_API_KEY_HERE",)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff shape.

    A numeric Retry-After on 429 replaces the exponential delay but is capped
    at ``max_retry_after_s``, so a server asking for 10 minutes is retried
    after the cap instead. Jitter is added on top in both cases.
    """

    max_retries: int = 3
    timeout_s: float = 15.0
    backoff_base_s: float = 2.0
    jitter_max_s: float = 0.5
    max_retry_after_s: float = 60.0

    @property
    def max_attempts(self) -> int:
        return max(0, self.max_retries) + 1


class _RetryableStatus(Exception):
    def __init__(self, status_code: int, retry_after: Optional[float]) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.retry_after = retry_after


class RemotePlannerClient:
    """Chat-completion client for the remote planner; see RetryPolicy for the Retry-After cap."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        retry: Optional[RetryPolicy] = None,
        temperature: float = 0.0,
        max_tokens: int = 800,
        jitter_seed: Optional[int] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._retry = retry or RetryPolicy()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._jitter_seed = jitter_seed
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key) and self._api_key not in PLACEHOLDER_API_KEYS

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    async def plan(
        self,
        snapshot: GraphSnapshot,
        request: RouteRequest,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> Dict[str, Any]:
        """Return the planner's JSON object (not yet schema-validated)."""
        raise_if_cancelled(cancel)
        if not self.configured:
            raise UnconfiguredError("No remote planner API key configured")
        payload = {
            "model": self._model,
            "messages": build_messages(snapshot, request),
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        response = await self._post_with_retry(payload, cancel)
        return _parse_completion(response)

    async def _post_with_retry(
        self, payload: Dict[str, Any], cancel: Optional[asyncio.Event]
    ) -> httpx.Response:
        url = f"{self._base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self._api_key}"}
        rng = random.Random(self._jitter_seed)
        last_status: Optional[int] = None
        last_error = "no attempt made"

        for attempt in range(self._retry.max_attempts):
            raise_if_cancelled(cancel)
            t0 = time.monotonic()
            retry_after: Optional[float] = None
            try:
                response = await self._race(
                    self._send_once(url, payload, headers), cancel
                )
                latency_ms = int((time.monotonic() - t0) * 1000)
                if response.status_code in (401, 403):
                    logger.warning(
                        "remote planner auth failure error_type=AuthError status=%s latency_ms=%s",
                        response.status_code,
                        latency_ms,
                    )
                    raise AuthError(f"Unauthorized - remote planner rejected the API key (HTTP {response.status_code})")
                if response.status_code == 429 or response.status_code >= 500:
                    if response.status_code == 429:
                        retry_after = _parse_retry_after(response.headers.get("retry-after"))
                    raise _RetryableStatus(response.status_code, retry_after)
                if response.status_code != 200:
                    logger.warning(
                        "remote planner api error error_type=ApiError status=%s latency_ms=%s",
                        response.status_code,
                        latency_ms,
                    )
                    raise RemoteApiError(
                        f"API Error: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                logger.info(
                    "remote planner success attempt=%s latency_ms=%s", attempt + 1, latency_ms
                )
                return response
            except _RetryableStatus as exc:
                last_status = exc.status_code
                last_error = str(exc)
            except (httpx.TimeoutException, asyncio.TimeoutError):
                last_status = None
                last_error = f"timed out after {self._retry.timeout_s}s"
            except httpx.RequestError as exc:
                last_status = None
                last_error = f"network error: {str(exc)[:200]}"

            if attempt + 1 >= self._retry.max_attempts:
                break
            delay = self.backoff_delay(attempt, retry_after, rng)
            logger.warning(
                "remote planner attempt failed error=%r attempt=%s delay_s=%.2f",
                last_error,
                attempt + 1,
                delay,
            )
            await self._wait(delay, cancel)

        logger.warning(
            "remote planner retries exhausted error_type=TransientServiceError attempts=%s last_error=%r",
            self._retry.max_attempts,
            last_error,
        )
        raise TransientServiceError(
            f"Remote planner failed after {self._retry.max_attempts} attempts: {last_error}",
            status_code=last_status,
            attempts=self._retry.max_attempts,
        )

    async def _send_once(
        self, url: str, payload: Dict[str, Any], headers: Dict[str, str]
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._retry.timeout_s, transport=self._transport
        ) as client:
            return await asyncio.wait_for(
                client.post(url, json=payload, headers=headers),
                timeout=self._retry.timeout_s,
            )

    def backoff_delay(
        self, attempt: int, retry_after: Optional[float], rng: random.Random
    ) -> float:
        """Retry-After (capped) when given, else ``base * 2**attempt``; plus jitter."""
        if retry_after is not None:
            delay = min(retry_after, self._retry.max_retry_after_s)
        else:
            delay = self._retry.backoff_base_s * (2**attempt)
        if self._retry.jitter_max_s > 0:
            delay += rng.uniform(0, self._retry.jitter_max_s)
        return max(0.0, delay)

    async def _wait(self, delay: float, cancel: Optional[asyncio.Event]) -> None:
        if cancel is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise RequestCancelledError("Route request cancelled during retry backoff")

    async def _race(self, coro: Awaitable[T], cancel: Optional[asyncio.Event]) -> T:
        """Await ``coro`` unless ``cancel`` fires first; the attempt is then abandoned."""
        if cancel is None:
            return await coro
        attempt_task = asyncio.ensure_future(coro)
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait(
                {attempt_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (attempt_task, cancel_task):
                if not task.done():
                    task.cancel()
        if cancel.is_set():
            await asyncio.gather(attempt_task, return_exceptions=True)
            raise RequestCancelledError("Route request cancelled during remote attempt")
        return attempt_task.result()


def raise_if_cancelled(cancel: Optional[asyncio.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError("Route request cancelled")


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if seconds < 0 or seconds != seconds:
        return None
    return seconds


def _parse_completion(response: httpx.Response) -> Dict[str, Any]:
    try:
        data: Any = response.json()
    except ValueError as exc:
        raise MalformedResponseError("Remote planner response was not valid JSON") from exc
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError("Remote planner response missing expected content") from exc
    if not isinstance(content, str):
        raise MalformedResponseError("Remote planner content is not text")
    parsed = _find_route_object(content)
    if parsed is None:
        raise MalformedResponseError("Remote planner content contains no parseable JSON object")
    return parsed


def _find_route_object(text: str) -> Dict[str, Any] | None:
    """First JSON object carrying "success", searched in code fences, then the raw text.

    Falls back to the first object of any shape so schema validation can
    report what is missing.
    """
    chunks = [m.group(1) for m in re.finditer(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)]
    chunks.append(text)
    decoder = json.JSONDecoder()
    first: Dict[str, Any] | None = None
    for chunk in chunks:
        start = chunk.find("{")
        while start != -1:
            try:
                obj, _ = decoder.raw_decode(chunk, start)
            except json.JSONDecodeError:
                obj = None
            if isinstance(obj, dict):
                if "success" in obj:
                    return obj
                if first is None:
                    first = obj
            start = chunk.find("{", start + 1)
    return first
