"""Outbound HTTP calls to the upstream providers."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

import requests

from config import settings
from relay.errors import (
    HOP_DOWNLOAD,
    HOP_PROVIDER,
    TransportTimeoutError,
    TransportUnreachableError,
    UpstreamHTTPError,
    UpstreamMalformedResponseError,
)
from relay.models import ProviderRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _error_details(response: requests.Response) -> str:
    """Best-effort diagnostic text from an upstream error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    text = (response.text or "").strip()
    if text:
        return text[:200]
    return f"Request failed with status code {response.status_code}"


def _send(method: Callable[..., requests.Response], url: str, hop: str, timeout: float, **kwargs: Any) -> requests.Response:
    try:
        response = method(url, timeout=timeout, **kwargs)
    except requests.Timeout as exc:
        logger.error("[%s] request timeout after %ss", hop, timeout)
        raise TransportTimeoutError(timeout, hop=hop) from exc
    except requests.ConnectionError as exc:
        logger.error("[%s] connection failed - upstream may be unreachable: %s", hop, exc)
        raise TransportUnreachableError(hop=hop, reason=str(exc)) from exc

    if not response.ok:
        logger.error(
            "[%s] upstream error: status=%s reason=%s body=%s",
            hop,
            response.status_code,
            response.reason,
            (response.text or "")[:500],
        )
        raise UpstreamHTTPError(response.status_code, _error_details(response), hop=hop)
    return response


def post_provider(request: ProviderRequest) -> Any:
    """POST the upload to the provider and return its decoded JSON envelope."""
    response = _send(
        requests.post,
        request.url,
        HOP_PROVIDER,
        request.timeout,
        headers=request.headers,
        files=request.files,
    )
    try:
        return response.json()
    except ValueError as exc:
        logger.error("[%s] response is not JSON", HOP_PROVIDER)
        raise UpstreamMalformedResponseError() from exc


def fetch_image(url: str, timeout: float) -> bytes:
    """Download the bytes behind a result URL (second hop)."""
    response = _send(requests.get, url, HOP_DOWNLOAD, timeout)
    return response.content


_EXECUTOR: Optional[ThreadPoolExecutor] = None


def get_executor() -> ThreadPoolExecutor:
    """Thread pool reserved for upstream calls, sized by ``RELAY_WORKERS``."""
    global _EXECUTOR
    if _EXECUTOR is None:
        _EXECUTOR = ThreadPoolExecutor(max_workers=settings.relay_workers, thread_name_prefix="relay")
    return _EXECUTOR


def shutdown_executor() -> None:
    global _EXECUTOR
    if _EXECUTOR is not None:
        _EXECUTOR.shutdown(wait=False)
        _EXECUTOR = None


def _mark_started(started: asyncio.Future) -> None:
    if not started.done():
        started.set_result(None)


async def run_with_deadline(
    func: Callable[[], T],
    timeout: float,
    hop: str,
    executor: Optional[Executor] = None,
) -> T:
    """
    Run a blocking call on the relay pool and give up ``timeout`` seconds after it starts.

    Time spent waiting for a free worker does not count against the deadline.
    Once the deadline passes the awaiting request is released; the worker
    thread finishes on its own (bounded by the requests timeout) and its
    result is dropped.
    """
    loop = asyncio.get_running_loop()
    started = loop.create_future()

    def call() -> T:
        loop.call_soon_threadsafe(_mark_started, started)
        return func()

    future = loop.run_in_executor(executor or get_executor(), call)
    await started
    try:
        return await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error("[%s] deadline of %ss exceeded", hop, timeout)
        raise TransportTimeoutError(timeout, hop=hop) from exc
