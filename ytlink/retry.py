from __future__ import annotations

from typing import Callable, Optional

import httpx
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

RETRY_WAIT = wait_exponential(multiplier=1, min=1, max=30)

_PERMANENT_TOKENS = (
    "404",
    "not found",
    "private video",
    "copyright",
    "video unavailable",
    "unsupported url",
    "sign in to confirm your age",
)

_THROTTLE_CODES = {"Throttling", "ThrottlingException", "SlowDown", "RequestTimeout", "RequestLimitExceeded"}


def is_retryable_message(message: Optional[str]) -> bool:
    if not message:
        return True
    lowered = message.lower()
    return not any(token in lowered for token in _PERMANENT_TOKENS)


def is_transient_http(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or 500 <= status < 600
    return isinstance(exc, httpx.TransportError)


def is_transient_storage(exc: BaseException) -> bool:
    if isinstance(exc, (EndpointConnectionError, ConnectionClosedError, ReadTimeoutError)):
        return True
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        return error.get("Code") in _THROTTLE_CODES or 500 <= int(status) < 600
    return False


def retrying(attempts: int, predicate: Callable[[BaseException], bool]) -> AsyncRetrying:
    """Bounded exponential-backoff retry for transient network failures."""
    return AsyncRetrying(
        retry=retry_if_exception(predicate),
        stop=stop_after_attempt(max(1, attempts)),
        wait=RETRY_WAIT,
        reraise=True,
    )
