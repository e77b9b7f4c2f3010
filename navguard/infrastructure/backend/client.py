"""
HTTP client for the privilege backend.

Retries 5xx responses and network failures with exponential backoff; 4xx
responses are returned to the caller immediately.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import structlog

from navguard.core.exceptions import BackendError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff."""
    max_retries: int = 3
    backoff_seconds: float = 0.5
    backoff_max_seconds: float = 8.0

    def should_retry(self, error: BackendError, attempt: int) -> bool:
        if attempt >= self.max_retries:
            return False
        # None means the request never produced a response
        return error.status is None or error.status >= 500

    def delay(self, attempt: int) -> float:
        return min(self.backoff_max_seconds, self.backoff_seconds * (2 ** attempt))


NO_RETRY = RetryPolicy(max_retries=0)


class BackendClient:
    """JSON-over-HTTP access to the privilege backend."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
    ) -> Any:
        return await self.request("GET", path, params=params, access_token=access_token)

    async def post(
        self,
        path: str,
        payload: Dict[str, Any],
        access_token: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = NO_RETRY,
    ) -> Any:
        """POST without retries unless a policy is passed explicitly."""
        return await self.request(
            "POST",
            path,
            json_body=payload,
            access_token=access_token,
            retry_policy=retry_policy,
        )

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to the backend base URL
            params: Query parameters
            json_body: JSON request body
            access_token: Bearer token for the Authorization header
            retry_policy: Overrides the client's default policy

        Returns:
            Decoded JSON response (None for an empty body)

        Raises:
            BackendError: on a 4xx response, or once retries are exhausted
        """
        policy = retry_policy or self.retry_policy
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        attempt = 0
        while True:
            try:
                return await self._send(method, path, params, json_body, headers)
            except BackendError as e:
                if not policy.should_retry(e, attempt):
                    logger.error(
                        "backend_request_failed",
                        method=method,
                        path=path,
                        status=e.status,
                        attempts=attempt + 1,
                        error=e.message,
                    )
                    raise
                delay = policy.delay(attempt)
                attempt += 1
                logger.warning(
                    "backend_request_retry",
                    method=method,
                    path=path,
                    status=e.status,
                    attempt=attempt,
                    delay_seconds=delay,
                )
                await self._sleep(delay)

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json_body: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> Any:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method,
                    self.url(path),
                    params=params,
                    json=json_body,
                    headers=headers,
                ) as response:
                    body = await response.text()
                    if response.status >= 400:
                        raise BackendError(
                            f"{method} {path} returned {response.status}: {body[:200]}",
                            status=response.status,
                            path=path,
                        )
                    if not body:
                        return None
                    try:
                        return json.loads(body)
                    except json.JSONDecodeError as e:
                        raise BackendError(
                            f"{method} {path} returned invalid JSON",
                            status=response.status,
                            path=path,
                        ) from e
        except aiohttp.ClientError as e:
            raise BackendError(f"{method} {path} failed: {e}", path=path) from e
        except asyncio.TimeoutError as e:
            raise BackendError(f"{method} {path} timed out", path=path) from e
