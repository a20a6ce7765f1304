"""Base adapter interface for opportunity sources."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import SourceUnavailable
from ..models import FetchContext, RawRecord, SourceFields, SourceResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def is_transient(exc: BaseException) -> bool:
    """Transport failures and 5xx responses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def adapter_retry(attempts: int) -> AsyncRetrying:
    """Retry loop for adapter HTTP calls: exponential backoff on transient errors."""
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


class BaseAdapter(ABC):
    """Abstract base class for opportunity source adapters.

    Subclasses supply ``source_id``, ``fetch_payloads`` (one HTTP round trip
    returning raw payload dicts) and ``map_fields`` (the per-source field
    mapper the normalizer dispatches to).
    """

    default_timeout: float = DEFAULT_TIMEOUT_SECONDS

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Unique source identifier (grants_gov, nih_reporter, ...)."""
        pass

    @abstractmethod
    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        """Fetch raw payloads from the source. May raise; ``fetch`` handles it."""
        pass

    @abstractmethod
    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        """Pick canonical fields out of one raw payload."""
        pass

    def timeout_for(self, context: FetchContext) -> float:
        return context.timeout_seconds or self.default_timeout

    async def fetch(self, context: FetchContext) -> Tuple[List[RawRecord], SourceResult]:
        """Fetch with full error handling: never raises.

        The whole retried call is bounded by one timeout; a timeout is a
        failure for this run and is not retried.
        """
        timeout = self.timeout_for(context)
        start = time.monotonic()
        try:
            payloads = await asyncio.wait_for(self._fetch_with_retry(context, timeout), timeout=timeout)
        except asyncio.TimeoutError:
            error = SourceUnavailable(f"timeout after {timeout:g}s", source_id=self.source_id)
            return [], self._failure(error, start)
        except Exception as exc:
            error = SourceUnavailable(_describe(exc), source_id=self.source_id)
            return [], self._failure(error, start)

        records = [RawRecord(source_id=self.source_id, payload=p) for p in payloads]
        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "fetch_complete source=%s result=success count=%d duration_ms=%.0f",
            self.source_id,
            len(records),
            duration_ms,
        )
        return records, SourceResult(
            source_id=self.source_id, ok=True, record_count=len(records), duration_ms=duration_ms
        )

    async def _fetch_with_retry(self, context: FetchContext, timeout: float) -> List[Dict[str, Any]]:
        http_timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        async with httpx.AsyncClient(timeout=http_timeout) as client:
            async for attempt in adapter_retry(context.retry_attempts):
                with attempt:
                    payloads = await self.fetch_payloads(client, context)
        return [p for p in payloads if isinstance(p, dict)]

    def _failure(self, error: SourceUnavailable, start: float) -> SourceResult:
        duration_ms = (time.monotonic() - start) * 1000
        logger.error(
            "fetch_complete source=%s result=failure error=%s duration_ms=%.0f",
            self.source_id,
            error.message,
            duration_ms,
        )
        return SourceResult(
            source_id=self.source_id,
            ok=False,
            reason=error.message,
            error_kind=error.kind,
            duration_ms=duration_ms,
        )

    async def _request_json(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        """Issue one request and log url/status/duration like every adapter call."""
        start = time.monotonic()
        status_code: Optional[int] = None
        try:
            response = await client.request(method, url, **kwargs)
            status_code = response.status_code
            response.raise_for_status()
            data = response.json()
        except Exception as exc:
            logger.warning(
                "[%s] url=%s status=%s duration=%.2fs result=failure error='%s'",
                self.source_id, url, status_code or "n/a", time.monotonic() - start, exc,
            )
            raise
        logger.info(
            "[%s] url=%s status=%s duration=%.2fs result=success",
            self.source_id, url, status_code, time.monotonic() - start,
        )
        return data


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc.__class__.__name__}"
    return f"{exc.__class__.__name__}: {exc}" if str(exc) else exc.__class__.__name__


def first_present(payload: Dict[str, Any], *keys: str) -> Any:
    """First non-empty value among ``keys``."""
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None
