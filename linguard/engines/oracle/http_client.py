"""Async client for the detector service, with bounded retries on flaky connections."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence

import httpx
import structlog
from pydantic import ValidationError

from linguard.core.config import Settings
from linguard.engines.oracle.base import Body, body_text, normalize_detection
from linguard.exceptions import (
    OracleApplicationError,
    OracleProtocolError,
    OracleRetryExhaustedError,
    OracleTimeoutError,
    OracleTransportError,
)
from linguard.models import ClassificationResult, Detection, OracleResponse

log = structlog.get_logger("linguard.engine")

_MAX_ATTEMPTS = 10
_RETRY_BASE_DELAY = 0.05  # seconds
_REQUEST_TIMEOUT = 30.0
_CONNECT_TIMEOUT = 5.0
_MAX_KEEPALIVE = 50

# Connection resets and premature EOFs are the only failures worth retrying.
_TRANSIENT_ERRORS: tuple[type[httpx.HTTPError], ...] = (
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)
_TRANSIENT_MARKERS = ("connection reset", "eof")


def is_transient(exc: httpx.HTTPError) -> bool:
    """True for connection-reset and premature-EOF style failures."""
    if isinstance(exc, httpx.TimeoutException):
        return False
    if isinstance(exc, _TRANSIENT_ERRORS):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class OracleClient:
    """Thin async wrapper around the detector's ``POST /detect`` endpoint."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        verify: bool = True,
        timeout: float = _REQUEST_TIMEOUT,
        max_attempts: int = _MAX_ATTEMPTS,
        retry_delay: float = _RETRY_BASE_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.url = f"{base_url.rstrip('/')}/detect"
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = token
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=_CONNECT_TIMEOUT),
            limits=httpx.Limits(max_keepalive_connections=_MAX_KEEPALIVE),
            verify=verify,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OracleClient:
        return cls(
            settings.oracle_url,
            settings.oracle_token,
            verify=settings.oracle_verify_tls,
            timeout=settings.oracle_timeout,
            max_attempts=settings.oracle_max_attempts,
            retry_delay=settings.oracle_retry_delay,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> OracleClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def classify(
        self, path: str, body: Body, *, timeout: float | None = None
    ) -> ClassificationResult:
        """Classify one file. Raises an ``OracleError`` subclass on failure."""
        results = await self.classify_many([(path, body)], timeout=timeout)
        return results[0]

    async def classify_many(
        self, files: Sequence[tuple[str, Body]], *, timeout: float | None = None
    ) -> list[ClassificationResult]:
        """Classify *files* in a single request; results keep the input order."""
        if not files:
            return []
        detections = await self.detect(files, timeout=timeout)
        for (path, _), detection in zip(files, detections):
            if not detection.path:
                detection.path = path
        return [normalize_detection(d) for d in detections]

    async def detect(
        self, files: Sequence[tuple[str, Body]], *, timeout: float | None = None
    ) -> list[Detection]:
        """Send *files* to the detector and return its raw detections.

        *timeout* bounds the whole call, retries and backoff included.
        Cancelling the calling task aborts the in-flight attempt.
        """
        payload = json.dumps([{"name": path, "body": body_text(body)} for path, body in files])
        try:
            async with asyncio.timeout(timeout):
                response = await self._post_with_retry(payload)
        except TimeoutError as exc:
            log.warning("oracle.timeout", url=self.url, files=len(files), timeout=timeout)
            raise OracleTimeoutError(
                f"classification of {len(files)} file(s) exceeded {timeout}s"
            ) from exc
        return self._decode(response, expected=len(files))

    # ── internal ───────────────────────────────────────────────────────────

    async def _post_with_retry(self, payload: str) -> httpx.Response:
        """POST with linear backoff on connection resets and premature EOFs."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._client.post(self.url, content=payload)
            except httpx.HTTPError as exc:
                if not is_transient(exc):
                    raise OracleTransportError(f"request to {self.url} failed: {exc}") from exc
                log.warning(
                    "oracle.retry",
                    url=self.url,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(exc),
                )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay * attempt)

        raise OracleRetryExhaustedError(self.url, self.max_attempts)

    @staticmethod
    def _decode(response: httpx.Response, expected: int) -> list[Detection]:
        try:
            envelope = OracleResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise OracleProtocolError(
                f"malformed detector response (HTTP {response.status_code}): "
                f"{exc.error_count()} validation error(s)"
            ) from exc
        if not envelope.success:
            raise OracleApplicationError(envelope.message or "detector reported failure")
        results = envelope.results or []
        if len(results) != expected:
            raise OracleProtocolError(
                f"detector returned {len(results)} result(s) for {expected} file(s)"
            )
        return results
