"""Tests for the detector HTTP client (no network required)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from linguard.engines.oracle import OracleClient, is_transient
from linguard.exceptions import (
    OracleApplicationError,
    OracleError,
    OracleProtocolError,
    OracleRetryExhaustedError,
    OracleTimeoutError,
    OracleTransportError,
)

URL = "https://detector.test/detect"


def _bare_client(max_attempts: int = 10, retry_delay: float = 0.05) -> OracleClient:
    client = OracleClient.__new__(OracleClient)
    client.url = URL
    client.max_attempts = max_attempts
    client.retry_delay = retry_delay
    client._client = AsyncMock()
    return client


def _ok(n: int = 1) -> httpx.Response:
    results = [{"path": f"f{i}.go", "type": "text", "language": {"name": "Go"}} for i in range(n)]
    return httpx.Response(200, json={"success": True, "results": results})


# ── TestIsTransient ───────────────────────────────────────────────────────


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ReadError("read failed"),
            httpx.WriteError("write failed"),
            httpx.RemoteProtocolError("server disconnected"),
            httpx.ConnectError("[Errno 104] Connection reset by peer"),
            httpx.NetworkError("unexpected EOF"),
        ],
    )
    def test_transient(self, exc):
        assert is_transient(exc)

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("timed out"),
            httpx.ConnectTimeout("connection reset while connecting"),
            httpx.UnsupportedProtocol("ftp"),
        ],
    )
    def test_not_transient(self, exc):
        assert not is_transient(exc)


# ── TestRetry ─────────────────────────────────────────────────────────────


class TestRetry:
    @pytest.mark.anyio
    async def test_retry_then_success(self):
        client = _bare_client()
        client._client.post = AsyncMock(side_effect=[httpx.ReadError("reset"), _ok()])

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            results = await client.detect([("f0.go", "package main")])
        assert results[0].language.name == "Go"
        assert client._client.post.call_count == 2
        mock_sleep.assert_called_once_with(0.05)

    @pytest.mark.anyio
    async def test_retry_exhausted(self):
        client = _bare_client(max_attempts=4, retry_delay=0.5)
        client._client.post = AsyncMock(side_effect=httpx.ReadError("connection reset"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(OracleRetryExhaustedError) as exc_info:
                await client.detect([("a.go", "")])
        assert client._client.post.call_count == 4
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0, 1.5]
        assert exc_info.value.attempts == 4
        assert str(exc_info.value) == f"error attempting to load {URL} after 4 attempts"

    @pytest.mark.anyio
    async def test_default_attempt_limit(self):
        client = _bare_client()
        client._client.post = AsyncMock(side_effect=httpx.RemoteProtocolError("eof"))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(OracleRetryExhaustedError):
                await client.detect([("a.go", "")])
        assert client._client.post.call_count == 10

    @pytest.mark.anyio
    async def test_non_transient_error_not_retried(self):
        client = _bare_client()
        client._client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(OracleTransportError):
                await client.detect([("a.go", "")])
        assert client._client.post.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.anyio
    async def test_http_timeout_not_retried(self):
        client = _bare_client()
        client._client.post = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(OracleTransportError):
            await client.detect([("a.go", "")])
        assert client._client.post.call_count == 1

    @pytest.mark.anyio
    async def test_all_failures_are_oracle_errors(self):
        client = _bare_client(max_attempts=1)
        client._client.post = AsyncMock(side_effect=httpx.ReadError("reset"))
        with pytest.raises(OracleError):
            await client.detect([("a.go", "")])

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            OracleClient("https://detector.test", max_attempts=0)


# ── TestDeadline ──────────────────────────────────────────────────────────


class TestDeadline:
    @pytest.mark.anyio
    async def test_timeout_raises(self):
        client = _bare_client()

        async def hang(*args, **kwargs):
            await asyncio.Event().wait()

        client._client.post = AsyncMock(side_effect=hang)
        with pytest.raises(OracleTimeoutError):
            await client.detect([("a.go", "")], timeout=0.05)

    @pytest.mark.anyio
    async def test_deadline_covers_backoff(self):
        client = _bare_client(retry_delay=0.05)
        client._client.post = AsyncMock(side_effect=httpx.ReadError("reset"))

        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(OracleTimeoutError):
            await client.detect([("a.go", "")], timeout=0.2)
        assert loop.time() - started < 1.0
        assert client._client.post.call_count < 10

    @pytest.mark.anyio
    async def test_cancellation_propagates(self):
        client = _bare_client()
        entered = asyncio.Event()

        async def hang(*args, **kwargs):
            entered.set()
            await asyncio.Event().wait()

        client._client.post = AsyncMock(side_effect=hang)
        task = asyncio.create_task(client.detect([("a.go", "")]))
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ── TestDecode ────────────────────────────────────────────────────────────


class TestDecode:
    @pytest.mark.anyio
    async def test_malformed_body(self):
        client = _bare_client()
        client._client.post = AsyncMock(return_value=httpx.Response(200, content=b"<html>oops"))
        with pytest.raises(OracleProtocolError):
            await client.detect([("a.go", "")])

    @pytest.mark.anyio
    async def test_application_failure(self):
        client = _bare_client()
        client._client.post = AsyncMock(
            return_value=httpx.Response(200, json={"success": False, "message": "bad input"})
        )
        with pytest.raises(OracleApplicationError, match="bad input"):
            await client.detect([("a.go", "")])

    @pytest.mark.anyio
    async def test_result_count_mismatch(self):
        client = _bare_client()
        client._client.post = AsyncMock(return_value=_ok(1))
        with pytest.raises(OracleProtocolError, match="1 result"):
            await client.detect([("a.go", ""), ("b.go", "")])

    @pytest.mark.anyio
    async def test_fractional_line_count_rejected(self):
        client = _bare_client()
        body = {"success": True, "results": [{"path": "a.go", "loc": 1.5}]}
        client._client.post = AsyncMock(return_value=httpx.Response(200, json=body))
        with pytest.raises(OracleProtocolError):
            await client.detect([("a.go", "")])

    @pytest.mark.anyio
    async def test_unknown_fields_ignored(self):
        client = _bare_client()
        body = {
            "success": True,
            "results": [{"path": "a.go", "loc": 3, "sloc": 2, "brand_new_field": [1, 2]}],
            "elapsed": 0.1,
        }
        client._client.post = AsyncMock(return_value=httpx.Response(200, json=body))
        [detection] = await client.detect([("a.go", "")])
        assert detection.loc == 3
        assert detection.sloc == 2

    @pytest.mark.anyio
    async def test_payload_shape(self):
        client = _bare_client()
        client._client.post = AsyncMock(return_value=_ok(2))
        await client.detect([("a.go", b"package a"), ("b.go", "package b")])

        sent = json.loads(client._client.post.call_args.kwargs["content"])
        assert sent == [
            {"name": "a.go", "body": "package a"},
            {"name": "b.go", "body": "package b"},
        ]
        assert client._client.post.call_args.args[0] == URL


# ── TestClassify (through MockTransport) ──────────────────────────────────


class TestClassify:
    @pytest.mark.anyio
    async def test_classify_single(self, detector):
        async with OracleClient(
            "https://detector.test/", "s3cret", transport=httpx.MockTransport(detector)
        ) as client:
            result = await client.classify("src/foo.js", "var a = 1;")

        assert result.success
        assert not result.is_excluded
        assert not result.is_from_cache
        assert result.detection.path == "src/foo.js"
        assert result.detection.type == "text"
        assert result.language_name == "JavaScript"
        assert detector.auth_headers == ["s3cret"]

    @pytest.mark.anyio
    async def test_no_token_no_auth_header(self, detector):
        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(detector)
        ) as client:
            await client.classify("a.go", "package a")
        assert detector.auth_headers == [None]

    @pytest.mark.anyio
    async def test_classify_many_keeps_order(self, detector):
        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(detector)
        ) as client:
            results = await client.classify_many(
                [("a.py", "x = 1"), ("b.rb", "puts 1"), ("c.go", "package c")]
            )
        assert [r.language_name for r in results] == ["Python", "Ruby", "Go"]
        assert detector.requests == [["a.py", "b.rb", "c.go"]]

    @pytest.mark.anyio
    async def test_classify_many_empty(self, detector):
        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(detector)
        ) as client:
            assert await client.classify_many([]) == []
        assert detector.requests == []

    @pytest.mark.anyio
    async def test_missing_path_filled_from_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "results": [{"type": "text"}]})

        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(handler)
        ) as client:
            result = await client.classify("lib/x.c", "int x;")
        assert result.detection.path == "lib/x.c"

    @pytest.mark.anyio
    async def test_generated_content_excluded(self, detector):
        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(detector)
        ) as client:
            result = await client.classify("api.go", "// Code generated by protoc. DO NOT EDIT.\n")
        assert result.success
        assert result.is_excluded
        assert result.detection is None
        assert "generated" in result.message

    @pytest.mark.anyio
    async def test_detector_failure(self, make_detector):
        detector = make_detector(fail_names=["a.go"])
        async with OracleClient(
            "https://detector.test", transport=httpx.MockTransport(detector)
        ) as client:
            with pytest.raises(OracleApplicationError, match="cannot detect a.go"):
                await client.classify("a.go", "package a")

    @pytest.mark.anyio
    async def test_from_settings(self, settings, detector):
        client = OracleClient.from_settings(settings, transport=httpx.MockTransport(detector))
        assert client.url == "https://detector.test/detect"
        assert client.max_attempts == settings.oracle_max_attempts
        await client.classify("a.go", "package a")
        await client.close()
        assert detector.auth_headers == ["s3cret"]


@pytest.mark.anyio
async def test_close_closes_http_client():
    client = _bare_client()
    await client.close()
    client._client.aclose.assert_awaited_once()
