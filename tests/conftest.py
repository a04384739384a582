"""Shared fixtures: an in-process fake detector and services wired to it."""

from __future__ import annotations

import dataclasses
import json
import posixpath
from collections.abc import Sequence

import httpx
import pytest

from linguard.core.config import Settings
from linguard.engines.classifier import ClassificationService
from linguard.engines.oracle.base import Body, body_text, normalize_detection
from linguard.exceptions import OracleTransportError
from linguard.models import ClassificationResult, Detection

# extension or exact basename -> (language, group)
LANGUAGES: dict[str, tuple[str, str]] = {
    ".js": ("JavaScript", "JavaScript"),
    ".ts": ("TypeScript", "TypeScript"),
    ".ejs": ("EJS", "HTML"),
    ".go": ("Go", "Go"),
    "Makefile": ("Makefile", "Makefile"),
    ".yml": ("YAML", "YAML"),
    ".yaml": ("YAML", "YAML"),
    ".json": ("JSON", "JSON"),
    ".swift": ("Swift", "Swift"),
    ".cpp": ("C++", "C++"),
    ".cc": ("C++", "C++"),
    ".hbs": ("Handlebars", "Handlebars"),
    ".html": ("HTML", "HTML"),
    ".css": ("CSS", "CSS"),
    ".scss": ("SCSS", "CSS"),
    ".sh": ("Shell", "Shell"),
    ".md": ("Markdown", "Markdown"),
    ".json5": ("JSON5", "JavaScript"),
    ".jsx": ("JavaScript", "JavaScript"),
    ".m": ("Objective-C", "Objective-C"),
    ".mm": ("Objective-C++", "Objective-C++"),
    ".c": ("C", "C"),
    ".h": ("C", "C"),
    ".rb": ("Ruby", "Ruby"),
    ".py": ("Python", "Python"),
    ".proto": ("Protocol Buffer", "Protocol Buffer"),
    ".java": ("Java", "Java"),
    ".cs": ("C#", "C#"),
    ".xml": ("XML", "XML"),
    ".lua": ("Lua", "Lua"),
    ".txt": ("Text", "Text"),
    ".sql": ("SQL", "SQL"),
    ".coffee": ("CoffeeScript", "CoffeeScript"),
    ".properties": ("Java Properties", "Java Properties"),
    "Dockerfile": ("Dockerfile", "Dockerfile"),
    ".zig": ("Zig", "Zig"),
}


def fake_detection(name: str, body: str) -> dict:
    """The JSON object a real detector would return for *name*."""
    base = posixpath.basename(name)
    ext = posixpath.splitext(base)[1]
    language = LANGUAGES.get(base) or LANGUAGES.get(ext)
    lines = body.splitlines()
    detection: dict = {
        "path": name,
        "loc": len(lines),
        "sloc": sum(1 for line in lines if line.strip()),
        "type": "text",
        "extname": ext,
        "mime_type": "text/plain",
        "is_text": True,
        "is_safe_to_colorize": True,
        "is_generated": body.startswith("// Code generated"),
    }
    if language is not None:
        detection["language"] = {
            "name": language[0],
            "type": "programming",
            "group": language[1],
            "ace_mode": language[0].lower(),
            "is_popular": True,
        }
    return detection


class FakeDetector:
    """``httpx.MockTransport`` handler standing in for the detector service.

    Records the file names of every request. Names in *fail_names* make the
    detector answer ``success: false``.
    """

    def __init__(self, fail_names: Sequence[str] = ()) -> None:
        self.requests: list[list[str]] = []
        self.auth_headers: list[str | None] = []
        self.fail_names = set(fail_names)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        files = json.loads(request.content)
        names = [f["name"] for f in files]
        self.requests.append(names)
        self.auth_headers.append(request.headers.get("Authorization"))
        failing = self.fail_names.intersection(names)
        if failing:
            return httpx.Response(
                200, json={"success": False, "message": f"cannot detect {sorted(failing)[0]}"}
            )
        return httpx.Response(
            200,
            json={"success": True, "results": [fake_detection(f["name"], f["body"]) for f in files]},
        )

    @property
    def files_seen(self) -> list[str]:
        return [name for names in self.requests for name in names]


class StubOracle:
    """Oracle without any transport, for exercising the cache directly."""

    def __init__(self, fail_names: Sequence[str] = ()) -> None:
        self.calls: list[str] = []
        self.fail_names = set(fail_names)

    async def classify(
        self, path: str, body: Body, *, timeout: float | None = None
    ) -> ClassificationResult:
        self.calls.append(path)
        if path in self.fail_names:
            raise OracleTransportError(f"cannot reach detector for {path}")
        return normalize_detection(Detection.model_validate(fake_detection(path, body_text(body))))

    async def classify_many(
        self, files: Sequence[tuple[str, Body]], *, timeout: float | None = None
    ) -> list[ClassificationResult]:
        return [await self.classify(path, body) for path, body in files]

    async def close(self) -> None:
        return None


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(oracle_url="https://detector.test", oracle_token="s3cret")


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def service(settings, detector):
    return ClassificationService.from_settings(settings, transport=httpx.MockTransport(detector))


@pytest.fixture
def stub_oracle():
    return StubOracle()


@pytest.fixture
def make_stub_oracle():
    return StubOracle


@pytest.fixture
def make_service(settings):
    """Build a network-backed service around a given :class:`FakeDetector`."""

    def _make(detector: FakeDetector | None = None, **overrides) -> ClassificationService:
        detector = detector if detector is not None else FakeDetector()
        cfg = dataclasses.replace(settings, **overrides)
        return ClassificationService.from_settings(cfg, transport=httpx.MockTransport(detector))

    return _make


@pytest.fixture
def make_detector():
    return FakeDetector
