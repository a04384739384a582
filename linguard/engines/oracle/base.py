"""Interface every detector backend satisfies, and response normalisation."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from linguard.models import ClassificationResult, Detection

Body = bytes | str


@runtime_checkable
class Oracle(Protocol):
    """A detector that classifies files the cache cannot answer for."""

    async def classify(
        self, path: str, body: Body, *, timeout: float | None = None
    ) -> ClassificationResult: ...

    async def classify_many(
        self, files: Sequence[tuple[str, Body]], *, timeout: float | None = None
    ) -> list[ClassificationResult]: ...

    async def close(self) -> None: ...


def body_text(body: Body) -> str:
    """Body as text; undecodable bytes become U+FFFD."""
    if isinstance(body, str):
        return body
    return body.decode("utf-8", errors="replace")


def normalize_detection(detection: Detection) -> ClassificationResult:
    """Wrap a detector's *detection* into a :class:`ClassificationResult`.

    Content the detector flags as binary, vendored or generated is excluded,
    independently of any path-based exclusion, and carries no detection.
    """
    reasons = [
        name
        for name, flag in (
            ("binary", detection.is_binary),
            ("vendored", detection.is_vendored),
            ("generated", detection.is_generated),
        )
        if flag
    ]
    if reasons:
        return ClassificationResult(
            success=True,
            message=f"excluded by content: {', '.join(reasons)}",
            is_binary=detection.is_binary,
            is_large=detection.is_large,
            is_excluded=True,
        )
    return ClassificationResult(
        success=True,
        detection=detection,
        is_binary=False,
        is_large=detection.is_large,
    )
