"""In-process detector backend wrapping a local language-detection library."""

from __future__ import annotations

import asyncio
from collections.abc import Collection, Mapping, Sequence
from typing import Protocol, runtime_checkable

import structlog

from linguard.engines.exclusion.policy import split_extension
from linguard.engines.exclusion.sniff import sniff_content_type
from linguard.engines.oracle.base import Body, normalize_detection
from linguard.exceptions import OracleTimeoutError
from linguard.models import ClassificationResult, Detection, Language

log = structlog.get_logger("linguard.engine")

# extension -> {detected language -> replacement}
LANGUAGE_OVERRIDES: Mapping[str, Mapping[str, str]] = {
    ".sql": {"PLSQL": "SQL", "PLpgSQL": "SQL", "SQLPL": "SQL", "TSQL": "SQL"},
}


@runtime_checkable
class LanguageDetector(Protocol):
    """The handful of functions a local detection library must expose."""

    def language_hints(self, path: str) -> Collection[str]: ...

    def language_by_contents(self, body: bytes, hints: Collection[str]) -> str: ...

    def is_vendored(self, path: str) -> bool: ...

    def is_binary(self, body: bytes) -> bool: ...


def _count_lines(text: str) -> tuple[int, int]:
    lines = text.splitlines()
    return len(lines), sum(1 for line in lines if line.strip())


class EmbeddedOracle:
    """Classify files with a :class:`LanguageDetector`, no network involved.

    *languages* optionally supplies full :class:`Language` metadata by name;
    otherwise only the name is filled in.
    """

    def __init__(
        self,
        detector: LanguageDetector,
        *,
        languages: Mapping[str, Language] | None = None,
        overrides: Mapping[str, Mapping[str, str]] = LANGUAGE_OVERRIDES,
    ) -> None:
        self._detector = detector
        self._languages = dict(languages or {})
        self._overrides = overrides

    async def classify(
        self, path: str, body: Body, *, timeout: float | None = None
    ) -> ClassificationResult:
        try:
            async with asyncio.timeout(timeout):
                return await asyncio.to_thread(self._classify_sync, path, body)
        except TimeoutError as exc:
            raise OracleTimeoutError(f"classification of {path} exceeded {timeout}s") from exc

    async def classify_many(
        self, files: Sequence[tuple[str, Body]], *, timeout: float | None = None
    ) -> list[ClassificationResult]:
        return [await self.classify(path, body, timeout=timeout) for path, body in files]

    async def close(self) -> None:
        return None

    def resolve_language(self, path: str, name: str) -> str:
        """Apply the per-extension override table to a detected *name*."""
        table = self._overrides.get(split_extension(path).lower())
        if table:
            return table.get(name, name)
        return name

    def _classify_sync(self, path: str, body: Body) -> ClassificationResult:
        data = body.encode("utf-8") if isinstance(body, str) else body
        binary = self._detector.is_binary(data)
        vendored = self._detector.is_vendored(path)

        language: Language | None = None
        loc = sloc = 0
        if not binary:
            hints = self._detector.language_hints(path)
            name = self.resolve_language(path, self._detector.language_by_contents(data, hints))
            if not name and not vendored:
                log.debug("oracle.embedded_unknown", path=path)
                return ClassificationResult.failure(f"no language detected for {path}")
            if name:
                language = self._languages.get(name) or Language(name=name)
            loc, sloc = _count_lines(data.decode("utf-8", errors="replace"))

        detection = Detection(
            path=path,
            loc=loc,
            sloc=sloc,
            type="binary" if binary else "text",
            extname=split_extension(path),
            mime_type=sniff_content_type(data),
            is_text=not binary,
            is_binary=binary,
            is_vendored=vendored,
            language=language,
        )
        return normalize_detection(detection)
