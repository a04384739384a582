"""Value types shared by every stage of classification.

``Language``, ``Detection`` and ``OracleResponse`` mirror the detector's JSON
wire format and are pydantic models; ``ClassificationResult`` is the in-process
answer handed to callers.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class Language(BaseModel):
    """Language details reported by the detector. Immutable."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    type: str = ""
    group: str = ""
    ace_mode: str = ""
    is_popular: bool = False
    is_unpopular: bool = False


class Detection(BaseModel):
    """A single file's detection result."""

    model_config = ConfigDict(extra="ignore")

    path: str = ""
    # Line counts arrive as JSON integers; strict mode rejects float coercion.
    loc: int = Field(default=0, strict=True)
    sloc: int = Field(default=0, strict=True)
    type: str = ""
    extname: str = ""
    mime_type: str = ""
    content_type: str = ""
    disposition: str = ""
    is_documentation: bool = False
    is_large: bool = False
    is_generated: bool = False
    is_text: bool = False
    is_image: bool = False
    is_binary: bool = False
    is_vendored: bool = False
    is_high_ratio_of_long_lines: bool = False
    is_viewable: bool = False
    is_safe_to_colorize: bool = False
    language: Language | None = None

    def clone(self, path: str | None = None) -> Detection:
        """Deep structural copy, optionally re-stamped with *path*."""
        copied = self.model_copy(deep=True)
        if path is not None:
            copied.path = path
        return copied


class OracleResponse(BaseModel):
    """Envelope returned by the detector service."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: str | None = None
    results: list[Detection] | None = None


@dataclass
class ClassificationResult:
    """Outcome of classifying one file.

    When ``is_excluded`` is set there is no detection. When ``success`` is
    false the flags carry no meaning and ``message`` explains the failure.
    """

    success: bool = True
    message: str | None = None
    detection: Detection | None = None
    is_binary: bool = False
    is_large: bool = False
    is_excluded: bool = False
    is_from_cache: bool = False

    @property
    def language_name(self) -> str | None:
        if self.detection is None or self.detection.language is None:
            return None
        return self.detection.language.name

    def copy(self) -> ClassificationResult:
        return ClassificationResult(
            success=self.success,
            message=self.message,
            detection=self.detection.clone() if self.detection is not None else None,
            is_binary=self.is_binary,
            is_large=self.is_large,
            is_excluded=self.is_excluded,
            is_from_cache=self.is_from_cache,
        )

    @classmethod
    def excluded_binary(cls) -> ClassificationResult:
        return cls(is_binary=True, is_excluded=True, message="binary content")

    @classmethod
    def excluded_large(cls) -> ClassificationResult:
        return cls(is_large=True, is_excluded=True, message="content too large")

    @classmethod
    def excluded_path(cls, reason: str) -> ClassificationResult:
        return cls(is_excluded=True, message=reason)

    @classmethod
    def failure(cls, message: str) -> ClassificationResult:
        return cls(success=False, message=message)
