"""Exclusion policy: decide, without the detector, whether a file is skipped."""

from __future__ import annotations

import posixpath
import threading
from collections.abc import Iterable

import structlog

from linguard.core.config import DEFAULT_MAX_BUFFER_SIZE
from linguard.engines.exclusion.sniff import is_likely_binary
from linguard.models import ClassificationResult
from linguard.rules import MatchRule, RuleRegistry, compile_rule

log = structlog.get_logger("linguard.engine")

DEFAULT_EXCLUDED_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".swp", ".DS_Store", ".winmd", ".node", ".dll", ".a", ".lib", ".dylib",
        ".exe", ".gif", ".png", ".webp", ".svg", ".sketch", ".eps", ".pdf",
        ".psd", ".tif", ".tiff", ".bmp", ".ico", ".raw", ".wav", ".mpg",
        ".mpeg", ".mp3", ".mp4", ".3gp", ".aac", ".m4a", ".ogg", ".wma",
        ".avi", ".ppt", ".doc", ".docx", ".zip", ".zipx", ".cab", ".7z",
        ".bkf", ".dmg", ".lz", ".rar", ".iso", ".lzma", ".tar", ".tgz",
        ".bz2", ".gz", ".gzip", ".jar", ".ear", ".aar", ".class", ".pbxproj",
        ".xcworkspace", ".nib", ".xib", ".plist", ".pyc", ".gitignore",
        ".gitmodules", ".gitattributes", ".npmignore", ".lock", ".npmrc",
    }
)  # fmt: skip

DEFAULT_EXCLUDED_FILENAMES: frozenset[str] = frozenset(
    {"npm-debug.log", "LICENSE", "LICENSE.md"}
)

DEFAULT_PATH_PATTERNS: tuple[str, ...] = (
    # vendored dependencies
    r"(^|/)vendor/",
    r"(^|/)node_modules/",
    r"(^|/)bower_components/",
    r"(^|/)third_party/",
    # build artefacts and tool state
    r"(^|/)dist/",
    r"(^|/)build/",
    r"(^|/)\.git/",
    r"(^|/)__pycache__/",
    # minified, source maps, generated code
    r"[.-]min\.(js|css)$",
    r"\.(js|css)\.map$",
    r"\.pb\.go$",
    r"_pb2(_grpc)?\.py$",
    r"(?i)\.designer\.cs$",
    r"\.generated\.\w+$",
)


def split_extension(path: str) -> str:
    """Extension of the base name including the dot, or ``""``.

    Dotfiles count as pure extensions, so ``.gitignore`` yields ``.gitignore``.
    """
    base = posixpath.basename(path)
    idx = base.rfind(".")
    return base[idx:] if idx >= 0 else ""


def _normalize_extension(ext: str) -> str:
    return ext if ext.startswith(".") else f".{ext}"


class ExclusionPolicy:
    """Binary sniffing, size limit, and name/extension/path denylists.

    The denylists can be changed at runtime. Each is replaced wholesale under a
    lock, so concurrent checks see either the old or the new set.
    """

    def __init__(
        self,
        max_body_size: int = DEFAULT_MAX_BUFFER_SIZE,
        excluded_extensions: Iterable[str] = DEFAULT_EXCLUDED_EXTENSIONS,
        excluded_filenames: Iterable[str] = DEFAULT_EXCLUDED_FILENAMES,
        path_rules: Iterable[MatchRule | str] | None = None,
    ) -> None:
        self.max_body_size = max_body_size
        self._lock = threading.Lock()
        self._extensions = frozenset(_normalize_extension(e) for e in excluded_extensions)
        self._filenames = frozenset(excluded_filenames)
        if path_rules is None:
            path_rules = DEFAULT_PATH_PATTERNS
        self._path_rules = RuleRegistry(self._as_rule(r) for r in path_rules)

    # ── checks ─────────────────────────────────────────────────────────────

    def classify_exclusion(
        self, path: str, body: bytes | str | None = None
    ) -> tuple[bool, ClassificationResult | None]:
        """Return ``(excluded, result)`` for *path* and optional *body*.

        Checks run in a fixed order and the first one that applies wins:
        binary content, oversized content, then the denylists.
        """
        if body is not None:
            data = body.encode("utf-8") if isinstance(body, str) else body
            if is_likely_binary(data):
                log.debug("exclusion.binary", path=path)
                return True, ClassificationResult.excluded_binary()
            if len(data) > self.max_body_size:
                log.debug("exclusion.large", path=path, size=len(data))
                return True, ClassificationResult.excluded_large()

        reason = self.denylist_reason(path)
        if reason is not None:
            log.debug("exclusion.denylisted", path=path, reason=reason)
            return True, ClassificationResult.excluded_path(reason)
        return False, None

    def is_excluded(self, path: str, body: bytes | str | None = None) -> bool:
        return self.classify_exclusion(path, body)[0]

    def denylist_reason(self, path: str) -> str | None:
        """Why *path* is denylisted, or None when it is not."""
        base = posixpath.basename(path)
        if base in self._filenames:
            return f"excluded filename: {base}"
        ext = split_extension(path)
        if ext and ext in self._extensions:
            return f"excluded extension: {ext}"
        rule = self._path_rules.first_match(path)
        if rule is not None:
            return f"excluded path rule: {rule}"
        return None

    # ── runtime mutation ───────────────────────────────────────────────────

    def add_excluded_extension(self, ext: str) -> None:
        ext = _normalize_extension(ext)
        with self._lock:
            self._extensions = self._extensions | {ext}

    def remove_excluded_extension(self, ext: str) -> None:
        ext = _normalize_extension(ext)
        with self._lock:
            self._extensions = self._extensions - {ext}

    def add_excluded_filename(self, name: str) -> None:
        with self._lock:
            self._filenames = self._filenames | {name}

    def remove_excluded_filename(self, name: str) -> None:
        with self._lock:
            self._filenames = self._filenames - {name}

    def add_path_rule(self, rule: MatchRule | str) -> MatchRule:
        compiled = self._as_rule(rule)
        self._path_rules.add(compiled)
        return compiled

    def remove_path_rule(self, rule: MatchRule | str) -> None:
        self._path_rules.remove(self._as_rule(rule))

    @property
    def excluded_extensions(self) -> frozenset[str]:
        return self._extensions

    @property
    def excluded_filenames(self) -> frozenset[str]:
        return self._filenames

    @property
    def path_rules(self) -> tuple[MatchRule, ...]:
        return self._path_rules.snapshot()

    @staticmethod
    def _as_rule(rule: MatchRule | str) -> MatchRule:
        return rule if isinstance(rule, MatchRule) else compile_rule(rule)
