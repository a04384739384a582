"""Self-tuning cache of canned detector results keyed by path rules."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from linguard.counters import AtomicCounter
from linguard.engines.exclusion.policy import split_extension
from linguard.engines.oracle.base import Oracle
from linguard.engines.preoptimization.catalogue import CATALOGUE, CatalogueItem
from linguard.engines.preoptimization.locks import ReadWriteLock
from linguard.exceptions import CacheNotWarmedError, OracleError
from linguard.models import ClassificationResult, Detection
from linguard.rules import MatchRule, match_all

log = structlog.get_logger("linguard.engine")

DEFAULT_RESORT_INTERVAL = 100


@dataclass
class PreoptimizationEntry:
    """Rules that must all match, and the canonical result they resolve to.

    The canonical result is never handed out or modified; callers get copies.
    """

    rules: tuple[MatchRule, ...]
    result: ClassificationResult
    label: str = ""
    hits: AtomicCounter = field(default_factory=AtomicCounter)

    def __post_init__(self) -> None:
        if not self.rules:
            raise ValueError("a preoptimization entry needs at least one rule")
        if self.result.detection is None:
            raise ValueError("a preoptimization entry needs a detection")

    def matches(self, path: str) -> bool:
        return match_all(self.rules, path)

    @property
    def detection(self) -> Detection:
        """The canonical detection. Never hand this object out; clone it."""
        detection = self.result.detection
        if detection is None:
            raise ValueError(f"preoptimization entry {self.label!r} lost its detection")
        return detection

    def materialize(self, path: str) -> ClassificationResult:
        """A deep copy of the canonical result stamped with *path*.

        The extension is taken from *path*, not from the warm-up sample.
        """
        detection = self.detection.clone(path=path)
        detection.extname = split_extension(path)
        detection.loc = 0
        detection.sloc = 0
        return ClassificationResult(
            success=True,
            detection=detection,
            is_binary=self.result.is_binary,
            is_large=self.result.is_large,
            is_excluded=False,
            is_from_cache=True,
        )


class PreoptimizationCache:
    """Ordered, first-match-wins list of :class:`PreoptimizationEntry`.

    Lookups take the shared side of a read-preferring lock. Every
    *resort_interval* hits the list is reordered by hit count, most popular
    first, under the exclusive side.
    """

    def __init__(
        self,
        catalogue: Sequence[CatalogueItem] = CATALOGUE,
        resort_interval: int = DEFAULT_RESORT_INTERVAL,
    ) -> None:
        if resort_interval <= 0:
            raise ValueError("resort_interval must be positive")
        self.catalogue = tuple(catalogue)
        self.resort_interval = resort_interval
        self._entries: list[PreoptimizationEntry] = []
        self._lock = ReadWriteLock()
        self._hits = AtomicCounter()
        self._warm_lock = asyncio.Lock()
        self._warmed = False

    # ── warm-up ────────────────────────────────────────────────────────────

    @property
    def warmed(self) -> bool:
        return self._warmed

    async def warm_up(self, oracle: Oracle) -> int:
        """Classify each catalogue sample once and cache the results.

        Concurrent callers wait for the one in progress, then return 0.
        Samples that fail are skipped. A warm-up that is cancelled or raises
        leaves the cache empty and unwarmed, so it can be retried. Returns the
        number of entries built by this call.
        """
        async with self._warm_lock:
            if self._warmed:
                return 0

            built: list[PreoptimizationEntry] = []
            for item in self.catalogue:
                try:
                    result = await oracle.classify(item.sample_name, item.sample_body)
                except OracleError as exc:
                    log.warning("cache.warm_up_skipped", sample=item.sample_name, error=str(exc))
                    continue
                if not result.success or result.detection is None:
                    log.warning(
                        "cache.warm_up_skipped",
                        sample=item.sample_name,
                        error=result.message or "no detection",
                    )
                    continue
                built.append(
                    PreoptimizationEntry(
                        rules=item.rules, result=result.copy(), label=item.sample_name
                    )
                )

            with self._lock.write_locked():
                self._entries.extend(built)
            self._hits.reset()
            self._warmed = True
        log.info("cache.warmed", entries=len(built), catalogue=len(self.catalogue))
        return len(built)

    # ── lookup ─────────────────────────────────────────────────────────────

    def lookup(self, path: str) -> ClassificationResult | None:
        """Return a copy of the first entry whose rules all match *path*."""
        with self._lock.read_locked():
            for entry in self._entries:
                if entry.matches(path):
                    entry.hits.increment()
                    result = entry.materialize(path)
                    break
            else:
                return None

        if self._hits.increment() % self.resort_interval == 0:
            self.resort()
        return result

    def resort(self) -> None:
        """Reorder entries by hit count, descending. Ties keep their order."""
        with self._lock.write_locked():
            self._entries.sort(key=lambda e: e.hits.value, reverse=True)
        log.debug("cache.resorted", total_hits=self._hits.value)

    def most_popular(self) -> Detection:
        """Resort, then return a copy of the most-hit entry's detection."""
        self.resort()
        with self._lock.read_locked():
            if not self._entries:
                raise CacheNotWarmedError("preoptimization cache has no entries")
            return self._entries[0].detection.clone()

    # ── diagnostics ────────────────────────────────────────────────────────

    def entries(self) -> list[tuple[str, int]]:
        """Current order as ``(label, hits)`` pairs."""
        with self._lock.read_locked():
            return [(e.label, e.hits.value) for e in self._entries]

    @property
    def total_hits(self) -> int:
        return self._hits.value

    def reset_hits(self) -> None:
        """Zero every entry's counter and the cumulative hit count."""
        with self._lock.read_locked():
            for entry in self._entries:
                entry.hits.reset()
        self._hits.reset()

    def __len__(self) -> int:
        return len(self._entries)
