"""Classification façade: exclusion, then the preoptimization cache, then the detector."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
import structlog

from linguard.core.config import Settings
from linguard.counters import CacheCounters, CacheStats
from linguard.engines.exclusion import ExclusionPolicy
from linguard.engines.oracle import Oracle, OracleClient
from linguard.engines.oracle.base import Body
from linguard.engines.preoptimization import PreoptimizationCache
from linguard.exceptions import OracleError
from linguard.models import ClassificationResult, Detection

log = structlog.get_logger("linguard.engine")

_DEFAULT_BATCH_SIZE = 25


class ClassificationService:
    """Answers "what is this file, and should it be skipped?" for one process.

    All state (denylists, cache entries, counters) lives on the instance, so
    several independently configured services can coexist.
    """

    def __init__(
        self,
        oracle: Oracle,
        *,
        exclusion: ExclusionPolicy | None = None,
        cache: PreoptimizationCache | None = None,
        counters: CacheCounters | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        owns_oracle: bool = False,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.oracle = oracle
        self.exclusion = exclusion if exclusion is not None else ExclusionPolicy()
        self.cache = cache if cache is not None else PreoptimizationCache()
        self.counters = counters if counters is not None else CacheCounters()
        self.batch_size = batch_size
        self._owns_oracle = owns_oracle
        self._warm_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ClassificationService:
        """Build the default network-backed service from *settings* (or the env)."""
        settings = settings if settings is not None else Settings.from_env()
        return cls(
            OracleClient.from_settings(settings, transport=transport),
            exclusion=ExclusionPolicy(max_body_size=settings.max_buffer_size),
            cache=PreoptimizationCache(resort_interval=settings.resort_interval),
            batch_size=settings.oracle_batch_size,
            owns_oracle=True,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def warm_up(self) -> int:
        """Populate the cache once and zero the hit/miss counters.

        Calling it again is a no-op. A caller that arrives while a warm-up is
        running waits for it to finish.
        """
        async with self._warm_lock:
            if self.cache.warmed:
                return 0
            built = await self.cache.warm_up(self.oracle)
            self.counters.reset()
            return built

    async def close(self) -> None:
        if self._owns_oracle:
            await self.oracle.close()

    async def __aenter__(self) -> ClassificationService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def classify(
        self,
        path: str,
        body: Body | None = None,
        *,
        skip_cache: bool = False,
        timeout: float | None = None,
    ) -> ClassificationResult:
        """Classify one file.

        Exclusions and cache hits return immediately; anything else goes to
        the detector, whose errors propagate as ``OracleError`` subclasses.
        Detector results are never written back into the cache.
        """
        local = self._resolve_locally(path, body, skip_cache)
        if local is not None:
            return local

        result = await self.oracle.classify(path, body if body is not None else b"", timeout=timeout)
        if result.success:
            misses = self.counters.record_miss()
            log.debug("cache.miss", path=path, hits=self.counters.hits.value, misses=misses)
        return result

    async def classify_batch(
        self,
        files: Sequence[tuple[str, Body | None]],
        *,
        skip_cache: bool = False,
        concurrency: int = 4,
        timeout: float | None = None,
    ) -> list[ClassificationResult]:
        """Classify *files*, returning results in the same order.

        Files not resolved locally are sent to the detector in chunks of
        ``batch_size``, at most *concurrency* chunks at a time. A chunk that
        fails yields a failed result in each of its slots. Any other error
        cancels the remaining chunks and propagates.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        results: list[ClassificationResult | None] = [None] * len(files)
        pending: list[int] = []
        for idx, (path, body) in enumerate(files):
            local = self._resolve_locally(path, body, skip_cache)
            if local is not None:
                results[idx] = local
            else:
                pending.append(idx)

        chunks = [pending[i : i + self.batch_size] for i in range(0, len(pending), self.batch_size)]
        sem = asyncio.Semaphore(concurrency)

        async def _run(chunk: list[int]) -> None:
            batch = [(files[i][0], files[i][1] if files[i][1] is not None else b"") for i in chunk]
            async with sem:
                try:
                    outcome = await self.oracle.classify_many(batch, timeout=timeout)
                except OracleError as exc:
                    log.error("classifier.batch_chunk_failed", files=len(chunk), error=str(exc))
                    outcome = [ClassificationResult.failure(str(exc)) for _ in chunk]
            for idx, result in zip(chunk, outcome):
                if result.success:
                    self.counters.record_miss()
                results[idx] = result

        tasks = [asyncio.ensure_future(_run(chunk)) for chunk in chunks]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        log.debug(
            "classifier.batch_done",
            files=len(files),
            resolved_locally=len(files) - len(pending),
            chunks=len(chunks),
        )
        return [r if r is not None else ClassificationResult.failure("not classified") for r in results]

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self.counters.hits.value,
            misses=self.counters.misses.value,
            entries=len(self.cache),
        )

    def most_popular(self) -> Detection:
        return self.cache.most_popular()

    # ── internal ───────────────────────────────────────────────────────────

    def _resolve_locally(
        self, path: str, body: Body | None, skip_cache: bool
    ) -> ClassificationResult | None:
        excluded, result = self.exclusion.classify_exclusion(path, body)
        if excluded:
            return result
        if skip_cache:
            return None
        cached = self.cache.lookup(path)
        if cached is not None:
            hits = self.counters.record_hit()
            log.debug("cache.hit", path=path, hits=hits, misses=self.counters.misses.value)
        return cached
