"""Preoptimization engine: canned results for predictable file types."""

from linguard.engines.preoptimization.cache import (
    DEFAULT_RESORT_INTERVAL,
    PreoptimizationCache,
    PreoptimizationEntry,
)
from linguard.engines.preoptimization.catalogue import CATALOGUE, CatalogueItem
from linguard.engines.preoptimization.locks import ReadWriteLock

__all__ = [
    "CATALOGUE",
    "CatalogueItem",
    "DEFAULT_RESORT_INTERVAL",
    "PreoptimizationCache",
    "PreoptimizationEntry",
    "ReadWriteLock",
]
