"""Detector backends: the remote service client and the in-process variant."""

from linguard.engines.oracle.base import Oracle, normalize_detection
from linguard.engines.oracle.embedded import LANGUAGE_OVERRIDES, EmbeddedOracle, LanguageDetector
from linguard.engines.oracle.http_client import OracleClient, is_transient

__all__ = [
    "EmbeddedOracle",
    "LANGUAGE_OVERRIDES",
    "LanguageDetector",
    "Oracle",
    "OracleClient",
    "is_transient",
    "normalize_detection",
]
