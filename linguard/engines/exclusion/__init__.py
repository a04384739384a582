"""Exclusion engine: path and content checks that never touch the detector."""

from linguard.engines.exclusion.policy import (
    DEFAULT_EXCLUDED_EXTENSIONS,
    DEFAULT_EXCLUDED_FILENAMES,
    DEFAULT_PATH_PATTERNS,
    ExclusionPolicy,
    split_extension,
)
from linguard.engines.exclusion.sniff import is_likely_binary, sniff_content_type

__all__ = [
    "DEFAULT_EXCLUDED_EXTENSIONS",
    "DEFAULT_EXCLUDED_FILENAMES",
    "DEFAULT_PATH_PATTERNS",
    "ExclusionPolicy",
    "is_likely_binary",
    "sniff_content_type",
    "split_extension",
]
