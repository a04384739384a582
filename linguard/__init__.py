"""linguard: fast file classification with a self-tuning preoptimization cache."""

from linguard.core.config import Settings
from linguard.engines.classifier import ClassificationService
from linguard.engines.exclusion import ExclusionPolicy
from linguard.engines.oracle import EmbeddedOracle, OracleClient
from linguard.engines.preoptimization import PreoptimizationCache
from linguard.models import ClassificationResult, Detection, Language
from linguard.rules import MatchRule, compile_rule

__version__ = "0.1.0"

__all__ = [
    "ClassificationResult",
    "ClassificationService",
    "Detection",
    "EmbeddedOracle",
    "ExclusionPolicy",
    "Language",
    "MatchRule",
    "OracleClient",
    "PreoptimizationCache",
    "Settings",
    "compile_rule",
]
