"""Custom exceptions for linguard."""


class LinguardError(Exception):
    """Base exception for all linguard errors."""


class ConfigError(LinguardError):
    """Raised when an environment setting cannot be parsed."""


class InvalidPatternError(LinguardError, ValueError):
    """Raised when a match rule pattern does not compile."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"invalid match pattern {pattern!r}: {reason}")


class CacheNotWarmedError(LinguardError):
    """Raised when the preoptimization cache is queried before warm-up."""


class OracleError(LinguardError):
    """Base class for failures talking to the detector."""


class OracleTransportError(OracleError):
    """Raised on a non-transient transport failure."""


class OracleRetryExhaustedError(OracleError):
    """Raised when transient failures persist past the attempt limit."""

    def __init__(self, url: str, attempts: int):
        self.url = url
        self.attempts = attempts
        super().__init__(f"error attempting to load {url} after {attempts} attempts")


class OracleProtocolError(OracleError):
    """Raised when the detector's response body cannot be decoded."""


class OracleApplicationError(OracleError):
    """Raised when the detector reports ``success: false``."""


class OracleTimeoutError(OracleError):
    """Raised when a classification does not finish before its deadline."""
