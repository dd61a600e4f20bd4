"""
Typed exceptions raised by the variance analysis engine.

Every exception carries a machine-readable ``code`` and optional structured
``details`` so callers can branch on type instead of parsing messages.
"""

from typing import Any, Optional


class VarianceEngineError(Exception):
    """Base class for all engine errors."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(VarianceEngineError):
    """Caller supplied structurally invalid input."""

    code = "INVALID_INPUT"


class AnalysisError(VarianceEngineError):
    """Unexpected internal failure during analysis, wrapping the original cause."""

    code = "ANALYSIS_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 details: Any = None):
        super().__init__(message, details=details)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return super().__str__()
        return f"{super().__str__()}: {type(self.cause).__name__}: {self.cause}"


class LoaderError(VarianceEngineError):
    """A tabular budget/actual source could not be read."""

    code = "LOAD_ERROR"
