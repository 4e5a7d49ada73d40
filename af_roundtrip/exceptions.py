"""Custom exception hierarchy for the AF context round-trip driver."""

from typing import Optional


class AfRoundTripError(Exception):
    """Base exception for all round-trip driver errors."""

    pass


class ConfigurationError(AfRoundTripError):
    """Raised when configuration is invalid or missing."""

    pass


class InputDirectoryError(AfRoundTripError):
    """Raised when the context input directory cannot be listed."""

    pass


class ZapConnectionError(AfRoundTripError):
    """Raised when the ZAP API cannot be reached or times out."""

    pass


class ZapApiError(AfRoundTripError):
    """Raised when the ZAP API rejects a call."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ContextNotFoundError(ZapApiError):
    """Raised when a context does not exist in the ZAP session."""

    pass


class PlanExecutionError(AfRoundTripError):
    """Raised when an automation plan finishes with errors."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class PlanTimeoutError(PlanExecutionError):
    """Raised when an automation plan does not finish in time."""

    pass
