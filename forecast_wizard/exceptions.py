"""
Error taxonomy for the forecast wizard pipeline.

Unparseable values are never errors: they are turned into nulls and
counted. Only the classes below ever leave the pipeline.
"""


class WizardError(Exception):
    """Base class for pipeline errors."""

    retryable = False


class PreconditionError(WizardError, ValueError):
    """Invalid configuration or input detected before any row is processed."""


class ValidationTransportError(WizardError):
    """The validation service could not be reached or failed server-side."""

    retryable = True

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationRejectedError(WizardError):
    """The validation service refused the request (bad data or config)."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
