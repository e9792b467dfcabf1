"""Error taxonomy for the marketplace.

Every error raised by a workflow derives from ``MarketplaceError`` and carries a
machine-readable ``code``. ``exception_handlers`` maps them onto HTTP responses.
"""

from __future__ import annotations

from typing import Any, Iterable


class MarketplaceError(Exception):
    code = "MARKETPLACE_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(MarketplaceError):
    code = "CONFIGURATION_ERROR"

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Missing backend configuration: " + ", ".join(self.missing),
            missing=self.missing,
        )


class AuthenticationError(MarketplaceError):
    code = "AUTHENTICATION_ERROR"


class AuthorizationError(MarketplaceError):
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str, redirect_to: str = "/") -> None:
        super().__init__(message, redirect_to=redirect_to)
        self.redirect_to = redirect_to


class NotFoundError(MarketplaceError):
    code = "NOT_FOUND"


class WizardValidationError(MarketplaceError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, step: int | None = None, fields: Iterable[str] = ()) -> None:
        self.step = step
        self.fields = list(fields)
        super().__init__(message, step=step, fields=self.fields)


class StatusTransitionError(MarketplaceError):
    code = "STATUS_TRANSITION_ERROR"


class StorageError(MarketplaceError):
    code = "STORAGE_ERROR"


class SubmissionError(MarketplaceError):
    code = "SUBMISSION_ERROR"


__all__ = [
    "MarketplaceError",
    "ConfigurationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "WizardValidationError",
    "StatusTransitionError",
    "StorageError",
    "SubmissionError",
]
