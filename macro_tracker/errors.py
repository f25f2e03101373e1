"""Typed errors surfaced to API callers."""
from __future__ import annotations

from typing import Any, Dict


class MacroTrackerError(Exception):
    """Base class for errors rendered as `{"error": message}` responses."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ExternalServiceError(MacroTrackerError):
    """A remote dependency (AI gateway, nutrient database) failed the request."""


class RateLimitedError(ExternalServiceError):
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message)


class PaymentRequiredError(ExternalServiceError):
    status_code = 402

    def __init__(
        self, message: str = "AI credits depleted. Please add funds to your workspace."
    ):
        super().__init__(message)


class MalformedAIResponseError(ExternalServiceError):
    """The AI reply could not be parsed into a list of food items."""


class InvalidRequestError(MacroTrackerError):
    status_code = 400


class NotFoundError(MacroTrackerError):
    status_code = 404


class ForbiddenError(MacroTrackerError):
    status_code = 403


class AuthenticationRequiredError(MacroTrackerError):
    """No valid session. The body tells the client where to sign in."""

    status_code = 401

    def __init__(self, redirect_to: str, redirect_after_seconds: int):
        super().__init__("Authentication required")
        self.redirect_to = redirect_to
        self.redirect_after_seconds = redirect_after_seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "redirect_to": self.redirect_to,
            "redirect_after_seconds": self.redirect_after_seconds,
        }
