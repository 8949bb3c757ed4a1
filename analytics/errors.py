"""
Error types shared by the valuation, analytics and proposal layers.

ValidationError means the caller sent bad input and should re-prompt.
StateError means the input was fine but the proposal has already been decided.
NotFoundError means the referenced proposal or negotiation does not exist.
"""
from typing import Dict, Optional


class NegotiationError(Exception):
    """Base class for every error raised by the negotiation core."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(NegotiationError):
    """Malformed or out-of-range input."""


class StateError(NegotiationError):
    """Operation attempted against a proposal in a terminal state."""


class NotFoundError(NegotiationError):
    """Referenced proposal, move or negotiation does not exist."""
