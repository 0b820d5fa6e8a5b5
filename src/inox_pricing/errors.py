"""
Error taxonomy for the pricing service.

The engine and the rule-set loader raise these typed failures; the request
layer maps them to HTTP status codes without exposing rule values.
"""
from typing import Optional


class PricingError(Exception):
    """Base class for all pricing service failures."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ConfigError(PricingError):
    """Rule-set source missing, unreadable or schema-invalid."""


class ValidationError(PricingError):
    """Order configuration references an unknown key or misses a required field."""


class NotificationError(Exception):
    """Inquiry mail could not be composed or delivered."""
