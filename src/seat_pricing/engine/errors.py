"""
Errors raised by the pricing engine.

All of them signal malformed input or plan configuration. None are transient.
"""
from typing import Any, Optional


class PricingError(ValueError):
    """Base class for pricing failures."""

    code = "PRICING_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "field": self.field}


class InvalidArgument(PricingError):
    """A call argument is out of range (e.g. a user count below 1)."""

    code = "INVALID_ARGUMENT"


class ValidationError(PricingError):
    """The plan lacks data its pricing model requires."""

    code = "VALIDATION_ERROR"


class FieldInvalid(PricingError):
    """A plan field holds a value the engine does not recognise."""

    code = "FIELD_INVALID"

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid value for field '{field}': {value!r}", field=field)
