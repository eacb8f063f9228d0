"""Engine subpackage - core pricing logic and plan models."""
from .errors import FieldInvalid, InvalidArgument, PricingError, ValidationError
from .models import Plan, PricingModel, PricingTier, Quote
from .plan_validator import ValidationResult, validate_plan
from .pricing_calculator import PricingCalculator
from .processor_prices import build_processor_price

__all__ = [
    'PricingCalculator', 'Plan', 'PricingModel', 'PricingTier', 'Quote',
    'PricingError', 'InvalidArgument', 'ValidationError', 'FieldInvalid',
    'ValidationResult', 'validate_plan', 'build_processor_price',
]
