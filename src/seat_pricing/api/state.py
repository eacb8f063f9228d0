"""
Shared service instances for the API, exposed as FastAPI dependencies.
"""
from functools import lru_cache

from ..config.settings import get_settings
from ..engine.pricing_calculator import PricingCalculator
from ..services.plans_service import PlansService


@lru_cache
def get_calculator() -> PricingCalculator:
    return PricingCalculator()


@lru_cache
def get_plans_service() -> PlansService:
    return PlansService(get_settings().plans_json)
