"""
Plans API - FastAPI router for plan management, quoting and processor prices.
"""
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, field_validator

from ..engine.models import Plan, PricingModel
from ..engine.plan_validator import validate_plan
from ..engine.pricing_calculator import PricingCalculator
from ..engine.processor_prices import build_processor_price
from ..services.plans_service import PlanNotFound, PlansService, PlanValidationFailed
from .state import get_calculator, get_plans_service

router = APIRouter(prefix="/api/plans", tags=["plans"])


# Pydantic models for API
class PricingTierPayload(BaseModel):
    """A seat bracket in a request body."""
    min_users: int = Field(ge=1)
    max_users: Optional[int] = Field(default=None, ge=1)
    price: Optional[Decimal] = Field(default=None, ge=0)
    price_per_user: Optional[Decimal] = Field(default=None, ge=0)


class PlanPayload(BaseModel):
    """Plan fields accepted for previews and as the base of PlanCreate."""
    slug: str = ""
    name: str = Field(default="Preview", min_length=1, max_length=255)
    description: Optional[str] = None
    pricing_model: PricingModel
    price: Decimal = Field(default=Decimal("0"), ge=0)
    price_per_user: Optional[Decimal] = Field(default=None, ge=0)
    price_yearly: Optional[Decimal] = Field(default=None, ge=0)
    base_users: Optional[int] = Field(default=None, ge=0)
    pricing_tiers: list[PricingTierPayload] = Field(default_factory=list)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    interval: Literal["month", "year"] = "month"
    trial_days: Optional[int] = Field(default=None, ge=0)
    features: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_visible: bool = True
    sort_order: int = Field(default=0, ge=0)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.upper()

    def to_plan(self) -> Plan:
        return Plan.from_dict(self.model_dump())


class PlanCreate(PlanPayload):
    """Request model for creating a plan."""
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$")
    name: str = Field(min_length=1, max_length=255)


class PlanUpdate(BaseModel):
    """Request model for updating a plan."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    pricing_model: Optional[PricingModel] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    price_per_user: Optional[Decimal] = Field(default=None, ge=0)
    price_yearly: Optional[Decimal] = Field(default=None, ge=0)
    base_users: Optional[int] = Field(default=None, ge=0)
    pricing_tiers: Optional[list[PricingTierPayload]] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    interval: Optional[Literal["month", "year"]] = None
    trial_days: Optional[int] = Field(default=None, ge=0)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None
    is_visible: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]


# Endpoints

@router.get("")
async def list_plans(include_inactive: bool = True, service: PlansService = Depends(get_plans_service)):
    """List all plans."""
    return jsonable_encoder([p.to_dict() for p in service.list_plans(include_inactive=include_inactive)])


@router.get("/public")
async def list_public_plans(service: PlansService = Depends(get_plans_service)):
    """Active, visible plans in display order."""
    return jsonable_encoder([p.to_dict() for p in service.list_public_plans()])


@router.get("/stats")
async def get_stats(service: PlansService = Depends(get_plans_service)):
    """Get plan statistics."""
    return service.get_stats()


@router.post("/validate", response_model=ValidationResponse)
async def validate(plan_data: PlanCreate):
    """Validate a plan without saving."""
    result = validate_plan(plan_data.to_plan())
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)


@router.get("/{slug}")
async def get_plan(slug: str, service: PlansService = Depends(get_plans_service)):
    """Get a single plan by slug."""
    plan = service.get_plan(slug)
    if not plan:
        raise HTTPException(status_code=404, detail=f"Plan '{slug}' not found")
    return jsonable_encoder(plan.to_dict())


@router.post("", status_code=201)
async def create_plan(plan_data: PlanCreate, service: PlansService = Depends(get_plans_service)):
    """Create a new plan."""
    try:
        created = service.create_plan(plan_data.to_plan())
    except PlanValidationFailed as e:
        raise HTTPException(status_code=400, detail={"errors": e.result.errors})
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return jsonable_encoder(created.to_dict())


@router.put("/{slug}")
async def update_plan(slug: str, updates: PlanUpdate, service: PlansService = Depends(get_plans_service)):
    """Update an existing plan."""
    # exclude_unset keeps explicit nulls, skips omitted fields;
    # the service rejects nulls on fields that cannot be cleared
    update_dict = updates.model_dump(exclude_unset=True)

    try:
        updated = service.update_plan(slug, update_dict)
    except PlanNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PlanValidationFailed as e:
        raise HTTPException(status_code=400, detail={"errors": e.result.errors})
    return jsonable_encoder(updated.to_dict())


@router.delete("/{slug}")
async def delete_plan(slug: str, service: PlansService = Depends(get_plans_service)):
    """Delete a plan."""
    try:
        service.delete_plan(slug)
    except PlanNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": f"Plan '{slug}' deleted"}


@router.get("/{slug}/quote")
async def quote_plan(
    slug: str,
    user_count: int = Query(...),
    service: PlansService = Depends(get_plans_service),
    calculator: PricingCalculator = Depends(get_calculator),
):
    """Price and processor quantity for a stored plan."""
    try:
        plan = service.require_plan(slug)
    except PlanNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return jsonable_encoder(calculator.quote(plan, user_count))


@router.get("/{slug}/processor-price")
async def processor_price(
    slug: str,
    interval: Optional[str] = None,
    product_id: Optional[str] = None,
    service: PlansService = Depends(get_plans_service),
):
    """Recurring price payload to register the plan with the payment processor."""
    try:
        plan = service.require_plan(slug)
    except PlanNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return build_processor_price(plan, interval=interval, product_id=product_id)
