"""
Processor Prices - builds the recurring price object a payment processor
needs to bill a plan. No network calls; the caller submits the payload.

Amounts are in minor units (cents), currencies lower-case.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .errors import FieldInvalid, ValidationError
from .models import BILLING_INTERVALS, Plan, PricingModel


def to_minor_units(amount: Decimal) -> int:
    """29.99 -> 2999, rounding half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def unit_price_for_interval(plan: Plan, interval: str) -> Decimal:
    """
    Unit price a flat or per_seat plan charges per billing interval.

    The plan's own interval bills plan.price. A yearly price for a monthly
    plan comes from price_yearly; any other interval has no amount.
    """
    if interval == plan.interval:
        return plan.price
    if interval == "year" and plan.price_yearly is not None:
        return plan.price_yearly
    raise FieldInvalid("interval", interval, f"Plan '{plan.slug}' has no {interval}ly price")


def build_processor_price(
    plan: Plan,
    interval: Optional[str] = None,
    product_id: Optional[str] = None,
) -> dict:
    """
    Build the processor price payload for a plan.

    flat/per_seat bill a unit amount (per_seat sends seats as quantity).
    tiered maps to volume-mode flat amounts so the whole bill snaps to the
    reached bracket; volume maps to graduated unit amounts so every seat
    pays its own bracket's rate. Tier amounts are only defined for the
    plan's own interval.
    """
    interval = interval or plan.interval
    if interval not in BILLING_INTERVALS:
        raise FieldInvalid("interval", interval)

    try:
        model = PricingModel(plan.pricing_model)
    except ValueError:
        raise FieldInvalid("pricing_model", plan.pricing_model)

    payload = {
        "currency": plan.currency.lower(),
        "recurring": {"interval": interval},
    }
    if product_id:
        payload["product"] = product_id

    if model in (PricingModel.FLAT, PricingModel.PER_SEAT):
        payload["unit_amount"] = to_minor_units(unit_price_for_interval(plan, interval))
        return payload

    if not plan.pricing_tiers:
        raise ValidationError(
            f"pricing_tiers is required for {model.value} pricing model", field="pricing_tiers"
        )
    if interval != plan.interval:
        raise FieldInvalid("interval", interval, f"Plan '{plan.slug}' tiers are priced per {plan.interval}")

    payload["billing_scheme"] = "tiered"

    if model == PricingModel.TIERED:
        payload["tiers_mode"] = "volume"
        payload["tiers"] = [
            {
                "up_to": tier.max_users if tier.max_users is not None else "inf",
                "flat_amount": to_minor_units(tier.price) if tier.price is not None else None,
            }
            for tier in sorted(plan.pricing_tiers, key=lambda t: t.min_users)
        ]
    else:
        payload["tiers_mode"] = "graduated"
        payload["tiers"] = [
            {
                "up_to": tier.max_users if tier.max_users is not None else "inf",
                "unit_amount": to_minor_units(tier.price_per_user) if tier.price_per_user is not None else None,
            }
            for tier in sorted(plan.pricing_tiers, key=lambda t: t.min_users)
        ]

    return payload
