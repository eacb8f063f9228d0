"""
Plan Validator - checks a plan before it is saved or built into the catalog.

Errors make a plan unusable by the calculator. Warnings flag tier layouts
the calculator accepts but which are probably mistakes.
"""
import re
from dataclasses import dataclass, field

from .models import BILLING_INTERVALS, Plan, PricingModel, PricingTier

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


@dataclass
class ValidationResult:
    """Result of plan validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.valid = False


def check_tier_layout(tiers: list[PricingTier]) -> list[str]:
    """Warnings for gaps, overlaps and open ends between consecutive tiers."""
    warnings = []
    if not tiers:
        return warnings

    ordered = sorted(tiers, key=lambda t: t.min_users)
    if ordered[0].min_users != 1:
        warnings.append(f"First tier starts at {ordered[0].min_users}, counts below it have no tier")

    for prev, curr in zip(ordered, ordered[1:]):
        if prev.max_users is None:
            warnings.append(f"Tier {prev.describe()} is unbounded but is followed by tier {curr.describe()}")
            continue
        if curr.min_users > prev.max_users + 1:
            warnings.append(f"Gap between tier {prev.describe()} and tier {curr.describe()}")
        elif curr.min_users <= prev.max_users:
            warnings.append(f"Tier {prev.describe()} overlaps tier {curr.describe()}")

    if ordered[-1].max_users is not None:
        warnings.append(f"Last tier ends at {ordered[-1].max_users}, larger counts are not covered")

    return warnings


def validate_plan(plan: Plan) -> ValidationResult:
    """Validate a plan's fields against its pricing model."""
    result = ValidationResult(valid=True)

    if not plan.name or not plan.name.strip():
        result.add_error("Name is required")
    elif len(plan.name) > 255:
        result.add_error("Name must be at most 255 characters")

    if not plan.slug or not SLUG_PATTERN.match(plan.slug):
        result.add_error(f"Slug '{plan.slug}' must contain only lowercase letters, digits and dashes")

    if not plan.currency or len(plan.currency) != 3 or not plan.currency.isalpha():
        result.add_error(f"Currency '{plan.currency}' must be a 3-letter code")

    if plan.interval not in BILLING_INTERVALS:
        result.add_error(f"Interval must be one of {', '.join(BILLING_INTERVALS)}")

    if plan.price < 0:
        result.add_error("Price must not be negative")
    if plan.price_per_user is not None and plan.price_per_user < 0:
        result.add_error("Price per user must not be negative")
    if plan.price_yearly is not None and plan.price_yearly < 0:
        result.add_error("Yearly price must not be negative")
    if plan.base_users is not None and plan.base_users < 0:
        result.add_error("Base users must not be negative")
    if plan.trial_days is not None and plan.trial_days < 0:
        result.add_error("Trial days must not be negative")

    for i, tier in enumerate(plan.pricing_tiers, start=1):
        if tier.min_users < 1:
            result.add_error(f"Tier {i}: min_users must be at least 1")
        if tier.max_users is not None and tier.max_users < tier.min_users:
            result.add_error(f"Tier {i}: max_users must not be below min_users")
        if tier.price is not None and tier.price < 0:
            result.add_error(f"Tier {i}: price must not be negative")
        if tier.price_per_user is not None and tier.price_per_user < 0:
            result.add_error(f"Tier {i}: price_per_user must not be negative")

    try:
        model = PricingModel(plan.pricing_model)
    except ValueError:
        result.add_error(
            f"Unknown pricing model '{plan.pricing_model}', must be one of: "
            f"{', '.join(m.value for m in PricingModel)}"
        )
        return result

    if model == PricingModel.PER_SEAT and not plan.price_per_user:
        result.add_error("Per-seat pricing requires price_per_user")

    if model in (PricingModel.TIERED, PricingModel.VOLUME):
        if not plan.pricing_tiers:
            result.add_error(f"{model.value.capitalize()} pricing requires pricing_tiers")
            return result

        required = "price" if model == PricingModel.TIERED else "price_per_user"
        for i, tier in enumerate(plan.pricing_tiers, start=1):
            if getattr(tier, required) is None:
                result.add_error(f"Tier {i}: {model.value} pricing requires {required}")

        if model == PricingModel.TIERED:
            mins = [t.min_users for t in plan.pricing_tiers]
            if mins != sorted(mins):
                result.warnings.append("Tiers are not ordered by min_users; the first matching tier in list order wins")

        result.warnings.extend(check_tier_layout(plan.pricing_tiers))
    elif plan.pricing_tiers:
        result.warnings.append(f"pricing_tiers are ignored by {model.value} pricing")

    return result
