"""
Pricing Calculator - price and billing quantity for a plan at a seat count.

Each pricing model has its own pure strategy function; PricingCalculator
picks one from PRICE_STRATEGIES by the plan's model. Strategies append
(step, description, value) tuples to the trace list they are given.
"""
import logging
import numbers
from decimal import Decimal
from typing import Callable, Optional

from .errors import FieldInvalid, InvalidArgument, ValidationError
from .models import Plan, PricingModel, PricingTier, Quote

logger = logging.getLogger(__name__)

TraceList = list[tuple[str, str, Optional[str]]]


def find_tier_for_user_count(tiers: list[PricingTier], user_count: int) -> Optional[PricingTier]:
    """First tier, in list order, whose range contains user_count."""
    for tier in tiers:
        if tier.contains(user_count):
            return tier
    return None


def sort_tiers(tiers: list[PricingTier]) -> list[PricingTier]:
    """Copy of tiers ordered by min_users."""
    return sorted(tiers, key=lambda t: t.min_users)


def flat_price(plan: Plan, user_count: int, trace: TraceList) -> Decimal:
    trace.append(("Flat", "Price does not depend on seat count", f"{plan.price}"))
    return plan.price


def per_seat_price(plan: Plan, user_count: int, trace: TraceList) -> Decimal:
    if not plan.price_per_user:
        raise ValidationError("Per-seat pricing requires price_per_user to be set", field="price_per_user")

    base_users = plan.base_users or 0
    base_price = plan.price

    if user_count <= base_users:
        trace.append(("Per Seat", f"{user_count} seats covered by {base_users} included seats", f"{base_price}"))
        return base_price

    additional_users = user_count - base_users
    total = base_price + additional_users * plan.price_per_user
    trace.append((
        "Per Seat",
        f"Base {base_price} + {additional_users} × {plan.price_per_user}",
        f"{total}",
    ))
    return total


def tiered_price(plan: Plan, user_count: int, trace: TraceList) -> Decimal:
    if not plan.pricing_tiers:
        raise ValidationError("Tiered pricing requires pricing_tiers to be set", field="pricing_tiers")

    tier = find_tier_for_user_count(plan.pricing_tiers, user_count)
    if tier is None:
        raise ValidationError(f"No pricing tier found for {user_count} users", field="pricing_tiers")

    if tier.price is None:
        raise ValidationError("Tiered pricing tier must have a price property", field="pricing_tiers")

    trace.append(("Tier Match", f"{user_count} seats fall in bracket {tier.describe()}", f"{tier.price}"))
    return tier.price


def volume_price(plan: Plan, user_count: int, trace: TraceList) -> Decimal:
    if not plan.pricing_tiers:
        raise ValidationError("Volume pricing requires pricing_tiers to be set", field="pricing_tiers")

    total = Decimal("0")
    remaining_users = user_count

    for tier in sort_tiers(plan.pricing_tiers):
        if remaining_users <= 0:
            break

        if tier.price_per_user is None:
            raise ValidationError("Volume pricing tier must have a price_per_user property", field="pricing_tiers")

        capacity = tier.capacity()
        users_in_tier = remaining_users if capacity is None else min(remaining_users, capacity)

        subtotal = users_in_tier * tier.price_per_user
        total += subtotal
        remaining_users -= users_in_tier
        trace.append((
            "Volume Bracket",
            f"{users_in_tier} seats in {tier.describe()} × {tier.price_per_user}",
            f"{subtotal}",
        ))

    if remaining_users > 0:
        # Bounded last tier: the overflow is not billed
        trace.append(("Volume Bracket", f"{remaining_users} seats beyond the last tier", "0"))

    return total


PRICE_STRATEGIES: dict[PricingModel, Callable[[Plan, int, TraceList], Decimal]] = {
    PricingModel.FLAT: flat_price,
    PricingModel.PER_SEAT: per_seat_price,
    PricingModel.TIERED: tiered_price,
    PricingModel.VOLUME: volume_price,
}


def resolve_model(plan: Plan) -> PricingModel:
    """The plan's PricingModel, or FieldInvalid when it is not one."""
    try:
        return PricingModel(plan.pricing_model)
    except ValueError:
        raise FieldInvalid("pricing_model", plan.pricing_model)


def check_user_count(user_count) -> None:
    if isinstance(user_count, bool) or not isinstance(user_count, numbers.Integral):
        raise InvalidArgument("user_count must be an integer", field="user_count")
    if user_count < 1:
        raise InvalidArgument("user_count must be at least 1", field="user_count")


class PricingCalculator:
    """
    Stateless calculator for plan prices and processor quantities.

    Pricing models:
    1. flat      - plan.price whatever the seat count
    2. per_seat  - plan.price covers base_users, price_per_user for each seat above
    3. tiered    - the whole bill is the price of the bracket the count falls in
    4. volume    - each seat is billed at its own bracket's price_per_user
    """

    def calculate_price(self, plan: Plan, user_count: int) -> Decimal:
        """
        Price of the plan for user_count seats.

        Raises InvalidArgument for counts below 1, ValidationError when the plan
        lacks data its model needs, FieldInvalid for an unknown model.
        """
        price, _ = self.calculate_price_with_trace(plan, user_count)
        return price

    def calculate_price_with_trace(self, plan: Plan, user_count: int) -> tuple[Decimal, TraceList]:
        """
        Price with a trace of resolution steps.

        Returns (price, trace_steps).
        """
        check_user_count(user_count)
        model = resolve_model(plan)

        trace: TraceList = [
            ("Pricing Model", f"Plan {plan.slug or '<unsaved>'} uses {model.value} pricing", None),
        ]
        price = PRICE_STRATEGIES[model](plan, user_count, trace)

        logger.debug("Priced plan %s (%s) for %d users: %s", plan.slug, model.value, user_count, price)
        return price, trace

    def calculate_quantity(self, plan: Plan, user_count: int) -> int:
        """Quantity to put on the payment processor's line item."""
        try:
            model = PricingModel(plan.pricing_model)
        except ValueError:
            logger.warning(
                "Unknown pricing model %r on plan %s, reporting quantity 1",
                plan.pricing_model,
                plan.slug,
            )
            return 1

        if model == PricingModel.FLAT:
            return 1

        if model == PricingModel.PER_SEAT:
            if not plan.base_users:
                return user_count
            return max(user_count - plan.base_users, 0) + 1

        # tiered / volume: the processor applies its own tiers to the raw count
        return user_count

    def quote(self, plan: Plan, user_count: int) -> Quote:
        """Calculate price and quantity together, with a full trace."""
        price, steps = self.calculate_price_with_trace(plan, user_count)
        quantity = self.calculate_quantity(plan, user_count)

        quote = Quote(
            plan_slug=plan.slug,
            pricing_model=plan.model_name,
            user_count=user_count,
            price=price,
            quantity=quantity,
            currency=plan.currency,
        )
        for step, desc, val in steps:
            quote.add_trace(step, desc, val)
        quote.add_trace("Total", f"{user_count} seats", f"{price} {plan.currency}")
        quote.add_trace("Quantity", "Processor line-item quantity", str(quantity))
        return quote
