"""
Pricing calculator tests covering every pricing model, the billing quantity
and the error paths.
"""
import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from seat_pricing.engine import (
    FieldInvalid,
    InvalidArgument,
    Plan,
    PricingCalculator,
    PricingModel,
    PricingTier,
    ValidationError,
)
from seat_pricing.engine.pricing_calculator import PRICE_STRATEGIES


@pytest.fixture(scope="module")
def calculator():
    return PricingCalculator()


@pytest.fixture
def flat_plan():
    return Plan(slug="starter", name="Starter", pricing_model="flat", price=29.99)


@pytest.fixture
def per_seat_plan():
    return Plan(slug="team", name="Team", pricing_model="per_seat", price=29, base_users=5, price_per_user=5)


@pytest.fixture
def tiered_plan():
    return Plan(
        slug="business",
        name="Business",
        pricing_model="tiered",
        pricing_tiers=[
            PricingTier(min_users=1, max_users=10, price=99),
            PricingTier(min_users=11, max_users=50, price=249),
            PricingTier(min_users=51, max_users=None, price=499),
        ],
    )


@pytest.fixture
def volume_plan():
    return Plan(
        slug="enterprise",
        name="Enterprise",
        pricing_model="volume",
        pricing_tiers=[
            PricingTier(min_users=1, max_users=10, price_per_user=10),
            PricingTier(min_users=11, max_users=50, price_per_user=8),
            PricingTier(min_users=51, max_users=None, price_per_user=5),
        ],
    )


def test_every_model_has_a_strategy():
    assert set(PRICE_STRATEGIES) == set(PricingModel)


@pytest.mark.parametrize("user_count", [1, 2, 10, 500])
def test_flat_price_ignores_user_count(calculator, flat_plan, user_count):
    assert calculator.calculate_price(flat_plan, user_count) == Decimal("29.99")


def test_per_seat_within_base_users(calculator, per_seat_plan):
    assert calculator.calculate_price(per_seat_plan, 1) == 29
    assert calculator.calculate_price(per_seat_plan, 5) == 29


def test_per_seat_charges_seats_above_base(calculator, per_seat_plan):
    assert calculator.calculate_price(per_seat_plan, 6) == 34
    assert calculator.calculate_price(per_seat_plan, 10) == 54


def test_per_seat_without_base_users_charges_every_seat(calculator):
    plan = Plan(slug="seats", name="Seats", pricing_model="per_seat", price=0, price_per_user=12)
    assert calculator.calculate_price(plan, 3) == 36


def test_per_seat_requires_price_per_user(calculator):
    plan = Plan(slug="team", name="Team", pricing_model="per_seat", price=29, base_users=5)
    with pytest.raises(ValidationError, match="price_per_user") as exc_info:
        calculator.calculate_price(plan, 3)
    assert exc_info.value.field == "price_per_user"


def test_per_seat_zero_rate_is_rejected(calculator):
    plan = Plan(slug="team", name="Team", pricing_model="per_seat", price=29, base_users=5, price_per_user=0)
    with pytest.raises(ValidationError, match="Per-seat pricing requires price_per_user"):
        calculator.calculate_price(plan, 10)


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", "sNaN", Decimal("Infinity")])
def test_non_finite_prices_are_rejected(value):
    with pytest.raises(FieldInvalid) as exc_info:
        Plan(slug="starter", name="Starter", pricing_model="flat", price=value)
    assert exc_info.value.field == "price"

    with pytest.raises(FieldInvalid):
        PricingTier(min_users=1, price_per_user=value)


def test_blank_pandas_cell_reads_as_unset():
    plan = Plan(slug="team", name="Team", pricing_model="per_seat", price_per_user=float("nan"))
    assert plan.price_per_user is None


def test_tiered_step_pricing(calculator, tiered_plan):
    assert calculator.calculate_price(tiered_plan, 5) == 99
    assert calculator.calculate_price(tiered_plan, 25) == 249
    assert calculator.calculate_price(tiered_plan, 100) == 499


def test_tiered_boundaries_are_inclusive(calculator, tiered_plan):
    assert calculator.calculate_price(tiered_plan, 10) == 99
    assert calculator.calculate_price(tiered_plan, 11) == 249
    assert calculator.calculate_price(tiered_plan, 50) == 249
    assert calculator.calculate_price(tiered_plan, 51) == 499


def test_tiered_first_match_in_list_order(calculator):
    plan = Plan(
        slug="overlap",
        name="Overlap",
        pricing_model="tiered",
        pricing_tiers=[
            PricingTier(min_users=1, max_users=None, price=300),
            PricingTier(min_users=1, max_users=10, price=100),
        ],
    )
    assert calculator.calculate_price(plan, 5) == 300


def test_tiered_unsorted_non_overlapping_tiers(calculator, tiered_plan):
    shuffled = Plan(
        slug="business",
        name="Business",
        pricing_model="tiered",
        pricing_tiers=list(reversed(tiered_plan.pricing_tiers)),
    )
    for count in (5, 25, 100):
        assert calculator.calculate_price(shuffled, count) == calculator.calculate_price(tiered_plan, count)


def test_tiered_requires_tiers(calculator):
    plan = Plan(slug="business", name="Business", pricing_model="tiered")
    with pytest.raises(ValidationError, match="Tiered pricing requires pricing_tiers"):
        calculator.calculate_price(plan, 5)


def test_tiered_no_matching_tier(calculator):
    plan = Plan(
        slug="small",
        name="Small",
        pricing_model="tiered",
        pricing_tiers=[PricingTier(min_users=1, max_users=10, price=99)],
    )
    with pytest.raises(ValidationError, match="No pricing tier found for 11 users"):
        calculator.calculate_price(plan, 11)


def test_tiered_tier_without_price(calculator):
    plan = Plan(
        slug="broken",
        name="Broken",
        pricing_model="tiered",
        pricing_tiers=[PricingTier(min_users=1, max_users=None, price_per_user=5)],
    )
    with pytest.raises(ValidationError, match="must have a price property"):
        calculator.calculate_price(plan, 3)


def test_volume_graduated_pricing(calculator, volume_plan):
    assert calculator.calculate_price(volume_plan, 5) == 50
    assert calculator.calculate_price(volume_plan, 25) == 220
    assert calculator.calculate_price(volume_plan, 100) == 670


def test_volume_ignores_tier_input_order(calculator, volume_plan):
    shuffled = Plan(
        slug="enterprise",
        name="Enterprise",
        pricing_model="volume",
        pricing_tiers=[volume_plan.pricing_tiers[2], volume_plan.pricing_tiers[0], volume_plan.pricing_tiers[1]],
    )
    for count in (1, 10, 11, 50, 51, 100):
        assert calculator.calculate_price(shuffled, count) == calculator.calculate_price(volume_plan, count)


def test_volume_decimal_rates_stay_exact(calculator):
    plan = Plan(
        slug="cents",
        name="Cents",
        pricing_model="volume",
        pricing_tiers=[
            PricingTier(min_users=1, max_users=3, price_per_user=0.1),
            PricingTier(min_users=4, max_users=None, price_per_user=0.2),
        ],
    )
    assert calculator.calculate_price(plan, 4) == Decimal("0.5")


def test_volume_bounded_last_tier_leaves_overflow_unbilled(calculator):
    plan = Plan(
        slug="capped",
        name="Capped",
        pricing_model="volume",
        pricing_tiers=[PricingTier(min_users=1, max_users=10, price_per_user=10)],
    )
    assert calculator.calculate_price(plan, 15) == 100


def test_volume_requires_tiers(calculator):
    plan = Plan(slug="enterprise", name="Enterprise", pricing_model="volume")
    with pytest.raises(ValidationError, match="Volume pricing requires pricing_tiers"):
        calculator.calculate_price(plan, 5)


def test_volume_tier_without_price_per_user(calculator):
    plan = Plan(
        slug="broken",
        name="Broken",
        pricing_model="volume",
        pricing_tiers=[
            PricingTier(min_users=1, max_users=10, price_per_user=10),
            PricingTier(min_users=11, max_users=None, price=100),
        ],
    )
    assert calculator.calculate_price(plan, 10) == 100
    with pytest.raises(ValidationError, match="must have a price_per_user property"):
        calculator.calculate_price(plan, 11)


def test_unknown_pricing_model(calculator):
    plan = Plan(slug="odd", name="Odd", pricing_model="usage", price=10)
    with pytest.raises(FieldInvalid) as exc_info:
        calculator.calculate_price(plan, 1)
    assert exc_info.value.field == "pricing_model"


@pytest.mark.parametrize("user_count", [0, -1])
def test_user_count_below_one_raises(calculator, flat_plan, user_count):
    with pytest.raises(InvalidArgument, match="at least 1"):
        calculator.calculate_price(flat_plan, user_count)


@pytest.mark.parametrize("user_count", [2.5, "3", None, True])
def test_non_integer_user_count_raises(calculator, flat_plan, user_count):
    with pytest.raises(InvalidArgument):
        calculator.calculate_price(flat_plan, user_count)


def test_user_count_checked_before_plan(calculator):
    plan = Plan(slug="odd", name="Odd", pricing_model="usage")
    with pytest.raises(InvalidArgument):
        calculator.calculate_price(plan, 0)


def test_calculator_does_not_mutate_plan(calculator, volume_plan):
    tiers_before = list(volume_plan.pricing_tiers)
    calculator.calculate_price(volume_plan, 100)
    assert volume_plan.pricing_tiers == tiers_before


def test_quantity_flat_is_always_one(calculator, flat_plan):
    assert calculator.calculate_quantity(flat_plan, 1) == 1
    assert calculator.calculate_quantity(flat_plan, 10) == 1


def test_quantity_per_seat_with_base_users(calculator, per_seat_plan):
    assert calculator.calculate_quantity(per_seat_plan, 3) == 1
    assert calculator.calculate_quantity(per_seat_plan, 5) == 1
    assert calculator.calculate_quantity(per_seat_plan, 10) == 6


def test_quantity_per_seat_without_base_users(calculator):
    plan = Plan(slug="seats", name="Seats", pricing_model="per_seat", price_per_user=12)
    assert calculator.calculate_quantity(plan, 7) == 7


def test_quantity_tiered_and_volume_use_user_count(calculator, tiered_plan, volume_plan):
    assert calculator.calculate_quantity(tiered_plan, 25) == 25
    assert calculator.calculate_quantity(volume_plan, 25) == 25


def test_quantity_unknown_model_defaults_to_one(calculator, caplog):
    plan = Plan(slug="odd", name="Odd", pricing_model="usage")
    with caplog.at_level("WARNING"):
        assert calculator.calculate_quantity(plan, 40) == 1
    assert "Unknown pricing model" in caplog.text


def test_quote_combines_price_quantity_and_trace(calculator, volume_plan):
    quote = calculator.quote(volume_plan, 25)

    assert quote.plan_slug == "enterprise"
    assert quote.pricing_model == "volume"
    assert quote.price == 220
    assert quote.quantity == 25
    assert quote.currency == "USD"

    brackets = [t for t in quote.trace if t.step == "Volume Bracket"]
    assert [t.value for t in brackets] == ["100", "120"]
    assert "Total" in quote.get_trace_text()


def test_quote_propagates_pricing_errors(calculator):
    plan = Plan(slug="team", name="Team", pricing_model="per_seat", price=29)
    with pytest.raises(ValidationError):
        calculator.quote(plan, 2)
