"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Money is held as Decimal; numbers are coerced through str so 29.99 stays 29.99.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from .errors import FieldInvalid


class PricingModel(str, Enum):
    """How a plan turns a seat count into a price."""
    FLAT = "flat"
    PER_SEAT = "per_seat"
    TIERED = "tiered"
    VOLUME = "volume"


BILLING_INTERVALS = ("month", "year")


def to_decimal(value: Any, field_name: str = "price") -> Optional[Decimal]:
    """Coerce a number or numeric string to Decimal (None and '' stay None)."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise FieldInvalid(field_name, value)
    if isinstance(value, float) and value != value:  # NaN from pandas
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise FieldInvalid(field_name, value)
    if not number.is_finite():
        raise FieldInvalid(field_name, value)
    return number


def to_optional_int(value: Any, field_name: str) -> Optional[int]:
    """Coerce to int, accepting whole floats like 5.0 (what pandas hands back)."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise FieldInvalid(field_name, value)
    if number != number:  # NaN from pandas
        return None
    if not number.is_integer():
        raise FieldInvalid(field_name, value)
    return int(number)


def _flag(value: Any, default: bool) -> bool:
    return default if value is None else bool(value)


@dataclass(frozen=True)
class PricingTier:
    """A seat bracket. max_users=None means the bracket has no upper bound."""
    min_users: int
    max_users: Optional[int] = None
    price: Optional[Decimal] = None
    price_per_user: Optional[Decimal] = None

    def __post_init__(self):
        # frozen dataclass, so normalise through object.__setattr__
        object.__setattr__(self, "price", to_decimal(self.price, "price"))
        object.__setattr__(self, "price_per_user", to_decimal(self.price_per_user, "price_per_user"))

    def contains(self, user_count: int) -> bool:
        """Inclusive range check."""
        if user_count < self.min_users:
            return False
        return self.max_users is None or user_count <= self.max_users

    def capacity(self) -> Optional[int]:
        """Number of seats in the bracket, or None when unbounded."""
        if self.max_users is None:
            return None
        return self.max_users - self.min_users + 1

    def describe(self) -> str:
        upper = str(self.max_users) if self.max_users is not None else "∞"
        return f"{self.min_users}–{upper}"

    def to_dict(self) -> dict:
        return {
            "min_users": self.min_users,
            "max_users": self.max_users,
            "price": self.price,
            "price_per_user": self.price_per_user,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PricingTier":
        min_users = to_optional_int(data.get("min_users"), "min_users")
        if min_users is None:
            raise FieldInvalid("min_users", data.get("min_users"), "Pricing tier requires min_users")
        return cls(
            min_users=min_users,
            max_users=to_optional_int(data.get("max_users"), "max_users"),
            price=data.get("price"),
            price_per_user=data.get("price_per_user"),
        )


@dataclass
class Plan:
    """
    A subscription plan as the calculator sees it.

    pricing_model is kept as the raw value when it is not a known
    PricingModel so the calculator can report it. price is charged per
    interval; price_yearly, when set, is the yearly unit price offered
    alongside a monthly plan.
    """
    slug: str
    name: str
    pricing_model: Union[PricingModel, str]
    price: Decimal = Decimal("0")
    price_per_user: Optional[Decimal] = None
    price_yearly: Optional[Decimal] = None
    base_users: Optional[int] = None
    pricing_tiers: list[PricingTier] = field(default_factory=list)

    # Catalog metadata
    currency: str = "USD"
    interval: str = "month"
    description: Optional[str] = None
    trial_days: Optional[int] = None
    features: list[str] = field(default_factory=list)
    is_active: bool = True
    is_visible: bool = True
    sort_order: int = 0

    def __post_init__(self):
        try:
            self.pricing_model = PricingModel(self.pricing_model)
        except ValueError:
            pass
        self.price = to_decimal(self.price, "price") or Decimal("0")
        self.price_per_user = to_decimal(self.price_per_user, "price_per_user")
        self.price_yearly = to_decimal(self.price_yearly, "price_yearly")
        self.pricing_tiers = [
            t if isinstance(t, PricingTier) else PricingTier.from_dict(t)
            for t in (self.pricing_tiers or [])
        ]

    @property
    def model_name(self) -> str:
        if isinstance(self.pricing_model, PricingModel):
            return self.pricing_model.value
        return str(self.pricing_model)

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "pricing_model": self.model_name,
            "price": self.price,
            "price_per_user": self.price_per_user,
            "price_yearly": self.price_yearly,
            "base_users": self.base_users,
            "pricing_tiers": [t.to_dict() for t in self.pricing_tiers],
            "currency": self.currency,
            "interval": self.interval,
            "trial_days": self.trial_days,
            "features": list(self.features),
            "is_active": self.is_active,
            "is_visible": self.is_visible,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        return cls(
            slug=data.get("slug", ""),
            name=data.get("name", ""),
            description=data.get("description"),
            pricing_model=data.get("pricing_model", ""),
            price=data.get("price") or Decimal("0"),
            price_per_user=data.get("price_per_user"),
            price_yearly=data.get("price_yearly"),
            base_users=to_optional_int(data.get("base_users"), "base_users"),
            pricing_tiers=data.get("pricing_tiers") or [],
            currency=data.get("currency") or "USD",
            interval=data.get("interval") or "month",
            trial_days=to_optional_int(data.get("trial_days"), "trial_days"),
            features=list(data.get("features") or []),
            is_active=_flag(data.get("is_active"), True),
            is_visible=_flag(data.get("is_visible"), True),
            sort_order=to_optional_int(data.get("sort_order"), "sort_order") or 0,
        )


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class Quote:
    """Price and billing quantity for one plan at one seat count."""
    plan_slug: str
    pricing_model: str
    user_count: int
    price: Decimal
    quantity: int
    currency: str = "USD"
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this quote."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)
