"""
Plans Service - CRUD operations for subscription plans.
Handles reading/writing plans.json and validating plans before saving.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.errors import FieldInvalid
from ..engine.models import Plan, PricingModel
from ..engine.plan_validator import ValidationResult, validate_plan

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = (
    "name", "pricing_model", "price", "currency", "interval",
    "features", "is_active", "is_visible", "sort_order",
)


class PlanNotFound(ValueError):
    """No plan with the requested slug."""


class PlanValidationFailed(ValueError):
    """A plan did not pass validation and was not saved."""

    def __init__(self, slug: str, result: ValidationResult):
        self.result = result
        super().__init__(f"Plan '{slug}' is invalid: {'; '.join(result.errors)}")


class PlansService:
    """Service for managing subscription plans."""

    def __init__(self, plans_json_path: Path):
        self.plans_json_path = Path(plans_json_path)

    def list_plans(self, include_inactive: bool = True) -> list[Plan]:
        """List all plans from JSON."""
        if not self.plans_json_path.exists():
            return []

        with open(self.plans_json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        plans = [Plan.from_dict(p) for p in data.get('plans', [])]
        if not include_inactive:
            plans = [p for p in plans if p.is_active]
        return plans

    def list_public_plans(self) -> list[Plan]:
        """Active and visible plans in display order."""
        plans = [p for p in self.list_plans() if p.is_active and p.is_visible]
        plans.sort(key=lambda p: (p.sort_order, p.price))
        return plans

    def get_plan(self, slug: str) -> Optional[Plan]:
        """Get a single plan by slug."""
        for plan in self.list_plans():
            if plan.slug == slug:
                return plan
        return None

    def require_plan(self, slug: str) -> Plan:
        plan = self.get_plan(slug)
        if plan is None:
            raise PlanNotFound(f"Plan '{slug}' not found")
        return plan

    def create_plan(self, plan: Plan) -> Plan:
        """Validate and append a new plan."""
        validation = validate_plan(plan)
        if not validation.valid:
            raise PlanValidationFailed(plan.slug, validation)

        plans = self.list_plans()
        if any(p.slug == plan.slug for p in plans):
            raise ValueError(f"Plan with slug '{plan.slug}' already exists")

        plans.append(plan)
        self.save_plans(plans)
        logger.info("Created plan %s (%s)", plan.slug, plan.model_name)
        return plan

    def update_plan(self, slug: str, updates: dict) -> Plan:
        """Apply field updates to an existing plan and re-validate it."""
        for key in NON_NULLABLE_FIELDS:
            if key in updates and updates[key] is None:
                raise FieldInvalid(key, None, f"{key} cannot be null")

        plans = self.list_plans()

        for i, plan in enumerate(plans):
            if plan.slug == slug:
                data = plan.to_dict()
                for key, value in updates.items():
                    if key == 'slug':
                        continue
                    if key in data:
                        data[key] = value
                updated = Plan.from_dict(data)

                validation = validate_plan(updated)
                if not validation.valid:
                    raise PlanValidationFailed(slug, validation)

                plans[i] = updated
                self.save_plans(plans)
                logger.info("Updated plan %s: %s", slug, ", ".join(sorted(updates)))
                return updated

        raise PlanNotFound(f"Plan '{slug}' not found")

    def delete_plan(self, slug: str) -> bool:
        """Delete a plan."""
        plans = self.list_plans()
        remaining = [p for p in plans if p.slug != slug]

        if len(remaining) == len(plans):
            raise PlanNotFound(f"Plan '{slug}' not found")

        self.save_plans(remaining)
        logger.info("Deleted plan %s", slug)
        return True

    def save_plans(self, plans: list[Plan], source_files: Optional[list[str]] = None):
        """Write plans back to JSON."""
        output_data = {
            "compiled_at": datetime.now().isoformat(),
            "source_files": source_files or [],
            "total_plans": len(plans),
            "active_plans": sum(1 for p in plans if p.is_active),
            "plans": [p.to_dict() for p in plans],
        }

        self.plans_json_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.plans_json_path, 'w', encoding='utf-8') as f:
            # Decimals are written as strings
            json.dump(output_data, f, indent=2, default=str)

    def get_stats(self) -> dict:
        """Get statistics about plans."""
        plans = self.list_plans()

        by_model = {m.value: 0 for m in PricingModel}
        for p in plans:
            by_model[p.model_name] = by_model.get(p.model_name, 0) + 1

        return {
            'total': len(plans),
            'active': sum(1 for p in plans if p.is_active),
            'inactive': sum(1 for p in plans if not p.is_active),
            'visible': sum(1 for p in plans if p.is_active and p.is_visible),
            'by_model': by_model,
        }
