"""
Plan Catalog Builder - merges the plan and tier sheets into plans.json.

- Reads plans.csv and plan_tiers.csv with pandas
- Attaches each plan's tiers ordered by min_users
- Validates every plan, dropping the ones the calculator could not price
- Writes plans.json and a build report
"""
import pandas as pd
import json
import hashlib
import logging
from datetime import datetime
from typing import Optional
from pathlib import Path

from ..config.settings import get_settings, Settings
from ..engine.errors import PricingError
from ..engine.models import Plan, PricingTier
from ..engine.plan_validator import validate_plan
from ..services.plans_service import PlansService

logger = logging.getLogger(__name__)

PLAN_COLUMNS = ['slug', 'name', 'pricing_model', 'price']
TIER_COLUMNS = ['plan_slug', 'min_users', 'max_users', 'price', 'price_per_user']


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def parse_bool(value: str, default: bool = True) -> bool:
    """Parse a boolean from CSV string."""
    if not value:
        return default
    return value.lower() in ('true', '1', 'yes', 'on')


def _load_csv(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str).fillna('')
    df.columns = [c.strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def load_tiers(tiers_csv: Path, report: dict) -> dict[str, list[PricingTier]]:
    """Group tier rows by plan slug, each group ordered by min_users."""
    tiers_by_plan: dict[str, list[PricingTier]] = {}
    if not tiers_csv.exists():
        report["warnings"].append(f"{tiers_csv.name} not found, plans will have no tiers")
        return tiers_by_plan

    df = _load_csv(tiers_csv)
    missing = [c for c in TIER_COLUMNS if c not in df.columns]
    if missing:
        report["errors"].append(f"{tiers_csv.name} is missing columns: {', '.join(missing)}")
        return tiers_by_plan

    df['_min'] = pd.to_numeric(df['min_users'], errors='coerce')
    df = df.sort_values(['plan_slug', '_min'], kind='stable')

    for idx, row in df.iterrows():
        line_num = idx + 2  # 1-indexed plus header row
        try:
            tier = PricingTier.from_dict(row.to_dict())
        except PricingError as e:
            report["errors"].append(f"{tiers_csv.name} line {line_num}: {e.message}")
            continue
        tiers_by_plan.setdefault(row['plan_slug'], []).append(tier)

    return tiers_by_plan


def plan_from_row(row: dict, tiers: list[PricingTier], settings: Settings) -> Plan:
    """Build a Plan from a plans.csv row."""
    features = [f.strip() for f in row.get('features', '').split('|') if f.strip()]
    return Plan.from_dict({
        'slug': row['slug'],
        'name': row['name'],
        'description': row.get('description') or None,
        'pricing_model': row['pricing_model'],
        'price': row.get('price') or '0',
        'price_per_user': row.get('price_per_user') or None,
        'price_yearly': row.get('price_yearly') or None,
        'base_users': row.get('base_users') or None,
        'pricing_tiers': tiers,
        'currency': (row.get('currency') or settings.default_currency).upper(),
        'interval': row.get('interval') or 'month',
        'trial_days': row.get('trial_days') or None,
        'features': features,
        'is_active': parse_bool(row.get('is_active', '')),
        'is_visible': parse_bool(row.get('is_visible', '')),
        'sort_order': row.get('sort_order') or 0,
    })


def build_plan_catalog(settings: Optional[Settings] = None) -> dict:
    """
    Build plans.json from the plan and tier sheets.

    Args:
        settings: Optional settings override

    Returns:
        Build report dictionary
    """
    settings = settings or get_settings()

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "input_files": {},
        "metrics": {},
        "warnings": [],
        "errors": []
    }

    plans_csv = settings.plans_csv
    if not plans_csv.exists():
        msg = f"CRITICAL ERROR: {plans_csv} not found."
        report["errors"].append(msg)
        report["status"] = "failed"
        logger.error(msg)
        return report

    for key, path in (("plans", plans_csv), ("plan_tiers", settings.plan_tiers_csv)):
        if path.exists():
            report["input_files"][key] = {"path": str(path), "hash": get_file_hash(path)}

    try:
        df_plans = _load_csv(plans_csv)
    except Exception as e:
        msg = f"ERROR: Failed to read {plans_csv}. {e}"
        report["errors"].append(msg)
        report["status"] = "failed"
        logger.error(msg)
        return report

    missing = [c for c in PLAN_COLUMNS if c not in df_plans.columns]
    if missing:
        msg = f"{plans_csv.name} is missing columns: {', '.join(missing)}"
        report["errors"].append(msg)
        report["status"] = "failed"
        logger.error(msg)
        return report

    duplicates = df_plans.loc[df_plans['slug'].duplicated(), 'slug'].unique().tolist()
    if duplicates:
        msg = f"Duplicate plan slugs: {', '.join(duplicates)}"
        report["errors"].append(msg)
        report["status"] = "failed"
        logger.error(msg)
        return report

    tiers_by_plan = load_tiers(settings.plan_tiers_csv, report)

    orphans = sorted(set(tiers_by_plan) - set(df_plans['slug']))
    for slug in orphans:
        report["warnings"].append(f"Tiers reference unknown plan '{slug}'")

    plans = []
    rejected = 0
    for idx, row in df_plans.iterrows():
        line_num = idx + 2
        slug = row['slug']
        try:
            plan = plan_from_row(row.to_dict(), tiers_by_plan.get(slug, []), settings)
        except PricingError as e:
            report["errors"].append(f"{plans_csv.name} line {line_num}: {e.message}")
            rejected += 1
            continue

        validation = validate_plan(plan)
        for warning in validation.warnings:
            report["warnings"].append(f"Plan '{slug}': {warning}")
        if not validation.valid:
            for error in validation.errors:
                report["errors"].append(f"Plan '{slug}': {error}")
            rejected += 1
            continue

        plans.append(plan)
        logger.info("Built plan %s (%s, %d tiers)", slug, plan.model_name, len(plan.pricing_tiers))

    by_model = {}
    for plan in plans:
        by_model[plan.model_name] = by_model.get(plan.model_name, 0) + 1

    report["metrics"] = {
        "source_plan_count": len(df_plans),
        "final_plan_count": len(plans),
        "rejected_plans": rejected,
        "tier_count": sum(len(p.pricing_tiers) for p in plans),
        "plans_by_model": by_model,
    }

    for warning in report["warnings"]:
        logger.warning(warning)

    output_path = settings.plans_json
    PlansService(output_path).save_plans(plans, source_files=[str(plans_csv), str(settings.plan_tiers_csv)])
    report["output_file"] = str(output_path)
    # Rejected plans are reported but do not fail the build
    report["status"] = "partial" if report["errors"] else "success"
    logger.info("Catalog complete: %s generated with %d plans", output_path, len(plans))

    report_path = settings.build_report
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info("Build report saved to: %s", report_path)

    return report


if __name__ == "__main__":
    build_plan_catalog()
