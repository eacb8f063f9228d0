#!/usr/bin/env python
"""
Build pipeline - builds the plan catalog and runs the test suite.

Usage:
    python scripts/build_all.py
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from seat_pricing.config.logging import setup_logging
from seat_pricing.config.settings import get_settings
from seat_pricing.data.build_plan_catalog import build_plan_catalog


def main():
    settings = get_settings()
    setup_logging(settings.log_level)

    print("=" * 60)
    print("SEAT PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    print("[1/2] Building plan catalog...")
    report = build_plan_catalog(settings)

    if report["status"] == "failed":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Plans: {report['metrics']['final_plan_count']}")
    print(f"  Rejected: {report['metrics']['rejected_plans']}")
    print(f"  Tiers: {report['metrics']['tier_count']}")
    print()
    print("Plans by model:")
    for model, count in report['metrics'].get('plans_by_model', {}).items():
        print(f"  {model}: {count}")
    for error in report["errors"]:
        print(f"  ERROR: {error}")


if __name__ == "__main__":
    main()
