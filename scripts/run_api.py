"""
Serve the seat pricing API with uvicorn.

Host and port come from SEAT_PRICING_API_HOST / SEAT_PRICING_API_PORT;
pass --reload to restart on source changes.
"""
import sys
from pathlib import Path

import uvicorn

# Run from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from seat_pricing.config.settings import get_settings


def main():
    settings = get_settings()
    reload = "--reload" in sys.argv[1:]

    print(f"Seat Pricing API on http://{settings.api_host}:{settings.api_port} (plans: {settings.plans_json})")
    uvicorn.run(
        "seat_pricing.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=reload,
        reload_dirs=[str(settings.project_root / "src")] if reload else None,
    )


if __name__ == "__main__":
    main()
