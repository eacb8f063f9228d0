"""
Centralized settings and path configuration for seat pricing.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def get_default_data_dir() -> Path:
    """Package data directory holding the plan sources and built catalog."""
    return Path(__file__).resolve().parent.parent / 'data'


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Input files
    plans_csv: Path
    plan_tiers_csv: Path

    # Output files
    plans_json: Path
    build_report: Path

    default_currency: str = 'USD'
    log_level: str = 'INFO'

    # API server
    api_host: str = '127.0.0.1'
    api_port: int = 8000

    @classmethod
    def load(cls, project_root: Optional[Path] = None, data_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        env_data_dir = os.environ.get('SEAT_PRICING_DATA_DIR')
        data = Path(data_dir or env_data_dir or get_default_data_dir())

        return cls(
            project_root=root,
            data_dir=data,
            plans_csv=data / 'plans.csv',
            plan_tiers_csv=data / 'plan_tiers.csv',
            plans_json=data / 'plans.json',
            build_report=data / 'outputs' / 'build_report.json',
            default_currency=os.environ.get('SEAT_PRICING_DEFAULT_CURRENCY', 'USD').upper(),
            log_level=os.environ.get('SEAT_PRICING_LOG_LEVEL', 'INFO').upper(),
            api_host=os.environ.get('SEAT_PRICING_API_HOST', '127.0.0.1'),
            api_port=int(os.environ.get('SEAT_PRICING_API_PORT', '8000')),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
