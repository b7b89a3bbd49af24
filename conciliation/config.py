# conciliation/config.py

from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # App
    app_name: str = "Conciliation Engine"
    app_env: str = "development"
    debug: bool = True

    # Ledger classification constants
    treasury_tax_id: str = "30711610126"
    excluded_tax_id: str = "30604731018"
    # Placeholder clearing-house ids (BYMA, MAV, MATBA ROFEX, MAE). Set the real
    # ones through MARKET_TAX_IDS or their debits are reconciled as movements.
    market_tax_ids: list[str] = [
        "30529177875",
        "30604796035",
        "30711641048",
        "33628189159",
    ]

    # Marker in free-text descriptions for restricted counterparties
    restricted_marker: str = "RESTRINGIDO"

    # Header discovery
    header_scan_rows: int = 10
    default_header_row: int = 0

    # Matching config
    amount_tolerance: float = Field(default=0.01, gt=0)
    indexed_matching: bool = False
    receipt_currency: str = "LOCAL"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
