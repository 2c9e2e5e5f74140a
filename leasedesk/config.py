# leasedesk/config.py
from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "LeaseDesk"

    # --- Security / JWT ---
    jwt_secret: str = "dev-secret-please-change"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:8080"]

    # --- Logging ---
    log_level: str = "INFO"
    log_json: bool = False

    # --- Bootstrap ---
    seed_demo_data: bool = False
    platform_owner_email: str = "owner@leasedesk.local"
    platform_owner_name: str = "Platform Owner"

    # --- Financial defaults ---
    default_labor_margin_pct: Decimal = Decimal("0")
    default_material_margin_pct: Decimal = Decimal("0")
    price_review_threshold_pct: Decimal = Decimal("10")
    # Maintenance tasks at or above this billable amount must pass through pending_approval
    approval_cost_threshold: Optional[Decimal] = None
    approval_task_types: List[str] = ["maintenance"]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
