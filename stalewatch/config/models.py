from pydantic import BaseModel, Field
from typing import Literal


class StalenessConfig(BaseModel):
    enabled: bool = True
    # Non-positive thresholds are accepted; every item with any elapsed month goes stale.
    threshold_months: int = 12
    database_path: str = "data/stale-items.db"
    backup_before_run: bool = True
    validate_before_run: bool = True


class StalewatchConfig(BaseModel):
    staleness: StalenessConfig = Field(default_factory=StalenessConfig)
    items_path: str = "data/items.yml"
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
