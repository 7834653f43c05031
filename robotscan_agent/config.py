from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = "RobotScanBot/1.0 (+technical file scanner)"


class ScoringWeights(BaseModel):
    baseline: int = 10
    robots_txt: int = 25
    robots_sitemap: int = 5
    llms_txt: int = 20
    llms_too_short: int = 5
    llms_no_headers: int = 3
    llms_no_links: int = 2
    llms_quality_max_penalty: int = 10
    llms_min_length: int = 200
    sitemap_xml: int = 6
    security_txt: int = 5
    manifest_json: int = 3
    ads_txt: int = 3
    humans_txt: int = 3
    ai_txt: int = 5
    no_errors: int = 10
    bot_health: int = 5
    ai_total_block_penalty: int = 15
    global_block_penalty: int = 10

    def file_points(self, key: str) -> int:
        return int(getattr(self, key, 0))


class ComparatorThresholds(BaseModel):
    large_score_drop: int = Field(15, ge=1)
    moderate_score_drop: int = Field(5, ge=1)


class ScannerConfig(BaseModel):
    user_agent: str = DEFAULT_USER_AGENT
    primary_timeout_s: float = Field(10.0, gt=0, le=60)
    file_timeout_s: float = Field(8.0, gt=0, le=30)
    max_workers: int = Field(8, ge=1, le=8)
    try_fallback_paths: bool = True
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_scanner_config() -> ScannerConfig:
    return ScannerConfig(
        user_agent=os.getenv("ROBOTSCAN_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
        primary_timeout_s=_env_float("ROBOTSCAN_PRIMARY_TIMEOUT_S", 10.0),
        file_timeout_s=_env_float("ROBOTSCAN_FILE_TIMEOUT_S", 8.0),
        max_workers=max(1, min(8, int(_env_float("ROBOTSCAN_MAX_WORKERS", 8)))),
    )


def cooldown_hours() -> float:
    return max(0.0, _env_float("ROBOTSCAN_COOLDOWN_HOURS", 24.0))
