from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .llms_parser import ParsedLLMsTxt
from .robots_parser import ParsedRobotsTxt

# Declared order is also the presentation order.
TECHNICAL_FILE_KEYS: tuple[str, ...] = (
    "robots_txt",
    "llms_txt",
    "sitemap_xml",
    "security_txt",
    "manifest_json",
    "ads_txt",
    "humans_txt",
    "ai_txt",
)

FILE_LABELS: dict[str, str] = {
    "robots_txt": "robots.txt",
    "llms_txt": "llms.txt",
    "sitemap_xml": "sitemap.xml",
    "security_txt": "security.txt",
    "manifest_json": "manifest.json",
    "ads_txt": "ads.txt",
    "humans_txt": "humans.txt",
    "ai_txt": "ai.txt",
}

Severity = Literal["high", "medium", "low"]

SEVERITY_ALIASES = {
    "critical": "high",
    "important": "medium",
    "suggestion": "low",
}

DifferenceType = Literal[
    "robots_txt",
    "llms_txt",
    "bot_permission",
    "file_added",
    "file_removed",
    "score_change",
]

DIFFERENCE_TYPES: tuple[str, ...] = (
    "robots_txt",
    "llms_txt",
    "bot_permission",
    "file_added",
    "file_removed",
    "score_change",
)


def normalize_severity(value: str | None) -> str:
    s = (value or "").strip().lower()
    s = SEVERITY_ALIASES.get(s, s)
    if s in ("high", "medium", "low"):
        return s
    return "low"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScanRequest(CamelModel):
    url: str = Field(..., min_length=1)
    user_id: str | None = None


class ScanResult(CamelModel):
    robots_txt_found: bool = False
    robots_txt_content: str | None = None
    llms_txt_found: bool = False
    llms_txt_content: str | None = None
    sitemap_xml_found: bool = False
    sitemap_xml_content: str | None = None
    security_txt_found: bool = False
    security_txt_content: str | None = None
    manifest_json_found: bool = False
    manifest_json_content: str | None = None
    ads_txt_found: bool = False
    ads_txt_content: str | None = None
    humans_txt_found: bool = False
    humans_txt_content: str | None = None
    ai_txt_found: bool = False
    ai_txt_content: str | None = None

    bot_permissions: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    final_url: str | None = None
    timings_ms: dict[str, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _absent_files_have_no_content(self):
        for key in TECHNICAL_FILE_KEYS:
            if not getattr(self, f"{key}_found") and getattr(self, f"{key}_content") is not None:
                raise ValueError(f"{key}_content must be null when {key}_found is false")
        return self

    def file_found(self, key: str) -> bool:
        return bool(getattr(self, f"{key}_found"))

    def file_content(self, key: str) -> str | None:
        return getattr(self, f"{key}_content")


class Scan(ScanResult):
    """Point-in-time snapshot of a site's technical files plus its score."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    url: str
    score: int = Field(0, ge=0, le=100)
    created_at: datetime
    tags: list[str] = Field(default_factory=list)


class ScanResponse(CamelModel):
    id: int
    url: str
    robots_txt_found: bool
    robots_txt_content: str | None
    llms_txt_found: bool
    llms_txt_content: str | None
    bot_permissions: dict[str, str]
    errors: list[str]
    warnings: list[str]
    score: int
    cooldown_active: bool = False


class BotPermissionRow(CamelModel):
    bot: str
    val_a: str
    val_b: str
    status: Literal["same", "different"]


class ScanDifference(CamelModel):
    type: DifferenceType
    severity: Severity
    field: str
    description: str
    old_value: str | None = None
    new_value: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _accept_severity_aliases(cls, v):
        if isinstance(v, str):
            return normalize_severity(v)
        return v


class DiffStats(CamelModel):
    total: int
    high: int
    medium: int
    low: int
    by_type: dict[str, int]


class OptimizationRecommendation(CamelModel):
    key: str
    category: str
    severity: Severity
    title: str
    description: str
    recommendation: str
    impact: str

    @field_validator("severity", mode="before")
    @classmethod
    def _accept_severity_aliases(cls, v):
        if isinstance(v, str):
            return normalize_severity(v)
        return v


class PermissionChange(CamelModel):
    old: str
    new: str


class ChangeDetectionResult(CamelModel):
    has_changes: bool
    robots_txt_changed: bool = False
    llms_txt_changed: bool = False
    bot_permissions_changed: dict[str, PermissionChange] = Field(default_factory=dict)
    new_errors: list[str] = Field(default_factory=list)


class ComparisonResponse(CamelModel):
    old_scan_id: int
    new_scan_id: int
    differences: list[ScanDifference]
    stats: DiffStats
    bot_rows: list[BotPermissionRow]
    changes: ChangeDetectionResult


class DomainCooldown(CamelModel):
    user_id: str
    domain: str
    last_scan_at: datetime


class ScoreFactor(CamelModel):
    key: str
    label: str
    points: int
    detail: str


class ScoreBreakdown(CamelModel):
    score: int
    status: str
    factors: list[ScoreFactor]


class BotAccessRequest(CamelModel):
    url: str = Field(..., min_length=1)
    bot_name: str = Field(..., min_length=1)


class BotAccessResult(CamelModel):
    bot: str
    user_agent: str
    status: int
    accessible: bool
    status_text: str
    error: str | None = None


class ImportRequest(CamelModel):
    content: str = Field(..., min_length=1)


class RobotsImportResponse(CamelModel):
    summary: str
    parsed: ParsedRobotsTxt


class LlmsImportResponse(CamelModel):
    summary: str
    parsed: ParsedLLMsTxt
