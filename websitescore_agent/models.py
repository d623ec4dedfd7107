from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

Status = Literal["good", "warning", "error"]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AnalyzeRequest(_Model):
    # Optional here so a missing URL is reported as a structured 400, not a 422.
    url: str | None = None
    timeout_ms: int | None = Field(None, ge=1000, le=60000)


class ErrorResponse(_Model):
    error: str
    details: str | None = None


class Check(_Model):
    name: str
    value: str
    details: str | None = None
    score: int = Field(..., ge=0)
    max_score: int = Field(..., ge=0)
    status: Status

    @model_validator(mode="after")
    def _score_within_max(self) -> "Check":
        if self.score > self.max_score:
            raise ValueError(f"{self.name}: score {self.score} exceeds max {self.max_score}")
        return self


class Category(_Model):
    name: str
    checks: dict[str, Check]

    @computed_field
    @property
    def score(self) -> int:
        return sum(c.score for c in self.checks.values())

    @computed_field(alias="maxScore")
    @property
    def max_score(self) -> int:
        return sum(c.max_score for c in self.checks.values())


class AnalyzerReport(_Model):
    score: int = Field(..., ge=0, le=100)
    categories: dict[str, Category]


class PageSpeedReport(AnalyzerReport):
    performance_score: int
    seo_score: int
    best_practices_score: int
    accessibility_score: int


class Section(_Model):
    name: str
    score: int
    max_score: int = 100
    categories: dict[str, Category]


class PageSpeedSection(Section):
    performance_score: int
    seo_score: int
    best_practices_score: int
    accessibility_score: int


class Sections(_Model):
    website_quality: Section
    trust_security: Section
    page_speed: PageSpeedSection


class AnalysisResult(_Model):
    url: str
    analyzed_at: str
    load_time: str
    overall_score: int
    sections: Sections


class AuxiliaryFiles(_Model):
    """Best-effort side files; ``None`` means absent or unfetchable."""

    robots_txt: str | None = None
    sitemap: str | None = None
    llms_txt: str | None = None


class PageInputs(_Model):
    """Everything the analyzers read. Shared by all three, never mutated."""

    url: str
    html: str
    headers: dict[str, str]
    elapsed_ms: int
    status_code: int = 200
    aux: AuxiliaryFiles = Field(default_factory=AuxiliaryFiles)


class SSLInfo(_Model):
    valid: bool
    issuer: str | None = None
    days_remaining: int = 0
    valid_from: str | None = None
    valid_to: str | None = None


class SSLReport(_Model):
    url: str
    category: Category
    info: SSLInfo | None = None
    error: str | None = None
