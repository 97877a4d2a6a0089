"""
Pydantic v2 schemas for the /api/ai/* integration endpoints.

Numbers in these responses (scores, counts, densities) are computed
deterministically in Python. Only ContentGenerationOut carries
LLM-written text.
"""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import Field

from blogpress.schemas.common import CamelInput, CamelModel


# ── Content generation ──────────────────────────────────────
class ContentGenerationIn(CamelInput):
    topic: str = Field(..., min_length=1, max_length=300, examples=["Remote team rituals"])
    type: Literal["article", "summary", "social"] = "article"
    category_id: str | None = Field(default=None, max_length=36)
    keywords: list[str] = Field(default_factory=list, max_length=20)
    tone: str = Field(default="informative", max_length=50)
    length: Literal["short", "medium", "long"] = "medium"
    target_audience: str | None = Field(default=None, max_length=200)


class ContentGenerationOut(CamelModel):
    title: str
    content: str
    excerpt: str
    tags: list[str]
    word_count: int


# ── Content analysis ────────────────────────────────────────
class ContentAnalysisIn(CamelInput):
    content: str = Field(..., min_length=1)
    title: str | None = None
    keywords: list[str] = Field(default_factory=list, max_length=50)


class ContentAnalysisOut(CamelModel):
    seo_score: int = Field(..., ge=0, le=100)
    readability_score: float
    keyword_density: dict[str, int]
    suggestions: list[str]
    word_count: int
    reading_time: int = Field(..., description="Estimated minutes at 200 words per minute.")
    analyzed_at: datetime.datetime


# ── SEO optimization ────────────────────────────────────────
class SeoOptimizationIn(CamelInput):
    content: str = Field(..., min_length=1)
    target_keyword: str = Field(..., min_length=1, max_length=100)
    title: str | None = None
    meta_description: str | None = None


class SeoOptimizationOut(CamelModel):
    suggestions: list[str]
    optimized_title: str
    optimized_meta_description: str
    keyword_recommendations: list[str]
    score: int = Field(..., ge=0, le=100)


# ── Insights ────────────────────────────────────────────────
InsightType = Literal["performance", "content", "audience", "trends"]
Timeframe = Literal["7d", "30d", "90d"]


class Insight(CamelModel):
    type: str
    title: str
    description: str
    impact: Literal["high", "medium", "low"]
    actionable: bool


class InsightsOut(CamelModel):
    insights: list[Insight]
    recommendations: list[str]
    generated_at: datetime.datetime
    timeframe: Timeframe
    type: InsightType
