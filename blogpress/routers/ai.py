"""
AI integration router — endpoints for external tools holding an API key.

Every call authenticates the X-API-Key header, meters it against the key's
usage cap, and checks one permission (or "*"):

  POST /api/ai/generate-content  — content:generate  (Groq LLM draft)
  POST /api/ai/analyze-content   — content:analyze   (deterministic)
  GET  /api/ai/insights          — insights:read     (from analytics)
  POST /api/ai/optimize-seo      — seo:optimize      (deterministic)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.auth.dependencies import require_permission
from blogpress.auth.permissions import (
    CONTENT_ANALYZE,
    CONTENT_GENERATE,
    INSIGHTS_READ,
    SEO_OPTIMIZE,
)
from blogpress.core.clock import utcnow
from blogpress.core.database import get_db_session
from blogpress.models.api_key import ApiKey
from blogpress.schemas.ai import (
    ContentAnalysisIn,
    ContentAnalysisOut,
    ContentGenerationIn,
    ContentGenerationOut,
    InsightsOut,
    InsightType,
    SeoOptimizationIn,
    SeoOptimizationOut,
    Timeframe,
)
from blogpress.services.analytics import get_summary
from blogpress.services.content_tools import analyze_content, optimize_seo, words
from blogpress.services.insights import build_insights
from blogpress.services.llm_client import generate_content

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI Integrations"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.post(
    "/generate-content",
    response_model=ContentGenerationOut,
    summary="Draft blog content with the LLM",
)
async def generate(
    payload: ContentGenerationIn,
    api_key: Annotated[ApiKey, Depends(require_permission(CONTENT_GENERATE))],
) -> ContentGenerationOut:
    try:
        draft = await generate_content(
            topic=payload.topic,
            content_type=payload.type,
            keywords=payload.keywords,
            tone=payload.tone,
            length=payload.length,
            target_audience=payload.target_audience,
        )
    except RuntimeError:
        logger.exception("Content generation failed for key %s", api_key.key_prefix)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Content generation service is temporarily unavailable.",
        )

    return ContentGenerationOut(**draft, word_count=len(words(draft["content"])))


@router.post(
    "/analyze-content",
    response_model=ContentAnalysisOut,
    summary="Score content for SEO and readability",
)
async def analyze(
    payload: ContentAnalysisIn,
    api_key: Annotated[ApiKey, Depends(require_permission(CONTENT_ANALYZE))],
) -> ContentAnalysisOut:
    result = analyze_content(payload.content, payload.title, payload.keywords)
    return ContentAnalysisOut(
        seo_score=result.seo_score,
        readability_score=result.readability_score,
        keyword_density=result.keyword_density,
        suggestions=result.suggestions,
        word_count=result.word_count,
        reading_time=result.reading_time,
        analyzed_at=utcnow(),
    )


@router.get(
    "/insights",
    response_model=InsightsOut,
    summary="Performance insights from site analytics",
)
async def insights(
    session: DbSession,
    api_key: Annotated[ApiKey, Depends(require_permission(INSIGHTS_READ))],
    insight_type: InsightType = Query(default="performance", alias="type"),
    timeframe: Timeframe = Query(default="30d"),
) -> InsightsOut:
    summary = await get_summary(session)
    found, recommendations = build_insights(summary, insight_type, timeframe)
    return InsightsOut(
        insights=found,
        recommendations=recommendations,
        generated_at=utcnow(),
        timeframe=timeframe,
        type=insight_type,
    )


@router.post(
    "/optimize-seo",
    response_model=SeoOptimizationOut,
    summary="SEO suggestions for one target keyword",
)
async def optimize(
    payload: SeoOptimizationIn,
    api_key: Annotated[ApiKey, Depends(require_permission(SEO_OPTIMIZE))],
) -> SeoOptimizationOut:
    result = optimize_seo(
        payload.content,
        payload.target_keyword,
        title=payload.title,
        meta_description=payload.meta_description,
    )
    return SeoOptimizationOut(
        suggestions=result.suggestions,
        optimized_title=result.optimized_title,
        optimized_meta_description=result.optimized_meta_description,
        keyword_recommendations=result.keyword_recommendations,
        score=result.score,
    )
