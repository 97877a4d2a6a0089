"""
Deterministic content analysis and SEO helpers behind /api/ai/analyze-content
and /api/ai/optimize-seo.

No LLM is involved: every score here is plain arithmetic over the text,
so results are reproducible and cheap enough to run on every request.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

WORDS_PER_MINUTE = 200
META_DESCRIPTION_RANGE = (150, 160)
TITLE_MAX_LENGTH = 60
MIN_ARTICLE_WORDS = 300

_WORD_RE = re.compile(r"[A-Za-z0-9']+")
_SENTENCE_RE = re.compile(r"[.!?]+")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")
_HEADING_RE = re.compile(r"<h[23][\s>]|^#{2,3}\s", re.IGNORECASE | re.MULTILINE)
_LINK_RE = re.compile(r"<a\s|\]\(", re.IGNORECASE)
_IMAGE_RE = re.compile(r"<img\s|!\[", re.IGNORECASE)


@dataclass(slots=True)
class ContentAnalysis:
    seo_score: int
    readability_score: float
    keyword_density: dict[str, int]
    word_count: int
    reading_time: int
    suggestions: list[str] = field(default_factory=list)


def words(text: str) -> list[str]:
    return _WORD_RE.findall(text)


def reading_time(word_count: int) -> int:
    """Whole minutes at 200 wpm, rounded up."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


def keyword_density(text: str, keywords: list[str]) -> dict[str, int]:
    """Case-insensitive occurrence count of each keyword (as a literal phrase)."""
    lowered = text.lower()
    return {kw: len(re.findall(re.escape(kw.lower()), lowered)) for kw in keywords if kw.strip()}


def _syllables(word: str) -> int:
    groups = _VOWEL_GROUP_RE.findall(word.lower())
    count = len(groups)
    if word.lower().endswith("e") and count > 1:
        count -= 1
    return max(count, 1)


def readability(text: str) -> float:
    """Flesch reading ease, clamped to 0–100. Higher is easier."""
    tokens = words(text)
    if not tokens:
        return 0.0
    sentences = max(len([s for s in _SENTENCE_RE.split(text) if s.strip()]), 1)
    syllables = sum(_syllables(w) for w in tokens)
    score = 206.835 - 1.015 * (len(tokens) / sentences) - 84.6 * (syllables / len(tokens))
    return round(min(max(score, 0.0), 100.0), 1)


def analyze_content(content: str, title: str | None, keywords: list[str]) -> ContentAnalysis:
    """Score a draft for SEO and readability and list concrete improvements."""
    word_count = len(words(content))
    density = keyword_density(content, keywords)
    readability_score = readability(content)

    score = 100
    suggestions: list[str] = []

    if word_count < MIN_ARTICLE_WORDS:
        score -= 20
        suggestions.append(f"Expand the article to at least {MIN_ARTICLE_WORDS} words.")
    if not _HEADING_RE.search(content):
        score -= 10
        suggestions.append("Add descriptive H2 and H3 headings.")
    if not _LINK_RE.search(content):
        score -= 10
        suggestions.append("Consider adding internal links to related articles.")
    if not _IMAGE_RE.search(content):
        score -= 5
        suggestions.append("Include relevant images with alt text.")
    if not title:
        score -= 10
        suggestions.append("Add a title.")
    elif len(title) > TITLE_MAX_LENGTH:
        score -= 5
        suggestions.append(f"Shorten the title to {TITLE_MAX_LENGTH} characters or fewer.")

    missing = [kw for kw, count in density.items() if count == 0]
    if missing:
        score -= min(5 * len(missing), 20)
        suggestions.append(f"Use these keywords in the content: {', '.join(missing)}.")
    if title and keywords and not any(kw.lower() in title.lower() for kw in keywords):
        score -= 5
        suggestions.append("Include a target keyword in the title.")

    if readability_score < 50:
        score -= 10
        suggestions.append("Use shorter sentences and simpler words to improve readability.")

    return ContentAnalysis(
        seo_score=max(score, 0),
        readability_score=readability_score,
        keyword_density=density,
        word_count=word_count,
        reading_time=reading_time(word_count),
        suggestions=suggestions,
    )


@dataclass(slots=True)
class SeoOptimization:
    suggestions: list[str]
    optimized_title: str
    optimized_meta_description: str
    keyword_recommendations: list[str]
    score: int


def optimize_seo(
    content: str,
    target_keyword: str,
    title: str | None = None,
    meta_description: str | None = None,
) -> SeoOptimization:
    """Suggest a title, meta description and related keywords for one target keyword."""
    keyword = target_keyword.strip()
    occurrences = keyword_density(content, [keyword]).get(keyword, 0)
    word_count = len(words(content))
    suggestions: list[str] = []
    score = 100

    if occurrences == 0:
        score -= 30
        suggestions.append(f'Use the primary keyword "{keyword}" in the content.')
    elif word_count and occurrences / word_count < 0.005:
        score -= 10
        suggestions.append(f'Increase usage of the primary keyword "{keyword}" in the content.')

    if not _HEADING_RE.search(content):
        score -= 10
        suggestions.append("Add more H2 and H3 headings for better structure.")

    if title and keyword.lower() in title.lower():
        optimized_title = title
    elif title:
        optimized_title = f"{title} | {keyword}"
        score -= 10
        suggestions.append("Include the primary keyword in the title.")
    else:
        optimized_title = f"Complete Guide to {keyword}"
        score -= 15
        suggestions.append("Add a title containing the primary keyword.")

    low, high = META_DESCRIPTION_RANGE
    if meta_description and low <= len(meta_description) <= high:
        optimized_meta = meta_description
    else:
        if meta_description:
            score -= 5
        else:
            score -= 10
        suggestions.append(f"Keep the meta description between {low} and {high} characters.")
        optimized_meta = meta_description or (
            f"Learn everything about {keyword}. "
            "Comprehensive guide with expert insights and practical tips."
        )
        if len(optimized_meta) > high:
            optimized_meta = optimized_meta[: high - 3].rstrip() + "..."

    return SeoOptimization(
        suggestions=suggestions,
        optimized_title=optimized_title,
        optimized_meta_description=optimized_meta,
        keyword_recommendations=[
            f"{keyword} guide",
            f"{keyword} tips",
            f"{keyword} best practices",
            f"{keyword} examples",
        ],
        score=max(score, 0),
    )
