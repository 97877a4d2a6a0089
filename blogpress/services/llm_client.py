"""
Groq LLM client for drafting blog content.

Uses Groq's OpenAI-compatible /chat/completions API via httpx.
The LLM only writes prose: word counts and every other number in the
response are recomputed in Python afterwards.

Configuration:
  GROQ_API_KEY — server-side only (never exposed to clients)
  LLM_MODEL    — defaults to llama-3.1-8b-instant (fast, cheap)

Safety:
  • Moderate temperature (0.7) for varied but on-topic drafts
  • Bounded max_tokens, scaled by requested length
  • Structured JSON output requested
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from blogpress.core.config import settings

logger = logging.getLogger(__name__)

_GROQ_BASE_URL = "https://api.groq.com/openai/v1"

# Target word counts and token ceilings per requested length.
LENGTH_TARGETS: dict[str, tuple[int, int]] = {
    "short": (300, 700),
    "medium": (800, 1600),
    "long": (1500, 3000),
}

# ── System prompt ───────────────────────────────────────────
SYSTEM_PROMPT = """\
You are a professional blog writer drafting content for a CMS.
Write clear, well-structured, original text for the requested audience.
Use Markdown headings (## and ###) to structure articles.
Do not invent statistics, quotes, or sources.

═══ OUTPUT FORMAT (valid JSON only) ═══
{
  "title": "A concise, descriptive title (max 60 characters).",
  "content": "The full body in Markdown.",
  "excerpt": "A one or two sentence summary (max 160 characters).",
  "tags": ["3 to 6 short lowercase tags"]
}

Respond ONLY with the JSON object, no markdown fences or extra text.\
"""


def build_prompt(
    topic: str,
    content_type: str,
    keywords: list[str],
    tone: str,
    length: str,
    target_audience: str | None,
) -> str:
    target_words, _ = LENGTH_TARGETS[length]
    lines = [
        f"Write a {content_type} about: {topic}",
        f"Tone: {tone}",
        f"Target length: about {target_words} words",
    ]
    if target_audience:
        lines.append(f"Audience: {target_audience}")
    if keywords:
        lines.append(f"Work these keywords in naturally: {', '.join(keywords)}")
    return "\n".join(lines)


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()
    return content


async def generate_content(
    topic: str,
    content_type: str = "article",
    keywords: list[str] | None = None,
    tone: str = "informative",
    length: str = "medium",
    target_audience: str | None = None,
) -> dict[str, Any]:
    """
    Ask Groq's LLM for a blog draft.

    Returns:
        Dict with keys: title, content, excerpt, tags.

    Raises:
        RuntimeError: If the key is missing, the LLM call fails, or the
            output is unparseable.
    """
    if not settings.GROQ_API_KEY:
        raise RuntimeError("GROQ_API_KEY is not configured")

    _, max_tokens = LENGTH_TARGETS[length]
    payload = {
        "model": settings.LLM_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": build_prompt(
                    topic, content_type, keywords or [], tone, length, target_audience
                ),
            },
        ],
        "temperature": 0.7,
        "max_tokens": max_tokens,
    }

    headers = {
        "Authorization": f"Bearer {settings.GROQ_API_KEY}",
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                f"{_GROQ_BASE_URL}/chat/completions",
                json=payload,
                headers=headers,
            )
    except httpx.HTTPError as exc:
        logger.error("Groq API request failed: %s", exc)
        raise RuntimeError("LLM service is unreachable") from exc

    if response.status_code != 200:
        logger.error(
            "Groq API error: status=%d body=%s",
            response.status_code,
            response.text[:500],
        )
        raise RuntimeError("LLM service returned an error")

    # ── Parse the LLM's JSON response ───────────────────────
    try:
        data = response.json()
        parsed = json.loads(_strip_fences(data["choices"][0]["message"]["content"]))
    except (KeyError, IndexError, TypeError, json.JSONDecodeError) as exc:
        logger.error("Failed to parse LLM response: %s", exc)
        raise RuntimeError("Could not parse generated content") from exc

    if not isinstance(parsed, dict) or not parsed.get("content"):
        raise RuntimeError("Generated content is empty")

    # ── Validate structure ──────────────────────────────────
    tags = parsed.get("tags") or []
    return {
        "title": str(parsed.get("title") or topic),
        "content": str(parsed["content"]),
        "excerpt": str(parsed.get("excerpt") or ""),
        "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
    }
