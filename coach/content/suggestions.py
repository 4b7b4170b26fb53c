"""LLM-backed content helpers with static fallbacks.

Each helper returns a usable payload even when the LLM is disabled, misconfigured or
returns junk; the error code is logged and the fallback is served instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from coach.llm.client import generate_json
from coach.llm.schemas import ContentIdea, ContentIdeas, OptimizedPost, ProfileAnalysis, ProfileSuggestion

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPES = ("insight", "how-to", "story", "opinion")

FALLBACK_IDEAS: List[Dict[str, str]] = [
    {
        "title": "Industry Insights",
        "content": "5 Ways AI is Transforming Marketing Strategy - My Experience Implementing These Changes",
        "category": "insight",
        "estimatedEngagement": "high",
    },
    {
        "title": "Personal Story",
        "content": "The Career Pivot That Changed Everything: How I Went From [Previous Role] to [Current Role] in 12 Months",
        "category": "story",
        "estimatedEngagement": "medium",
    },
    {
        "title": "How-To Guide",
        "content": "LinkedIn Engagement Hack: How I Increased My Post Visibility by 300% Using This Simple 3-Step Process",
        "category": "how-to",
        "estimatedEngagement": "very-high",
    },
    {
        "title": "Opinion Piece",
        "content": "Why I Believe [Industry Trend] Is Overrated - And What We Should Focus On Instead",
        "category": "opinion",
        "estimatedEngagement": "high",
    },
]

FALLBACK_PROFILE_SUGGESTIONS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "type": "headline",
        "title": "Enhance Your Headline",
        "impact": "High impact, low effort",
        "description": "Your headline is missing keywords that recruiters search for. Add 2-3 industry-specific terms.",
    },
    {
        "id": 2,
        "type": "projects",
        "title": "Add Featured Projects",
        "impact": "Medium impact, medium effort",
        "description": "Showcase your work by adding 2-3 featured projects with visual content to increase profile visits.",
    },
    {
        "id": 3,
        "type": "engagement",
        "title": "Engage with Industry Posts",
        "impact": "Medium impact, low effort",
        "description": "Your comment engagement is lower than average. Comment on 3-5 trending posts in your industry this week.",
    },
]


def fallback_ideas() -> List[ContentIdea]:
    return [ContentIdea.model_validate(x) for x in FALLBACK_IDEAS]


def _ideas_prompt(profile_data: Dict[str, Any], content_types: Sequence[str], industry: str, tone: str) -> str:
    return f"""As a LinkedIn content creation expert, generate {len(content_types)} engaging post ideas for a professional in the {industry} industry.

User profile summary:
{json.dumps(profile_data, indent=2, default=str)}

For each content idea:
1. Create a compelling title that captures attention
2. Write a detailed content outline (150-200 words) that could be expanded into a full post
3. Categorize it as one of: {", ".join(content_types)}
4. Estimate the engagement level as: "low", "medium", "high", or "very-high"
5. Use a {tone} tone that's appropriate for LinkedIn

Return a JSON object: {{"ideas": [{{"title": str, "content": str, "category": str, "estimatedEngagement": str}}]}}"""


def generate_content_ideas(
    profile_data: Optional[Dict[str, Any]],
    *,
    content_types: Sequence[str] = DEFAULT_CONTENT_TYPES,
    industry: str = "technology",
    tone: str = "professional",
) -> List[ContentIdea]:
    prompt = _ideas_prompt(profile_data or {}, content_types, industry or "general", tone or "professional")
    obj, err = generate_json(prompt, schema=ContentIdeas)
    if err:
        logger.warning("Content idea generation failed (%s); using static ideas", err)
        return fallback_ideas()

    try:
        parsed = ContentIdeas.model_validate(obj or {})
    except ValidationError as e:
        logger.warning("LLM content ideas did not match the schema (%d errors); using static ideas", e.error_count())
        return fallback_ideas()
    ideas = [i for i in parsed.ideas if i.title and i.content]
    if not ideas:
        logger.info("LLM returned no usable content ideas; using static ideas")
        return fallback_ideas()
    return ideas


def optimize_post(content: str, goal: str = "engagement") -> OptimizedPost:
    prompt = f"""As a LinkedIn content optimization expert, improve the following post to maximize {goal}:

Original post:
"{content}"

1. Rewrite the post to be more engaging and professional
2. Provide 3 specific suggestions to further improve the content
3. Estimate the potential improvement in engagement (as a percentage)

Return a JSON object: {{"optimizedContent": str, "suggestions": [str], "estimatedImprovement": str}}"""

    fallback = OptimizedPost(
        optimizedContent=content,
        suggestions=[
            "Add a compelling hook in the first sentence",
            "Include 2-3 relevant hashtags",
            "End with a question to encourage comments",
        ],
        estimatedImprovement="15-20%",
    )

    obj, err = generate_json(prompt, schema=OptimizedPost)
    if err:
        logger.warning("Post optimization failed (%s); returning original content", err)
        return fallback
    try:
        result = OptimizedPost.model_validate(obj or {})
    except ValidationError as e:
        logger.warning("LLM post optimization did not match the schema (%d errors)", e.error_count())
        return fallback
    if not result.optimizedContent:
        return fallback
    return result


def analyze_profile(profile_data: Optional[Dict[str, Any]]) -> ProfileAnalysis:
    prompt = f"""As a LinkedIn profile optimization expert, analyze the following profile and provide actionable suggestions:

Profile data:
{json.dumps(profile_data or {}, indent=2, default=str)}

Return a JSON object with: "score" (0-100), "strengths" (2-3 strings), "weaknesses" (2-3 strings),
"suggestions" (objects with id, type, title, impact, description)."""

    fallback = ProfileAnalysis(
        score=76,
        strengths=["Detailed work experience", "Good number of connections"],
        weaknesses=["Incomplete skills section", "Low engagement rate"],
        suggestions=[ProfileSuggestion.model_validate(s) for s in FALLBACK_PROFILE_SUGGESTIONS],
    )

    obj, err = generate_json(prompt, schema=ProfileAnalysis)
    if err:
        logger.warning("Profile analysis failed (%s); using static analysis", err)
        return fallback
    try:
        result = ProfileAnalysis.model_validate(obj or {})
    except ValidationError as e:
        logger.warning("LLM profile analysis did not match the schema (%d errors)", e.error_count())
        return fallback
    if not result.suggestions and not result.strengths:
        return fallback
    return result
