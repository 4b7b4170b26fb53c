from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENGAGEMENT_LEVELS = ("low", "medium", "high", "very-high")


def _clamp_str(s: Any, *, max_chars: int) -> str:
    txt = "" if s is None else str(s)
    txt = txt.strip()
    if max_chars > 0 and len(txt) > max_chars:
        return txt[: max_chars - 1] + "…"
    return txt


def _str_list(xs: Any, *, max_items: int, max_chars: int) -> List[str]:
    if not isinstance(xs, list):
        return []
    out = [_clamp_str(x, max_chars=max_chars) for x in xs[:max_items]]
    return [x for x in out if x]


class ContentIdea(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(default="")
    content: str = Field(default="")
    category: str = Field(default="insight")
    estimatedEngagement: str = Field(default="medium")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> str:
        return _clamp_str(v, max_chars=200)

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v: Any) -> str:
        return _clamp_str(v, max_chars=3000)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> str:
        return _clamp_str(v, max_chars=40).lower() or "insight"

    @field_validator("estimatedEngagement", mode="before")
    @classmethod
    def _engagement(cls, v: Any) -> str:
        level = _clamp_str(v, max_chars=20).lower().replace(" ", "-")
        return level if level in ENGAGEMENT_LEVELS else "medium"


class ContentIdeas(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ideas: List[ContentIdea] = Field(default_factory=list)


class OptimizedPost(BaseModel):
    model_config = ConfigDict(extra="ignore")

    optimizedContent: str = Field(default="")
    suggestions: List[str] = Field(default_factory=list)
    estimatedImprovement: str = Field(default="")

    @field_validator("suggestions", mode="before")
    @classmethod
    def _suggestions(cls, v: Any) -> List[str]:
        return _str_list(v, max_items=10, max_chars=300)


class ProfileSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int = 0
    type: str = ""
    title: str = ""
    impact: str = ""
    description: str = ""


class ProfileAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: int = Field(default=0, ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[ProfileSuggestion] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> int:
        try:
            return max(0, min(int(float(v)), 100))
        except (TypeError, ValueError):
            return 0

    @field_validator("strengths", "weaknesses", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> List[str]:
        return _str_list(v, max_items=5, max_chars=200)
