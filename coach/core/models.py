"""Application records served by the API (profile metrics, posts, goals, suggestions).

Records are stored with snake_case attributes and serialised with camelCase aliases,
which is what the dashboard client consumes.

Request bodies are validated with the `*Create` / `*Update` models below; update
models are partial and callers apply only the non-null fields that were actually sent
(`model_fields_set`).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PostStatus = Literal["draft", "scheduled", "published"]
OptimizationGoal = Literal["engagement", "connections", "visibility", "thought-leadership"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CamelInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# ---- Stored records ----


class ActivityMetrics(CamelModel):
    profile_views: int = 0
    post_impressions: int = 0
    new_connections: int = 0
    engagement_rate: float = 0.0


class ProfileData(CamelModel):
    score: int = 0
    activity: ActivityMetrics = Field(default_factory=ActivityMetrics)
    suggestions: List[Dict[str, Any]] = Field(default_factory=list)
    recent_posts: List[Dict[str, Any]] = Field(default_factory=list)


class ProfileMetrics(CamelModel):
    id: int
    user_id: int
    profile_score: int = 0
    profile_data: ProfileData = Field(default_factory=ProfileData)
    last_updated: datetime = Field(default_factory=utcnow)


class Post(CamelModel):
    id: int
    user_id: int
    content: str
    post_type: str = "text"
    hashtags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list)
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    status: PostStatus = "draft"
    linkedin_post_id: Optional[str] = None
    engagement_data: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)


class Goal(CamelModel):
    id: int
    user_id: int
    title: str
    target_value: int
    current_value: int = 0
    goal_type: str = "custom"
    end_date: Optional[datetime] = None
    is_completed: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class ContentSuggestion(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    category: str = "insight"
    estimated_engagement: str = "medium"
    is_saved: bool = False
    is_used: bool = False
    created_at: datetime = Field(default_factory=utcnow)


# ---- Request bodies ----


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class RegisterRequest(CamelInput):
    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1, max_length=256)
    email: Optional[str] = None
    full_name: Optional[str] = None


class ProfileUpdate(CamelInput):
    profile_score: Optional[int] = Field(default=None, ge=0, le=100)
    profile_data: Optional[ProfileData] = None


class PostCreate(CamelInput):
    content: str = Field(min_length=1)
    post_type: str = "text"
    hashtags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list)
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    status: PostStatus = "draft"
    linkedin_post_id: Optional[str] = None
    engagement_data: Optional[Dict[str, Any]] = None


class PostUpdate(CamelInput):
    content: Optional[str] = Field(default=None, min_length=1)
    post_type: Optional[str] = None
    hashtags: Optional[List[str]] = None
    media_urls: Optional[List[str]] = None
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    status: Optional[PostStatus] = None
    linkedin_post_id: Optional[str] = None
    engagement_data: Optional[Dict[str, Any]] = None


class GoalCreate(CamelInput):
    title: str = Field(min_length=1)
    target_value: int = Field(ge=0)
    current_value: int = Field(default=0, ge=0)
    goal_type: str = "custom"
    end_date: Optional[datetime] = None


class GoalUpdate(CamelInput):
    title: Optional[str] = Field(default=None, min_length=1)
    target_value: Optional[int] = Field(default=None, ge=0)
    current_value: Optional[int] = Field(default=None, ge=0)
    goal_type: Optional[str] = None
    end_date: Optional[datetime] = None
    is_completed: Optional[bool] = None


class SuggestionUpdate(CamelInput):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    estimated_engagement: Optional[str] = None
    is_saved: Optional[bool] = None
    is_used: Optional[bool] = None


class OptimizeRequest(CamelInput):
    content: str = Field(min_length=1)
    goal: OptimizationGoal = "engagement"
