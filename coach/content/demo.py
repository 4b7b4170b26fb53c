from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from coach.auth.accounts import hash_password
from coach.auth.models import Account
from coach.content.suggestions import FALLBACK_IDEAS, FALLBACK_PROFILE_SUGGESTIONS
from coach.core.models import ProfileData
from coach.storage.memory_store import MemoryStore

logger = logging.getLogger(__name__)

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "password"


def mock_profile_data() -> ProfileData:
    """Dashboard metrics shown until real LinkedIn analytics are wired in."""
    return ProfileData.model_validate(
        {
            "score": 76,
            "activity": {
                "profileViews": 127,
                "postImpressions": 4300,
                "newConnections": 28,
                "engagementRate": 3.7,
            },
            "suggestions": FALLBACK_PROFILE_SUGGESTIONS,
            "recentPosts": [
                {
                    "id": 1,
                    "preview": "5 Key Marketing Trends for Q3 - What Every CMO Needs...",
                    "type": "Text post",
                    "imageCount": 1,
                    "date": "2023-06-24",
                    "impressions": 2452,
                    "impressionChange": 18,
                    "engagement": 4.2,
                    "engagementChange": 0.8,
                },
                {
                    "id": 2,
                    "preview": "Excited to announce my latest project with @TechInnovators...",
                    "type": "Text post",
                    "imageCount": 0,
                    "date": "2023-06-18",
                    "impressions": 1821,
                    "impressionChange": -5,
                    "engagement": 3.1,
                    "engagementChange": -0.4,
                },
                {
                    "id": 3,
                    "preview": "Professional development tip: The one networking mistake...",
                    "type": "Text post",
                    "imageCount": 1,
                    "date": "2023-06-12",
                    "impressions": 3677,
                    "impressionChange": 42,
                    "engagement": 5.8,
                    "engagementChange": 2.1,
                },
            ],
        }
    )


def seed_demo(store: MemoryStore) -> Optional[Account]:
    """
    Populate an empty store with a demo account and sample dashboard data.

    Returns the demo Account, or None when the store already has accounts.
    """
    if store.account_count() > 0:
        return None

    account = store.create_account(
        username=DEMO_USERNAME,
        password=hash_password(DEMO_PASSWORD),
        external_id="demo123",
        email="demo@example.com",
        full_name="Sarah Johnson",
        headline="Marketing Director | Brand Strategist",
        profile_image="https://images.unsplash.com/photo-1494790108377-be9c29b29330?auto=format&fit=crop&w=256&q=80",
        is_connected=True,
        access_token="demo-token",
        refresh_token="demo-refresh",
    )

    data = mock_profile_data()
    store.create_profile(account.id, profile_data=data, profile_score=data.score)

    now = datetime.now(timezone.utc)
    store.goals.create(
        account.id,
        {
            "title": "Grow network by 200",
            "target_value": 200,
            "current_value": 130,
            "goal_type": "connections",
            "end_date": now + timedelta(days=60),
        },
    )
    store.goals.create(
        account.id,
        {
            "title": "Post 4x weekly",
            "target_value": 16,
            "current_value": 6,
            "goal_type": "posts",
            "end_date": now + timedelta(days=30),
        },
    )

    for idea in FALLBACK_IDEAS:
        store.suggestions.create(
            account.id,
            {
                "title": idea["title"],
                "content": idea["content"],
                "category": idea["category"],
                "estimated_engagement": idea["estimatedEngagement"],
            },
        )

    for post in data.recent_posts:
        published = date.fromisoformat(str(post["date"]))
        store.posts.create(
            account.id,
            {
                "content": post["preview"],
                "post_type": "text",
                "hashtags": ["marketing", "leadership", "branding"],
                "media_urls": ["https://example.com/placeholder.jpg"] if post.get("imageCount") else [],
                "published_at": datetime(published.year, published.month, published.day, tzinfo=timezone.utc),
                "status": "published",
                "linkedin_post_id": f"post-{post['id']}",
                "engagement_data": {"impressions": post["impressions"], "engagementRate": post["engagement"]},
            },
        )

    logger.info("Demo data initialized (account id=%s)", account.id)
    return account
