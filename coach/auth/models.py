from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class Account:
    """Local user record, linked to at most one LinkedIn identity."""

    id: int
    username: str
    password: str  # bcrypt hash for local accounts; "" for provider accounts
    created_at: datetime
    external_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    profile_image: Optional[str] = None
    headline: Optional[str] = None
    is_connected: bool = False

    def to_public_dict(self) -> Dict[str, Any]:
        # Never expose password hashes or provider tokens to the browser.
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "profileImage": self.profile_image,
            "headline": self.headline,
            "linkedinId": self.external_id,
            "isConnected": self.is_connected,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NormalizedProfile:
    """Provider profile mapped to one shape; optional fields are "" rather than missing."""

    external_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    profile_image: str = ""
    headline: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.external_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "profilePicture": self.profile_image,
            "headline": self.headline,
        }


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    expires_in_seconds: int
    refresh_token: Optional[str] = None


@dataclass(frozen=True)
class Session:
    session_id: str
    principal_id: int
    expiry: float  # epoch seconds
