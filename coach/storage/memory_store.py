"""In-process store for accounts and dashboard records.

Stands in for the relational database: each table is a dict keyed by an auto-increment
id. All mutations happen under one lock, and account uniqueness (username, external id)
is checked inside that lock, so racing creates for the same identity produce exactly one
row; the loser gets `DuplicateAccountError`, which is what a UNIQUE constraint would do.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from coach.auth.errors import DuplicateAccountError
from coach.auth.models import Account
from coach.core.models import ContentSuggestion, Goal, Post, ProfileData, ProfileMetrics, utcnow

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", Post, Goal, ContentSuggestion)


class _Table(Generic[RecordT]):
    """Owned-by-user records (posts, goals, suggestions) keyed by id."""

    def __init__(self, model: Type[RecordT], lock: threading.RLock):
        self._model = model
        self._rows: Dict[int, RecordT] = {}
        self._ids: Iterator[int] = itertools.count(1)
        self._lock = lock

    def list_for(self, user_id: int) -> List[RecordT]:
        with self._lock:
            return [r for r in self._rows.values() if r.user_id == user_id]

    def get(self, record_id: int) -> Optional[RecordT]:
        with self._lock:
            return self._rows.get(record_id)

    def create(self, user_id: int, data: Dict[str, Any]) -> RecordT:
        with self._lock:
            row = self._model(id=next(self._ids), user_id=user_id, **data)
            self._rows[row.id] = row
            return row

    def update(self, record_id: int, changes: Dict[str, Any]) -> Optional[RecordT]:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                return None
            # id/owner are not editable through updates.
            changes = {k: v for k, v in changes.items() if k not in ("id", "user_id", "created_at")}
            updated = self._model.model_validate({**row.model_dump(), **changes})
            self._rows[record_id] = updated
            return updated

    def delete(self, record_id: int) -> bool:
        with self._lock:
            return self._rows.pop(record_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class MemoryStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: Dict[int, Account] = {}
        self._by_username: Dict[str, int] = {}
        self._by_external_id: Dict[str, int] = {}
        self._account_ids: Iterator[int] = itertools.count(1)

        self._profiles: Dict[int, ProfileMetrics] = {}  # keyed by user_id
        self._profile_ids: Iterator[int] = itertools.count(1)

        self.posts: _Table[Post] = _Table(Post, self._lock)
        self.goals: _Table[Goal] = _Table(Goal, self._lock)
        self.suggestions: _Table[ContentSuggestion] = _Table(ContentSuggestion, self._lock)

    # ---- accounts ----

    def get_account(self, account_id: int) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def get_account_by_username(self, username: str) -> Optional[Account]:
        with self._lock:
            account_id = self._by_username.get(username)
            return self._accounts.get(account_id) if account_id is not None else None

    def get_account_by_external_id(self, external_id: str) -> Optional[Account]:
        with self._lock:
            account_id = self._by_external_id.get(external_id)
            return self._accounts.get(account_id) if account_id is not None else None

    def create_account(
        self,
        *,
        username: str,
        password: str = "",
        external_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        **fields: Any,
    ) -> Account:
        """
        Insert a new account.

        Raises:
            DuplicateAccountError: if `username` or `external_id` is already taken.
        """
        with self._lock:
            if username in self._by_username:
                raise DuplicateAccountError("username", username)
            if external_id and external_id in self._by_external_id:
                raise DuplicateAccountError("external_id", external_id)

            account = Account(
                id=next(self._account_ids),
                username=username,
                password=password,
                external_id=external_id or None,
                created_at=created_at or utcnow(),
                **fields,
            )
            self._accounts[account.id] = account
            self._by_username[username] = account.id
            if account.external_id:
                self._by_external_id[account.external_id] = account.id
            return account

    def update_account(self, account_id: int, **changes: Any) -> Optional[Account]:
        """Apply token/display changes. Identity keys cannot be changed here."""
        frozen = {"id", "username", "external_id", "created_at"} & set(changes)
        if frozen:
            raise ValueError(f"Immutable account fields: {sorted(frozen)}")
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            updated = dataclasses.replace(account, **changes)
            self._accounts[account_id] = updated
            return updated

    def account_count(self) -> int:
        with self._lock:
            return len(self._accounts)

    # ---- profile metrics ----

    def get_profile(self, user_id: int) -> Optional[ProfileMetrics]:
        with self._lock:
            return self._profiles.get(user_id)

    def create_profile(
        self, user_id: int, profile_data: Optional[ProfileData] = None, profile_score: int = 0
    ) -> ProfileMetrics:
        with self._lock:
            existing = self._profiles.get(user_id)
            if existing is not None:
                return existing
            profile = ProfileMetrics(
                id=next(self._profile_ids),
                user_id=user_id,
                profile_score=profile_score,
                profile_data=profile_data or ProfileData(),
            )
            self._profiles[user_id] = profile
            return profile

    def update_profile(self, user_id: int, changes: Dict[str, Any]) -> Optional[ProfileMetrics]:
        with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return None
            updated = profile.model_copy(update={**changes, "last_updated": utcnow()})
            self._profiles[user_id] = updated
            return updated

    def list_scheduled_posts(self, user_id: int) -> List[Post]:
        return [p for p in self.posts.list_for(user_id) if p.status == "scheduled"]
