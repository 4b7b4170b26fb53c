from __future__ import annotations

import logging
from typing import Optional

import bcrypt

from coach.auth.errors import AccountUpsertError, DuplicateAccountError
from coach.auth.models import Account, NormalizedProfile
from coach.storage.memory_store import MemoryStore

logger = logging.getLogger(__name__)

_DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=12)).decode("utf-8")


def hash_password(password: str) -> str:
    """
    Hash password with bcrypt (cost factor 12).

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash with constant-time comparison.

    An empty hash (LinkedIn-created accounts) never matches.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


def _create_from_profile(
    store: MemoryStore, profile: NormalizedProfile, access_token: str, refresh_token: str
) -> Account:
    account = store.create_account(
        username=profile.external_id,
        password="",
        external_id=profile.external_id,
        access_token=access_token,
        refresh_token=refresh_token,
        email=profile.email,
        full_name=profile.full_name,
        profile_image=profile.profile_image,
        headline=profile.headline,
        is_connected=True,
    )
    # Seed the empty metrics record exactly once, on first creation only.
    store.create_profile(account.id)
    logger.info("Created account id=%s from LinkedIn profile", account.id)
    return account


def _refresh_existing(
    store: MemoryStore, account: Account, profile: NormalizedProfile, access_token: str, refresh_token: str
) -> Account:
    # email/full_name are identity facts after creation; only avatar/headline follow the provider.
    updated = store.update_account(
        account.id,
        access_token=access_token,
        refresh_token=refresh_token,
        is_connected=True,
        profile_image=profile.profile_image,
        headline=profile.headline,
    )
    if updated is None:
        raise AccountUpsertError(f"Account id={account.id} disappeared during update")
    logger.info("Refreshed LinkedIn tokens for account id=%s", account.id)
    return updated


def upsert_account(
    store: MemoryStore,
    profile: NormalizedProfile,
    access_token: str,
    refresh_token: Optional[str] = "",
) -> Account:
    """
    Find-or-create the local account for a LinkedIn identity.

    First sighting of `profile.external_id` creates the account; later logins only
    overwrite tokens, `is_connected`, `profile_image` and `headline`.

    A lost creation race (another request created the same external id between our
    lookup and insert) is retried once as lookup-then-update.

    Raises:
        AccountUpsertError: if the retry also fails.
    """
    refresh = refresh_token or ""
    if not profile.email or not profile.full_name:
        logger.info("LinkedIn profile for %s is missing email or name; storing placeholders", profile.external_id)

    existing = store.get_account_by_external_id(profile.external_id)
    if existing is not None:
        return _refresh_existing(store, existing, profile, access_token, refresh)

    try:
        return _create_from_profile(store, profile, access_token, refresh)
    except DuplicateAccountError as e:
        logger.info("Account creation race for %s (%s); retrying as update", profile.external_id, e.field)

    existing = store.get_account_by_external_id(profile.external_id)
    if existing is None:
        # The conflict was on username, not external id; nothing to update.
        raise AccountUpsertError(f"Cannot create or find account for external id {profile.external_id!r}")
    return _refresh_existing(store, existing, profile, access_token, refresh)


def register_local_account(
    store: MemoryStore,
    username: str,
    password: str,
    *,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
) -> Account:
    """
    Create a username/password account.

    Raises:
        DuplicateAccountError: If the username already exists
    """
    return store.create_account(
        username=username,
        password=hash_password(password),
        email=email,
        full_name=full_name,
    )


def authenticate_local(store: MemoryStore, username: str, password: str) -> Optional[Account]:
    """
    Authenticate local user with username/password.

    Returns:
        Account if authentication succeeds, None otherwise
    """
    account = store.get_account_by_username(username)
    if account is None:
        # Keep timing flat for unknown usernames.
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, account.password):
        return None
    return account

