from __future__ import annotations

from typing import Optional


class AuthProviderError(Exception):
    """Base class for failures talking to the OAuth provider.

    `detail` holds the raw provider response body (or transport error text). It is meant
    for server-side logs only and must never be echoed to the browser.
    """

    code = "login_failed"

    def __init__(self, message: str, *, detail: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.detail = detail
        self.status_code = status_code


class ProviderRejected(AuthProviderError):
    """The provider refused the request (bad/expired/reused code, redirect URI mismatch)."""


class ProviderUnreachable(AuthProviderError):
    """Timeout or network failure while calling the provider."""


class MissingSubjectError(ValueError):
    """The provider profile carries no subject id, so no account can be keyed on it."""


class DuplicateAccountError(Exception):
    """Store uniqueness violation on username or external id."""

    def __init__(self, field: str, value: str):
        super().__init__(f"Account with {field}={value!r} already exists")
        self.field = field
        self.value = value


class AccountUpsertError(Exception):
    """Upsert failed even after retrying a lost creation race."""
