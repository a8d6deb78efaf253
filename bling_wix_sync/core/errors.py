"""Exception types raised by the synchronization core.

Only lightweight, data-carrying exceptions live here so that the web and CLI
layers can turn them into HTTP responses or exit codes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

INVALID_GRANT = "invalid_grant"


class SyncError(Exception):
    """Base class for every domain error raised while synchronizing stock."""

    error_type = "sync_error"

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-serialisable payload without secrets."""
        return {"error": self.error_type, "message": str(self)}


class ConfigError(SyncError):
    """A required credential or endpoint is not configured."""

    error_type = "config_error"


class AuthError(SyncError):
    """The Bling token endpoint rejected an exchange or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "auth_error",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code

    @property
    def is_invalid_grant(self) -> bool:
        """True when recovery needs a new authorization-code exchange."""
        return self.error_type == INVALID_GRANT

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["status_code"] = self.status_code
        return payload


class AccessTokenRejectedError(AuthError):
    """A Bling resource endpoint answered 401 for the current access token."""

    def __init__(self, message: str = "Access token rejected by Bling.") -> None:
        super().__init__(message, error_type="unauthorized", status_code=401)


class FetchError(SyncError):
    """No products could be obtained from Bling."""

    error_type = "no_products_found"

    def __init__(self, message: str, *, pages_failed: int = 0) -> None:
        super().__init__(message)
        self.pages_failed = pages_failed


class PublishError(SyncError):
    """A single batch could not be delivered to the Wix ingestion endpoint."""

    error_type = "publish_error"

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class SyncInProgressError(SyncError):
    """Another synchronization run already holds the run guard."""

    error_type = "sync_in_progress"


__all__ = [
    "INVALID_GRANT",
    "AccessTokenRejectedError",
    "AuthError",
    "ConfigError",
    "FetchError",
    "PublishError",
    "SyncError",
    "SyncInProgressError",
]
