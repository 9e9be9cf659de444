"""
Domain errors raised by the service layer.

Each error carries the HTTP status it maps to so the API layer can
translate it with a single handler. Validation errors are expected and
recoverable; ProviderUnavailableError wraps storage and catalog failures.
"""
from datetime import datetime
from typing import Any


class WavError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    error_type: str = "wav_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.detail, "error_type": self.error_type}


class NotFoundError(WavError):
    status_code = 404
    error_type = "not_found"


class ForbiddenError(WavError):
    status_code = 403
    error_type = "forbidden"


class InvalidTransitionError(WavError):
    """A trade state-machine rule was violated."""

    error_type = "invalid_transition"

    def __init__(self, current_status: str, action: str = "modify"):
        super().__init__(f"Cannot {action} trade: trade is already {current_status}")
        self.current_status = current_status

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class OwnershipMismatchError(WavError):
    """A card moved away from the expected holder between check and use."""

    error_type = "ownership_mismatch"


class NotOwnedError(WavError):
    error_type = "not_owned"


class AlreadyOwnedError(WavError):
    status_code = 409
    error_type = "already_owned"


class CooldownActiveError(WavError):
    status_code = 429
    error_type = "cooldown_active"

    def __init__(self, remaining_ms: int, next_unbox_time: datetime):
        remaining_seconds = -(-remaining_ms // 1000)
        super().__init__(
            f"Please wait {remaining_seconds} second(s) before unboxing again"
        )
        self.remaining_ms = remaining_ms
        self.next_unbox_time = next_unbox_time

    @property
    def retry_after_seconds(self) -> int:
        return max(1, -(-self.remaining_ms // 1000))

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["remaining_ms"] = self.remaining_ms
        data["next_unbox_time"] = self.next_unbox_time.isoformat()
        return data


class CollectionFullError(WavError):
    error_type = "collection_full"


class InvalidCategoryError(WavError):
    """An unbox named a genre the catalog does not draw from."""

    error_type = "invalid_category"

    def __init__(self, category: str, available: list[str]):
        super().__init__(
            f"Invalid category '{category}'. Available genres: {', '.join(available)}"
        )
        self.available = available

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["available_genres"] = self.available
        return data


class EmptyOfferError(WavError):
    error_type = "empty_offer"


class InvalidPartiesError(WavError):
    error_type = "invalid_parties"


class ProviderUnavailableError(WavError):
    """Persistence or catalog provider failed or timed out."""

    status_code = 502
    error_type = "provider_unavailable"
