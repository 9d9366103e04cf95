"""Domain error kinds surfaced to API callers.

Each error carries the HTTP status and a stable machine-readable code;
the global error handler renders them as ``{"detail": ..., "code": ...}``.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for all expected, caller-visible failures."""

    status_code = 400
    code = "error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.__class__.__doc__ or self.code)
        self.detail = detail or self.__class__.__doc__ or self.code


class ValidationError(GameError):
    """Malformed or missing required fields."""

    status_code = 400
    code = "validation_error"


class DuplicateBetError(GameError):
    """A bet already exists for this wallet, asset and round."""

    status_code = 409
    code = "duplicate_bet"


class BettingClosedError(GameError):
    """Betting is closed for this round."""

    status_code = 409
    code = "betting_closed"


class Unauthorized(GameError):
    """Missing or incorrect admin token."""

    status_code = 401
    code = "unauthorized"


class NotFound(GameError):
    """Requested record does not exist."""

    status_code = 404
    code = "not_found"


class StoreUnavailable(GameError):
    """Backing key/value store call failed or timed out."""

    status_code = 503
    code = "store_unavailable"


class PriceUnavailable(GameError):
    """Price feed did not return a usable spot price."""

    status_code = 503
    code = "price_unavailable"
