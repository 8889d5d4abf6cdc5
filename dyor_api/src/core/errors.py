from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """
    Base typed error raised by services.

    The global exception handler in src.api.main renders these into the
    standard ErrorResponse envelope using `status_code` and `error_type`.
    """

    status_code: int = 500
    error_type: str = "domain_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(DomainError):
    status_code = 400
    error_type = "bad_request"


class UnauthorizedError(DomainError):
    status_code = 401
    error_type = "unauthorized"


class ForbiddenError(DomainError):
    status_code = 403
    error_type = "forbidden"


class NotFoundError(DomainError):
    status_code = 404
    error_type = "not_found"


class ConflictError(DomainError):
    status_code = 409
    error_type = "conflict"


class RateLimitError(DomainError):
    status_code = 429
    error_type = "rate_limited"


class UpstreamError(DomainError):
    """An external service (Birdeye, Solana RPC) failed or returned unusable data."""

    status_code = 502
    error_type = "upstream_error"
