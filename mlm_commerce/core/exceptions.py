"""
Service-layer error kinds.

Services raise NotFoundError / BadRequestError for expected failures. Any
other exception escaping a service operation is logged and rewrapped as an
InternalServiceError carrying a fixed message for that operation, so callers
never see raw database errors.
"""
import logging
from functools import wraps
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base error for service operations."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppError):
    """Requested order, user, commission or product does not exist."""
    status_code = 404


class BadRequestError(AppError):
    """Request violates a business rule (duplicate, cycle, wrong state)."""
    status_code = 400


class InternalServiceError(AppError):
    """Unexpected failure, original error is logged and chained."""
    status_code = 500


def service_operation(failure_message: str):
    """
    Decorator for async service methods.

    AppError subclasses propagate unchanged. Anything else rolls back the
    service's session (``self.db``), is logged, and is re-raised as
    InternalServiceError(failure_message).

    Usage:
        class CommissionService:
            @service_operation("Failed to process commission")
            async def process_order_commission(self, order_id): ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                db = getattr(self, "db", None)
                if db is not None:
                    await db.rollback()
                logger.error(f"{failure_message} in {func.__qualname__}: {e}")
                raise InternalServiceError(failure_message) from e
        return wrapper
    return decorator
