"""lfsgate API middleware package."""

from lfsgate.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
