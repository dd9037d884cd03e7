"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Every /api/events call runs a
BigQuery job, so the endpoint is capped to protect the project's quota.

Usage in routes:
    from fastapi import Request
    from eventmap.core.rate_limit import limiter

    @router.get("")
    @limiter.limit("30/minute")
    async def my_endpoint(request: Request):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

EVENTS_RATE_LIMIT = "30/minute"

limiter = Limiter(key_func=get_remote_address)
