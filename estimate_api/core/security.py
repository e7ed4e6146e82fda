from datetime import datetime, timezone
from cachetools import TTLCache
from fastapi import Request
from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from .config import settings
from .errors import EstimationError

# Per-minute hit counters; entries expire on their own after the window.
_hits: TTLCache = TTLCache(maxsize=8192, ttl=60)

class RateLimited(EstimationError):
    outcome = "rate_limited"

def rate_limit(request: Request):
    """
    Basic in-process RPM limiter for the public notification endpoints,
    keyed by client IP so a single visitor cannot flood the team inbox.
    """
    rpm = max(1, settings.RATE_LIMIT_RPM)
    client_ip = request.client.host if request.client else "unknown"
    minute_bucket = datetime.now(timezone.utc).strftime("%Y%m%d%H%M")
    key = f"rate:{request.url.path}:{client_ip}:{minute_bucket}"

    count = _hits.get(key, 0) + 1
    _hits[key] = count
    if count > rpm:
        raise RateLimited("rate limit exceeded")

def reset_rate_limits():
    _hits.clear()

class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """
    Starlette's CORS middleware with pre-flights answered by an empty body
    instead of the plain-text "OK".
    """
    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {k: v for k, v in response.headers.items()
                   if k not in ("content-length", "content-type")}
        return Response(status_code=response.status_code, headers=headers)
