from slowapi import Limiter
from starlette.requests import Request

from burnafter.config import settings


def get_client_ip(request: Request) -> str:
    """Extract the client IP used as the rate limit key.

    X-Forwarded-For is only trusted when TRUST_FORWARDED_FOR is set, i.e.
    when a reverse proxy we control overwrites it. Otherwise any client
    could rotate the header to dodge the limit.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # First entry is the original client
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# Buckets are keyed by endpoint name, not URL, so each secret id does not get
# its own counter
limiter = Limiter(key_func=get_client_ip, key_style="endpoint")
