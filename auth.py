"""Optional shared-password gate and per-client rate limiting."""
import os
import time
from typing import Optional
from collections import defaultdict

from fastapi import Header, HTTPException, Request

# --- Config ---
# Empty disables the X-App-Password check.
APP_PASSWORD = os.environ.get("JPLT_PASSWORD", "")

# --- Rate Limiting ---
RATE_LIMIT_REQUESTS = 30
RATE_LIMIT_WINDOW = 60
_rate_buckets: dict = defaultdict(list)
_rate_check_counter = 0


def rate_limit_check(ip: str) -> bool:
    now = time.time()
    cutoff = now - RATE_LIMIT_WINDOW
    _rate_buckets[ip] = [t for t in _rate_buckets[ip] if t > cutoff]
    if len(_rate_buckets[ip]) >= RATE_LIMIT_REQUESTS:
        return False
    _rate_buckets[ip].append(now)
    return True


def rate_limit_cleanup():
    global _rate_check_counter
    _rate_check_counter += 1
    if _rate_check_counter % 100 == 0:
        now = time.time()
        cutoff = now - RATE_LIMIT_WINDOW
        stale = [ip for ip, ts in _rate_buckets.items() if not ts or ts[-1] < cutoff]
        for ip in stale:
            del _rate_buckets[ip]


def get_rate_limit_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request):
    """FastAPI dependency for routes that spend provider quota."""
    rate_limit_cleanup()
    if not rate_limit_check(get_rate_limit_key(request)):
        raise HTTPException(429, "Too many requests. Please wait a minute.")


async def require_password(x_app_password: Optional[str] = Header(default=None)):
    """FastAPI dependency that validates the X-App-Password header."""
    if APP_PASSWORD and x_app_password != APP_PASSWORD:
        raise HTTPException(401, "Unauthorized")
