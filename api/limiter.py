"""
api/limiter.py -- The one slowapi Limiter shared by the app and its routers.

api/main.py mounts it (SlowAPIMiddleware finds it on app.state.limiter);
api/routes/account.py decorates the login route with login_limit. A second
Limiter instance would keep its own counters and never trip.

Counters are per client IP and live in process memory.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings


def login_limit() -> str:
    """Brute-force mitigation for POST /login, e.g. "10/minute".

    slowapi calls this on every request, so the value follows the current
    settings object.
    """
    return get_settings().login_rate_limit


limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
