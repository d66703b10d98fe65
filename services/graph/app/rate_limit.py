"""
Global slowapi rate limiter.

Imported by social_graph/router.py for per-endpoint limits.  Mounted onto
app.state in main.py so slowapi middleware can find it.

Storage: Redis (REDIS_URL) by default.  RATE_LIMIT_STORAGE_URI overrides it,
e.g. memory:// for local dev without Redis and for the test suite.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_settings.rate_limit_storage,
    enabled=_settings.rate_limit_enabled,
)

FOLLOW_RATE_LIMIT = _settings.follow_rate_limit
