"""
Shared rate limiter instance.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from landlens.config import settings


limiter = Limiter(key_func=get_remote_address)

ANALYZE_RATE_LIMIT = f"{settings.rate_limit_requests}/minute"
