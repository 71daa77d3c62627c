"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from webnotes.config import settings

limiter = Limiter(key_func=get_remote_address)

bulk_limiter = limiter.limit(settings.bulk_rate_limit)
