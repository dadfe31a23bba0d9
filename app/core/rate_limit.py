from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Applied per endpoint to the AI generation routes only
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
