from slowapi import Limiter
from slowapi.util import get_remote_address

from storefront.core.config import get_settings

_settings = get_settings()

limiter = Limiter(key_func=get_remote_address)

# Session creation primes catalog and cart fetches against the storefront
SESSION_CREATE_LIMIT = (
    f"{_settings.rate_limit_requests}/{_settings.rate_limit_window_seconds} seconds"
)
