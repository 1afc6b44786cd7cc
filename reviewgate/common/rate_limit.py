"""Rate limiting for the HTTP edge."""
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# Application-wide limit, shared per client IP
RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"

# Routes that accept a bearer secret without a session get a tighter budget
FORGOT_PASSWORD_LIMIT = settings.forgot_password_rate_limit
TOKEN_VALIDATION_LIMIT = settings.token_validation_rate_limit

limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[RATE_LIMIT]
)
