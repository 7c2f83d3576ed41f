"""Rate limiting (slowapi), keyed on the client address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from rallyhome.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
