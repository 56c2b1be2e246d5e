from slowapi import Limiter
from slowapi.util import get_remote_address

# Only endpoints that call the generation service are limited.
limiter = Limiter(key_func=get_remote_address)
