from slowapi import Limiter
from slowapi.util import get_remote_address

# Per-client-IP limiter shared by the public intake endpoints
limiter = Limiter(key_func=get_remote_address)
