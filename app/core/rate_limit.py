# app/core/rate_limit.py
from slowapi import Limiter
from slowapi.util import get_remote_address

# In-memory storage is enough for a single worker; point storage_uri at Redis when scaling out.
limiter = Limiter(key_func=get_remote_address)
