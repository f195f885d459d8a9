"""
Shared rate limiter for all memoless API routes.

slowapi needs one Limiter for the whole app: server.py installs it as
app.state.limiter and every route module decorates with it.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
