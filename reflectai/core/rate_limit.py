"""Per-client HTTP rate limiting using slowapi.

Separate from the gateway's CallRateLimiter: this one caps how often a single
client may hit the generation endpoints, the gateway one caps how often the
process calls the primary provider.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client address
limiter = Limiter(key_func=get_remote_address)
