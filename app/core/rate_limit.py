"""
Rate Limiting Configuration

This module provides rate limiting for the admin analytics endpoints.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- Stats reads are cheap when summaries exist but fall back to scanning raw
  visits otherwise, so they are limited per IP
- Manual rollup triggers are limited much harder than reads
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Initialize rate limiter
# Uses IP address for rate limiting
limiter = Limiter(key_func=get_remote_address)

# Rate limit configurations per endpoint group
# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "stats": "60/minute",  # Aggregate queries: 60 per minute per IP
    "visits": "30/minute",  # Per-redirect raw visit listings
    "aggregate": "5/minute",  # Manual rollup triggers
}
