"""Redis connection, used by the rate limiter.

Learn: Redis is optional. If init_redis() fails at startup the app keeps
running and RateLimitMiddleware simply lets every request through.
The client lives on app.state, not in a module global, so two apps in one
process (tests) never share a connection.
"""

from typing import Optional

import redis.asyncio as aioredis


async def init_redis(url: str) -> aioredis.Redis:
    """Connect and ping. Raises if Redis is unreachable."""
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client


async def close_redis(client: Optional[aioredis.Redis]) -> None:
    if client is not None:
        await client.aclose()
