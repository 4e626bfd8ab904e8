"""Redis-backed cache of bracket tables keyed by tax year.

Bracket tables for a published year never change, so entries are stored
without a TTL and never overwritten once written. Redis is optional: when it
cannot be reached, reads are misses and writes are skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
import structlog
from redis.exceptions import RedisError

from src.tax.models import BracketTable
from src.tax.schemas import parse_brackets_body

if TYPE_CHECKING:
    import redis.asyncio as redis

logger = structlog.get_logger()


class RedisBracketCache:
    """Stores bracket tables in Redis in the remote source's wire shape.

    Attributes:
        BASE_NAME: Key prefix; full keys are ``tax_brackets:{year}``.
    """

    BASE_NAME = "tax_brackets"

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    def key(self, tax_year: int) -> str:
        return f"{self.BASE_NAME}:{tax_year}"

    async def get(self, tax_year: int) -> BracketTable | None:
        """Return the cached table, or None on a miss or unreadable entry."""
        try:
            raw = await self._redis.get(self.key(tax_year))
        except RedisError as exc:
            logger.warning("tax_brackets_cache_unavailable", tax_year=tax_year, error=str(exc))
            return None
        if raw is None:
            return None

        body = raw.encode("utf-8") if isinstance(raw, str) else raw
        try:
            return parse_brackets_body(body, tax_year)
        except ValueError as exc:
            logger.warning(
                "tax_brackets_cache_corrupt",
                tax_year=tax_year,
                error=str(exc),
            )
            return None

    async def set(self, table: BracketTable) -> bool:
        """Store a table if no entry exists for its year.

        Returns:
            True if the entry was written, False if one already existed or
            Redis could not be reached.
        """
        if table.tax_year is None:
            raise ValueError("Only year-keyed bracket tables can be cached")
        try:
            written = await self._redis.set(
                self.key(table.tax_year),
                orjson.dumps(table.to_payload()),
                nx=True,
            )
        except RedisError as exc:
            logger.warning(
                "tax_brackets_cache_unavailable",
                tax_year=table.tax_year,
                error=str(exc),
            )
            return False
        return bool(written)


__all__ = ["RedisBracketCache"]
