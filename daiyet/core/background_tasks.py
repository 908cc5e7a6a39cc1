"""In-process background loops."""

import asyncio
import logging

from daiyet.core.cache import CacheBackend

logger = logging.getLogger(__name__)

# Flag to stop the background task
_stop_cache_sweep = False


async def start_cache_sweeper(cache: CacheBackend, interval_seconds: int) -> None:
    """Evict expired cache entries every ``interval_seconds``."""
    global _stop_cache_sweep
    _stop_cache_sweep = False

    logger.info(f"Cache sweeper started (interval: {interval_seconds}s)")

    while not _stop_cache_sweep:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await cache.sweep()
        except Exception as e:
            logger.error(f"Cache sweep error: {e}")
            continue
        if removed:
            logger.debug(f"Cache sweep evicted {removed} entries")

    logger.info("Cache sweeper stopped")


def stop_cache_sweeper() -> None:
    """Signal the sweeper to stop."""
    global _stop_cache_sweep
    _stop_cache_sweep = True
