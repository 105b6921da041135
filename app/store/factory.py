from typing import Union

import redis

from app.config import Settings, settings as default_settings
from app.obs.logger import log_event
from app.store.memory import MemoryStore
from app.store.redis_store import RedisStore

Store = Union[MemoryStore, RedisStore]


def create_store(cfg: Settings = None) -> Store:
    """Build the configured store, falling back to in-memory if Redis is unreachable."""
    cfg = cfg or default_settings
    memory = lambda: MemoryStore(ref_prefix=cfg.REF_PREFIX, ref_max_attempts=cfg.REF_MAX_ATTEMPTS)

    if cfg.STORE_BACKEND != "redis":
        return memory()

    try:
        client = redis.from_url(cfg.REDIS_URL, decode_responses=True)
        client.ping()
    except redis.RedisError as e:
        log_event("store_fallback", level="WARNING", backend="memory", error=str(e))
        return memory()

    return RedisStore(
        client=client,
        ref_prefix=cfg.REF_PREFIX,
        ref_max_attempts=cfg.REF_MAX_ATTEMPTS,
    )
