from redis import Redis as SyncRedis

from app.settings import settings

_redis_sync: SyncRedis | None = None


def redis_url() -> str:
    return settings.redis_url


def get_sync_redis() -> SyncRedis:
    global _redis_sync
    if _redis_sync is None:
        _redis_sync = SyncRedis.from_url(redis_url(), decode_responses=True)
    return _redis_sync
