"""
Cache infrastructure module.
"""
from .redis import RedisJSONStore, close_redis, get_redis_client

__all__ = ["RedisJSONStore", "close_redis", "get_redis_client"]
