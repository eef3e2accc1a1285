"""
Services module - storage backends shared by the API components

Contains:
- Redis-backed user store and webhook event log: redis_store.py
"""

from astro_api.services.redis_store import RedisEventLog, RedisUserStore, get_redis_client

__all__ = ["RedisEventLog", "RedisUserStore", "get_redis_client"]
