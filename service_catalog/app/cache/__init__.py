"""
Cache package for the Catalog Service.

Provides the Redis connection client whose connection state is reported
by the health endpoint. The cache is a best-effort dependency: the
service serves requests whether or not it is connected.
"""

from .redis_client import ConnectionState, RedisConnectionClient

__all__ = ["ConnectionState", "RedisConnectionClient"]
