"""
Cache backend implementations.
"""

from .memory import MemoryCacheBackend
from .redis import RedisCacheBackend

__all__ = ["MemoryCacheBackend", "RedisCacheBackend"]
