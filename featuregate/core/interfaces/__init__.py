"""
Core interfaces for pluggable backends.
"""

from .cache import CacheBackend

__all__ = ["CacheBackend"]
