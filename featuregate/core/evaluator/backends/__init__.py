"""
Configuration backends.
"""

from .memory import MemoryConfigBackend
from .database import DatabaseConfigBackend

__all__ = ["MemoryConfigBackend", "DatabaseConfigBackend"]
