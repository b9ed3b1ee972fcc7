"""
Cache key package: method keys, call fingerprints and hashing.
"""

from .hashing import HashCalculator
from .provider import CacheKeyProvider

__all__ = ["CacheKeyProvider", "HashCalculator"]
