"""
Codec package: canonical argument encoding for cache keys and the payload
codec for cached values.
"""

from .canonical import encode_canonical, is_structured, to_canonical
from .payload import PayloadCodec

__all__ = ["PayloadCodec", "encode_canonical", "is_structured", "to_canonical"]
