"""
SHA-256 hashing for cache keys.
"""

import hashlib
from typing import BinaryIO, Union


class HashCalculator:
    """Hash calculator."""

    CHUNK_SIZE = 64 * 1024

    def calculate_sha256(self, data: Union[bytes, BinaryIO]) -> str:
        """Lowercase hex SHA-256 of a byte string or a binary stream."""
        digest = hashlib.sha256()

        if isinstance(data, (bytes, bytearray, memoryview)):
            digest.update(data)
        else:
            for chunk in iter(lambda: data.read(self.CHUNK_SIZE), b""):
                digest.update(chunk)

        return digest.hexdigest()
