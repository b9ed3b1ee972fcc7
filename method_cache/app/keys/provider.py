"""
Cache key provider.

Builds the store key of a method call:

    method_result_cache_<module>.<Type>.<method>[-<suffix>][-<sha256 of arguments>]
"""

from typing import Any, List, Optional, Sequence

from shared.errors import EncodingError
from shared.logging import get_logger
from ..codec.canonical import COLLECTION_TYPES, VALUE_TYPES, encode_canonical, is_structured
from ..policy.models import METHOD_KEY_PREFIX, MethodIdentity
from ..policy.options import CacheOptions
from .hashing import HashCalculator


class CacheKeyProvider:
    """Cache key provider."""

    def __init__(self, options: CacheOptions, hash_calculator: Optional[HashCalculator] = None):
        self.options = options
        self.hash_calculator = hash_calculator or HashCalculator()
        self.logger = get_logger("method_cache.keys")

    def get_method_key(self, identity: MethodIdentity) -> str:
        """Key shared by every call of a method; root of its fingerprints and of its index."""
        return f"{METHOD_KEY_PREFIX}{identity.qualified_name}.{identity.method_name}"

    def get_cache_key(self, identity: MethodIdentity, arguments: Optional[Sequence[Any]] = None) -> str:
        """Fingerprint of a call. Raises EncodingError when an argument cannot be encoded."""
        key = self.get_method_key(identity)

        suffix = self.options.key_suffix_factory() if self.options.key_suffix_factory else None
        if suffix is not None and suffix.strip():
            key = f"{key}-{suffix}"

        if not arguments:
            return key

        resolved = self.resolve_arguments(arguments)
        if not resolved:
            return key

        payload = encode_canonical(resolved)
        return f"{key}-{self.hash_calculator.calculate_sha256(payload)}"

    def resolve_arguments(self, arguments: Sequence[Any]) -> List[Any]:
        """Apply the ignore set and resolution rules, one entry per surviving argument."""
        return [
            self._resolve_argument(argument)
            for argument in arguments
            if type(argument) not in self.options.ignore_types
        ]

    def _resolve_argument(self, argument: Any) -> Any:
        if argument is None:
            return None

        argument_type = type(argument)

        if self.options.argument_resolver is not None:
            replacement = self.options.argument_resolver(argument_type, argument)
            if replacement is not None:
                return replacement

        if isinstance(argument, VALUE_TYPES + COLLECTION_TYPES) or is_structured(argument):
            return argument

        try:
            text = str(argument)
        except Exception as e:
            raise EncodingError(
                f"Cannot build text form of '{argument_type.__qualname__}'",
                {"type": argument_type.__qualname__}
            ) from e

        # Default str() is either the type name or the address-bearing object repr
        if text != _full_name(argument_type) and text != object.__repr__(argument):
            return text

        return argument


def _full_name(argument_type: type) -> str:
    return f"{argument_type.__module__}.{argument_type.__qualname__}"
