"""
Payload codec for cached method results.
"""

from typing import Any, Dict

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from shared.errors import EncodingError


class PayloadCodec:
    """JSON codec for stored values, driven by the value's declared type."""

    def __init__(self):
        self._adapters: Dict[Any, TypeAdapter] = {}

    def _adapter(self, value_type: Any) -> TypeAdapter:
        try:
            adapter = self._adapters.get(value_type)
        except TypeError:
            # Unhashable type expression
            return TypeAdapter(value_type)

        if adapter is None:
            adapter = TypeAdapter(value_type)
            self._adapters[value_type] = adapter
        return adapter

    def encode(self, value: Any, value_type: Any = Any) -> bytes:
        """Encode a value. The result is never empty, so an encoded None is still a payload."""
        try:
            return self._adapter(value_type).dump_json(value)
        except PydanticSerializationError as e:
            raise EncodingError(f"Cannot encode cached value: {e}", {"type": type(value).__qualname__}) from e

    def decode(self, data: bytes, value_type: Any = Any) -> Any:
        """Decode a payload into ``value_type``."""
        try:
            return self._adapter(value_type).validate_json(data)
        except ValidationError as e:
            raise EncodingError(
                "Cannot decode cached value",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            ) from e
