"""
Canonical, deterministic encoding of resolved call arguments.

Stable across processes and runs: sorted keys, compact separators, enums by
name, sets sorted, dataclasses, pydantic models and plain objects as field
maps. Mapping keys and non-JSON value types never share a spelling with
plain strings or numbers.
"""

import base64
import dataclasses
import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel

from shared.errors import EncodingError


VALUE_TYPES = (bool, int, float, str, bytes, Decimal, UUID, datetime, date, time, timedelta, Enum)
COLLECTION_TYPES = (list, tuple, dict, set, frozenset)


def is_structured(value: Any) -> bool:
    """Values encoded field by field rather than through their text form."""
    return isinstance(value, BaseModel) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


def to_canonical(value: Any) -> Any:
    """Convert a value into plain JSON data with a single canonical form.

    Mapping keys are written as JSON tokens (``"a"``, ``1``, ``[1,2]``), so
    ``{1: x}`` and ``{"1": x}`` stay apart. Types without a JSON spelling of
    their own become one-entry tag objects such as ``{"$decimal": "1.10"}``;
    a bare ``$`` key can never come from a mapping.
    """
    if value is None:
        return None

    # Enum first: IntEnum and str-mixin enums would otherwise pass as int/str
    if isinstance(value, Enum):
        return value.name

    if isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, bytes):
        return _tagged("bytes", base64.b64encode(value).decode("ascii"))

    if isinstance(value, Decimal):
        return _tagged("decimal", str(value))

    if isinstance(value, UUID):
        return _tagged("uuid", str(value))

    # datetime is a date subclass
    if isinstance(value, datetime):
        return _tagged("datetime", value.isoformat())

    if isinstance(value, (date, time)):
        return _tagged(type(value).__name__, value.isoformat())

    if isinstance(value, timedelta):
        return _tagged("timedelta", value.total_seconds())

    if isinstance(value, dict):
        return {_canonical_key(k): to_canonical(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_canonical(item) for item in value]

    if isinstance(value, (set, frozenset)):
        return _tagged("set", sorted((to_canonical(item) for item in value), key=_dumps))

    if isinstance(value, BaseModel):
        return _fields(value.model_dump(mode="python"))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_canonical(getattr(value, f.name)) for f in dataclasses.fields(value)}

    attributes = None if callable(value) else _public_attributes(value)
    if attributes is None:
        raise EncodingError(
            f"Cannot encode value of type '{type(value).__qualname__}'",
            {"type": f"{type(value).__module__}.{type(value).__qualname__}"}
        )

    # Plain objects: public attributes, like a property bag
    return _fields(attributes)


def encode_canonical(value: Any) -> bytes:
    """Encode a value to canonical UTF-8 JSON bytes."""
    try:
        return _dumps(to_canonical(value)).encode("utf-8")
    except EncodingError:
        raise
    except (TypeError, ValueError, RecursionError) as e:
        raise EncodingError(f"Cannot encode value: {e}", {"type": type(value).__qualname__}) from e


def _public_attributes(value: Any) -> Optional[Dict[str, Any]]:
    """Public instance attributes from ``__slots__`` and ``__dict__``, None when there are neither."""
    has_dict = hasattr(value, "__dict__")
    slot_names = []
    for cls in type(value).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        slot_names.extend((slots,) if isinstance(slots, str) else slots)

    if not has_dict and not slot_names:
        return None

    attributes = {}
    for name in slot_names:
        if name.startswith("_") or not hasattr(value, name):
            continue
        attributes[name] = getattr(value, name)
    if has_dict:
        attributes.update(vars(value))

    return {name: attr for name, attr in attributes.items() if not name.startswith("_")}


def _fields(attributes: Dict[str, Any]) -> Dict[str, Any]:
    # Field names are identifiers, never "$..." tags or quoted key tokens
    return {name: to_canonical(attr) for name, attr in attributes.items()}


def _tagged(tag: str, data: Any) -> Dict[str, Any]:
    return {f"${tag}": data}


def _canonical_key(key: Any) -> str:
    return _dumps(to_canonical(key))


def _dumps(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
