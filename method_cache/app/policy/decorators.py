"""
Declarative cache tagging for service methods and service classes.
"""

from typing import Any, Dict

from pydantic import ValidationError

from shared.errors import ConfigurationError
from .models import MethodCachePolicy


POLICY_ATTRIBUTE = "__method_cache_policy__"


def build_policy(policy_fields: Dict[str, Any]) -> MethodCachePolicy:
    """Validate policy fields, surfacing bad values as configuration errors."""
    try:
        return MethodCachePolicy(**policy_fields)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid method cache policy",
            {"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def cacheable(target=None, **policy_fields):
    """Tag a coroutine method, or every public coroutine method of a class, as cacheable.

    Usable bare (``@cacheable``) or with policy fields
    (``@cacheable(expiration_minutes=5, sliding_expiration=True)``). Whether the
    tagged method can actually be intercepted is checked at registration time.
    """
    policy = build_policy(policy_fields)

    def decorate(obj):
        setattr(obj, POLICY_ATTRIBUTE, policy)
        return obj

    if target is not None:
        return decorate(target)
    return decorate


def declared_policy(obj) -> Any:
    """Policy attached by ``cacheable``, if any."""
    return getattr(obj, POLICY_ATTRIBUTE, None)
