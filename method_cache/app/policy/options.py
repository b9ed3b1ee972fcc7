"""
Cache configuration: the builder used at setup time and the immutable
options object every component reads afterwards.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from shared.errors import ConfigurationError
from shared.logging import get_logger
from .decorators import build_policy, declared_policy
from .models import MethodCachePolicy, MethodIdentity


ArgumentResolver = Callable[[type, Any], Any]
SuffixFactory = Callable[[], Optional[str]]

# asyncio.Event is the cancellation signal of asyncio code; it never affects a result.
DEFAULT_IGNORE_TYPES: FrozenSet[type] = frozenset({asyncio.Event})


def public_methods(service_type: type) -> Dict[str, Callable]:
    """Public instance methods of a type, by name, in sorted order."""
    methods: Dict[str, Callable] = {}
    for name in sorted(dir(service_type)):
        if name.startswith("_"):
            continue
        attr = inspect.getattr_static(service_type, name, None)
        if inspect.isfunction(attr):
            methods[name] = attr
    return methods


def is_interceptable(func: Callable) -> bool:
    """Only coroutine functions can be routed through the async cache engine."""
    return inspect.iscoroutinefunction(func)


@dataclass(frozen=True)
class CacheOptions:
    """Process wide cache configuration. Read-only once built."""
    configurations: Mapping[type, Mapping[str, MethodCachePolicy]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    ignore_types: FrozenSet[type] = DEFAULT_IGNORE_TYPES
    argument_resolver: Optional[ArgumentResolver] = None
    key_suffix_factory: Optional[SuffixFactory] = None

    def get_policy(self, identity: MethodIdentity) -> Optional[MethodCachePolicy]:
        """Resolve the policy of a method; ``None`` means the method is not cacheable.

        Explicit configuration wins over a method decorator, which wins over a
        class decorator.
        """
        configured = self.configurations.get(identity.service_type, {}).get(identity.method_name)
        if configured is not None:
            return configured

        func = inspect.getattr_static(identity.service_type, identity.method_name, None)
        if not inspect.isfunction(func):
            return None

        policy = declared_policy(func)
        if policy is not None:
            return policy

        if is_interceptable(func):
            return declared_policy(identity.service_type)

        return None

    def is_cacheable_service_type(self, service_type: type) -> bool:
        """Check whether a service type has anything to cache.

        Raises ConfigurationError for a tagged method that cannot be intercepted.
        """
        if service_type in self.configurations:
            return True

        cacheable = False
        class_policy = declared_policy(service_type)

        for name, func in public_methods(service_type).items():
            if declared_policy(func) is not None:
                if not is_interceptable(func):
                    raise ConfigurationError(
                        f"The method '{service_type.__qualname__}.{name}' is tagged as cacheable "
                        "but is not a coroutine function",
                        {"service": service_type.__qualname__, "method": name}
                    )
                cacheable = True
            elif class_policy is not None and is_interceptable(func):
                cacheable = True

        return cacheable


class CacheConfigurationBuilder:
    """Collects cache configuration before any call is served."""

    def __init__(self):
        self.logger = get_logger("method_cache.configuration")
        self._configurations: Dict[type, Dict[str, MethodCachePolicy]] = {}
        self._ignore_types: FrozenSet[type] = frozenset()
        self._argument_resolver: Optional[ArgumentResolver] = None

    def add_cache(self, service_type: type, method_name: Optional[str] = None, **policy_fields) -> "CacheConfigurationBuilder":
        """Enable caching for one method, or every public coroutine method, of a service type."""
        policy = build_policy(policy_fields)
        policies = self._configurations.setdefault(service_type, {})

        if method_name is None:
            for name, func in public_methods(service_type).items():
                if is_interceptable(func):
                    policies[name] = policy
            self.logger.debug("Configured cache for service", service=service_type.__qualname__, methods=sorted(policies))
            return self

        func = inspect.getattr_static(service_type, method_name, None)
        if method_name.startswith("_") or not inspect.isfunction(func):
            raise ConfigurationError(
                f"The method '{method_name}' does not exist on the type '{service_type.__qualname__}'",
                {"service": service_type.__qualname__, "method": method_name}
            )
        if not is_interceptable(func):
            raise ConfigurationError(
                f"The method '{service_type.__qualname__}.{method_name}' is not a coroutine function",
                {"service": service_type.__qualname__, "method": method_name}
            )

        policies[method_name] = policy
        self.logger.debug("Configured cache for method", service=service_type.__qualname__, method=method_name)
        return self

    def set_cache_key_ignore_types(self, types: Iterable[type]) -> "CacheConfigurationBuilder":
        """Argument types that never take part in a cache key."""
        self._ignore_types = frozenset(types)
        return self

    def set_cache_key_argument_resolver(self, resolver: Optional[ArgumentResolver]) -> "CacheConfigurationBuilder":
        """Resolver called with (argument type, argument value); a non-None result replaces the argument in the key."""
        self._argument_resolver = resolver
        return self

    def build(self, key_suffix_factory: Optional[SuffixFactory] = None) -> CacheOptions:
        """Freeze the collected configuration."""
        configurations = MappingProxyType({
            service_type: MappingProxyType(dict(policies))
            for service_type, policies in self._configurations.items()
        })
        return CacheOptions(
            configurations=configurations,
            ignore_types=DEFAULT_IGNORE_TYPES | self._ignore_types,
            argument_resolver=self._argument_resolver,
            key_suffix_factory=key_suffix_factory,
        )
