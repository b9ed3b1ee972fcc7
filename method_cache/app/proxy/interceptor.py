"""
Interception of service method calls.

A proxy built by ``CacheProxyFactory`` stands in for a service instance. Calls
to cacheable coroutine methods go through ``CacheInterceptor`` and the cache
engine; everything else is forwarded to the wrapped instance untouched.
"""

import functools
import inspect
import typing
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence

from shared.errors import CacheKeyError, ConfigurationError
from shared.logging import get_logger, reset_cache_method, set_cache_method
from ..caching.method_result_cache import MethodResultCache
from ..policy.models import MethodCachePolicy, MethodIdentity
from ..policy.options import CacheOptions, is_interceptable, public_methods


@dataclass(frozen=True)
class CachedMethod:
    """Everything the interceptor needs about one cacheable method, resolved once."""
    identity: MethodIdentity
    policy: MethodCachePolicy
    signature: inspect.Signature
    return_type: Any = Any

    @classmethod
    def from_function(cls, identity: MethodIdentity, policy: MethodCachePolicy, func: Callable) -> "CachedMethod":
        signature = inspect.signature(func)
        parameters = list(signature.parameters.values())[1:]
        return cls(identity, policy, signature.replace(parameters=parameters), _return_type(func))

    def bind_arguments(self, args: Sequence[Any], kwargs: Mapping[str, Any]) -> List[Any]:
        """Call arguments in declaration order with defaults applied.

        Raises TypeError when the call does not match the signature.
        """
        bound = self.signature.bind(*args, **kwargs)
        bound.apply_defaults()

        arguments: List[Any] = []
        for name, parameter in self.signature.parameters.items():
            value = bound.arguments[name]
            if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
                arguments.extend(value)
            elif parameter.kind is inspect.Parameter.VAR_KEYWORD:
                if value:
                    arguments.append(dict(value))
            else:
                arguments.append(value)
        return arguments


def _return_type(func: Callable) -> Any:
    try:
        hints = typing.get_type_hints(func)
    except Exception:
        # Unresolvable forward references fall back to untyped decoding
        return Any
    return hints.get("return", Any)


class CacheInterceptor:
    """Routes cacheable calls through the cache engine."""

    def __init__(self, cache: MethodResultCache):
        self.cache = cache
        self.logger = get_logger("method_cache.interceptor")

    async def intercept(
        self,
        method: CachedMethod,
        args: Sequence[Any],
        kwargs: Mapping[str, Any],
        proceed: Callable[[], Awaitable[Any]],
    ) -> Any:
        if method.policy is None:
            return await proceed()

        try:
            arguments = method.bind_arguments(args, kwargs)
        except TypeError:
            # Let the real method raise its own argument error
            return await proceed()

        token = set_cache_method(str(method.identity))
        try:
            try:
                cache_key = self.cache.build_cache_key(method.identity, arguments)
            except CacheKeyError as e:
                self.logger.warning(
                    "Bypassing cache, key could not be built",
                    method=str(method.identity),
                    error=e.message
                )
                return await proceed()

            # Errors raised by the real call reach the caller unchanged
            return await self.cache.get_or_create(
                method.identity,
                arguments,
                method.policy,
                proceed,
                method.return_type,
                cache_key=cache_key
            )
        finally:
            reset_cache_method(token)


class CacheProxy:
    """Base class of generated service proxies."""

    __cached_methods__: Mapping[str, CachedMethod] = {}

    def __init__(self, implementation: Any, interceptor: CacheInterceptor):
        self._implementation = implementation
        self._interceptor = interceptor

    def __getattr__(self, name: str):
        implementation = self.__dict__.get("_implementation")
        if implementation is None:
            raise AttributeError(name)
        return getattr(implementation, name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} wrapping {self._implementation!r}>"


def _make_invoker(method: CachedMethod, func: Callable):
    name = method.identity.method_name

    @functools.wraps(func)
    async def invoke(self, *args, **kwargs):
        target = getattr(self._implementation, name)
        return await self._interceptor.intercept(method, args, kwargs, lambda: target(*args, **kwargs))

    return invoke


class CacheProxyFactory:
    """Builds caching proxies for service instances."""

    def __init__(self, interceptor: CacheInterceptor, options: CacheOptions):
        self.interceptor = interceptor
        self.options = options
        self.logger = get_logger("method_cache.proxy")
        self._proxy_types: Dict[type, type] = {}

    def describe(self, service_type: type) -> Dict[str, CachedMethod]:
        """Cacheable coroutine methods of a service type, by name."""
        methods: Dict[str, CachedMethod] = {}
        for name, func in public_methods(service_type).items():
            if not is_interceptable(func):
                continue
            identity = MethodIdentity(service_type, name)
            policy = self.options.get_policy(identity)
            if policy is not None:
                methods[name] = CachedMethod.from_function(identity, policy, func)
        return methods

    def create(self, service_type: type, implementation: Any) -> CacheProxy:
        """Wrap ``implementation`` so that cacheable methods of ``service_type`` are cached."""
        if not isinstance(implementation, service_type):
            raise ConfigurationError(
                f"'{type(implementation).__qualname__}' does not implement '{service_type.__qualname__}'",
                {"service": service_type.__qualname__}
            )

        proxy_type = self._proxy_types.get(service_type)
        if proxy_type is None:
            proxy_type = self._build_proxy_type(service_type)
            self._proxy_types[service_type] = proxy_type

        return proxy_type(implementation, self.interceptor)

    def _build_proxy_type(self, service_type: type) -> type:
        methods = self.describe(service_type)
        static = public_methods(service_type)

        namespace: Dict[str, Any] = {
            "__cached_methods__": methods,
            "__module__": __name__,
        }
        for name, method in methods.items():
            namespace[name] = _make_invoker(method, static[name])

        self.logger.debug("Built cache proxy", service=service_type.__qualname__, methods=sorted(methods))
        return type(f"{service_type.__name__}Proxy", (CacheProxy,), namespace)
