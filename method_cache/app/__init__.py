"""
Method result cache package.

Caches the results of async service methods in a key-value store, keyed by
a deterministic fingerprint of the method and its arguments.

Structure:
- app.policy: Method identity, cache policies, decorator and configuration.
- app.codec: Canonical argument encoding and payload codec.
- app.keys: Cache key fingerprints.
- app.store: In-memory and Redis backing stores.
- app.caching: Cache-aside engine, key-variant index and invalidation.
- app.proxy: Service proxies and call interception.
- app.registration: Component wiring.
- app.main: FastAPI admin service.
"""
