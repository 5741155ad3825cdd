"""
Users API service package.

Serves user records from PostgreSQL through a Redis cache using the
cache-aside pattern:
- Reads check the cache and fill it from the store on a miss
- Deletes and explicit evictions invalidate; nothing is written on mutation
- Every single-user read is authorized before the cache is consulted

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: Backing store clients.
- app.caching: Cache stores, TTL policy, cache-aside coordinator.
- app.auth: Bearer token authentication and the authorization gate.
- app.domain: Operations exposed to request handlers.
"""
