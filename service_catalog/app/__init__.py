"""
Catalog Service package.

Serves two read-only collections (users and products) from static,
process-lifetime datasets, plus a health endpoint reporting uptime and
the cache-service connection state. It provides:

- app.main: API surface, dependency wiring and the process entrypoint.
- app.data: Immutable record models and datasets.
- app.services: Lookup and filtering over the datasets.
- app.cache: Redis connection client with reconnect backoff.

Guidelines:
- Datasets never change after import; services never copy or mutate them.
- The cache service is best-effort; its state is reported, never required.
"""
