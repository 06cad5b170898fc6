"""Request context, structured logging and process-local counters.

Kept dependency-light: request IDs + structlog contextvars, in-memory counters
for HTTP requests and data-service calls, and the cached OS snapshot served by
the system metrics endpoint.
"""
