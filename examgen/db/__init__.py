"""Persistence layer: connection pool, repository interfaces and PostgreSQL implementations."""
