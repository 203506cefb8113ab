"""Helpers for database-backed services: field masks, migrations, transactions, health checks, resource identifiers and test tooling."""

__version__ = "0.1.0"