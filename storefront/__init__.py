"""
Storefront backend package.

This package provides a FastAPI application for the public shop and the
admin back-office, with database, object storage, key/value and mail
abstractions so the same code runs against Postgres/R2/Redis in production
and in-memory doubles in tests.
"""
