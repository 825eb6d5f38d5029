"""Logging setup for the vanity integration.

structlog with contextvars, so the request's vanity identity lands on every log
line emitted while the request is being handled.
"""
