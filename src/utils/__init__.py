"""Shared helpers: logging, errors, validation, caching, deadlines."""
