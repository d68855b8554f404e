"""Thin Lambda handlers routed by handlers.main."""
