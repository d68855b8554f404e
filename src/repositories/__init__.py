"""Collaborator interfaces and their storage adapters."""
