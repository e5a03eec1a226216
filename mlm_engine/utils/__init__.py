"""Shared helpers: money, identifiers, exceptions, logging, formatting."""
