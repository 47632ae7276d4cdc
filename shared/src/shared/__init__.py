"""Shared settings, logging, errors and HTTP primitives for the bouquet services."""
