"""Tenant schema lifecycle and request-time tenant resolution."""
