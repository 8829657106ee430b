"""Tenancy infrastructure: templates, provisioning, directory and scoping."""
