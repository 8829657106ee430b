"""Shared Kernel module.

Components both the tenancy and migration contexts depend on: validated
SQL identifiers, the per-request tenant context and the observation
context carried by domain probes. Keep it small; a change here touches
every context.
"""
