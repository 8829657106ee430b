"""One-time migration of shared legacy data into per-school namespaces."""
