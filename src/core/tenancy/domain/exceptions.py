"""Domain exceptions for the tenancy context."""


class NamespaceImmutableError(Exception):
    """Raised when code tries to change or read a missing tenant namespace.

    Namespaces are immutable once assigned; changing one would orphan the
    tenant's existing data.
    """

    pass
