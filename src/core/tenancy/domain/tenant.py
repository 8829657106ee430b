"""Tenant aggregate for the tenancy context."""

from __future__ import annotations

from dataclasses import dataclass

from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.exceptions import NamespaceImmutableError
from tenancy.domain.value_objects import (
    TenantStatus,
    fallback_code,
    namespace_for_code,
)


@dataclass
class Tenant:
    """A school: one isolated customer sharing the physical database.

    Business rules:
    - A tenant has at most one namespace
    - Once assigned, the namespace never changes (existing data lives there)
    """

    id: int
    name: str
    code: str
    namespace: SafeIdentifier | None = None
    status: TenantStatus = TenantStatus.ACTIVE
    subdomain: str | None = None

    @classmethod
    def from_legacy(
        cls,
        id: int,
        name: str | None,
        code: str | None,
        status: str | None = None,
        namespace: str | None = None,
        subdomain: str | None = None,
    ) -> Tenant:
        """Build a tenant from a shared-table row, filling legacy gaps."""
        return cls(
            id=id,
            name=name or "",
            code=code or fallback_code(id),
            namespace=SafeIdentifier(namespace) if namespace else None,
            status=TenantStatus.parse(status),
            subdomain=subdomain or None,
        )

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    @property
    def has_namespace(self) -> bool:
        return self.namespace is not None

    def derived_namespace(self) -> SafeIdentifier:
        """Namespace this tenant gets when none is assigned yet."""
        return namespace_for_code(self.code)

    def assign_namespace(self, namespace: SafeIdentifier | None = None) -> SafeIdentifier:
        """Assign the namespace, defaulting to the one derived from the code.

        Re-assigning the same namespace is a no-op.

        Raises:
            NamespaceImmutableError: If a different namespace is already set.
        """
        target = namespace or self.derived_namespace()
        if self.namespace is not None and self.namespace != target:
            raise NamespaceImmutableError(
                f"School {self.id} already uses namespace {self.namespace}; "
                f"refusing to change it to {target}"
            )
        self.namespace = target
        return target

    def require_namespace(self) -> SafeIdentifier:
        """Return the namespace or fail if none was assigned."""
        if self.namespace is None:
            raise NamespaceImmutableError(f"School {self.id} has no namespace assigned")
        return self.namespace

    @property
    def label(self) -> str:
        """Human-readable name for logs."""
        return self.name or self.code
