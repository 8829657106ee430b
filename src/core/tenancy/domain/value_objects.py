"""Value objects for the tenancy domain."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from shared_kernel.identifiers import SafeIdentifier

NAMESPACE_PREFIX = "school_"

_UNSAFE_CODE_CHARS = re.compile(r"[^a-z0-9_]")


class TenantStatus(StrEnum):
    """Lifecycle status of a school."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"

    @classmethod
    def parse(cls, value: str | None) -> TenantStatus:
        """Parse a stored status. Missing means active; unknown means inactive."""
        if not value:
            return cls.ACTIVE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.INACTIVE


@dataclass(frozen=True)
class Principal:
    """An authenticated caller as handed over by the authentication layer.

    Attributes:
        user_id: Identifier of the user in the unified directory.
        selected_school_id: School explicitly chosen for this request, if
            any. Without a selection the user's primary school is used.
    """

    user_id: int
    selected_school_id: int | None = None


def fallback_code(school_id: int) -> str:
    """Code given to legacy schools that never had one."""
    return f"SCH{school_id}"


def namespace_for_code(code: str) -> SafeIdentifier:
    """Derive the namespace name of a school from its code.

    The code is lowercased, every character outside ``[a-z0-9_]`` becomes
    an underscore, and a leading digit gets an ``s`` prefix. The result is
    prefixed with ``school_``.

    Raises:
        InvalidIdentifier: If the derived name is empty or too long.
    """
    sanitized = _UNSAFE_CODE_CHARS.sub("_", code.strip().lower())
    if sanitized[:1].isdigit():
        sanitized = f"s{sanitized}"
    return SafeIdentifier(f"{NAMESPACE_PREFIX}{sanitized}")


class ProvisionStatus(StrEnum):
    """Outcome of provisioning one namespace."""

    PROVISIONED = "provisioned"
    ALREADY_PROVISIONED = "already_provisioned"


@dataclass(frozen=True)
class StatementWarning:
    """A DDL statement that failed for a reason other than "already exists"."""

    statement: str
    error: str

    @property
    def summary(self) -> str:
        code_lines = [
            line.strip()
            for line in self.statement.splitlines()
            if line.strip() and not line.strip().startswith("--")
        ]
        first_line = code_lines[0] if code_lines else ""
        return f"{first_line[:80]}: {self.error}"


@dataclass(frozen=True)
class ProvisionResult:
    """Result of provisioning a namespace.

    Attributes:
        namespace: The namespace that was checked or created
        status: Whether DDL was executed or the namespace already existed
        warnings: Statements that failed and were skipped
        missing_tables: Template tables absent after provisioning
    """

    namespace: SafeIdentifier
    status: ProvisionStatus
    warnings: tuple[StatementWarning, ...] = ()
    missing_tables: tuple[str, ...] = ()

    @property
    def already_provisioned(self) -> bool:
        return self.status == ProvisionStatus.ALREADY_PROVISIONED

    @property
    def is_clean(self) -> bool:
        return not self.warnings and not self.missing_tables
