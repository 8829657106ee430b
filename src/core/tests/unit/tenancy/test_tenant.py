"""Unit tests for the Tenant aggregate and tenancy value objects."""

import pytest

from shared_kernel.identifiers import InvalidIdentifier, SafeIdentifier
from tenancy.domain import NamespaceImmutableError
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import (
    ProvisionResult,
    ProvisionStatus,
    StatementWarning,
    TenantStatus,
    fallback_code,
    namespace_for_code,
)


class TestNamespaceDerivation:
    """Tests for namespace_for_code()."""

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("WS", "school_ws"),
            ("st-marys", "school_st_marys"),
            ("North High", "school_north_high"),
            ("2024A", "school_s2024a"),
            ("SCH12", "school_sch12"),
        ],
    )
    def test_derives_sanitized_namespace(self, code, expected):
        """Codes are lowercased, sanitized and prefixed."""
        assert namespace_for_code(code) == SafeIdentifier(expected)

    def test_overlong_code_is_rejected(self):
        """A derived name past the identifier limit is an error."""
        with pytest.raises(InvalidIdentifier):
            namespace_for_code("x" * 60)

    def test_fallback_code(self):
        """Schools without a code get SCH<id>."""
        assert fallback_code(12) == "SCH12"


class TestTenantStatus:
    """Tests for TenantStatus.parse()."""

    def test_missing_status_is_active(self):
        """Legacy rows without a status are active."""
        assert TenantStatus.parse(None) == TenantStatus.ACTIVE
        assert TenantStatus.parse("") == TenantStatus.ACTIVE

    def test_parse_is_case_insensitive(self):
        """Stored values are normalized."""
        assert TenantStatus.parse(" Suspended ") == TenantStatus.SUSPENDED

    def test_unknown_status_is_inactive(self):
        """Unknown statuses never grant access."""
        assert TenantStatus.parse("archived") == TenantStatus.INACTIVE


class TestTenant:
    """Tests for the Tenant aggregate."""

    def test_from_legacy_fills_gaps(self):
        """Missing code and status get their defaults."""
        tenant = Tenant.from_legacy(id=12, name="Old School", code=None)

        assert tenant.code == "SCH12"
        assert tenant.status == TenantStatus.ACTIVE
        assert tenant.namespace is None

    def test_from_legacy_validates_namespace(self):
        """A stored namespace must be a safe identifier."""
        with pytest.raises(InvalidIdentifier):
            Tenant.from_legacy(id=1, name="x", code="X", namespace="School X")

    def test_assign_namespace_derives_from_code(self):
        """Without an argument the namespace comes from the code."""
        tenant = Tenant(id=1, name="Westfield", code="WS")

        assert tenant.assign_namespace() == SafeIdentifier("school_ws")
        assert tenant.has_namespace

    def test_assigned_namespace_is_immutable(self, tenant):
        """A different namespace cannot replace an assigned one."""
        with pytest.raises(NamespaceImmutableError):
            tenant.assign_namespace(SafeIdentifier("school_other"))
        assert tenant.namespace == SafeIdentifier("school_ws")

    def test_reassigning_same_namespace_is_noop(self, tenant):
        """Assigning the current namespace again is allowed."""
        assert tenant.assign_namespace(SafeIdentifier("school_ws")) == tenant.namespace

    def test_code_change_does_not_move_namespace(self, tenant):
        """Renaming the code never moves the stored namespace."""
        tenant.code = "WESTFIELD"
        with pytest.raises(NamespaceImmutableError):
            tenant.assign_namespace()
        assert tenant.namespace == SafeIdentifier("school_ws")

    def test_require_namespace(self):
        """require_namespace fails for unregistered schools."""
        with pytest.raises(NamespaceImmutableError):
            Tenant(id=1, name="x", code="X").require_namespace()

    def test_label_prefers_name(self):
        """label falls back to the code."""
        assert Tenant(id=1, name="", code="WS").label == "WS"
        assert Tenant(id=1, name="Westfield", code="WS").label == "Westfield"


class TestProvisionValueObjects:
    """Tests for provisioning value objects."""

    def test_statement_warning_summary_skips_comments(self):
        """The summary shows the first line of code and the error."""
        warning = StatementWarning(
            statement="-- students\nCREATE TABLE school_ws.students (\n  id SERIAL\n)",
            error="permission denied",
        )
        assert warning.summary == "CREATE TABLE school_ws.students (: permission denied"

    def test_provision_result_flags(self):
        """already_provisioned and is_clean reflect the result."""
        result = ProvisionResult(
            namespace=SafeIdentifier("school_ws"),
            status=ProvisionStatus.ALREADY_PROVISIONED,
        )
        assert result.already_provisioned
        assert result.is_clean
