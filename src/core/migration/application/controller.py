"""Migration run controller.

Drives one migration run through every step inside a single database
transaction. Either the whole run commits or none of it does; a durable
artifact is written in both cases.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from infrastructure.settings import MigrationSettings
from migration.application.observability import (
    DefaultMigrationProbe,
    MigrationProbe,
)
from migration.domain.outcomes import TableStatus
from migration.domain.run import MigrationRun, RunState
from migration.infrastructure.identity_unifier import IdentityUnifier
from migration.infrastructure.log_artifact import RunLogWriter
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from migration.infrastructure.platform_admin import PlatformAdminBootstrap
from migration.infrastructure.school_registry import SchoolRegistry
from migration.infrastructure.sequences import SequenceResynchronizer
from migration.infrastructure.table_migrator import TableMigrator
from migration.ports.exceptions import MigrationAborted
from shared_kernel.identifiers import SafeIdentifier
from shared_kernel.observability_context import ObservationContext
from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.ddl_runner import DdlRunner
from tenancy.infrastructure.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.infrastructure.provisioner import NamespaceProvisioner
from tenancy.infrastructure.templates import (
    PUBLIC_TEMPLATE,
    SCHOOL_TEMPLATE,
    SchemaTemplate,
    load_template,
)

if TYPE_CHECKING:
    from infrastructure.database.connection import ConnectionFactory

# Ids in the directory are copied from legacy rows, so its sequence moves too.
DIRECTORY_SEQUENCE_TABLES = ["users"]


class MigrationRunController:
    """Orchestrates the migration pipeline.

    Steps run strictly in order on one connection with autocommit off.
    Recoverable problems (a table that fails to copy, a user that fails to
    merge) become warnings and the run continues. Anything else, including
    ``KeyboardInterrupt``, rolls the transaction back and raises
    ``MigrationAborted``.
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        settings: MigrationSettings,
        writer: RunLogWriter | None = None,
        probe: MigrationProbe | None = None,
        step_probe: MigrationStepProbe | None = None,
        provisioning_probe: ProvisioningProbe | None = None,
    ):
        self._connections = connection_factory
        self._settings = settings
        self._writer = writer or RunLogWriter(settings.log_dir)
        self._probe = probe or DefaultMigrationProbe()
        self._step_probe = step_probe or DefaultMigrationStepProbe()
        self._provisioning_probe = provisioning_probe or DefaultProvisioningProbe()

    def run(self) -> MigrationRun:
        """Execute every step and commit.

        Returns:
            The committed run, persisted unless its artifact failed to write.

        Raises:
            MigrationAborted: If any step failed fatally. The transaction has
                been rolled back and the error artifact written.
        """
        run = MigrationRun()
        context = ObservationContext(run_id=run.run_id)
        probe = self._probe.with_context(context)
        probe.run_started(run.run_id)

        conn = None
        try:
            public_template = load_template(PUBLIC_TEMPLATE, self._settings.template_dir)
            school_template = load_template(SCHOOL_TEMPLATE, self._settings.template_dir)
            conn = self._connections.create_connection()
            with conn.cursor() as cursor:
                _RunSteps(
                    run=run,
                    cursor=cursor,
                    settings=self._settings,
                    public_template=public_template,
                    school_template=school_template,
                    probe=probe,
                    step_probe=self._step_probe.with_context(context),
                    provisioning_probe=self._provisioning_probe.with_context(context),
                ).execute()
            conn.commit()
            run.commit()
        except (Exception, KeyboardInterrupt) as e:
            self._roll_back(conn, probe)
            run.roll_back(e)
            probe.run_rolled_back(run.run_id, _value(run.failed_step), e)
            path = self._persist(run, probe, e)
            raise MigrationAborted(run, path) from e
        finally:
            if conn is not None:
                self._connections.close_connection(conn)

        probe.run_committed(run.run_id, len(run.warnings), run.rows_copied())
        self._persist(run, probe)
        return run

    def _roll_back(self, conn: Any, probe: MigrationProbe) -> None:
        if conn is None or conn.closed:
            return
        try:
            conn.rollback()
        except Exception as e:
            # Closing the connection discards the transaction server side.
            probe.rollback_failed(e)

    def _persist(
        self,
        run: MigrationRun,
        probe: MigrationProbe,
        error: BaseException | None = None,
    ) -> Path | None:
        try:
            path = self._writer.write(run, error)
        except OSError as e:
            probe.artifact_write_failed(e)
            return None
        probe.artifact_written(str(path))
        return path


def _value(state: RunState | None) -> str | None:
    return state.value if state is not None else None


class _RunSteps:
    """The body of one run, bound to its cursor."""

    def __init__(
        self,
        run: MigrationRun,
        cursor: Any,
        settings: MigrationSettings,
        public_template: SchemaTemplate,
        school_template: SchemaTemplate,
        probe: MigrationProbe,
        step_probe: MigrationStepProbe,
        provisioning_probe: ProvisioningProbe,
    ):
        self._run = run
        self._cursor = cursor
        self._settings = settings
        self._public_template = public_template
        self._school_template = school_template
        self._probe = probe
        self._step_probe = step_probe
        self._provisioning_probe = provisioning_probe
        self._shared = SafeIdentifier.of(settings.shared_namespace)
        self._tenants: list[Tenant] = []

    def execute(self) -> None:
        self._initialize_schema()
        self._migrate_tenants()
        self._provision_namespaces()
        self._migrate_users()
        self._migrate_tenant_data()
        self._bootstrap_platform_admin()
        self._resync_sequences()

    def _enter(self, state: RunState) -> None:
        self._run.advance(state)
        self._probe.step_started(state.value)

    def _log(self, message: str) -> None:
        self._run.log(message)
        self._probe.run_message(message)

    def _warn(self, message: str, error: BaseException | str) -> None:
        warning = self._run.warn(message, error)
        self._probe.run_warning(warning.message, warning.error)

    def _initialize_schema(self) -> None:
        self._enter(RunState.INITIALIZING_SCHEMA)
        template = self._public_template
        self._log(
            f"Step 1: Initializing shared schema in {self._shared.value} "
            f"(template version {template.version})"
        )
        report = DdlRunner(probe=self._provisioning_probe).run(
            self._cursor, template.render(self._shared)
        )
        for warning in report.warnings:
            self._warn("Shared schema statement failed", warning.summary)
        self._log(
            f"Shared schema ready: {report.executed} statements executed, "
            f"{report.already_applied} already applied"
        )

    def _migrate_tenants(self) -> None:
        self._enter(RunState.MIGRATING_TENANTS)
        self._log("Step 2: Registering schools")
        registration = SchoolRegistry(
            self._cursor,
            self._shared,
            default_school_name=self._settings.default_school_name,
            default_school_code=self._settings.default_school_code,
            probe=self._step_probe,
        ).register_schools()

        for tenant in registration.registered:
            self._log(f"Assigned namespace {tenant.namespace} to {tenant.label}")
        for label, error in registration.failures:
            self._warn(f"Failed to register school {label}", error)
        if registration.created_default:
            self._log(f"No schools found; created {self._settings.default_school_name}")

        self._tenants = registration.tenants
        self._log(f"{len(self._tenants)} schools to migrate")

    def _provision_namespaces(self) -> None:
        self._enter(RunState.PROVISIONING_NAMESPACES)
        self._log(
            f"Step 3: Provisioning school namespaces "
            f"(template version {self._school_template.version})"
        )
        provisioner = NamespaceProvisioner(
            self._school_template, probe=self._provisioning_probe
        )
        for tenant in self._tenants:
            result = provisioner.provision(self._cursor, tenant)
            namespace = result.namespace.value
            if result.already_provisioned:
                self._log(f"Namespace {namespace} already exists")
                continue
            self._log(f"Created namespace {namespace}")
            for warning in result.warnings:
                self._warn(f"Provisioning {namespace}", warning.summary)
            for table in result.missing_tables:
                self._warn(
                    f"Table {namespace}.{table} missing after provisioning",
                    "its CREATE statement failed",
                )

    def _migrate_users(self) -> None:
        self._enter(RunState.MIGRATING_USERS)
        self._log("Step 4: Migrating users to the unified directory")
        result = IdentityUnifier(
            self._cursor,
            legacy_namespace=self._shared,
            directory_namespace=self._shared,
            orphan_policy=self._settings.orphan_user_policy,
            orphan_school_code=self._settings.orphan_user_school_code,
            probe=self._step_probe,
        ).migrate_users(self._tenants)

        for email in result.orphans_assigned:
            self._warn(
                f"User {email} had no school",
                f"assigned by {self._settings.orphan_user_policy.value} policy",
            )
        for email, error in result.failures:
            self._warn(f"Failed to migrate user {email}", error)
        self._log(
            f"Users processed: {result.processed} "
            f"({result.inserted} inserted, {result.merged} merged, "
            f"{result.linked} school links created)"
        )

    def _migrate_tenant_data(self) -> None:
        self._enter(RunState.MIGRATING_TENANT_DATA)
        self._log("Step 5: Copying shared data into school namespaces")
        migrator = TableMigrator(
            self._cursor,
            self._shared,
            owner_column=self._settings.owner_column,
            probe=self._step_probe,
        )
        for tenant in self._tenants:
            self._log(f"Migrating data for {tenant.label} ({tenant.namespace})")
            for table in self._settings.tables:
                outcome = migrator.migrate_table(tenant, table)
                self._run.record_table(outcome)
                if outcome.status == TableStatus.WARNING:
                    self._probe.run_warning(outcome.describe(), outcome.reason or "")
                elif outcome.status == TableStatus.COPIED:
                    self._log(f"  - {outcome.describe()}")

    def _bootstrap_platform_admin(self) -> None:
        self._enter(RunState.BOOTSTRAPPING_PLATFORM_ADMIN)
        self._log("Step 6: Bootstrapping platform administrator")
        created = PlatformAdminBootstrap(self._cursor, self._shared).ensure_admin(
            self._settings.platform_admin_email,
            self._settings.platform_admin_password.get_secret_value(),
        )
        if created:
            self._log(
                f"Created platform admin {self._settings.platform_admin_email}; "
                "change the default password after first login"
            )
        else:
            self._log("Platform admin already exists")

    def _resync_sequences(self) -> None:
        self._enter(RunState.RESYNCING_SEQUENCES)
        self._log("Step 7: Resynchronizing id sequences")
        resync = SequenceResynchronizer(self._cursor, probe=self._step_probe)
        moved = 0
        for tenant in self._tenants:
            moved += resync.resync(tenant.require_namespace(), self._settings.sequence_tables)
        moved += resync.resync(self._shared, DIRECTORY_SEQUENCE_TABLES)
        self._log(f"Sequences updated: {moved}")
