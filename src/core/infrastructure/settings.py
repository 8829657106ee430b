"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TENANT_TABLES = [
    "classes",
    "students",
    "teachers",
    "parents",
    "behaviour_incidents",
    "merits",
    "attendance",
    "detentions",
    "detention_assignments",
    "messages",
    "notifications",
    "incident_types",
    "merit_types",
    "detention_rules",
    "interventions",
    "consequences",
    "student_consequences",
    "timetables",
]

DEFAULT_SEQUENCE_TABLES = [
    "students",
    "teachers",
    "classes",
    "behaviour_incidents",
    "merits",
    "attendance",
]


class OrphanUserPolicy(StrEnum):
    """What to do with a legacy user that has no resolvable school link."""

    FIRST_TENANT = "first_tenant"
    SKIP = "skip"
    EXPLICIT = "explicit"


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        SCHOOL_DB_HOST: Database host (default: localhost)
        SCHOOL_DB_PORT: Database port (default: 5432)
        SCHOOL_DB_DATABASE: Database name (default: schools)
        SCHOOL_DB_USERNAME: Database user (default: schools)
        SCHOOL_DB_PASSWORD: Database password (required in production)
        SCHOOL_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        SCHOOL_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 30)
        SCHOOL_DB_STATEMENT_TIMEOUT_MS: Per-statement timeout for request
            traffic, 0 disables (default: 15000)
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHOOL_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="schools", description="Database name")
    username: str = Field(default="schools", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=30,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )
    statement_timeout_ms: int = Field(
        default=15000,
        description="Statement timeout applied to request connections",
        ge=0,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class MigrationSettings(BaseSettings):
    """Settings for the one-time multi-tenant migration run.

    Environment variables:
        SCHOOL_MIGRATION_TEMPLATE_DIR: Directory holding public_schema.sql and
            school_schema.sql (default: packaged templates)
        SCHOOL_MIGRATION_LOG_DIR: Where run artifacts are written
        SCHOOL_MIGRATION_ORPHAN_USER_POLICY: first_tenant, skip or explicit
        SCHOOL_MIGRATION_ORPHAN_USER_SCHOOL_CODE: School code for explicit policy
        SCHOOL_MIGRATION_PLATFORM_ADMIN_EMAIL: Bootstrap admin email
        SCHOOL_MIGRATION_PLATFORM_ADMIN_PASSWORD: Bootstrap admin password
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHOOL_MIGRATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    template_dir: Path | None = Field(
        default=None,
        description="Override directory for DDL templates",
    )
    log_dir: Path = Field(
        default=Path("migration_logs"),
        description="Directory for migration run artifacts",
    )
    shared_namespace: str = Field(
        default="public",
        description="Namespace holding legacy shared tables",
    )
    tables: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TENANT_TABLES),
        description="Ordered list of tables copied into every school namespace",
    )
    sequence_tables: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEQUENCE_TABLES),
        description="Tables whose id sequences are resynchronized after copy",
    )
    owner_column: str = Field(
        default="school_id",
        description="Tenant ownership column on legacy shared tables",
    )
    orphan_user_policy: OrphanUserPolicy = Field(
        default=OrphanUserPolicy.FIRST_TENANT,
        description="Assignment policy for users without a school link",
    )
    orphan_user_school_code: str | None = Field(
        default=None,
        description="School code receiving orphaned users (explicit policy)",
    )
    platform_admin_email: str = Field(
        default="superadmin@pds.com",
        description="Email of the bootstrap platform administrator",
    )
    platform_admin_password: SecretStr = Field(
        default=SecretStr("SuperAdmin123!"),
        description="Initial password of the bootstrap platform administrator",
    )
    default_school_name: str = Field(default="Default School")
    default_school_code: str = Field(default="DEFAULT")

    @model_validator(mode="after")
    def validate_orphan_policy(self) -> "MigrationSettings":
        """Explicit policy needs a target school code."""
        if (
            self.orphan_user_policy == OrphanUserPolicy.EXPLICIT
            and not self.orphan_user_school_code
        ):
            raise ValueError(
                "orphan_user_school_code is required when "
                "orphan_user_policy is 'explicit'"
            )
        return self


class TenancySettings(BaseSettings):
    """Request-time tenant resolution settings.

    Environment variables:
        SCHOOL_TENANCY_SHARED_NAMESPACE: Fallback namespace for cross-tenant
            lookups (default: public)
        SCHOOL_TENANCY_SCHOOL_CACHE_TTL_SECONDS: School lookup cache TTL
        SCHOOL_TENANCY_SCHOOL_CACHE_SIZE: School lookup cache size
        SCHOOL_TENANCY_SCOPED_QUERY_TIMEOUT_SECONDS: Optional timeout for
            scoped queries
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHOOL_TENANCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    shared_namespace: str = Field(default="public")
    school_cache_ttl_seconds: int = Field(default=300, ge=0)
    school_cache_size: int = Field(default=1024, ge=1)
    scoped_query_timeout_seconds: float | None = Field(default=None, gt=0)


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_migration_settings() -> MigrationSettings:
    """Get cached migration settings."""
    return MigrationSettings()


@lru_cache
def get_tenancy_settings() -> TenancySettings:
    """Get cached tenancy settings."""
    return TenancySettings()
