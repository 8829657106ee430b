"""Domain probes for tenancy infrastructure."""

from tenancy.infrastructure.observability.provisioning_probe import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.infrastructure.observability.scope_probe import (
    DefaultScopeProbe,
    ScopeProbe,
)

__all__ = [
    "DefaultProvisioningProbe",
    "DefaultScopeProbe",
    "ProvisioningProbe",
    "ScopeProbe",
]
