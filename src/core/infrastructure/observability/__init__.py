"""Domain-oriented observability infrastructure.

Connection-level probes live here. Each bounded context keeps its own
probes (tenant context, provisioning, scope, migration steps) next to the
code that emits them.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from shared_kernel.observability_context import ObservationContext
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

__all__ = [
    "ConnectionProbe",
    "DefaultConnectionProbe",
    "ObservationContext",
]
