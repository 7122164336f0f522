"""
Collaborator adapters: plan registry, profile store, daily logs,
insurer registry, and value transfer.
"""

from dietclaim.adapters.stores import (
    InMemoryLogStore,
    InMemoryPlanRegistry,
    InMemoryProfileStore,
    InMemoryValueLedger,
    InsurerRegistry,
)

__all__ = [
    "InMemoryLogStore",
    "InMemoryPlanRegistry",
    "InMemoryProfileStore",
    "InMemoryValueLedger",
    "InsurerRegistry",
]
