from dataclasses import dataclass

from .coordinator import ConsistencyCoordinator
from .stores import CustomerStore, InteractionStore


@dataclass(frozen=True)
class CrmServices:
    customers: CustomerStore
    interactions: InteractionStore
    coordinator: ConsistencyCoordinator


def build_crm_services(using: str = "default") -> CrmServices:
    """Build the stores and the coordinator against one database alias."""
    coordinator = ConsistencyCoordinator(using=using)
    return CrmServices(
        customers=CustomerStore(using=using),
        interactions=InteractionStore(coordinator, using=using),
        coordinator=coordinator,
    )
