"""
coop_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines (coop_engines/)
    with dataset storage and the clock.  This is the **only** layer that
    may hold database sessions or read wall-clock time.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        coop_services/ -> coop_engines/  (allowed)
        coop_services/ -> coop_kernel/   (allowed)
        coop_engines/  -> coop_services/ (FORBIDDEN)
        coop_kernel/   -> coop_services/ (FORBIDDEN)
"""

from coop_kernel.logging_config import get_logger

logger = get_logger("services")

from coop_services.dataset_store import (  # noqa: E402
    DatasetStore,
    InMemoryDatasetStore,
    SqlDatasetStore,
)
from coop_services.year_service import FinancialYearService, generate_id  # noqa: E402

__all__ = [
    "DatasetStore",
    "FinancialYearService",
    "InMemoryDatasetStore",
    "SqlDatasetStore",
    "generate_id",
]
