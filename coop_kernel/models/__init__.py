"""ORM models for the persistent dataset store."""

from coop_kernel.models.year_dataset import YearDataset

__all__ = ["YearDataset"]
