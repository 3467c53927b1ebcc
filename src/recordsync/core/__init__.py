"""Core module - Shared configuration, entities and categories."""

from recordsync.core.categories import CATEGORIES, Category, get_category
from recordsync.core.config import BackendConfig
from recordsync.core.entities import (
    Allergy,
    Document,
    Education,
    Employment,
    MaintenanceRecord,
    MedicalCondition,
    MedicalRecord,
    Medication,
    PersonalInfo,
    Record,
    Vehicle,
)
from recordsync.core.types import SyncStatus

__all__ = [
    # Categories
    "CATEGORIES",
    "Category",
    "get_category",
    # Config
    "BackendConfig",
    # Entities
    "Allergy",
    "Document",
    "Education",
    "Employment",
    "MaintenanceRecord",
    "MedicalCondition",
    "MedicalRecord",
    "Medication",
    "PersonalInfo",
    "Record",
    "Vehicle",
    # Types
    "SyncStatus",
]
