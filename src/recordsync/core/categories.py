"""Registry of the fixed record categories.

Each category ties together the remote table, the local cache key and the
entity class used to map its rows.
"""

from __future__ import annotations

from dataclasses import dataclass

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


@dataclass(frozen=True)
class Category:
    """A record category.

    Attributes:
        name: Short name used on the command line.
        table: Remote table name.
        cache_key: Local cache key holding the collection.
        entity: Record subclass mapping the table's rows.
        title: Human-readable name.
    """

    name: str
    table: str
    cache_key: str
    entity: type[Record]
    title: str


CATEGORIES: dict[str, Category] = {
    c.name: c
    for c in (
        Category("personal", "personal_info", "user-personal-info", PersonalInfo, "Personal info"),
        Category("education", "education", "user-education", Education, "Education"),
        Category("employment", "employment", "user-employment", Employment, "Employment"),
        Category("medical", "medical_records", "user-medical-records", MedicalRecord, "Medical records"),
        Category(
            "conditions", "medical_conditions", "user-medical-conditions",
            MedicalCondition, "Medical conditions",
        ),
        Category("medications", "medications", "user-medications", Medication, "Medications"),
        Category("allergies", "allergies", "user-allergies", Allergy, "Allergies"),
        Category("vehicles", "vehicles", "user-vehicles", Vehicle, "Vehicles"),
        Category(
            "maintenance", "maintenance_records", "user-maintenance-records",
            MaintenanceRecord, "Vehicle maintenance",
        ),
        Category("documents", "documents", "user-documents", Document, "Documents"),
    )
}


def get_category(name: str) -> Category:
    """Look up a category by name or table name.

    Raises:
        KeyError: If no category matches.
    """
    if name in CATEGORIES:
        return CATEGORIES[name]
    for category in CATEGORIES.values():
        if category.table == name:
            return category
    known = ", ".join(sorted(CATEGORIES))
    raise KeyError(f"Unknown category {name!r} (known: {known})")
