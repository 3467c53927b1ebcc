"""Domain entities and their row mapping.

Every category of personal information is a flat dataclass deriving from
Record. The translation between a remote row (column names) and the domain
object (attribute names) happens in exactly two places, Record.from_row()
and Record.to_row(), driven by the per-class COLUMNS alias map.

Example:
    >>> edu = Education.from_row({"id": "1", "user_id": "u", "field": "CS"})
    >>> edu.field_of_study
    'CS'
    >>> edu.to_row()["field"]
    'CS'
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar

# Attributes that are not plain columns
_EXTRA_ATTR = "extra"

# Columns maintained by the remote store (defaults/triggers)
TIMESTAMP_COLUMNS = frozenset({"created_at", "updated_at"})

_TRUE_STRINGS = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "n", "off", ""})


@dataclass
class Record:
    """Base class for an owned record.

    Attributes:
        id: Server-assigned identifier, None until the record is persisted.
        owner: Identifier of the owning user (column ``user_id``).
        created_at: Server timestamp, never written back.
        updated_at: Server timestamp, never written back.
        extra: Columns returned by the server that this class does not model.
    """

    COLUMNS: ClassVar[dict[str, str]] = {"owner": "user_id"}

    id: str | None = None
    owner: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def column_map(cls) -> dict[str, str]:
        """Return attribute -> column for every mapped attribute."""
        aliases: dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            aliases.update(klass.__dict__.get("COLUMNS", {}))
        return {
            f.name: aliases.get(f.name, f.name)
            for f in dataclasses.fields(cls)
            if f.name != _EXTRA_ATTR
        }

    @classmethod
    def resolve_attribute(cls, name: str) -> str:
        """Resolve an attribute or column name to the attribute name.

        Raises:
            KeyError: If the name matches neither.
        """
        mapping = cls.column_map()
        if name in mapping:
            return name
        for attr, column in mapping.items():
            if column == name:
                return attr
        raise KeyError(f"{cls.__name__} has no field {name!r}")

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Record:
        """Create from a remote row dictionary."""
        mapping = cls.column_map()
        columns = set(mapping.values())
        values = {
            attr: row[column]
            for attr, column in mapping.items()
            if column in row
        }
        extra = {k: v for k, v in row.items() if k not in columns}
        return cls(**values, extra=extra)

    def to_row(self) -> dict[str, Any]:
        """Convert to a remote row dictionary.

        ``id`` is omitted while the record has not been persisted.
        """
        row = dict(self.extra)
        for attr, column in self.column_map().items():
            value = getattr(self, attr)
            if attr == "id" and value is None:
                continue
            row[column] = value
        return row

    def with_values(self, values: dict[str, Any]) -> Record:
        """Return a copy with the given fields replaced.

        Keys may be attribute or column names; string values for boolean
        fields are parsed ("yes", "true", "1", ...).
        """
        changes = {}
        for name, value in values.items():
            attr = self.resolve_attribute(name)
            changes[attr] = _coerce(type(self), attr, value)
        return dataclasses.replace(self, **changes)

    @property
    def is_persisted(self) -> bool:
        """True once the remote store has assigned an id."""
        return self.id is not None


def _coerce(cls: type[Record], attr: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    annotation = next(
        (str(f.type) for f in dataclasses.fields(cls) if f.name == attr), ""
    )
    if annotation.startswith("bool"):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Invalid boolean for {attr}: {value!r}")
    return value


@dataclass
class PersonalInfo(Record):
    """Personal details, normally one record per user."""

    name: str | None = None
    age: str | None = None
    stream: str | None = None
    gender: str | None = None
    email: str | None = None
    contact_no: str | None = None
    next_phone: str | None = None
    country: str | None = None
    district: str | None = None
    state: str | None = None
    village: str | None = None
    parent_name: str | None = None
    relation: str | None = None
    occupation: str | None = None
    posting_date: str | None = None
    updation_date: str | None = None


@dataclass
class Education(Record):
    """One education entry."""

    COLUMNS: ClassVar[dict[str, str]] = {"field_of_study": "field"}

    degree: str | None = None
    field_of_study: str | None = None
    institution: str | None = None
    start_year: str | None = None
    end_year: str | None = None
    gpa: str | None = None


@dataclass
class Employment(Record):
    """One employment entry."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "company_name": "company",
        "is_current_job": "is_current",
    }

    company_name: str | None = None
    position: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_current_job: bool | None = None
    location: str | None = None
    description: str | None = None
    responsibilities: str | None = None


@dataclass
class MedicalRecord(Record):
    """A medical record (visit, checkup, test result)."""

    record_type: str | None = None
    description: str | None = None
    date: str | None = None
    institution: str | None = None
    doctor: str | None = None
    blood_type: str | None = None
    height: str | None = None
    weight: str | None = None


@dataclass
class MedicalCondition(Record):
    """A diagnosed medical condition."""

    name: str | None = None
    diagnosed_date: str | None = None
    status: str | None = None
    notes: str | None = None


@dataclass
class Medication(Record):
    """A medication the user takes."""

    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    prescribed_by: str | None = None


@dataclass
class Allergy(Record):
    """A known allergy."""

    allergen: str | None = None
    severity: str | None = None
    reaction: str | None = None


@dataclass
class Vehicle(Record):
    """A vehicle owned by the user."""

    COLUMNS: ClassVar[dict[str, str]] = {"license_plate": "registration_number"}

    make: str | None = None
    model: str | None = None
    year: str | None = None
    license_plate: str | None = None
    vin: str | None = None
    insurance_provider: str | None = None
    insurance_policy: str | None = None
    insurance_expiry: str | None = None


@dataclass
class MaintenanceRecord(Record):
    """A maintenance entry for one of the user's vehicles."""

    COLUMNS: ClassVar[dict[str, str]] = {"service_type": "type"}

    vehicle_id: str | None = None
    date: str | None = None
    service_type: str | None = None
    description: str | None = None
    mileage: str | None = None
    cost: str | None = None
    provider: str | None = None


@dataclass
class Document(Record):
    """Metadata of an uploaded document; the file lives in the object store."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "date": "upload_date",
        "size": "file_size",
        "url": "file_url",
    }

    name: str | None = None
    category: str | None = None
    date: str | None = None
    size: str | None = None
    file_type: str | None = None
    url: str | None = None
