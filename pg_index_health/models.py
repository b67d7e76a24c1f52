"""Data models for check context, violation records and scan results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

DEFAULT_SCHEMA_NAME = "public"
DEFAULT_BLOAT_PERCENTAGE_THRESHOLD = 10.0
DEFAULT_REMAINING_PERCENTAGE_THRESHOLD = 10.0


@dataclass(frozen=True)
class PgContext:
    """Schema scope and thresholds threaded through every diagnostic query."""

    schema_name: str = DEFAULT_SCHEMA_NAME
    bloat_percentage_threshold: float = DEFAULT_BLOAT_PERCENTAGE_THRESHOLD
    remaining_percentage_threshold: float = DEFAULT_REMAINING_PERCENTAGE_THRESHOLD

    def __post_init__(self):
        if not self.schema_name or not self.schema_name.strip():
            raise ValueError("schemaName cannot be blank or empty")
        object.__setattr__(self, "schema_name", self.schema_name.strip().lower())
        for name in ("bloat_percentage_threshold", "remaining_percentage_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} should be in the range from 0.0 to 100.0 inclusive")

    @property
    def is_default_schema(self) -> bool:
        return self.schema_name == DEFAULT_SCHEMA_NAME

    def enrich_with_schema(self, object_name: str) -> str:
        """Qualify an object name with the schema unless it is ``public``."""
        if self.is_default_schema or object_name.lower().startswith(self.schema_name + "."):
            return object_name
        return f"{self.schema_name}.{object_name}"


# -- Violation records ---------------------------------------------------------
#
# Sizes and scan counters are statistics that differ between hosts, so they
# are excluded from equality and ordering.


@dataclass(frozen=True, order=True)
class Table:
    table_name: str
    table_size: int = field(default=0, compare=False)


@dataclass(frozen=True, order=True)
class Index:
    table_name: str
    index_name: str
    index_size: int = field(default=0, compare=False)


@dataclass(frozen=True, order=True)
class IndexGroup:
    """Several indexes on one table reported together (duplicates, overlaps)."""

    table_name: str
    indexes: tuple[Index, ...]

    @property
    def total_size(self) -> int:
        return sum(i.index_size for i in self.indexes)


@dataclass(frozen=True, order=True)
class Column:
    table_name: str
    column_name: str
    nullable: bool = field(default=False, compare=False)
    column_type: str = field(default="", compare=False)
    sequence_name: str = field(default="", compare=False)


@dataclass(frozen=True, order=True)
class ForeignKey:
    table_name: str
    constraint_name: str
    columns: tuple[str, ...] = ()


@dataclass(frozen=True, order=True)
class ForeignKeyGroup:
    """Foreign keys on one table that duplicate each other."""

    table_name: str
    foreign_keys: tuple[ForeignKey, ...]


@dataclass(frozen=True, order=True)
class Constraint:
    table_name: str
    constraint_name: str
    constraint_type: str = ""


@dataclass(frozen=True, order=True)
class StoredFunction:
    function_name: str
    function_signature: str = ""


@dataclass(frozen=True, order=True)
class SequenceState:
    sequence_name: str
    data_type: str = field(default="", compare=False)
    remaining_percentage: float = field(default=0.0, compare=False)


@dataclass(frozen=True, order=True)
class UnusedIndex:
    table_name: str
    index_name: str
    index_size: int = field(default=0, compare=False)
    index_scans: int = field(default=0, compare=False)


@dataclass(frozen=True, order=True)
class TableWithMissingIndex:
    table_name: str
    table_size: int = field(default=0, compare=False)
    seq_scans: int = field(default=0, compare=False)
    index_scans: int = field(default=0, compare=False)


@dataclass(frozen=True, order=True)
class BloatedObject:
    """A table or index whose estimated bloat exceeds the threshold."""

    table_name: str
    object_name: str
    object_size: int = field(default=0, compare=False)
    bloat_size: int = field(default=0, compare=False)
    bloat_percentage: float = field(default=0.0, compare=False)


@dataclass(frozen=True, order=True)
class AnyObject:
    """A database object identified only by its name and kind."""

    object_name: str
    object_type: str


# -- Scan results --------------------------------------------------------------


@dataclass
class CheckResult:
    check_name: str
    topology: str
    violations: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def violations_count(self) -> int:
        return len(self.violations)

    @property
    def passed(self) -> bool:
        return not self.violations and not self.error


@dataclass
class ScanReport:
    database: str
    primary_host: str
    hosts: list[str]
    schema_name: str
    timestamp: datetime
    results: list[CheckResult] = field(default_factory=list)

    @property
    def violations_count(self) -> int:
        return sum(r.violations_count for r in self.results)

    @property
    def checks_passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def checks_failed(self) -> int:
        return sum(1 for r in self.results if r.error)

    @property
    def checks_total(self) -> int:
        return len(self.results)
