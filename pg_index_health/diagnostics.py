"""Registry of diagnostics: where each one runs and which query it uses.

Diagnostics are data. Adding a rule means adding a row to ``DIAGNOSTICS`` (and
an extractor, plus a merge strategy for cluster-wide rules); the check engine
dispatches on ``topology`` and ``query_kind`` only.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


class ExecutionTopology(enum.Enum):
    ON_PRIMARY = "ON_PRIMARY"
    ACROSS_CLUSTER = "ACROSS_CLUSTER"


class QueryKind(enum.Enum):
    """Named parameters a diagnostic query expects."""

    SCHEMA = "schema"
    BLOAT = "bloat"
    REMAINING_PERCENTAGE = "remaining_percentage"


@dataclass(frozen=True)
class Diagnostic:
    """One diagnostic rule.

    Attributes:
        name: Unique rule identifier.
        topology: Whether the rule runs on the primary or on every host.
        sql_query_file_name: Name of the SQL resource holding the query.
        query_kind: Which parameters are bound when executing the query.
        runtime: True when results depend on statistics collected since the
            last reset, i.e. they may differ between hosts.
    """

    name: str
    topology: ExecutionTopology
    sql_query_file_name: str
    query_kind: QueryKind = QueryKind.SCHEMA
    runtime: bool = False

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("checkName cannot be blank or empty")
        if not self.sql_query_file_name or not self.sql_query_file_name.strip():
            raise ValueError("sqlQueryFileName cannot be blank or empty")
        if self.topology is ExecutionTopology.ACROSS_CLUSTER and not self.runtime:
            raise ValueError("Runtime check is required for across cluster execution")

    @property
    def is_across_cluster(self) -> bool:
        return self.topology is ExecutionTopology.ACROSS_CLUSTER


def _static(name: str) -> Diagnostic:
    return Diagnostic(name, ExecutionTopology.ON_PRIMARY, f"{name}.sql")


def _bloat(name: str) -> Diagnostic:
    return Diagnostic(name, ExecutionTopology.ON_PRIMARY, f"{name}.sql", QueryKind.BLOAT, runtime=True)


def _remaining_percentage(name: str) -> Diagnostic:
    return Diagnostic(
        name, ExecutionTopology.ON_PRIMARY, f"{name}.sql", QueryKind.REMAINING_PERCENTAGE, runtime=True
    )


def _cluster(name: str) -> Diagnostic:
    return Diagnostic(name, ExecutionTopology.ACROSS_CLUSTER, f"{name}.sql", runtime=True)


DIAGNOSTICS: MappingProxyType[str, Diagnostic] = MappingProxyType({
    d.name: d
    for d in (
        _bloat("bloated_indexes"),
        _bloat("bloated_tables"),
        _static("btree_indexes_on_array_columns"),
        _static("columns_with_json_type"),
        _static("columns_with_serial_types"),
        _static("columns_without_description"),
        _static("duplicated_foreign_keys"),
        _static("duplicated_indexes"),
        _static("foreign_keys_with_unmatched_column_type"),
        _static("foreign_keys_without_index"),
        _static("functions_without_description"),
        _static("indexes_with_boolean"),
        _static("indexes_with_null_values"),
        _static("intersected_foreign_keys"),
        _static("intersected_indexes"),
        _static("invalid_indexes"),
        _static("not_valid_constraints"),
        _static("objects_not_following_naming_convention"),
        _static("possible_object_name_overflow"),
        _static("primary_keys_with_serial_types"),
        _remaining_percentage("sequence_overflow"),
        _static("tables_not_linked_to_others"),
        _cluster("tables_with_missing_indexes"),
        _static("tables_with_zero_or_one_column"),
        _static("tables_without_description"),
        _static("tables_without_primary_key"),
        _cluster("unused_indexes"),
    )
})


def lookup_diagnostic(diagnostics: Mapping[str, Diagnostic], name: str) -> Diagnostic:
    """Look up a diagnostic by its identifier in the given registry.

    Raises:
        KeyError: If no diagnostic has that name.
    """
    try:
        return diagnostics[name]
    except KeyError:
        raise KeyError(f"Unknown diagnostic: {name}") from None


def get_diagnostic(name: str) -> Diagnostic:
    return lookup_diagnostic(DIAGNOSTICS, name)


def topology(name: str) -> ExecutionTopology:
    return get_diagnostic(name).topology


def all_diagnostics() -> list[Diagnostic]:
    return sorted(DIAGNOSTICS.values(), key=lambda d: d.name)
