"""Row to record mapping for every diagnostic.

Rows come from a ``RealDictCursor``, so each extractor receives a mapping of
column name to value.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from pg_index_health.models import (
    AnyObject,
    BloatedObject,
    Column,
    Constraint,
    ForeignKey,
    ForeignKeyGroup,
    Index,
    IndexGroup,
    SequenceState,
    StoredFunction,
    Table,
    TableWithMissingIndex,
    UnusedIndex,
)

Row = Mapping[str, Any]
Extractor = Callable[[Row], Any]


def table(row: Row) -> Table:
    return Table(table_name=row["table_name"], table_size=int(row.get("table_size") or 0))


def index(row: Row) -> Index:
    return Index(
        table_name=row["table_name"],
        index_name=row["index_name"],
        index_size=int(row.get("index_size") or 0),
    )


def index_group(row: Row) -> IndexGroup:
    sizes = row.get("index_sizes") or [0] * len(row["index_names"])
    indexes = tuple(
        Index(table_name=row["table_name"], index_name=name, index_size=int(size or 0))
        for name, size in zip(row["index_names"], sizes)
    )
    return IndexGroup(table_name=row["table_name"], indexes=indexes)


def column(row: Row) -> Column:
    return Column(
        table_name=row["table_name"],
        column_name=row["column_name"],
        nullable=not row.get("column_not_null", False),
        column_type=row.get("column_type") or "",
        sequence_name=row.get("sequence_name") or "",
    )


def foreign_key(row: Row) -> ForeignKey:
    return ForeignKey(
        table_name=row["table_name"],
        constraint_name=row["constraint_name"],
        columns=tuple(row.get("columns") or ()),
    )


def foreign_key_group(row: Row) -> ForeignKeyGroup:
    first = ForeignKey(row["table_name"], row["constraint_name"], tuple(row.get("columns") or ()))
    second = ForeignKey(
        row["table_name"], row["duplicate_constraint_name"], tuple(row.get("duplicate_columns") or ())
    )
    return ForeignKeyGroup(table_name=row["table_name"], foreign_keys=(first, second))


def constraint(row: Row) -> Constraint:
    return Constraint(
        table_name=row["table_name"],
        constraint_name=row["constraint_name"],
        constraint_type=row.get("constraint_type") or "",
    )


def stored_function(row: Row) -> StoredFunction:
    return StoredFunction(
        function_name=row["function_name"],
        function_signature=row.get("function_signature") or "",
    )


def sequence_state(row: Row) -> SequenceState:
    return SequenceState(
        sequence_name=row["sequence_name"],
        data_type=row.get("data_type") or "",
        remaining_percentage=float(row.get("remaining_percentage") or 0.0),
    )


def unused_index(row: Row) -> UnusedIndex:
    return UnusedIndex(
        table_name=row["table_name"],
        index_name=row["index_name"],
        index_size=int(row.get("index_size") or 0),
        index_scans=int(row.get("index_scans") or 0),
    )


def table_with_missing_index(row: Row) -> TableWithMissingIndex:
    return TableWithMissingIndex(
        table_name=row["table_name"],
        table_size=int(row.get("table_size") or 0),
        seq_scans=int(row.get("seq_scan") or 0),
        index_scans=int(row.get("idx_scan") or 0),
    )


def bloated_object(row: Row) -> BloatedObject:
    return BloatedObject(
        table_name=row["table_name"],
        object_name=row["object_name"],
        object_size=int(row.get("object_size") or 0),
        bloat_size=int(row.get("bloat_size") or 0),
        bloat_percentage=float(row.get("bloat_percentage") or 0.0),
    )


def any_object(row: Row) -> AnyObject:
    return AnyObject(object_name=row["object_name"], object_type=row["object_type"])


EXTRACTORS: MappingProxyType[str, Extractor] = MappingProxyType({
    "bloated_indexes": bloated_object,
    "bloated_tables": bloated_object,
    "btree_indexes_on_array_columns": index,
    "columns_with_json_type": column,
    "columns_with_serial_types": column,
    "columns_without_description": column,
    "duplicated_foreign_keys": foreign_key_group,
    "duplicated_indexes": index_group,
    "foreign_keys_with_unmatched_column_type": foreign_key,
    "foreign_keys_without_index": foreign_key,
    "functions_without_description": stored_function,
    "indexes_with_boolean": index,
    "indexes_with_null_values": index,
    "intersected_foreign_keys": foreign_key_group,
    "intersected_indexes": index_group,
    "invalid_indexes": index,
    "not_valid_constraints": constraint,
    "objects_not_following_naming_convention": any_object,
    "possible_object_name_overflow": any_object,
    "primary_keys_with_serial_types": column,
    "sequence_overflow": sequence_state,
    "tables_not_linked_to_others": table,
    "tables_with_missing_indexes": table_with_missing_index,
    "tables_with_zero_or_one_column": table,
    "tables_without_description": table,
    "tables_without_primary_key": table,
    "unused_indexes": unused_index,
})
