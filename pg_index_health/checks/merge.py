"""Strategies that combine per-host results of cluster-wide diagnostics.

A merge strategy receives one result list per host and returns a single
sorted list. Records compare by identity fields only (names), so the same
object reported by two hosts with different statistics is one object.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from pg_index_health.diagnostics import Diagnostic
from pg_index_health.errors import MissingMergeStrategy

MergeStrategy = Callable[[Sequence[Sequence[Any]]], list[Any]]


def union_of_results(results_on_hosts: Sequence[Sequence[Any]]) -> list[Any]:
    """Objects reported by at least one host.

    The first occurrence of an object (in host order) is the one kept.
    """
    merged: dict[Any, Any] = {}
    for results in results_on_hosts:
        for item in results:
            merged.setdefault(item, item)
    return sorted(merged.values())


def intersection_of_results(results_on_hosts: Sequence[Sequence[Any]]) -> list[Any]:
    """Objects reported by every host, e.g. indexes unused everywhere."""
    if not results_on_hosts:
        return []
    common = set(results_on_hosts[0])
    for results in results_on_hosts[1:]:
        common.intersection_update(results)
    first_seen = {item: item for item in results_on_hosts[0] if item in common}
    return sorted(first_seen.values())


MERGE_STRATEGIES: MappingProxyType[str, MergeStrategy] = MappingProxyType({
    "tables_with_missing_indexes": union_of_results,
    "unused_indexes": intersection_of_results,
})


def validate_merge_strategies(
    diagnostics: Iterable[Diagnostic],
    strategies: Mapping[str, MergeStrategy],
) -> None:
    """Make sure every cluster-wide diagnostic knows how to merge its results.

    Raises:
        MissingMergeStrategy: Naming every diagnostic without a strategy.
    """
    missing = sorted(d.name for d in diagnostics if d.is_across_cluster and d.name not in strategies)
    if missing:
        raise MissingMergeStrategy(
            f"No merge strategy registered for cluster-wide diagnostics: {', '.join(missing)}"
        )
