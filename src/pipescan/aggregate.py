"""Fold per-scanner finding sets into one consolidated report."""

from __future__ import annotations

from typing import Iterable

from pipescan.models import COUNTER_KEYS, ConsolidatedReport, FindingSet


def aggregate(report: ConsolidatedReport, finding_set: FindingSet) -> ConsolidatedReport:
    """Add *finding_set*'s counters to *report* and append it to the breakdown.

    Counts are taken from the set's own summary, never re-derived from the
    findings: each adapter owns its counting rules (secrets add to ``total``
    only).
    """
    summary = finding_set.summary()
    for key in COUNTER_KEYS:
        setattr(report, key, getattr(report, key) + int(summary.get(key) or 0))
    report.scanner_results.append(finding_set)
    return report


def aggregate_all(finding_sets: Iterable[FindingSet]) -> ConsolidatedReport:
    report = ConsolidatedReport()
    for finding_set in finding_sets:
        aggregate(report, finding_set)
    return report
