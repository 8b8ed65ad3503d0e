"""Structural validation and statistics for entry-point scan results.

Used by the batch driver to report what a scan produced before bundles are
assembled.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .models import EntryPoint

logger = logging.getLogger(__name__)


@dataclass
class ScanStats:
    total_entries: int = 0
    xml_entries: int = 0
    java_annotation_entries: int = 0
    base_mapper_entries: int = 0
    entries_with_sql: int = 0


@dataclass
class ScanValidationResult:
    is_valid: bool
    issues: List[str] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


def validate_scan_results(entries: Sequence[EntryPoint]) -> ScanValidationResult:
    """Check required fields of every entry and count entries per provenance.

    Issues are reported for a blank class, method or file, a non-positive
    line, and an XML entry without SQL.
    """
    issues: List[str] = []

    for entry in entries:
        if not entry.class_fqn.strip():
            issues.append(f"Entry has blank class_fqn: {entry}")
        if not entry.method.strip():
            issues.append(f"Entry has blank method: {entry}")
        if not entry.file.strip():
            issues.append(f"Entry has blank file: {entry}")
        if entry.line <= 0:
            issues.append(f"Entry has invalid line number: {entry}")
        if entry.is_xml and not (entry.sql_statement or "").strip():
            issues.append(f"MyBatis XML entry missing SQL statement: {entry}")

    stats = ScanStats(
        total_entries=len(entries),
        xml_entries=sum(1 for e in entries if e.is_xml),
        java_annotation_entries=sum(1 for e in entries if e.is_java_annotation),
        base_mapper_entries=sum(1 for e in entries if e.is_base_mapper),
        entries_with_sql=sum(1 for e in entries if e.sql_statement),
    )

    return ScanValidationResult(is_valid=not issues, issues=issues, stats=stats)


def log_scan_stats(entries: Sequence[EntryPoint]) -> ScanValidationResult:
    """Log scan statistics at INFO and any validation issues at WARNING."""
    result = validate_scan_results(entries)
    stats = result.stats
    logger.info(
        f"Scan stats: {stats.total_entries} entries "
        f"({stats.java_annotation_entries} annotated, {stats.xml_entries} XML, "
        f"{stats.base_mapper_entries} BaseMapper), {stats.entries_with_sql} with SQL"
    )
    for issue in result.issues:
        logger.warning(issue)
    return result

