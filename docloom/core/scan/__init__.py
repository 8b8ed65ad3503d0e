"""DocLoom entry-point scanning.

Public API:
    EntryPointScanner(corpus, settings).scan(scope) → List[EntryPoint]
    MapperXmlIndex().scan(snapshot, scope, related_classes) → List[EntryPoint]
    validate_scan_results(entries) → ScanValidationResult
"""

from .entry_scanner import EntryPointScanner, reconcile
from .mapper_xml import MapperXmlIndex, is_mapper_file, is_service_related
from .models import EntryPoint, MapperParseResult, MapperStatement
from .validation import ScanStats, ScanValidationResult, log_scan_stats, validate_scan_results

__all__ = [
    "EntryPointScanner",
    "reconcile",
    "MapperXmlIndex",
    "is_mapper_file",
    "is_service_related",
    "EntryPoint",
    "MapperParseResult",
    "MapperStatement",
    "ScanStats",
    "ScanValidationResult",
    "log_scan_stats",
    "validate_scan_results",
]
