"""Entry point discovery and reconciliation.

Two signal sources:
  Java pass: classes/methods carrying a target annotation or a MyBatis SQL
      annotation, plus the implicit CRUD methods of MyBatis-Plus
      BaseMapper sub-interfaces
  XML pass: <select|insert|update|delete> statements of MyBatis mapper files

Candidates for the same (class, method name) are reconciled into one
EntryPoint: Java annotation > MyBatis XML > implicit BaseMapper, with the
XML statement's SQL carried over onto a Java-annotated winner.
"""

import logging
import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from ..config import Settings
from ..constants import (
    BASE_MAPPER_FQN,
    DEFAULT_BASE_MAPPER_METHODS,
    DEFAULT_BASE_MAPPER_SIGNATURES,
    PROVENANCE_BASE_MAPPER,
)
from ..corpus import CorpusQuery, CorpusSnapshot, JavaClass, JavaMethod, TypeRef
from .annotations import extract_sql, has_any_annotation, normalize_annotation_spec
from .mapper_xml import MapperXmlIndex
from .models import EntryPoint

logger = logging.getLogger(__name__)

_TYPE_VARIABLE = re.compile(r"\bT\b")


def _priority(entry: EntryPoint) -> int:
    if entry.is_xml:
        return 2
    if entry.is_base_mapper:
        return 1
    return 3


def reconcile(candidates: Iterable[EntryPoint]) -> List[EntryPoint]:
    """Collapse candidates to one EntryPoint per (class_fqn, method name).

    Singleton groups pass through unchanged. Larger groups keep the
    highest-priority candidate, except that a Java-annotated candidate
    paired with an XML candidate carrying SQL takes over that SQL and the
    XML path.
    """
    groups: Dict[str, List[EntryPoint]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.key, []).append(candidate)

    reconciled: List[EntryPoint] = []
    for group in groups.values():
        if len(group) == 1:
            reconciled.append(group[0])
            continue

        xml_entry = next((e for e in group if e.is_xml), None)
        java_entry = next((e for e in group if e.is_java_annotation), None)

        if xml_entry is not None and java_entry is not None and xml_entry.sql_statement:
            reconciled.append(replace(
                java_entry,
                sql_statement=xml_entry.sql_statement,
                xml_file_path=xml_entry.xml_file_path,
            ))
        else:
            reconciled.append(max(group, key=_priority))

    return reconciled


class EntryPointScanner:
    """Scan a corpus for entry points.

    Args:
        corpus: Corpus to scan
        settings: DocLoom settings (defaults if None)
        xml_index: MapperXmlIndex to reuse across scans (created if None)
    """

    def __init__(
        self,
        corpus: CorpusQuery,
        settings: Optional[Settings] = None,
        xml_index: Optional[MapperXmlIndex] = None,
    ):
        self._corpus = corpus
        self._settings = settings or Settings()
        self._xml_index = xml_index or MapperXmlIndex()

    @property
    def xml_index(self) -> MapperXmlIndex:
        return self._xml_index

    def scan(self, scope: Optional[Iterable[str]] = None) -> List[EntryPoint]:
        """Scan for entry points inside one corpus snapshot.

        Args:
            scope: Optional directories/files to restrict the scan to

        Returns:
            Reconciled EntryPoints, at most one per (class, method name).
            Order is not significant.
        """
        scope = list(scope) if scope is not None else None
        with self._corpus.read_action() as snapshot:
            return self._scan(snapshot, scope)

    # -- Private: Java pass -------------------------------------------------

    def _scan(self, snapshot: CorpusSnapshot, scope: Optional[List[str]]) -> List[EntryPoint]:
        targets = normalize_annotation_spec(self._settings.annotation)
        base_methods = self._base_mapper_methods(snapshot)

        java_results: List[EntryPoint] = []
        service_classes: Set[str] = set()

        for ref in snapshot.enumerate("java", scope):
            try:
                java_file = snapshot.parse(ref.path)
                if java_file is None:
                    continue
                for cls in java_file.classes:
                    found = self._scan_class(snapshot, cls, targets, base_methods)
                    if found:
                        service_classes.add(cls.qualified_name)
                        java_results.extend(found)
            except Exception as e:
                logger.warning(f"Skipping {ref.path} during entry scan: {e}")

        xml_results: List[EntryPoint] = []
        mybatis = self._settings.mybatis
        if mybatis.enabled:
            related = service_classes if mybatis.strict_service_mapping else None
            xml_results = self._xml_index.scan(snapshot, scope, related)

        entries = reconcile(java_results + xml_results)
        logger.info(
            f"Entry scan at corpus version {snapshot.version}: "
            f"{len(java_results)} Java + {len(xml_results)} XML candidates -> {len(entries)} entry points"
        )
        return entries

    def _scan_class(
        self,
        snapshot: CorpusSnapshot,
        cls: JavaClass,
        targets: List[str],
        base_methods: Dict[str, Optional[JavaMethod]],
    ) -> List[EntryPoint]:
        raw_annotation = self._settings.annotation
        class_tagged = has_any_annotation(cls.annotations, targets, snapshot, cls)

        mybatis = self._settings.mybatis
        base_ref = None
        if mybatis.enabled and mybatis.include_mybatis_plus_base_methods and cls.is_interface:
            base_ref = self._base_mapper_ref(snapshot, cls)

        results: List[EntryPoint] = []
        declared: Set[str] = set()

        for method in cls.methods:
            if method.is_constructor:
                continue
            declared.add(method.name)
            if class_tagged or has_any_annotation(method.annotations, targets, snapshot, cls):
                results.append(self._entry_point_for(snapshot, cls, method, raw_annotation))
            elif base_ref is not None and method.name in base_methods:
                results.append(self._entry_point_for(snapshot, cls, method, PROVENANCE_BASE_MAPPER))

        if base_ref is not None:
            results.extend(self._inherited_base_entries(cls, base_ref, base_methods, declared))

        return results

    def _entry_point_for(
        self,
        snapshot: CorpusSnapshot,
        cls: JavaClass,
        method: JavaMethod,
        provenance: str,
    ) -> EntryPoint:
        return EntryPoint(
            class_fqn=cls.qualified_name,
            method=method.signature,
            file=method.file_path,
            line=method.start_line,
            annotation=provenance,
            sql_statement=extract_sql(method.annotations, snapshot, cls),
            xml_file_path=None,
        )

    # -- Private: MyBatis-Plus BaseMapper -------------------------------------

    @staticmethod
    def _base_mapper_ref(snapshot: CorpusSnapshot, cls: JavaClass) -> Optional[TypeRef]:
        for sup in cls.supertypes:
            if snapshot.qualify(sup.name, cls, known={BASE_MAPPER_FQN}) == BASE_MAPPER_FQN:
                return sup
        return None

    @staticmethod
    def _base_mapper_methods(snapshot: CorpusSnapshot) -> Dict[str, Optional[JavaMethod]]:
        """BaseMapper's public methods when its source is in the corpus, else the defaults."""
        base = snapshot.resolve(BASE_MAPPER_FQN)
        if base is not None:
            methods: Dict[str, Optional[JavaMethod]] = {}
            for method in base.public_methods():
                methods.setdefault(method.name, method)
            if methods:
                return methods
        return {name: None for name in sorted(DEFAULT_BASE_MAPPER_METHODS)}

    @staticmethod
    def _inherited_base_entries(
        cls: JavaClass,
        base_ref: TypeRef,
        base_methods: Dict[str, Optional[JavaMethod]],
        declared: Set[str],
    ) -> List[EntryPoint]:
        """Entries for BaseMapper methods the interface inherits without redeclaring."""
        entity = base_ref.arguments[0].text if base_ref.arguments else None
        entries = []
        for name, method in base_methods.items():
            if name in declared:
                continue
            if method is not None:
                params = [p.type.text for p in method.parameters]
            else:
                params = DEFAULT_BASE_MAPPER_SIGNATURES.get(name, [])
            if entity:
                params = [_TYPE_VARIABLE.sub(entity, p) for p in params]
            entries.append(EntryPoint(
                class_fqn=cls.qualified_name,
                method=f"{name}({','.join(params)})",
                file=cls.file_path,
                line=cls.start_line,
                annotation=PROVENANCE_BASE_MAPPER,
            ))
        return entries
