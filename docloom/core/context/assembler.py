"""Bounded context-bundle assembly.

Builds one Markdown-ish document per entry point (or per class) from:
  - the entry method's source
  - an externally computed call-graph slice (summary + anchors)
  - related data types: signature types plus MyBatis-specific heuristics
    (BaseMapper entity argument, XML resultMap types, mapper interface
    types, SQL placeholder parameters)
  - called methods

Every source line carries a fixed-width line-number gutter. The character
budget is checked between lines while emitting related types, called
methods and class source; the finished text is then cut to exactly the
budget and a truncation marker line appended.

All corpus reads of one build happen inside a single read action.
"""

import logging
from typing import List, Optional, Set

from ..config import ContextConfig
from ..constants import (
    BASE_MAPPER_FQN,
    SECTION_CALLED_METHODS,
    SECTION_CALLGRAPH,
    SECTION_CLASS_SOURCE,
    SECTION_ENTRY_CLASS,
    SECTION_ENTRY_METHOD,
    SECTION_METHOD_SOURCE,
    SECTION_PUBLIC_METHODS,
    SECTION_RELATED_TYPES,
    SECTION_SLICES,
    SECTION_SQL,
    TRUNCATION_MARKER,
)
from ..corpus import CorpusQuery, CorpusSnapshot, JavaClass, JavaMethod, TypeRef
from ..scan.mapper_xml import MapperXmlIndex
from ..scan.models import EntryPoint
from .collectors import (
    CalledMethodCollector,
    InvocationCalledMethodCollector,
    OutputWriter,
    SignatureTypeCollector,
    TypeCollector,
)
from .entity_classifier import is_entity
from .models import CallGraphSlice, ContextBundle
from .sql_params import extract_placeholder_names, is_likely_entity_parameter

logger = logging.getLogger(__name__)


def gutter(line_number: int, text: str) -> str:
    return f"{line_number:6d} | {text}"


def truncate(text: str, max_chars: int) -> str:
    """Cut text to exactly max_chars and append the truncation marker line."""
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n{TRUNCATION_MARKER}\n"


class _Document:
    """Line-oriented text buffer that tracks its length against a budget."""

    def __init__(self, max_chars: int):
        self.max_chars = max_chars
        self._parts: List[str] = []
        self._length = 0

    def line(self, text: str = "") -> None:
        self._parts.append(text)
        self._parts.append("\n")
        self._length += len(text) + 1

    def source_line(self, line_number: int, text: str) -> None:
        self.line(gutter(line_number, text))

    @property
    def over_budget(self) -> bool:
        return self._length >= self.max_chars

    def text(self) -> str:
        return "".join(self._parts)


class _TypeSet:
    """Related classes de-duplicated by qualified (else simple) name, insertion ordered."""

    def __init__(self):
        self.classes: List[JavaClass] = []
        self._keys: Set[str] = set()

    def add(self, cls: Optional[JavaClass]) -> None:
        if cls is None:
            return
        key = cls.qualified_name or cls.name
        if key not in self._keys:
            self._keys.add(key)
            self.classes.append(cls)

    def __len__(self) -> int:
        return len(self.classes)


class ContextAssembler:
    """Assemble bounded context bundles for entry points.

    Args:
        corpus: Corpus to read sources from
        writer: Destination for finished bundles
        config: Budget, depths and entity rules (defaults if None)
        type_collector: Related-type collector (SignatureTypeCollector if None)
        called_collector: Called-method collector (InvocationCalledMethodCollector if None)
        xml_index: Used to re-read entity types from XML mappers (created if None)
    """

    def __init__(
        self,
        corpus: CorpusQuery,
        writer: OutputWriter,
        config: Optional[ContextConfig] = None,
        type_collector: Optional[TypeCollector] = None,
        called_collector: Optional[CalledMethodCollector] = None,
        xml_index: Optional[MapperXmlIndex] = None,
    ):
        self._corpus = corpus
        self._writer = writer
        self._config = config or ContextConfig()
        self._types = type_collector or SignatureTypeCollector(self._config)
        self._called = called_collector or InvocationCalledMethodCollector()
        self._xml_index = xml_index or MapperXmlIndex()

    def build(self, entry: EntryPoint, call_slice: CallGraphSlice, out_path: str) -> ContextBundle:
        """Assemble and persist the bundle for one entry method.

        Args:
            entry: Reconciled entry point
            call_slice: Call-graph slice for the entry
            out_path: Output path relative to the writer's base

        Returns:
            ContextBundle with the text and the absolute written path
        """
        with self._corpus.read_action() as snapshot:
            text = self._assemble_method(snapshot, entry, call_slice)
        path = self._writer.write_relative(out_path, text)
        logger.info(f"Built bundle for {entry.class_fqn}#{entry.method_name}: {len(text)} chars -> {path}")
        return ContextBundle(text=text, path=path)

    def build_for_class(self, entry: EntryPoint, call_slice: CallGraphSlice, out_path: str) -> ContextBundle:
        """Assemble and persist the bundle for the whole class of an entry."""
        with self._corpus.read_action() as snapshot:
            text = self._assemble_class(snapshot, entry, call_slice)
        path = self._writer.write_relative(out_path, text)
        logger.info(f"Built class bundle for {entry.class_fqn}: {len(text)} chars -> {path}")
        return ContextBundle(text=text, path=path)

    # ── Method bundle ──────────────────────────────────────────────────

    def _assemble_method(self, snapshot: CorpusSnapshot, entry: EntryPoint, call_slice: CallGraphSlice) -> str:
        doc = _Document(self._config.max_chars)

        doc.line(SECTION_ENTRY_METHOD)
        doc.line(f"{entry.class_fqn}#{entry.method}")

        if entry.sql_statement:
            doc.line()
            doc.line(SECTION_SQL)
            doc.line("```sql")
            doc.line(entry.sql_statement)
            doc.line("```")
            if entry.xml_file_path:
                doc.line(f"// Origin: {entry.xml_file_path}")
        doc.line()

        method = self._find_entry_method(snapshot, entry)
        if method is not None:
            self._emit_method_source(snapshot, doc, method)
        doc.line()

        doc.line(SECTION_CALLGRAPH)
        doc.line(call_slice.summary)
        doc.line()

        doc.line(SECTION_SLICES)
        self._emit_slices(snapshot, doc, call_slice)

        types = self._related_types(snapshot, entry, method)
        self._emit_related_types(snapshot, doc, types)

        if method is not None and self._config.collect_called and self._config.called_depth > 0:
            self._emit_called_methods(snapshot, doc, method)

        return truncate(doc.text(), self._config.max_chars)

    def _find_entry_method(self, snapshot: CorpusSnapshot, entry: EntryPoint) -> Optional[JavaMethod]:
        """Locate the entry method by line range, else by name within the file.

        XML entries point at the mapper file, so they fall back to the
        method of that name on the namespace class.
        """
        name = entry.method_name
        java_file = snapshot.parse(entry.file)
        if java_file is not None:
            methods = [m for cls in java_file.classes for m in cls.methods]
            in_range = [m for m in methods if m.start_line <= entry.line <= m.end_line]
            if in_range:
                return min(in_range, key=lambda m: m.end_line - m.start_line)
            for m in methods:
                if m.name == name:
                    return m

        owner = snapshot.resolve(entry.class_fqn)
        if owner is not None:
            for m in owner.methods:
                if m.name == name and not m.is_constructor:
                    return m
        return None

    def _emit_method_source(self, snapshot: CorpusSnapshot, doc: _Document, method: JavaMethod) -> None:
        source = snapshot.read_text(method.file_path)
        if source is None:
            return
        doc.line(SECTION_METHOD_SOURCE)
        for n, text in source.excerpt(method.start_line, method.end_line):
            doc.source_line(n, text)

    def _emit_slices(self, snapshot: CorpusSnapshot, doc: _Document, call_slice: CallGraphSlice) -> None:
        seen = set()
        for anchor in call_slice.anchors:
            source = snapshot.read_text(anchor.file)
            if source is None:
                logger.debug(f"Slice anchor file not readable: {anchor.file}")
                continue
            start, end = source.clamp(anchor.start_line, anchor.end_line)
            key = (anchor.file, start, end)
            if key in seen:
                continue
            seen.add(key)
            doc.line(f"## File: {anchor.file} [{start}-{end}]")
            for n, text in source.excerpt(start, end):
                doc.source_line(n, text)
            doc.line()

    # ── Related types ──────────────────────────────────────────────────

    def _related_types(
        self,
        snapshot: CorpusSnapshot,
        entry: EntryPoint,
        method: Optional[JavaMethod],
    ) -> List[JavaClass]:
        types = _TypeSet()
        if method is not None:
            for cls in self._types.collect(snapshot, method, self._config.type_depth):
                types.add(cls)

        owner = snapshot.resolve(entry.class_fqn)

        if entry.is_base_mapper and owner is not None:
            self._add_entity(types, self._base_mapper_entity(snapshot, owner))

        if entry.is_xml and entry.xml_file_path:
            for name in self._xml_index.collect_entity_types(entry.xml_file_path):
                self._add_entity(types, self._resolve_by_name(snapshot, name))

        mybatis_entry = entry.is_xml or entry.is_base_mapper or "mybatis" in entry.annotation.lower()
        if mybatis_entry and owner is not None and owner.is_interface:
            for mapper_method in owner.methods:
                for cls in self._types.collect(snapshot, mapper_method, 1):
                    self._add_entity(types, cls)

        if entry.sql_statement and method is not None:
            for cls in self._sql_parameter_entities(snapshot, entry.sql_statement, method):
                types.add(cls)

        return types.classes

    def _add_entity(self, types: _TypeSet, cls: Optional[JavaClass]) -> None:
        if cls is not None and is_entity(cls, self._config):
            types.add(cls)

    @staticmethod
    def _base_mapper_entity(snapshot: CorpusSnapshot, mapper: JavaClass) -> Optional[JavaClass]:
        for sup in mapper.supertypes:
            if snapshot.qualify(sup.name, mapper, known={BASE_MAPPER_FQN}) != BASE_MAPPER_FQN:
                continue
            if sup.arguments:
                return snapshot.resolve_type(sup.arguments[0].name, mapper)
        return None

    @staticmethod
    def _resolve_by_name(snapshot: CorpusSnapshot, name: str) -> Optional[JavaClass]:
        cls = snapshot.resolve(name)
        if cls is not None:
            return cls
        if "." not in name:
            matches = snapshot.resolve_by_short_name(name)
            if matches:
                return matches[0]
        return None

    def _sql_parameter_entities(
        self,
        snapshot: CorpusSnapshot,
        sql: str,
        method: JavaMethod,
    ) -> List[JavaClass]:
        """Entities reachable from parameters referenced by the SQL, or that look entity-like."""
        owner = snapshot.resolve(method.class_fqn)
        if owner is None:
            return []

        placeholders = set(extract_placeholder_names(sql))
        found = _TypeSet()

        def resolve(ref: TypeRef) -> Optional[JavaClass]:
            if ref.is_primitive:
                return None
            return snapshot.resolve_type(ref.name, owner)

        for param in method.parameters:
            resolved = resolve(param.type)
            qualified = None if param.type.is_primitive else snapshot.qualify(param.type.name, owner)
            if param.name in placeholders or is_likely_entity_parameter(param, qualified, resolved):
                self._add_entity(found, resolved)
            for arg in param.type.arguments:
                self._add_entity(found, resolve(arg))

        returns = method.return_type
        if returns is not None and not returns.is_primitive:
            self._add_entity(found, resolve(returns))
            for arg in returns.arguments:
                self._add_entity(found, resolve(arg))

        return found.classes

    def _emit_related_types(self, snapshot: CorpusSnapshot, doc: _Document, types: List[JavaClass]) -> None:
        if not types:
            return
        doc.line()
        doc.line(SECTION_RELATED_TYPES)
        for cls in types:
            if doc.over_budget:
                break
            doc.line(f"## {cls.qualified_name or cls.name}")
            self._emit_declaration(snapshot, doc, cls.file_path, cls.start_line, cls.end_line)
            doc.line()

    # ── Called methods ─────────────────────────────────────────────────

    def _emit_called_methods(self, snapshot: CorpusSnapshot, doc: _Document, method: JavaMethod) -> None:
        called = self._called.collect(snapshot, method, self._config.called_depth)
        if not called:
            return
        doc.line()
        doc.line(SECTION_CALLED_METHODS)
        for callee in called:
            if doc.over_budget:
                break
            doc.line(f"## {callee.class_fqn}#{callee.name}")
            self._emit_declaration(snapshot, doc, callee.file_path, callee.start_line, callee.end_line)

    def _emit_declaration(
        self,
        snapshot: CorpusSnapshot,
        doc: _Document,
        file_path: str,
        start_line: int,
        end_line: int,
    ) -> None:
        """File header plus gutter lines, stopping at a line boundary once over budget."""
        source = snapshot.read_text(file_path)
        if source is None:
            return
        start, end = source.clamp(start_line, end_line)
        doc.line(f"// File: {file_path} [{start}-{end}]")
        for n, text in source.excerpt(start, end):
            doc.source_line(n, text)
            if doc.over_budget:
                break

    # ── Class bundle ───────────────────────────────────────────────────

    def _assemble_class(self, snapshot: CorpusSnapshot, entry: EntryPoint, call_slice: CallGraphSlice) -> str:
        doc = _Document(self._config.max_chars)

        doc.line(SECTION_ENTRY_CLASS)
        doc.line(entry.class_fqn)
        doc.line()

        cls = snapshot.resolve(entry.class_fqn)
        if cls is None:
            logger.warning(f"Class {entry.class_fqn} not found in corpus version {snapshot.version}")
            return truncate(doc.text(), self._config.max_chars)

        public_methods = cls.public_methods()

        doc.line(SECTION_CLASS_SOURCE)
        self._emit_declaration(snapshot, doc, cls.file_path, cls.start_line, cls.end_line)
        doc.line()
        doc.line(SECTION_PUBLIC_METHODS)
        for m in public_methods:
            doc.line(f"- {m.signature}")

        if call_slice.summary:
            doc.line()
            doc.line(SECTION_CALLGRAPH)
            doc.line(call_slice.summary)

        types = _TypeSet()
        for m in public_methods:
            for related in self._types.collect(snapshot, m, self._config.type_depth):
                types.add(related)
        self._emit_related_types(snapshot, doc, types.classes)

        return truncate(doc.text(), self._config.max_chars)
