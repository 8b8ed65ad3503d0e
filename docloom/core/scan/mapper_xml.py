"""MyBatis XML mapper index — SAX based.

Extracts SQL statements from MyBatis mapper files:
- <mapper namespace="..."> scopes every statement beneath it
- <select|insert|update|delete id="..."> become MapperStatements, with the
  text of nested dynamic SQL (<if>, <where>, <foreach>, ...) folded in
- resultMap/association/collection/resultType name entity types

Parsing is streaming and position-tracking (xml.sax + Locator) with
external entity loading disabled. Results are cached per file keyed by
modification time; the service-relatedness filter is applied on top of the
cache and is not cached itself.

The cache is per instance and unsynchronized: concurrent scans should use
separate MapperXmlIndex instances.
"""

import io
import logging
import xml.sax
from typing import Dict, Iterable, List, Optional, Set, Tuple
from xml.sax.handler import ContentHandler, feature_external_ges, feature_external_pes, feature_namespaces

from ..constants import SQL_STATEMENT_ELEMENTS
from ..corpus import CorpusSnapshot, FileRef
from .models import EntryPoint, MapperParseResult, MapperStatement

logger = logging.getLogger(__name__)

# Path segments that never hold production mappers
EXCLUDED_PATH_SEGMENTS = frozenset({
    "build",
    "target",
    "out",
    "bin",
    ".git",
    ".svn",
    ".idea",
    ".gradle",
    "node_modules",
    "test-resources",
    "testdata",
    "__fixtures__",
})

# Lower-cased markers of XML dialects that may contain a <mapper> tag but are not mappers
UNRELATED_XML_MARKERS = (
    "spring-beans",
    "<beans",
    "ibatorconfiguration",
    "generatorconfiguration",
)

# Statement children whose text is not part of the statement SQL
_NON_SQL_ELEMENTS = frozenset({"selectKey"})

# (element, attribute) pairs naming entity types
_ENTITY_TYPE_ATTRIBUTES = {
    "resultMap": "type",
    "association": "javaType",
    "collection": "ofType",
}


def is_excluded_path(path: str) -> bool:
    """True if any segment of the path is a build, VCS, dependency or fixture directory."""
    segments = path.replace("\\", "/").split("/")
    return any(segment in EXCLUDED_PATH_SEGMENTS for segment in segments[:-1])


def is_mapper_file(content: str, path: Optional[str] = None) -> bool:
    """Cheap eligibility check run before a full parse.

    Args:
        content: Raw XML text
        path: Optional path relative to the corpus root, checked for excluded directories

    Returns:
        True if the file looks like a MyBatis mapper
    """
    if path and is_excluded_path(path):
        return False

    looks_like_mapper = "<!DOCTYPE mapper" in content or (
        "<mapper" in content and "namespace=" in content
    )
    if not looks_like_mapper:
        return False

    lowered = content.lower()
    if "<configuration" in lowered and "mybatis-3-config" in lowered:
        return False
    return not any(marker in lowered for marker in UNRELATED_XML_MARKERS)


def _split_fqn(fqn: str) -> Tuple[str, str]:
    if "." in fqn:
        package, simple = fqn.rsplit(".", 1)
        return package, simple
    return "", fqn


def _strip_suffixes(name: str, suffixes: Iterable[str]) -> str:
    for suffix in suffixes:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return name


def is_service_related(namespace: str, service_classes: Set[str]) -> bool:
    """Decide whether a mapper namespace belongs to any of the given services.

    A mapper relates to a service when the names match literally, or when
    both the packages are related (same two-segment root, or one package
    prefixes the other) and the base names overlap once the Mapper/DAO and
    Service/Controller suffixes are stripped.
    """
    if namespace in service_classes:
        return True

    mapper_package, mapper_simple = _split_fqn(namespace)
    mapper_base = _strip_suffixes(mapper_simple, ("Mapper", "DAO")).lower()

    for service in service_classes:
        service_package, service_simple = _split_fqn(service)

        if service_package and mapper_package:
            service_root = ".".join(service_package.split(".")[:2])
            mapper_root = ".".join(mapper_package.split(".")[:2])
            package_related = (
                service_root == mapper_root
                or mapper_package.startswith(service_package)
                or service_package.startswith(mapper_package)
            )
        else:
            package_related = service_package == mapper_package

        service_base = _strip_suffixes(service_simple, ("Service", "Controller")).lower()
        # A bare "Mapper" or "Service" leaves nothing to compare
        name_related = bool(mapper_base and service_base) and (
            mapper_base in service_base or service_base in mapper_base
        )

        if package_related and name_related:
            return True

    return False


class _MapperHandler(ContentHandler):
    """Collects statements and entity type names from one mapper document."""

    def __init__(self, file_path: str):
        super().__init__()
        self.file_path = file_path
        self.namespace: Optional[str] = None
        self.statements: List[MapperStatement] = []
        self.entity_types: List[str] = []

        self._locator = None
        self._element_depth = 0
        self._statement: Optional[Tuple[str, str, int]] = None  # (tag, id, line)
        self._nested = 0
        self._skipped = 0  # depth inside <selectKey>
        self._runs: List[str] = []
        self._buffer: List[str] = []

    def setDocumentLocator(self, locator):
        self._locator = locator

    def startElement(self, name, attrs):
        self._flush()
        line = self._locator.getLineNumber() if self._locator else 1
        depth = self._element_depth
        self._element_depth += 1

        self._record_entity_types(name, attrs)

        if depth == 0:
            if name == "mapper":
                self.namespace = attrs.get("namespace") or None
            return

        if self._statement is not None:
            self._nested += 1
            if self._skipped or name in _NON_SQL_ELEMENTS:
                self._skipped += 1
            return

        if self.namespace and name in SQL_STATEMENT_ELEMENTS:
            self._statement = (name, attrs.get("id") or "", line)
            self._nested = 0
            self._runs = []

    def characters(self, content):
        if self._statement is not None and not self._skipped:
            self._buffer.append(content)

    def endElement(self, name):
        self._flush()
        self._element_depth -= 1

        if self._statement is None:
            return
        if self._nested > 0:
            self._nested -= 1
            if self._skipped:
                self._skipped -= 1
            return

        tag, statement_id, line = self._statement
        sql = " ".join(self._runs)
        if statement_id and sql:
            self.statements.append(MapperStatement(
                namespace=self.namespace or "",
                statement_id=statement_id,
                sql=sql,
                file=self.file_path,
                line=line,
                statement_type=tag,
            ))
        self._statement = None
        self._runs = []

    def _flush(self):
        if self._buffer:
            run = "".join(self._buffer).strip()
            if run:
                self._runs.append(run)
            self._buffer = []

    def _record_entity_types(self, name, attrs):
        attr = _ENTITY_TYPE_ATTRIBUTES.get(name)
        candidates = [attrs.get(attr)] if attr else []
        candidates.append(attrs.get("resultType"))
        for value in candidates:
            if value and value not in self.entity_types:
                self.entity_types.append(value)


class MapperXmlIndex:
    """Scan XML mapper files into EntryPoints with an mtime-keyed cache."""

    def __init__(self):
        self._cache: Dict[str, MapperParseResult] = {}
        self._timestamps: Dict[str, float] = {}

    def scan(
        self,
        snapshot: CorpusSnapshot,
        scope: Optional[Iterable[str]] = None,
        related_classes: Optional[Set[str]] = None,
    ) -> List[EntryPoint]:
        """Return one EntryPoint per mapper statement in scope.

        Args:
            snapshot: Corpus snapshot used for enumeration and reads
            scope: Optional directories/files to restrict the scan to
            related_classes: When given, only mappers related to these classes
                (see is_service_related) contribute

        Returns:
            EntryPoints tagged "MyBatisXml"
        """
        entries: List[EntryPoint] = []
        files = 0
        for ref in snapshot.enumerate("xml", scope):
            result = self._load(snapshot, ref)
            if result.is_empty:
                continue
            if related_classes is not None and not is_service_related(result.namespace or "", related_classes):
                logger.debug(f"Skipping mapper {result.namespace}: unrelated to scanned services")
                continue
            files += 1
            entries.extend(statement.to_entry_point() for statement in result.statements)

        logger.info(f"MyBatis XML scan: {len(entries)} statements from {files} mapper files")
        return entries

    def collect_entity_types(self, xml_path: str) -> List[str]:
        """Re-parse one mapper file and return the entity type names it declares."""
        try:
            with open(xml_path, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            logger.debug(f"Cannot read mapper {xml_path}: {e}")
            return []
        return self._parse_content(content, xml_path).entity_types

    def clear_cache(self) -> None:
        self._cache.clear()
        self._timestamps.clear()

    def cache_stats(self) -> Tuple[int, int]:
        """Return (cached result count, timestamp count)."""
        return len(self._cache), len(self._timestamps)

    # ── Private ────────────────────────────────────────────────────────

    def _load(self, snapshot: CorpusSnapshot, ref: FileRef) -> MapperParseResult:
        if self._timestamps.get(ref.path) == ref.mtime and ref.path in self._cache:
            logger.debug(f"Mapper cache hit: {ref.path}")
            return self._cache[ref.path]

        result = self._read_and_parse(snapshot, ref)
        self._cache[ref.path] = result
        self._timestamps[ref.path] = ref.mtime
        return result

    def _read_and_parse(self, snapshot: CorpusSnapshot, ref: FileRef) -> MapperParseResult:
        if is_excluded_path(ref.rel_path or ref.path):
            return MapperParseResult()

        source = snapshot.read_text(ref.path)
        if source is None or not is_mapper_file(source.text):
            return MapperParseResult()

        return self._parse_content(source.text, ref.path)

    def _parse_content(self, content: str, file_path: str) -> MapperParseResult:
        handler = _MapperHandler(file_path)
        parser = xml.sax.make_parser()
        parser.setFeature(feature_namespaces, False)
        parser.setFeature(feature_external_ges, False)
        parser.setFeature(feature_external_pes, False)
        parser.setContentHandler(handler)

        try:
            parser.parse(io.StringIO(content))
        except Exception as e:
            # Not every XML file that passes the pre-check is a well-formed mapper
            logger.debug(f"Failed to parse mapper {file_path}: {e}")
            return MapperParseResult()

        return MapperParseResult(
            namespace=handler.namespace,
            statements=handler.statements,
            entity_types=handler.entity_types,
        )
