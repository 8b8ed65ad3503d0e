"""Data contracts for entry-point scanning.

Kept as dataclasses for transport between the scanner, the XML mapper
index, the batch driver and the context assembler.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..constants import PROVENANCE_BASE_MAPPER, PROVENANCE_MYBATIS_XML


@dataclass(frozen=True)
class EntryPoint:
    """A reconciled entry point.

    `method` is the presentable signature "name(ParamType,...)"; XML-sourced
    entries carry the bare statement id. `annotation` is the provenance tag:
    the raw target-annotation spec for Java-annotated entries,
    "MyBatisXml", or "MyBatis-Plus BaseMapper".
    """

    class_fqn: str
    method: str
    file: str
    line: int
    annotation: str
    sql_statement: Optional[str] = None
    xml_file_path: Optional[str] = None

    @property
    def method_name(self) -> str:
        return self.method.split("(", 1)[0]

    @property
    def key(self) -> str:
        """Reconciliation key: one entry per (class, method name)."""
        return f"{self.class_fqn}#{self.method_name}"

    @property
    def is_xml(self) -> bool:
        return self.annotation == PROVENANCE_MYBATIS_XML

    @property
    def is_base_mapper(self) -> bool:
        return self.annotation == PROVENANCE_BASE_MAPPER

    @property
    def is_java_annotation(self) -> bool:
        return not self.is_xml and not self.is_base_mapper


@dataclass(frozen=True)
class MapperStatement:
    """One <select|insert|update|delete> element of an XML mapper."""

    namespace: str
    statement_id: str
    sql: str
    file: str
    line: int
    statement_type: str = "select"

    def to_entry_point(self) -> EntryPoint:
        return EntryPoint(
            class_fqn=self.namespace,
            method=self.statement_id,
            file=self.file,
            line=self.line,
            annotation=PROVENANCE_MYBATIS_XML,
            sql_statement=self.sql,
            xml_file_path=self.file,
        )


@dataclass
class MapperParseResult:
    """Cached parse output for one XML file. Non-mapper files have no statements."""

    namespace: Optional[str] = None
    statements: List[MapperStatement] = field(default_factory=list)
    entity_types: List[str] = field(default_factory=list)  # resultMap/association/collection/resultType names

    @property
    def is_empty(self) -> bool:
        return not self.statements
