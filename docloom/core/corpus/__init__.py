"""DocLoom corpus — tree-sitter based Java source index.

Public API:
    JavaCorpus(root) → CorpusQuery with read_action() snapshots
    JavaSourceParser().parse_source(text, path) → JavaFile
"""

from .base import CorpusQuery, CorpusSnapshot
from .index import IndexedSnapshot, JavaCorpus
from .java_parser import JavaSourceParser
from .models import (
    Annotation,
    FileRef,
    JavaClass,
    JavaField,
    JavaFile,
    JavaMethod,
    Parameter,
    SourceText,
    TypeRef,
)

__all__ = [
    "CorpusQuery",
    "CorpusSnapshot",
    "IndexedSnapshot",
    "JavaCorpus",
    "JavaSourceParser",
    "Annotation",
    "FileRef",
    "JavaClass",
    "JavaField",
    "JavaFile",
    "JavaMethod",
    "Parameter",
    "SourceText",
    "TypeRef",
]
