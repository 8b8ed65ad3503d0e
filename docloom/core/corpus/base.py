"""Corpus query interface.

The scanner and the context assembler never touch the filesystem or the
parser directly: every lookup goes through a snapshot obtained from
`CorpusQuery.read_action()`, so one scan or one bundle build observes a
single corpus version even while the index is refreshed on another thread.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from .models import FileRef, JavaClass, JavaFile, SourceText


class CorpusSnapshot(ABC):
    """Read-only view of one corpus version."""

    @property
    @abstractmethod
    def version(self) -> int:
        """Monotonic version token of this snapshot."""
        ...

    @abstractmethod
    def enumerate(self, extension: str, scope: Optional[Iterable[str]] = None) -> List[FileRef]:
        """List files with the given extension, restricted to scope."""
        ...

    @abstractmethod
    def parse(self, path: str) -> Optional[JavaFile]:
        """Return the parsed model of a source file, or None if unavailable."""
        ...

    @abstractmethod
    def resolve(self, qualified_name: str) -> Optional[JavaClass]:
        ...

    @abstractmethod
    def resolve_by_short_name(self, name: str) -> List[JavaClass]:
        ...

    @abstractmethod
    def qualify(self, type_name: str, context: JavaClass, known: Iterable[str] = ()) -> Optional[str]:
        """Resolve a type name as written inside `context` to a qualified name.

        `known` lists qualified names that exist outside the corpus (library
        types) and may be matched through wildcard imports.
        """
        ...

    @abstractmethod
    def implementations(self, qualified_name: str) -> List[JavaClass]:
        """Classes and interfaces that directly extend or implement the type."""
        ...

    @abstractmethod
    def read_text(self, path: str) -> Optional[SourceText]:
        ...

    def resolve_type(self, type_name: str, context: JavaClass) -> Optional[JavaClass]:
        """Resolve a type name to a corpus class, or None for library/unknown types."""
        fqn = self.qualify(type_name, context)
        return self.resolve(fqn) if fqn else None


class CorpusQuery(ABC):
    """Entry point to a source corpus."""

    @abstractmethod
    def snapshot(self) -> CorpusSnapshot:
        """Return the current snapshot."""
        ...

    @contextmanager
    def read_action(self) -> Iterator[CorpusSnapshot]:
        """Run a block of lookups against one consistent snapshot."""
        yield self.snapshot()
