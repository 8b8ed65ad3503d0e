"""In-memory Java corpus index.

Parses every .java file under a root with tree-sitter and publishes the
result as an immutable CorpusSnapshot. `refresh()` re-parses only files
whose modification time changed and swaps in a new snapshot with a higher
version; readers holding the previous snapshot are unaffected.

Usage:
    corpus = JavaCorpus("/path/to/project")
    with corpus.read_action() as snap:
        cls = snap.resolve("com.example.service.UserService")
    corpus.refresh()  # e.g. from a file-watcher thread
"""

import logging
import os
import threading
from typing import Dict, Iterable, List, Optional

from .base import CorpusQuery, CorpusSnapshot
from .java_parser import JavaSourceParser
from .models import FileRef, JavaClass, JavaFile, SourceText
from .utils import JAVA_LANG_TYPES, in_scope, walk_files

logger = logging.getLogger(__name__)


class IndexedSnapshot(CorpusSnapshot):
    """Immutable snapshot over parsed Java files.

    Non-Java files (XML mappers) are not indexed; they are enumerated and
    read from disk on demand.
    """

    def __init__(
        self,
        root: str,
        version: int,
        files: Dict[str, JavaFile],
        mtimes: Dict[str, float],
        texts: Dict[str, str],
    ):
        self._root = root
        self._version = version
        self._files = files
        self._mtimes = mtimes
        self._texts = texts

        self._by_fqn: Dict[str, JavaClass] = {}
        self._by_short_name: Dict[str, List[JavaClass]] = {}
        for path in sorted(files):
            for cls in files[path].classes:
                self._by_fqn.setdefault(cls.qualified_name, cls)
                self._by_short_name.setdefault(cls.name, []).append(cls)

        self._implementations: Optional[Dict[str, List[JavaClass]]] = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def root(self) -> str:
        return self._root

    def mtime_of(self, path: str) -> Optional[float]:
        return self._mtimes.get(path)

    def text_of(self, path: str) -> Optional[str]:
        return self._texts.get(path)

    def java_files(self) -> Dict[str, JavaFile]:
        return self._files

    # ── Enumeration ────────────────────────────────────────────────────

    def enumerate(self, extension: str, scope: Optional[Iterable[str]] = None) -> List[FileRef]:
        scope = list(scope) if scope is not None else None
        ext = extension.lstrip(".").lower()

        if ext == "java":
            return [
                FileRef(path=path, mtime=self._mtimes[path], rel_path=self._relative(path))
                for path in sorted(self._files)
                if in_scope(path, scope)
            ]

        refs = []
        for path in walk_files(self._root, ext):
            if not in_scope(path, scope):
                continue
            try:
                mtime = os.path.getmtime(path)
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
                continue
            refs.append(FileRef(path=path, mtime=mtime, rel_path=self._relative(path)))
        return refs

    def parse(self, path: str) -> Optional[JavaFile]:
        return self._files.get(os.path.abspath(path))

    # ── Resolution ─────────────────────────────────────────────────────

    def resolve(self, qualified_name: str) -> Optional[JavaClass]:
        return self._by_fqn.get(qualified_name)

    def resolve_by_short_name(self, name: str) -> List[JavaClass]:
        return list(self._by_short_name.get(name, []))

    def qualify(self, type_name: str, context: JavaClass, known: Iterable[str] = ()) -> Optional[str]:
        if not type_name or type_name == "?":
            return None
        known = set(known)

        if "." in type_name:
            if type_name in self._by_fqn or type_name in known:
                return type_name
            # Outer.Inner written relative to an import or the package
            head, rest = type_name.split(".", 1)
            head_fqn = self.qualify(head, context, known)
            if head_fqn and f"{head_fqn}.{rest}" in self._by_fqn:
                return f"{head_fqn}.{rest}"
            return type_name

        # The class itself, its nested types, then types nested in enclosing classes
        current: Optional[JavaClass] = context
        while current is not None:
            if current.name == type_name:
                return current.qualified_name
            nested = f"{current.qualified_name}.{type_name}"
            if nested in self._by_fqn:
                return nested
            current = self._by_fqn.get(current.outer_name) if current.outer_name else None

        java_file = self._files.get(context.file_path)
        imports = java_file.imports if java_file else []

        for imp in imports:
            if imp.endswith(f".{type_name}"):
                return imp

        same_package = f"{context.package}.{type_name}" if context.package else type_name
        if same_package in self._by_fqn:
            return same_package

        for imp in imports:
            if imp.endswith(".*"):
                candidate = f"{imp[:-2]}.{type_name}"
                if candidate in self._by_fqn or candidate in known:
                    return candidate

        if type_name in JAVA_LANG_TYPES:
            return f"java.lang.{type_name}"

        return None

    def implementations(self, qualified_name: str) -> List[JavaClass]:
        if self._implementations is None:
            index: Dict[str, List[JavaClass]] = {}
            for cls in self._by_fqn.values():
                for sup in cls.supertypes:
                    fqn = self.qualify(sup.name, cls)
                    if fqn:
                        index.setdefault(fqn, []).append(cls)
            self._implementations = index
        return list(self._implementations.get(qualified_name, []))

    # ── Text ───────────────────────────────────────────────────────────

    def read_text(self, path: str) -> Optional[SourceText]:
        path = os.path.abspath(path)
        text = self._texts.get(path)
        if text is None:
            try:
                with open(path, "r", encoding="utf-8", errors="replace") as f:
                    text = f.read()
            except OSError as e:
                logger.debug(f"Cannot read {path}: {e}")
                return None
        return SourceText(path, text)

    def _relative(self, path: str) -> str:
        return os.path.relpath(path, self._root).replace(os.sep, "/")


class JavaCorpus(CorpusQuery):
    """tree-sitter backed corpus over a project directory.

    Args:
        root: Project root directory
        parser: Optional JavaSourceParser (created if None)
    """

    def __init__(self, root: str, parser: Optional[JavaSourceParser] = None):
        if not os.path.isdir(root):
            raise FileNotFoundError(f"Corpus root not found: {root}")
        self._root = os.path.abspath(root)
        self._parser = parser or JavaSourceParser()
        self._lock = threading.Lock()
        self._snapshot = IndexedSnapshot(self._root, 0, {}, {}, {})
        self.refresh()

    @property
    def root(self) -> str:
        return self._root

    def snapshot(self) -> IndexedSnapshot:
        return self._snapshot

    def refresh(self) -> int:
        """Re-parse changed files and publish a new snapshot.

        Returns:
            Number of files parsed or removed; 0 means the snapshot is unchanged
        """
        with self._lock:
            current = self._snapshot
            files: Dict[str, JavaFile] = {}
            mtimes: Dict[str, float] = {}
            texts: Dict[str, str] = {}
            changed = 0

            for path in walk_files(self._root, ".java"):
                try:
                    mtime = os.path.getmtime(path)
                except OSError as e:
                    logger.warning(f"Cannot stat {path}: {e}")
                    continue

                previous = current.parse(path)
                if previous is not None and current.mtime_of(path) == mtime:
                    files[path] = previous
                    mtimes[path] = mtime
                    texts[path] = current.text_of(path) or ""
                    continue

                try:
                    with open(path, "r", encoding="utf-8", errors="replace") as f:
                        text = f.read()
                    files[path] = self._parser.parse_source(text, path)
                except Exception as e:
                    logger.warning(f"Skipping unparseable file {path}: {e}")
                    continue
                mtimes[path] = mtime
                texts[path] = text
                changed += 1

            removed = len(set(current.java_files()) - set(files))
            changed += removed

            if changed or current.version == 0:
                self._snapshot = IndexedSnapshot(self._root, current.version + 1, files, mtimes, texts)
                logger.info(
                    f"Corpus {self._root} at version {self._snapshot.version}: "
                    f"{len(files)} Java files ({changed} changed)"
                )
            return changed
