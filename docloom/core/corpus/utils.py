"""Corpus utilities.

File walking filters and the well-known type names used during
type-name resolution.
"""

import os
from typing import Iterable, Iterator, Optional

# Directories to skip during file walking
SKIP_DIRECTORIES = frozenset({
    ".git",
    ".svn",
    ".hg",
    ".idea",
    ".gradle",
    ".mvn",
    "node_modules",
    "build",
    "target",
    "out",
    "bin",
    "dist",
    "__pycache__",
})

# Types visible without an import
JAVA_LANG_TYPES = frozenset({
    "Object", "String", "Integer", "Long", "Short", "Byte", "Double", "Float",
    "Boolean", "Character", "Number", "Void", "Enum", "Iterable", "Class",
    "Exception", "RuntimeException", "Error", "Throwable", "Comparable",
    "CharSequence", "StringBuilder", "Thread", "Runnable", "Math", "Record",
})


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking."""
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def walk_files(root: str, extension: str) -> Iterator[str]:
    """Yield absolute paths of files under root with the given extension."""
    suffix = extension if extension.startswith(".") else f".{extension}"
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))
        for filename in sorted(filenames):
            if filename.lower().endswith(suffix):
                yield os.path.abspath(os.path.join(dirpath, filename))


def in_scope(path: str, scope: Optional[Iterable[str]]) -> bool:
    """True if path equals or lies under any scope entry. `None` means everything."""
    if scope is None:
        return True
    path = os.path.abspath(path)
    for entry in scope:
        entry = os.path.abspath(entry)
        if path == entry or path.startswith(entry.rstrip(os.sep) + os.sep):
            return True
    return False
