"""Corpus data models.

Defines the parsed representation of Java source files used by the
scanner and the context assembler. These are pure data containers:
no parsing or resolution logic.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FileRef:
    """A file handle returned by corpus enumeration."""

    path: str  # Absolute
    mtime: float
    rel_path: str = ""  # Relative to the corpus root


@dataclass
class TypeRef:
    """A type as written in source.

    `name` is the raw type name without generic arguments or array
    dimensions ("List", "com.example.User"); `text` is the full text
    with whitespace removed ("List<User>").
    """

    text: str
    name: str
    arguments: List["TypeRef"] = field(default_factory=list)
    is_array: bool = False
    is_primitive: bool = False

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass
class Annotation:
    """An annotation applied to a declaration.

    `arguments` maps attribute name to its raw source text. The unnamed
    default attribute is stored under "value".
    """

    name: str  # As written: "Select" or "org.apache.ibatis.annotations.Select"
    arguments: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, List[str]] = field(default_factory=dict)  # Decoded string literals per attribute

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass
class Parameter:
    name: str
    type: TypeRef
    annotations: List[Annotation] = field(default_factory=list)


@dataclass
class JavaField:
    name: str
    type: TypeRef
    annotations: List[Annotation] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)


@dataclass
class JavaMethod:
    """A method or constructor declaration."""

    name: str
    class_fqn: str
    file_path: str
    start_line: int
    end_line: int
    parameters: List[Parameter] = field(default_factory=list)
    return_type: Optional[TypeRef] = None  # None for constructors
    annotations: List[Annotation] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    invocations: List[Tuple[Optional[str], str]] = field(default_factory=list)  # (receiver text, method name)
    is_constructor: bool = False

    @property
    def signature(self) -> str:
        """Presentable signature: "name(Type1,Type2)"."""
        params = ",".join(p.type.text for p in self.parameters)
        return f"{self.name}({params})"

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers


@dataclass
class JavaClass:
    """A class, interface, enum, record or annotation type declaration."""

    name: str
    qualified_name: str
    package: str
    kind: str  # "class" | "interface" | "enum" | "record" | "annotation"
    file_path: str
    start_line: int
    end_line: int
    annotations: List[Annotation] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    extends: List[TypeRef] = field(default_factory=list)
    implements: List[TypeRef] = field(default_factory=list)
    methods: List[JavaMethod] = field(default_factory=list)
    fields: List[JavaField] = field(default_factory=list)
    outer_name: Optional[str] = None

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"

    @property
    def supertypes(self) -> List[TypeRef]:
        return self.extends + self.implements

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers

    def public_methods(self) -> List[JavaMethod]:
        """Methods callable from outside; interface members are implicitly public."""
        return [
            m for m in self.methods
            if not m.is_constructor
            and (self.is_interface and not m.has_modifier("private") or m.has_modifier("public"))
        ]


@dataclass
class JavaFile:
    """Complete parse output for a single Java file."""

    file_path: str
    package: str
    imports: List[str]  # "java.util.List", "org.apache.ibatis.annotations.*"
    classes: List[JavaClass]  # Top-level and nested, in source order
    line_count: int = 0
    has_errors: bool = False


class SourceText:
    """File content with a line index.

    Lines are 1-based. Excerpts are clamped to the file's valid range.
    """

    def __init__(self, path: str, text: str):
        self.path = path
        self.text = text
        # Rows break at "\n" only, matching tree-sitter's line numbering
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        self.lines = [line[:-1] if line.endswith("\r") else line for line in lines]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def clamp(self, start_line: int, end_line: int) -> Tuple[int, int]:
        """Clamp a 1-based inclusive range to the file. Empty files yield (1, 0)."""
        start = max(start_line, 1)
        end = min(end_line, self.line_count)
        return start, end

    def excerpt(self, start_line: int, end_line: int) -> List[Tuple[int, str]]:
        """Return (line_number, text) pairs for a clamped 1-based range."""
        start, end = self.clamp(start_line, end_line)
        return [(n, self.lines[n - 1]) for n in range(start, end + 1)]
