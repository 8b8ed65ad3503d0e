"""Data contracts for context assembly."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class SliceAnchor:
    """A source range selected by the slice engine. Lines are 1-based, inclusive."""

    file: str
    start_line: int
    end_line: int


@dataclass
class CallGraphSlice:
    """Output of the external call-graph/slice engine for one entry method."""

    summary: str = ""
    anchors: List[SliceAnchor] = field(default_factory=list)


@dataclass
class ContextBundle:
    """One assembled document and the absolute path it was written to."""

    text: str
    path: str
