"""DocLoom context assembly.

Public API:
    ContextAssembler(corpus, writer, config).build(entry, call_slice, out_path) → ContextBundle
    is_entity(cls, config) → bool
"""

from .assembler import ContextAssembler, gutter, truncate
from .collectors import (
    CalledMethodCollector,
    FileOutputWriter,
    InvocationCalledMethodCollector,
    InvocationSliceEngine,
    OutputWriter,
    SignatureTypeCollector,
    SliceEngine,
    TypeCollector,
)
from .entity_classifier import is_entity
from .models import CallGraphSlice, ContextBundle, SliceAnchor
from .sql_params import extract_placeholder_names, is_likely_entity_parameter

__all__ = [
    "ContextAssembler",
    "gutter",
    "truncate",
    "CalledMethodCollector",
    "FileOutputWriter",
    "InvocationCalledMethodCollector",
    "InvocationSliceEngine",
    "OutputWriter",
    "SignatureTypeCollector",
    "SliceEngine",
    "TypeCollector",
    "is_entity",
    "CallGraphSlice",
    "ContextBundle",
    "SliceAnchor",
    "extract_placeholder_names",
    "is_likely_entity_parameter",
]
