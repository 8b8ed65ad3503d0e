"""Collaborator contracts for context assembly, plus reference implementations.

The assembler consumes four collaborators:
  SliceEngine.analyze(entry)            → CallGraphSlice
  TypeCollector.collect(...)            → related classes, ordered
  CalledMethodCollector.collect(...)    → called methods, ordered
  OutputWriter.write_relative(path, t)  → absolute path

The reference implementations work from the parsed corpus alone: signature
and field types for related types, invocation names for callees. They are
deliberately shallow; a real call-graph engine can be plugged in through the
same interfaces.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Set, Tuple

from ..config import ContextConfig
from ..corpus import CorpusQuery, CorpusSnapshot, JavaClass, JavaMethod, TypeRef
from ..scan.models import EntryPoint
from .entity_classifier import is_entity
from .models import CallGraphSlice, SliceAnchor

logger = logging.getLogger(__name__)

# Data-carrier suffixes collected alongside entities and enums
DATA_TYPE_SUFFIXES = ("DTO", "VO", "BO", "Request", "Response", "Query", "Param", "Form", "Command")


class SliceEngine(ABC):
    """Computes the call-graph slice of one entry point."""

    @abstractmethod
    def analyze(self, entry: EntryPoint) -> CallGraphSlice:
        ...


class TypeCollector(ABC):
    """Collects the data types a method refers to."""

    @abstractmethod
    def collect(self, snapshot: CorpusSnapshot, method: JavaMethod, max_depth: int) -> List[JavaClass]:
        """Return related corpus classes, nearest first.

        Args:
            snapshot: Corpus snapshot of the current read action
            method: Method whose signature seeds the walk
            max_depth: 1 = signature types only; each extra level follows field types
        """
        ...


class CalledMethodCollector(ABC):
    """Collects the methods transitively called by a method."""

    @abstractmethod
    def collect(self, snapshot: CorpusSnapshot, method: JavaMethod, max_depth: int) -> List[JavaMethod]:
        ...


class OutputWriter(ABC):
    """Persists bundle text under a relative path."""

    @abstractmethod
    def write_relative(self, relative_path: str, text: str) -> str:
        """Write text and return the absolute path written."""
        ...


# =============================================================================
# Reference implementations
# =============================================================================


def _type_refs(ref: Optional[TypeRef]) -> List[TypeRef]:
    """The type itself followed by its generic arguments, depth-first."""
    if ref is None:
        return []
    refs = [ref]
    for arg in ref.arguments:
        refs.extend(_type_refs(arg))
    return refs


class SignatureTypeCollector(TypeCollector):
    """Walk parameter, return and field types breadth-first.

    A resolved class is collected when it is an enum or record, an entity
    per the classifier, or named like a data carrier (UserDTO, OrderVO).
    Unrelated classes are not collected but still traversed.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self._config = config or ContextConfig()

    def collect(self, snapshot: CorpusSnapshot, method: JavaMethod, max_depth: int) -> List[JavaClass]:
        if max_depth <= 0:
            return []
        owner = snapshot.resolve(method.class_fqn)
        if owner is None:
            return []

        seeds: List[TypeRef] = []
        for param in method.parameters:
            seeds.extend(_type_refs(param.type))
        seeds.extend(_type_refs(method.return_type))

        collected: List[JavaClass] = []
        visited: Set[str] = {owner.qualified_name}
        frontier: List[Tuple[TypeRef, JavaClass]] = [(ref, owner) for ref in seeds]

        for _ in range(max_depth):
            next_frontier: List[Tuple[TypeRef, JavaClass]] = []
            for ref, context in frontier:
                if ref.is_primitive:
                    continue
                cls = snapshot.resolve_type(ref.name, context)
                if cls is None or cls.qualified_name in visited:
                    continue
                visited.add(cls.qualified_name)
                if self._is_data_type(cls):
                    collected.append(cls)
                for f in cls.fields:
                    if "static" in f.modifiers:
                        continue
                    next_frontier.extend((r, cls) for r in _type_refs(f.type))
            frontier = next_frontier

        return collected

    def _is_data_type(self, cls: JavaClass) -> bool:
        if cls.kind in ("enum", "record"):
            return True
        if cls.name.endswith(DATA_TYPE_SUFFIXES):
            return True
        return is_entity(cls, self._config)


class InvocationCalledMethodCollector(CalledMethodCollector):
    """Resolve invocations by name.

    Unqualified calls and `this.` calls bind to methods of the same class;
    calls on a field, parameter or type name bind to methods of that type,
    preferring implementations when the type is an interface.
    """

    def collect(self, snapshot: CorpusSnapshot, method: JavaMethod, max_depth: int) -> List[JavaMethod]:
        result: List[JavaMethod] = []
        seen: Set[Tuple[str, str, int]] = {self._key(method)}
        frontier = [method]

        for _ in range(max_depth):
            next_frontier: List[JavaMethod] = []
            for caller in frontier:
                for callee in self._callees(snapshot, caller):
                    key = self._key(callee)
                    if key in seen:
                        continue
                    seen.add(key)
                    result.append(callee)
                    next_frontier.append(callee)
            frontier = next_frontier

        return result

    @staticmethod
    def _key(method: JavaMethod) -> Tuple[str, str, int]:
        return method.class_fqn, method.name, method.start_line

    def _callees(self, snapshot: CorpusSnapshot, caller: JavaMethod) -> List[JavaMethod]:
        owner = snapshot.resolve(caller.class_fqn)
        if owner is None:
            return []

        callees: List[JavaMethod] = []
        for receiver, name in caller.invocations:
            if receiver is None or receiver == "this":
                targets = [owner]
            else:
                targets = self._receiver_classes(snapshot, owner, caller, receiver)
            for cls in targets:
                callees.extend(m for m in cls.methods if m.name == name and not m.is_constructor)
        return callees

    def _receiver_classes(
        self,
        snapshot: CorpusSnapshot,
        owner: JavaClass,
        caller: JavaMethod,
        receiver: str,
    ) -> List[JavaClass]:
        if receiver.startswith("this."):
            receiver = receiver[len("this."):]

        type_name = None
        for param in caller.parameters:
            if param.name == receiver:
                type_name = param.type.name
        if type_name is None:
            for f in owner.fields:
                if f.name == receiver:
                    type_name = f.type.name
        if type_name is None and receiver[:1].isupper():
            type_name = receiver

        if type_name is None:
            return []
        cls = snapshot.resolve_type(type_name, owner)
        if cls is None:
            return []
        if cls.is_interface:
            impls = [c for c in snapshot.implementations(cls.qualified_name) if not c.is_interface]
            if impls:
                return impls
        return [cls]


class InvocationSliceEngine(SliceEngine):
    """Slice made of the entry method and its direct callees.

    The summary lists one "caller -> callee" edge per line; anchors cover
    the entry method followed by each resolved callee.
    """

    def __init__(self, corpus: CorpusQuery, callees: Optional[CalledMethodCollector] = None):
        self._corpus = corpus
        self._callees = callees or InvocationCalledMethodCollector()

    def analyze(self, entry: EntryPoint) -> CallGraphSlice:
        with self._corpus.read_action() as snapshot:
            cls = snapshot.resolve(entry.class_fqn)
            if cls is None:
                return CallGraphSlice(summary=f"{entry.class_fqn}#{entry.method}: no source")

            method = next((m for m in cls.methods if m.name == entry.method_name), None)
            if method is None:
                return CallGraphSlice(summary=f"{entry.class_fqn}#{entry.method}: inherited, no body")

            callees = self._callees.collect(snapshot, method, 1)
            lines = [f"{entry.class_fqn}#{method.name}"]
            lines.extend(f"  -> {c.class_fqn}#{c.name}" for c in callees)
            anchors = [SliceAnchor(method.file_path, method.start_line, method.end_line)]
            anchors.extend(SliceAnchor(c.file_path, c.start_line, c.end_line) for c in callees)
            return CallGraphSlice(summary="\n".join(lines), anchors=anchors)


class FileOutputWriter(OutputWriter):
    """Write bundles under a base directory, creating parent directories."""

    def __init__(self, base_dir: str):
        self._base_dir = os.path.abspath(base_dir)

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def write_relative(self, relative_path: str, text: str) -> str:
        path = os.path.abspath(os.path.join(self._base_dir, relative_path))
        if not path.startswith(self._base_dir + os.sep):
            raise ValueError(f"Output path escapes base directory: {relative_path}")
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        logger.debug(f"Wrote {len(text)} chars to {path}")
        return path
