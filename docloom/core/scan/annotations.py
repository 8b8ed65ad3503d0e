"""Annotation matching and SQL extraction helpers for the entry scanner."""

import re
from typing import Iterable, List, Optional

from ..constants import MYBATIS_SQL_ANNOTATIONS
from ..corpus import Annotation, CorpusSnapshot, JavaClass

_SPEC_SEPARATORS = re.compile(r"[,;\s]+")


def normalize_annotation_spec(spec: str) -> List[str]:
    """Split a target-annotation spec into annotation names.

    "@RestController; Service,\\n@com.acme.Rpc" -> ["RestController", "Service", "com.acme.Rpc"]
    """
    targets = []
    for token in _SPEC_SEPARATORS.split(spec or ""):
        token = token.strip().lstrip("@")
        if token:
            targets.append(token)
    return targets


def annotation_qualified_name(annotation: Annotation, snapshot: CorpusSnapshot, context: JavaClass) -> str:
    """Resolve an annotation to its qualified name, or return it as written."""
    qualified = snapshot.qualify(annotation.name, context, known=MYBATIS_SQL_ANNOTATIONS)
    return qualified or annotation.name


def matches_target(qualified_name: str, simple_name: str, targets: Iterable[str]) -> bool:
    for target in targets:
        if qualified_name.endswith(f".{target}") or simple_name == target or qualified_name == target:
            return True
    return False


def has_any_annotation(
    annotations: Iterable[Annotation],
    targets: List[str],
    snapshot: CorpusSnapshot,
    context: JavaClass,
) -> bool:
    """True if any annotation matches a target or is a MyBatis SQL annotation."""
    for annotation in annotations:
        qualified = annotation_qualified_name(annotation, snapshot, context)
        if matches_target(qualified, annotation.simple_name, targets):
            return True
        if qualified in MYBATIS_SQL_ANNOTATIONS:
            return True
    return False


def clean_sql_literal(raw: str) -> Optional[str]:
    """Strip quotes, un-escape \\" and \\n, trim. Blank text yields None."""
    text = raw.strip()
    if text.startswith('"""') and text.endswith('"""') and len(text) >= 6:
        text = text[3:-3]
    elif len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    text = text.replace('\\"', '"').replace("\\n", "\n").strip()
    return text or None


def extract_sql(
    annotations: Iterable[Annotation],
    snapshot: CorpusSnapshot,
    context: JavaClass,
) -> Optional[str]:
    """Extract SQL text from the first MyBatis @Select/@Insert/@Update/@Delete.

    Reads the `value` attribute (the unnamed default attribute is stored
    under the same key). Array and concatenated values join their string
    literals with single spaces.
    """
    for annotation in annotations:
        if annotation_qualified_name(annotation, snapshot, context) not in MYBATIS_SQL_ANNOTATIONS:
            continue
        raw = annotation.arguments.get("value")
        if raw is None:
            continue

        literals = annotation.values.get("value") or []
        if literals:
            parts = [part for part in (clean_sql_literal(lit) for lit in literals) if part]
            sql = " ".join(parts) or None
        else:
            sql = clean_sql_literal(raw)

        if sql:
            return sql
    return None
