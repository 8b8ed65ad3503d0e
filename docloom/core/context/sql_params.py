"""SQL placeholder analysis used to find entity-typed method parameters."""

import re
from typing import List, Optional

from ..corpus import JavaClass, Parameter

# #{user.name} / ${orderBy}: the leading identifier is the parameter name
PLACEHOLDER_PATTERN = re.compile(r"[#$]\{(\w+)(?:\.[\w.]*)?}")

ENTITY_PARAMETER_TOKENS = ("entity", "model", "record", "data", "user", "order", "product")

FRAMEWORK_PACKAGE_PREFIXES = (
    "java.lang",
    "java.util",
    "java.time",
    "java.math",
    "org.springframework",
    "com.baomidou.mybatisplus",
)


def extract_placeholder_names(sql: str) -> List[str]:
    """Distinct parameter names referenced by #{...}/${...} placeholders, in order."""
    names: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(sql or ""):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def is_likely_entity_parameter(
    param: Parameter,
    qualified_type: Optional[str] = None,
    resolved: Optional[JavaClass] = None,
) -> bool:
    """Guess whether a parameter carries an entity.

    True when the parameter name contains a common entity token, or when
    its (non-primitive) type is a non-interface class outside the runtime
    and framework packages.

    Args:
        param: The method parameter
        qualified_type: The parameter type's qualified name, if resolvable
        resolved: The corpus class of the parameter type, if any
    """
    lowered = param.name.lower()
    if any(token in lowered for token in ENTITY_PARAMETER_TOKENS):
        return True

    if param.type.is_primitive:
        return False

    type_name = qualified_type or (resolved.qualified_name if resolved else "")
    if any(type_name.startswith(prefix) for prefix in FRAMEWORK_PACKAGE_PREFIXES):
        return False
    return not (resolved is not None and resolved.is_interface)
