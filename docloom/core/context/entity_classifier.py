"""Heuristic entity/DTO/VO classification.

A type is an entity when it is not excluded and it matches any inclusion
rule: a whitelisted annotation, an entity-style package, or an entity-style
name suffix. Exclusion is checked first and always wins, so a
`com.example.entity.UserMapper` is never treated as an entity.
"""

from typing import Optional

from ..config import ContextConfig
from ..corpus import JavaClass

DEFAULT_PACKAGE_KEYWORDS = (".entity", ".model", ".domain", ".po", ".pojo")

DEFAULT_TYPE_SUFFIXES = ("Entity", "DO", "PO", "POJO")

# Qualified-name prefixes of runtime and framework types
EXCLUDED_PACKAGE_PREFIXES = (
    "java.lang",
    "java.util",
    "java.time",
    "java.math",
    "org.springframework",
    "com.baomidou.mybatisplus.core",
)

# Role-name suffixes of behavior-carrying types
EXCLUDED_NAME_SUFFIXES = ("Mapper", "Service", "Controller", "Config", "Utils")


def is_excluded(cls: JavaClass) -> bool:
    fqn = cls.qualified_name or ""
    if any(fqn.startswith(prefix) for prefix in EXCLUDED_PACKAGE_PREFIXES):
        return True
    return cls.name.endswith(EXCLUDED_NAME_SUFFIXES)


def is_entity(cls: JavaClass, config: Optional[ContextConfig] = None) -> bool:
    """Decide whether a class is a data-carrying entity/DTO/VO type."""
    config = config or ContextConfig()

    if is_excluded(cls):
        return False

    for annotation in cls.annotations:
        for allowed in config.annotation_whitelist:
            if annotation.name == allowed or annotation.name.endswith(allowed):
                return True
            if annotation.simple_name == allowed:
                return True

    package = (cls.package or "").lower()
    keywords = list(config.package_keywords) + list(DEFAULT_PACKAGE_KEYWORDS)
    if any(keyword.lower() in package for keyword in keywords if keyword):
        return True

    name = cls.name.lower()
    suffixes = list(config.type_suffixes) + list(DEFAULT_TYPE_SUFFIXES)
    if any(name.endswith(suffix.lower()) for suffix in suffixes if suffix):
        return True

    return False
