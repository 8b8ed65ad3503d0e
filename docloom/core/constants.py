"""Shared constants for DocLoom.

Provenance tags, well-known MyBatis / MyBatis-Plus type names and the
stable section headers of generated context bundles.
"""

# =============================================================================
# Provenance
# =============================================================================

# Entry points discovered from an XML <mapper> statement
PROVENANCE_MYBATIS_XML = "MyBatisXml"

# Entry points implied by a MyBatis-Plus BaseMapper sub-interface
PROVENANCE_BASE_MAPPER = "MyBatis-Plus BaseMapper"

# =============================================================================
# MyBatis / MyBatis-Plus
# =============================================================================

BASE_MAPPER_FQN = "com.baomidou.mybatisplus.core.mapper.BaseMapper"

MYBATIS_SQL_ANNOTATIONS = frozenset({
    "org.apache.ibatis.annotations.Select",
    "org.apache.ibatis.annotations.Insert",
    "org.apache.ibatis.annotations.Update",
    "org.apache.ibatis.annotations.Delete",
})

DEFAULT_BASE_MAPPER_METHODS = frozenset({
    "insert",
    "deleteById",
    "selectById",
    "updateById",
    "selectList",
    "selectOne",
    "update",
    "delete",
    "selectPage",
    "selectMaps",
    "selectObjs",
})

# Parameter lists of the default BaseMapper methods; "T" is the entity type argument
DEFAULT_BASE_MAPPER_SIGNATURES = {
    "insert": ["T"],
    "deleteById": ["Serializable"],
    "selectById": ["Serializable"],
    "updateById": ["T"],
    "selectList": ["Wrapper<T>"],
    "selectOne": ["Wrapper<T>"],
    "update": ["T", "Wrapper<T>"],
    "delete": ["Wrapper<T>"],
    "selectPage": ["P", "Wrapper<T>"],
    "selectMaps": ["Wrapper<T>"],
    "selectObjs": ["Wrapper<T>"],
}

SQL_STATEMENT_ELEMENTS = frozenset({"select", "insert", "update", "delete"})

# =============================================================================
# Bundle section headers
# =============================================================================

SECTION_ENTRY_METHOD = "# Entry Method"
SECTION_ENTRY_CLASS = "# Entry Class"
SECTION_SQL = "# SQL Statement"
SECTION_METHOD_SOURCE = "# Method Source"
SECTION_CLASS_SOURCE = "# Class Source"
SECTION_PUBLIC_METHODS = "# Public Methods"
SECTION_CALLGRAPH = "# Callgraph Summary"
SECTION_SLICES = "# Slices"
SECTION_RELATED_TYPES = "# Related Types (DTO/VO/Entity/Enum)"
SECTION_CALLED_METHODS = "# Called Methods"

TRUNCATION_MARKER = "... [truncated]"
