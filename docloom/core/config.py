"""DocLoom settings.

Settings are plain dataclasses so they can be built in code (tests, batch
drivers) or loaded from config/docloom.yaml:

    annotation: "RestController,Service"
    mybatis:
      enabled: true
      include_mybatis_plus_base_methods: true
      strict_service_mapping: false
    context:
      max_chars: 80000
      type_depth: 2
      collect_called: true
      called_depth: 1
      annotation_whitelist: [Entity, Table, TableName]
      package_keywords: [".dto", ".vo"]
      type_suffixes: [DTO, VO]
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "docloom.yaml"


@dataclass
class MyBatisConfig:
    enabled: bool = True
    include_mybatis_plus_base_methods: bool = True
    strict_service_mapping: bool = False


@dataclass
class ContextConfig:
    """Context assembly limits and entity-classification rules."""

    max_chars: int = 80_000
    type_depth: int = 2
    collect_called: bool = True
    called_depth: int = 1
    annotation_whitelist: List[str] = field(
        default_factory=lambda: ["Entity", "Table", "TableName"]
    )
    package_keywords: List[str] = field(default_factory=list)
    type_suffixes: List[str] = field(default_factory=list)


@dataclass
class Settings:
    annotation: str = "RestController,Service"
    mybatis: MyBatisConfig = field(default_factory=MyBatisConfig)
    context: ContextConfig = field(default_factory=ContextConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Build settings from a parsed YAML mapping, ignoring unknown keys.

        Raises:
            ValueError: If a limit is out of range
        """
        data = data or {}
        settings = cls(
            annotation=str(data.get("annotation", cls.annotation)),
            mybatis=_build(MyBatisConfig, data.get("mybatis")),
            context=_build(ContextConfig, data.get("context")),
        )
        ctx = settings.context
        if ctx.max_chars <= 0:
            raise ValueError(f"context.max_chars must be positive, got {ctx.max_chars}")
        if ctx.type_depth < 0 or ctx.called_depth < 0:
            raise ValueError("context.type_depth and context.called_depth must be >= 0")
        return settings


def _build(config_cls, section: Optional[Dict[str, Any]]):
    if not section:
        return config_cls()
    kwargs = {}
    for f in fields(config_cls):
        if f.name not in section:
            continue
        value = section[f.name]
        if f.type == List[str] and isinstance(value, str):
            value = [v.strip() for v in value.split(",") if v.strip()]
        elif f.type == List[str]:
            value = [str(v) for v in (value or [])]
        elif f.type is int:
            value = int(value)
        elif f.type is bool:
            value = bool(value)
        kwargs[f.name] = value
    unknown = set(section) - {f.name for f in fields(config_cls)}
    if unknown:
        logger.warning(f"Ignoring unknown {config_cls.__name__} keys: {sorted(unknown)}")
    return config_cls(**kwargs)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from YAML, falling back to defaults when the file is missing."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning(f"{path.name} not found at {path}, using default settings")
        return Settings()

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    settings = Settings.from_dict(data)
    logger.debug(f"Loaded settings from {path}: {settings}")
    return settings
