"""
Configuration Management for Schema Graph
Uses Pydantic for validation and type safety
"""
from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .utils.errors import ConfigurationError


class Dialect(str, Enum):
    """Supported schema text dialects"""
    TABLE_DEFINITION = "table-definition"
    DDL = "ddl"

    @classmethod
    def from_value(cls, value: "Dialect | str") -> "Dialect":
        """Resolve a dialect tag, accepting the common aliases"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        aliases = {
            "dbml": cls.TABLE_DEFINITION,
            "table-definition": cls.TABLE_DEFINITION,
            "sql": cls.DDL,
            "ddl": cls.DDL,
        }
        if normalized not in aliases:
            raise ValueError(f"Unknown dialect: {value!r}")
        return aliases[normalized]


class LogLevel(str, Enum):
    """Log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LayoutConfig(BaseModel):
    """Initial canvas placement of parsed tables"""
    origin_x: float = Field(default=100.0, ge=0)
    origin_y: float = Field(default=100.0, ge=0)
    spacing_x: float = Field(default=300.0, ge=0)


class ParserConfig(BaseModel):
    """Parser behaviour"""
    default_dialect: Optional[Dialect] = None
    infer_cardinality: bool = True
    layout: LayoutConfig = Field(default_factory=LayoutConfig)


class ValidationConfig(BaseModel):
    """Schema validator rules"""
    require_tables: bool = True
    max_table_name_length: int = Field(default=100, ge=1, le=10000)


class MetricsConfig(BaseModel):
    """Metrics collection configuration"""
    enabled: bool = True


class SystemConfig(BaseModel):
    """Main system configuration"""
    parser: ParserConfig = Field(default_factory=ParserConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    log_level: LogLevel = LogLevel.INFO
    json_logs: bool = False
    debug_mode: bool = False

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create configuration from environment variables (and a .env file)"""
        load_dotenv(find_dotenv(usecwd=True))

        dialect = os.getenv("SCHEMA_GRAPH_DEFAULT_DIALECT")
        try:
            parser_config = ParserConfig(
                default_dialect=Dialect.from_value(dialect) if dialect else None,
                infer_cardinality=_env_flag("SCHEMA_GRAPH_INFER_CARDINALITY", True),
                layout=LayoutConfig(
                    origin_x=float(os.getenv("SCHEMA_GRAPH_LAYOUT_ORIGIN_X", "100")),
                    origin_y=float(os.getenv("SCHEMA_GRAPH_LAYOUT_ORIGIN_Y", "100")),
                    spacing_x=float(os.getenv("SCHEMA_GRAPH_LAYOUT_SPACING_X", "300")),
                ),
            )

            return cls(
                parser=parser_config,
                validation=ValidationConfig(
                    require_tables=_env_flag("SCHEMA_GRAPH_REQUIRE_TABLES", True),
                    max_table_name_length=int(os.getenv("SCHEMA_GRAPH_MAX_TABLE_NAME_LENGTH", "100")),
                ),
                metrics=MetricsConfig(enabled=_env_flag("SCHEMA_GRAPH_METRICS_ENABLED", True)),
                log_level=LogLevel(os.getenv("SCHEMA_GRAPH_LOG_LEVEL", "INFO").upper()),
                json_logs=_env_flag("SCHEMA_GRAPH_JSON_LOGS", False),
                debug_mode=_env_flag("SCHEMA_GRAPH_DEBUG", False),
            )
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(
                f"Invalid environment configuration: {e}",
                original_error=e,
            ) from e

    @classmethod
    def from_yaml(cls, path: str) -> "SystemConfig":
        """Load configuration from a YAML file"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not read configuration file {path}: {e}",
                config_key=path,
                original_error=e,
            ) from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        """Create configuration from a plain mapping"""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        parser_data = dict(data.get("parser") or {})
        if parser_data.get("default_dialect"):
            try:
                parser_data["default_dialect"] = Dialect.from_value(parser_data["default_dialect"])
            except ValueError as e:
                raise ConfigurationError(str(e), config_key="parser.default_dialect") from e

        data = {**data, "parser": parser_data}
        if isinstance(data.get("log_level"), str):
            data["log_level"] = data["log_level"].upper()

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", original_error=e) from e


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: SystemConfig) -> None:
    """Set the global configuration instance"""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance"""
    global _config
    _config = None
