"""
Utilities Package for Schema Graph
"""
from .logging import (
    setup_logging,
    get_logger,
    new_parse_id,
    get_parse_id,
    clear_context,
    log_context,
    log_operation,
)

from .errors import (
    ErrorSeverity,
    ErrorCategory,
    ErrorContext,
    SchemaGraphError,
    StructuralParseError,
    UnsupportedDialectError,
    DuplicateIdentifierError,
    SchemaIntegrityError,
    ConfigurationError,
)

from .metrics import (
    MetricsCollector,
    get_metrics_collector,
    counter,
    gauge,
    timer,
    time_operation,
    ParserMetrics,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "new_parse_id",
    "get_parse_id",
    "clear_context",
    "log_context",
    "log_operation",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "SchemaGraphError",
    "StructuralParseError",
    "UnsupportedDialectError",
    "DuplicateIdentifierError",
    "SchemaIntegrityError",
    "ConfigurationError",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    "counter",
    "gauge",
    "timer",
    "time_operation",
    "ParserMetrics",
]
