"""
Validation Package
"""
from .validator import SchemaValidator, validate_schema

__all__ = [
    "SchemaValidator",
    "validate_schema",
]
