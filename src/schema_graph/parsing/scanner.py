"""
Scanner selection per dialect
"""
from __future__ import annotations

from typing import Dict, Iterator, Type, Union

from ..config import Dialect
from .ddl import DDLScanner
from .lines import LineScanner, LineShape
from .table_definition import TableDefinitionScanner

_SCANNERS: Dict[Dialect, Type[LineScanner]] = {
    Dialect.TABLE_DEFINITION: TableDefinitionScanner,
    Dialect.DDL: DDLScanner,
}


def get_scanner(dialect: Union[Dialect, str]) -> LineScanner:
    """Create the scanner for a dialect (raises ValueError on unknown tags)"""
    return _SCANNERS[Dialect.from_value(dialect)]()


def scan(text: str, dialect: Union[Dialect, str]) -> Iterator[LineShape]:
    """Lazily classify the logical lines of text"""
    return get_scanner(dialect).scan(text)
