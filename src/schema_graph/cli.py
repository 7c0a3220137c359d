"""
Command line interface

    schema-graph parse schema.dbml --format yaml
    schema-graph parse schema.sql --dialect ddl --validate --show-diagnostics
    schema-graph validate stored.json
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import yaml

from .config import LogLevel, SystemConfig
from .models import Schema, ValidationResult
from .parsing import SchemaParser
from .utils import ConfigurationError, SchemaGraphError, get_logger, setup_logging
from .validation import SchemaValidator

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-graph",
        description="Extract a table/relationship graph from schema text",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
        help="Log level (default: from configuration)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON structured logs")
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_cmd = subparsers.add_parser("parse", help="Parse a schema file")
    parse_cmd.add_argument("file", help="Schema text file (table-definition or DDL)")
    parse_cmd.add_argument(
        "--dialect",
        help="table-definition (dbml) or ddl (sql); detected when omitted",
    )
    parse_cmd.add_argument("--format", choices=["json", "yaml"], default="json", help="Output format")
    parse_cmd.add_argument("--output", "-o", metavar="PATH", help="Write the schema here instead of stdout")
    parse_cmd.add_argument("--validate", action="store_true", help="Validate the parsed schema")
    parse_cmd.add_argument(
        "--show-diagnostics",
        action="store_true",
        help="Print parse diagnostics to stderr",
    )

    validate_cmd = subparsers.add_parser("validate", help="Validate a stored schema (JSON or YAML)")
    validate_cmd.add_argument("file", help="Stored schema document")

    return parser


def _load_config(path: Optional[str]) -> SystemConfig:
    if path:
        return SystemConfig.from_yaml(path)
    return SystemConfig.from_env()


def _print_issues(result: ValidationResult, stream=None) -> None:
    for issue in result.issues:
        print(f"  {issue.path}: {issue.message}", file=stream or sys.stdout)


def _run_parse(args: argparse.Namespace, config: SystemConfig) -> int:
    try:
        with open(args.file, 'rb') as f:
            data = f.read()
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    result = SchemaParser(config).parse(data, args.dialect)
    if not result.success:
        for error in result.errors:
            location = f" (line {error.line})" if error.line else ""
            print(f"Error: {error.message}{location}", file=sys.stderr)
        return EXIT_FAILURE

    if args.show_diagnostics:
        for diagnostic in result.diagnostics:
            print(f"{diagnostic.severity}: [{diagnostic.kind.value}] {diagnostic}", file=sys.stderr)

    schema = result.schema
    output = schema.to_yaml() if args.format == "yaml" else schema.to_json()
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(output)
        logger.info(f"Wrote schema {schema.id} to {args.output}")
    else:
        print(output)

    if args.validate:
        validation = SchemaValidator(config).validate(schema)
        if not validation.is_valid:
            print(f"Schema {schema.id} has {len(validation.issues)} validation issues:", file=sys.stderr)
            _print_issues(validation, sys.stderr)
            return EXIT_INVALID

    return EXIT_OK


def _run_validate(args: argparse.Namespace, config: SystemConfig) -> int:
    try:
        schema = Schema.load(args.file)
    except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError, SchemaGraphError) as e:
        print(f"Error: cannot load schema from {args.file}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    validation = SchemaValidator(config).validate(schema)
    if validation.is_valid:
        print(f"Schema {schema.id} is valid")
        return EXIT_OK

    print(f"Schema {schema.id} has {len(validation.issues)} validation issues:")
    _print_issues(validation)
    return EXIT_INVALID


def main(argv: Optional[List[str]] = None) -> int:
    """Run the schema-graph CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        config = _load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(
        level=args.log_level or config.log_level.value,
        json_format=args.json_logs or config.json_logs,
    )

    if args.command == "parse":
        return _run_parse(args, config)
    return _run_validate(args, config)


if __name__ == "__main__":
    sys.exit(main())
