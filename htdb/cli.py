"""
htdb CLI.

Commands:
    create-table   Create a table with an ordered column list
    delete-table   Remove a table and its records
    insert         Insert one record
    update         Merge new values into matching records
    select         Print matching records as JSON
    delete         Remove matching records
    tables         List table names
    columns        List a table's columns
    count          Count a table's records

The secret is read from --secret, then $HTDB_SECRET, then prompted for.

Examples:
    htdb create-table app.ht users id name
    htdb insert app.ht users id=1 name=Alice
    htdb update app.ht users --where id=1 --set name=Bob
    htdb select app.ht users --where id=1
    htdb delete app.ht users --where id=1
"""

from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from dataclasses import replace
from typing import Optional, Sequence

from htdb.core.config import ConfigError, HtdbConfig, LoggingConfig
from htdb.core.crypto.aes_gcm import DecodeError
from htdb.core.logging import get_logger
from htdb.db.engine import Database
from htdb.db.storage import UnreadableDatabaseError
from htdb.db.table import SchemaError
from htdb.utils.validators import ValidationError

SECRET_ENV_VAR = "HTDB_SECRET"

EXIT_OK = 0
EXIT_DATA_ERROR = 1
EXIT_USAGE_ERROR = 2


def parse_pairs(pairs: Sequence[str], json_text: Optional[str] = None) -> dict[str, str]:
    """
    Build a string map from col=value pairs and/or a JSON object.

    Pairs win over JSON keys with the same column.
    """
    result: dict[str, str] = {}
    if json_text:
        try:
            data = json.loads(json_text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON: {e.msg}") from e
        if not isinstance(data, dict):
            raise ValidationError("JSON value must be an object")
        result.update({str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()})
    for pair in pairs:
        column, sep, value = pair.partition("=")
        if not sep or not column:
            raise ValidationError(f"Expected column=value, got {pair!r}")
        result[column] = value
    return result


def _resolve_secret(args: argparse.Namespace) -> str:
    if args.secret is not None:
        return args.secret
    env_secret = os.environ.get(SECRET_ENV_VAR)
    if env_secret is not None:
        return env_secret
    return getpass.getpass("Database secret: ")


def cmd_create_table(db: Database, args: argparse.Namespace) -> int:
    """Handle create-table command."""
    if args.if_not_exists:
        created = db.create_table_if_not_exists(args.table, args.columns)
        if not created:
            print(f'Table "{args.table}" already exists.')
        return EXIT_OK
    db.create_table(args.table, args.columns)
    return EXIT_OK


def cmd_delete_table(db: Database, args: argparse.Namespace) -> int:
    """Handle delete-table command."""
    if args.if_exists:
        db.delete_table_if_exists(args.table)
    else:
        db.delete_table(args.table)
    return EXIT_OK


def cmd_insert(db: Database, args: argparse.Namespace) -> int:
    """Handle insert command."""
    db.insert(args.table, parse_pairs(args.values, args.json))
    return EXIT_OK


def cmd_update(db: Database, args: argparse.Namespace) -> int:
    """Handle update command."""
    patch = parse_pairs(args.set)
    if not patch:
        raise ValidationError("update needs at least one --set column=value")
    db.update(args.table, parse_pairs(args.where), patch)
    return EXIT_OK


def cmd_select(db: Database, args: argparse.Namespace) -> int:
    """Handle select command."""
    query = parse_pairs(args.where) if args.where else None
    print(db.select_json(args.table, query))
    return EXIT_OK


def cmd_delete(db: Database, args: argparse.Namespace) -> int:
    """Handle delete command."""
    if not args.where and not args.all:
        raise ValidationError("delete needs --where column=value or --all")
    db.delete(args.table, parse_pairs(args.where))
    return EXIT_OK


def cmd_tables(db: Database, args: argparse.Namespace) -> int:
    """Handle tables command."""
    for name in db.table_names():
        print(name)
    return EXIT_OK


def cmd_columns(db: Database, args: argparse.Namespace) -> int:
    """Handle columns command."""
    for column in db.column_names(args.table):
        print(column)
    return EXIT_OK


def cmd_count(db: Database, args: argparse.Namespace) -> int:
    """Handle count command."""
    print(db.record_count(args.table))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htdb",
        description="Encrypted single-file table store",
    )
    parser.add_argument("--secret", help=f"Database secret (default: ${SECRET_ENV_VAR} or prompt)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_command(name: str, handler, help_text: str, table: bool = True) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("database", help="Database file (*.ht)")
        if table:
            sub.add_argument("table", help="Table name")
        sub.set_defaults(func=handler)
        return sub

    p = add_command("create-table", cmd_create_table, "Create a table")
    p.add_argument("columns", nargs="+", help="Column names, in record order")
    p.add_argument("--if-not-exists", action="store_true", help="Do nothing if the table exists")

    p = add_command("delete-table", cmd_delete_table, "Delete a table")
    p.add_argument("--if-exists", action="store_true", help="Do nothing if the table is missing")

    p = add_command("insert", cmd_insert, "Insert a record")
    p.add_argument("values", nargs="*", metavar="COLUMN=VALUE")
    p.add_argument("--json", help="Record as a JSON object")

    p = add_command("update", cmd_update, "Update matching records")
    p.add_argument("--where", action="append", default=[], metavar="COLUMN=VALUE")
    p.add_argument("--set", action="append", default=[], metavar="COLUMN=VALUE")

    p = add_command("select", cmd_select, "Print matching records as JSON")
    p.add_argument("--where", action="append", default=[], metavar="COLUMN=VALUE")

    p = add_command("delete", cmd_delete, "Delete matching records")
    p.add_argument("--where", action="append", default=[], metavar="COLUMN=VALUE")
    p.add_argument("--all", action="store_true", help="Delete every record")

    add_command("tables", cmd_tables, "List tables", table=False)
    add_command("columns", cmd_columns, "List a table's columns")
    add_command("count", cmd_count, "Count a table's records")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = HtdbConfig.load()
        if args.verbose:
            get_logger("htdb", _verbose(config))
        else:
            get_logger("htdb", config.logging)

        db = Database(args.database, _resolve_secret(args), config=config)
        return args.func(db, args)
    except (ConfigError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR
    except (SchemaError, UnreadableDatabaseError, DecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DATA_ERROR
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DATA_ERROR


def _verbose(config: HtdbConfig) -> LoggingConfig:
    return replace(config.logging, level="DEBUG", enable_console=True)


if __name__ == "__main__":
    sys.exit(main())
